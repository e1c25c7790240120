from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

PLACEHOLDER_IMAGE_URL = (
    "https://images.unsplash.com/photo-1513708927688-890a1e2b6b94?auto=format&fit=crop&w=400&q=80"
)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass
class Settings:
    app_name: str = "LLM Market API"
    api_prefix: str = "/v1"
    cors_origins: str = "http://localhost:3000"
    enable_external_services: bool = False
    redis_url: str = "redis://localhost:6379/0"
    redis_retry_seconds: float = 30.0

    asin_data_api_key: str = ""
    asin_data_base_url: str = "https://api.asindataapi.com/request"
    amazon_domain: str = "amazon.com"
    search_timeout_seconds: float = 30.0

    llm_enabled: bool = True
    llm_provider: str = "openrouter"
    llm_model: str = "meta-llama/llama-3.1-8b-instruct:free"
    openrouter_api_key: str = ""
    openai_api_key: str = ""
    llm_base_url: str = ""
    llm_timeout_seconds: float = 30.0
    llm_max_tokens: int = 512
    llm_temperature: float = 0.2

    carousel_capacity: int = 2
    feedback_ttl_seconds: float = 3.0
    session_idle_minutes: float = 30.0
    max_live_sessions: int = 5000
    cart_key_prefix: str = "cart"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            api_prefix=os.getenv("API_PREFIX", cls.api_prefix),
            cors_origins=os.getenv("CORS_ORIGINS", cls.cors_origins),
            enable_external_services=_env_bool("ENABLE_EXTERNAL_SERVICES", cls.enable_external_services),
            redis_url=os.getenv("REDIS_URL", cls.redis_url),
            redis_retry_seconds=_env_float("REDIS_RETRY_SECONDS", cls.redis_retry_seconds),
            asin_data_api_key=os.getenv("ASINDATAAPIKEY", cls.asin_data_api_key),
            asin_data_base_url=os.getenv("ASIN_DATA_BASE_URL", cls.asin_data_base_url),
            amazon_domain=os.getenv("AMAZON_DOMAIN", cls.amazon_domain),
            search_timeout_seconds=_env_float("SEARCH_TIMEOUT_SECONDS", cls.search_timeout_seconds),
            llm_enabled=_env_bool("LLM_ENABLED", cls.llm_enabled),
            llm_provider=os.getenv("LLM_PROVIDER", cls.llm_provider).strip().lower(),
            llm_model=os.getenv("LLM_MODEL", cls.llm_model),
            openrouter_api_key=os.getenv("OPENROUTER_API_KEY", cls.openrouter_api_key),
            openai_api_key=os.getenv("OPENAI_API_KEY", cls.openai_api_key),
            llm_base_url=os.getenv("LLM_BASE_URL", cls.llm_base_url),
            llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", cls.llm_timeout_seconds),
            llm_max_tokens=_env_int("LLM_MAX_TOKENS", cls.llm_max_tokens),
            llm_temperature=_env_float("LLM_TEMPERATURE", cls.llm_temperature),
            carousel_capacity=max(1, _env_int("CAROUSEL_CAPACITY", cls.carousel_capacity)),
            feedback_ttl_seconds=_env_float("FEEDBACK_TTL_SECONDS", cls.feedback_ttl_seconds),
            session_idle_minutes=_env_float("SESSION_IDLE_MINUTES", cls.session_idle_minutes),
            max_live_sessions=max(1, _env_int("MAX_LIVE_SESSIONS", cls.max_live_sessions)),
            cart_key_prefix=os.getenv("CART_KEY_PREFIX", cls.cart_key_prefix),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def llm_api_key(self) -> str:
        if self.llm_provider == "openai":
            return self.openai_api_key
        return self.openrouter_api_key

    @property
    def llm_endpoint(self) -> str:
        if self.llm_base_url:
            return self.llm_base_url.rstrip("/")
        if self.llm_provider == "openai":
            return "https://api.openai.com/v1"
        return "https://openrouter.ai/api/v1"
