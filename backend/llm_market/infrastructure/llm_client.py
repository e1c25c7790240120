from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Sequence

import httpx

from llm_market.core.config import Settings
from llm_market.infrastructure.logging import get_logger
from llm_market.infrastructure.prompts import COMMAND_EXTRACTION_PROMPT, MESSAGE_CLASSIFICATION_PROMPT
from llm_market.models.product import Product

logger = get_logger(__name__)

SUPPORTED_LABELS = {"COMMAND", "SEARCH"}
SUPPORTED_ACTIONS = {"dismiss", "add_to_cart", "show_next", "compare"}

_CODE_FENCE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


class LLMClientError(ValueError):
    """Raised when a completion cannot be obtained or is empty."""


@dataclass
class LLMCommandPrediction:
    action: str
    position: int | None = None
    product_id: int | None = None
    product_name: str | None = None


class LLMClient:
    """OpenAI-compatible chat-completion client (OpenRouter by default)."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def enabled(self) -> bool:
        return bool(self.settings.llm_enabled and self.settings.llm_api_key.strip())

    def classify_message(self, *, message: str, visible_names: Sequence[str]) -> str | None:
        """Returns ``COMMAND`` or ``SEARCH``, or ``None`` when no usable answer came back."""
        if not self.enabled:
            return None
        user_prompt = json.dumps({"message": message, "visibleProducts": list(visible_names)})
        try:
            raw = self._call_llm(user_prompt=user_prompt, system_prompt=MESSAGE_CLASSIFICATION_PROMPT)
        except Exception as exc:
            logger.warning("llm_call_failed", purpose="classify_message", error=str(exc))
            return None
        label = strip_code_fences(raw).strip().strip(".\"'").upper()
        if label not in SUPPORTED_LABELS:
            logger.info("llm_classification_unrecognized", reply=label[:40])
            return None
        return label

    def extract_command(self, *, message: str, visible: Sequence[Product]) -> LLMCommandPrediction | None:
        if not self.enabled:
            return None
        user_prompt = self._build_command_prompt(message=message, visible=visible)
        try:
            raw = self._call_llm(user_prompt=user_prompt, system_prompt=COMMAND_EXTRACTION_PROMPT)
        except Exception as exc:
            logger.warning("llm_call_failed", purpose="extract_command", error=str(exc))
            return None
        payload = extract_json_object(raw)
        if payload is None:
            logger.info("llm_command_unparseable")
            return None
        action = str(payload.get("action", "")).strip().lower()
        if action not in SUPPORTED_ACTIONS:
            logger.info("llm_command_unsupported", action=action[:40])
            return None
        name = payload.get("productName")
        if not isinstance(name, str) or not name.strip():
            name = None
        return LLMCommandPrediction(
            action=action,
            position=_optional_int(payload.get("position")),
            product_id=_optional_int(payload.get("productId")),
            product_name=name.strip() if name else None,
        )

    def complete_json(self, *, system_prompt: str, user_prompt: str) -> dict[str, Any] | None:
        if not self.enabled:
            return None
        try:
            raw = self._call_llm(user_prompt=user_prompt, system_prompt=system_prompt)
        except Exception as exc:
            logger.warning("llm_call_failed", purpose="complete_json", error=str(exc))
            return None
        return extract_json_object(raw)

    def _build_command_prompt(self, *, message: str, visible: Sequence[Product]) -> str:
        return json.dumps(
            {
                "message": message,
                "visibleProducts": [
                    {"position": index + 1, "id": product.id, "name": product.name}
                    for index, product in enumerate(visible)
                ],
            }
        )

    def _call_llm(self, *, user_prompt: str, system_prompt: str) -> str:
        api_key = self.settings.llm_api_key.strip()
        if not api_key:
            raise LLMClientError("LLM API key is not configured")

        response = httpx.post(
            f"{self.settings.llm_endpoint}/chat/completions",
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.settings.llm_model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "max_tokens": self.settings.llm_max_tokens,
                "temperature": self.settings.llm_temperature,
            },
            timeout=self.settings.llm_timeout_seconds,
        )
        response.raise_for_status()
        body = response.json()
        choices = body.get("choices") if isinstance(body, dict) else None
        if not choices:
            raise LLMClientError("LLM response contained no choices")
        content = (choices[0].get("message") or {}).get("content")
        if not isinstance(content, str) or not content.strip():
            raise LLMClientError("LLM response content was empty")
        return content


def strip_code_fences(text: str) -> str:
    match = _CODE_FENCE.match(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def extract_json_object(text: str) -> dict[str, Any] | None:
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        start = cleaned.find("{")
        end = cleaned.rfind("}")
        if start < 0 or end <= start:
            return None
        try:
            parsed = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            return None
    return parsed if isinstance(parsed, dict) else None


def _optional_int(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None
