from __future__ import annotations

from llm_market.core.config import Settings
from llm_market.infrastructure.llm_client import LLMClient
from llm_market.infrastructure.logging import setup_logging
from llm_market.infrastructure.persistence_clients import RedisClientManager
from llm_market.infrastructure.search_client import AsinDataClient
from llm_market.orchestrator.command_interpreter import CommandInterpreter
from llm_market.orchestrator.orchestrator_core import Orchestrator
from llm_market.orchestrator.response_formatter import ResponseFormatter
from llm_market.repositories.cart_repository import CartRepository
from llm_market.services.cart_service import CartService
from llm_market.services.comparison_service import ComparisonService
from llm_market.services.product_search_service import ProductSearchService
from llm_market.services.session_service import SessionService
from llm_market.store.key_value import RedisKeyValueStore


class Container:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings.from_env()
        setup_logging(self.settings.log_level)
        self.redis_manager = RedisClientManager(
            url=self.settings.redis_url,
            enabled=self.settings.enable_external_services,
            retry_interval_seconds=self.settings.redis_retry_seconds,
        )
        self.key_value_store = RedisKeyValueStore(redis_manager=self.redis_manager)
        self.llm_client = LLMClient(settings=self.settings)
        self.search_client = AsinDataClient(settings=self.settings)

        self.cart_repository = CartRepository(
            store=self.key_value_store,
            key_prefix=self.settings.cart_key_prefix,
        )
        self.cart_service = CartService(cart_repository=self.cart_repository)
        self.session_service = SessionService(
            cart_service=self.cart_service,
            idle_minutes=self.settings.session_idle_minutes,
            max_sessions=self.settings.max_live_sessions,
        )
        self.product_search_service = ProductSearchService(search_client=self.search_client)
        self.comparison_service = ComparisonService(llm_client=self.llm_client)

        self.orchestrator = Orchestrator(
            settings=self.settings,
            interpreter=CommandInterpreter(remote=self.llm_client),
            search_service=self.product_search_service,
            cart_service=self.cart_service,
            comparison_service=self.comparison_service,
            session_service=self.session_service,
            formatter=ResponseFormatter(cart_service=self.cart_service),
        )

    async def start(self) -> None:
        self.redis_manager.connect()

    async def stop(self) -> None:
        self.redis_manager.disconnect()


container = Container()

settings = container.settings
redis_manager = container.redis_manager
key_value_store = container.key_value_store
llm_client = container.llm_client
search_client = container.search_client
cart_repository = container.cart_repository
cart_service = container.cart_service
session_service = container.session_service
product_search_service = container.product_search_service
comparison_service = container.comparison_service
orchestrator = container.orchestrator
