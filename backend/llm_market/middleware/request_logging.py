from __future__ import annotations

from time import perf_counter

import structlog
from fastapi import Request

from llm_market.core.utils import generate_id
from llm_market.infrastructure.logging import get_logger

logger = get_logger("llm_market.http")


async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
    request_id = request.headers.get("x-request-id") or generate_id("req")
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
    )
    started = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers.setdefault("X-Request-Id", request_id)
        return response
    finally:
        logger.info(
            "http_request",
            status_code=status_code,
            duration_ms=round((perf_counter() - started) * 1000, 2),
        )
        structlog.contextvars.clear_contextvars()
