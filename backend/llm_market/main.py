from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from llm_market.api.routes.cart_routes import router as cart_router
from llm_market.api.routes.interaction_routes import router as interaction_router
from llm_market.api.routes.product_routes import router as product_router
from llm_market.api.routes.search_routes import router as search_router
from llm_market.api.routes.session_routes import router as session_router
from llm_market.container import container, key_value_store, llm_client, redis_manager, search_client, settings
from llm_market.middleware import log_requests

ERROR_CODES = {
    400: "VALIDATION_ERROR",
    404: "NOT_FOUND",
    409: "CONFLICT",
    500: "INTERNAL_ERROR",
}


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    await container.start()
    try:
        yield
    finally:
        await container.stop()


app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Session-Id", "X-Request-Id"],
)
app.middleware("http")(log_requests)

app.include_router(session_router, prefix=settings.api_prefix)
app.include_router(search_router, prefix=settings.api_prefix)
app.include_router(interaction_router, prefix=settings.api_prefix)
app.include_router(product_router, prefix=settings.api_prefix)
app.include_router(cart_router, prefix=settings.api_prefix)


def _error_response(status_code: int, message: str, details: list[object] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": ERROR_CODES.get(status_code, "ERROR"),
                "message": message,
                "details": details or [],
            }
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "")}
        for error in exc.errors()
    ]
    return _error_response(400, "Request validation failed.", details)


@app.get("/health")
def health() -> dict[str, object]:
    return {
        "status": "ok",
        "services": {
            "redis": {"status": redis_manager.status, "error": redis_manager.error},
            "cartStore": {"backend": key_value_store.backend},
            "llm": {"enabled": llm_client.enabled, "provider": settings.llm_provider},
            "productSearch": {"enabled": search_client.enabled},
        },
    }
