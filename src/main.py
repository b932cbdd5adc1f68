"""FastAPI application entry point for the PaySecure gateway."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.middleware.error_handler import (
    gateway_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from src.api.middleware.logging import RequestLoggingMiddleware
from src.api.routes import admin, auth, fraud, health, payments
from src.config import settings
from src.db.database import engine, init_db
from src.shared.errors import GatewayError
from src.shared.logging import setup_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app.state.started_at = time.monotonic()
    setup_logging(settings.log_level, json_logs=settings.is_production)
    logger.info(
        "gateway_starting",
        environment=settings.environment,
        version=settings.app_version,
        frontend_url=settings.frontend_url,
    )

    await init_db()
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("gateway_stopped")


def create_app() -> FastAPI:
    """Build the gateway application with middleware, error handlers and routers."""
    application = FastAPI(
        title="PaySecure Gateway",
        description="Demo payment gateway with rule-based fraud scoring",
        version=settings.app_version,
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )
    application.add_middleware(RequestLoggingMiddleware)

    handlers = {
        GatewayError: gateway_exception_handler,
        RequestValidationError: validation_exception_handler,
        StarletteHTTPException: http_exception_handler,
        Exception: global_exception_handler,
    }
    for exc_class, handler in handlers.items():
        application.add_exception_handler(exc_class, handler)

    for module in (health, auth, payments, fraud, admin):
        application.include_router(module.router)

    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run("src.main:app", host=settings.host, port=settings.port, reload=settings.debug)
