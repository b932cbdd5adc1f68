"""Global exception handling."""

import structlog
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.shared.errors import GatewayError

logger = structlog.get_logger()


def _error_response(request: Request, status_code: int, error: str, message: str) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": error,
            "message": message,
            "request_id": request_id,
        },
    )


async def gateway_exception_handler(request: Request, exc: GatewayError) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    logger.warning(exc.error, request_id=request_id, error=exc.message)
    return _error_response(request, exc.status_code, exc.error, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    error = "not_found" if exc.status_code == 404 else "http_error"
    response = _error_response(request, exc.status_code, error, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")
    errors = [
        {
            "field": str(err["loc"][-1]) if err.get("loc") else None,
            "message": err.get("msg"),
            "value": err.get("input"),
        }
        for err in exc.errors()
    ]
    logger.info("validation_failed", request_id=request_id, fields=[e["field"] for e in errors])
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder(
            {
                "success": False,
                "message": "Validation failed",
                "errors": errors,
                "request_id": request_id,
            }
        ),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, ValueError):
        logger.warning("bad_request", request_id=request_id, error=str(exc))
        return _error_response(request, 400, "bad_request", str(exc))

    if isinstance(exc, PermissionError):
        logger.warning("forbidden", request_id=request_id, error=str(exc))
        return _error_response(request, 403, "forbidden", str(exc))

    if isinstance(exc, LookupError):
        logger.warning("not_found", request_id=request_id, error=str(exc))
        return _error_response(request, 404, "not_found", str(exc))

    logger.exception("unhandled_exception", request_id=request_id, error=str(exc))
    return _error_response(request, 500, "internal_server_error", "Internal server error")
