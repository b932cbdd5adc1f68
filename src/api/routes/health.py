"""Service banner and health check."""

import time
from datetime import UTC, datetime

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from src.config import settings
from src.db.database import check_db

router = APIRouter(tags=["health"])


def _uptime(request: Request) -> int:
    started_at = getattr(request.app.state, "started_at", None)
    return 0 if started_at is None else int(time.monotonic() - started_at)


@router.get("/")
async def root() -> dict:
    return {
        "success": True,
        "message": "PaySecure Gateway API",
        "data": {
            "name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    }


@router.get("/health")
async def health(request: Request) -> JSONResponse:
    """Report database connectivity; 500 when the database is unreachable."""
    connected = await check_db()
    body = {
        "status": "healthy" if connected else "unhealthy",
        "database": "connected" if connected else "disconnected",
        "version": settings.app_version,
        "uptime_seconds": _uptime(request),
        "timestamp": datetime.now(UTC).isoformat(),
    }
    return JSONResponse(status_code=200 if connected else 500, content=body)
