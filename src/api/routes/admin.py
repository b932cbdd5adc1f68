"""Admin-only user management and system statistics."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import request_context, require_admin
from src.db.database import get_session
from src.db.models import User
from src.domains.users.models import AdminCreateRequest, RoleUpdate
from src.domains.users.service import UserService, serialize_user
from src.shared.audit import RequestContext

router = APIRouter(prefix="/api/admin", tags=["admin"])

_service = UserService()


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    search: str | None = Query(None),
    role: str | None = Query(None),
    admin: User = Depends(require_admin),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    data = await _service.list_users(
        session, admin, context, page=page, limit=limit, search=search, role=role
    )
    return {"success": True, "data": data}


@router.put("/users/{user_id}/role")
async def update_user_role(
    user_id: uuid.UUID,
    request: RoleUpdate,
    admin: User = Depends(require_admin),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    user = await _service.update_role(session, admin, user_id, request.role, context)
    return {
        "success": True,
        "message": "User role updated successfully",
        "data": {"user": serialize_user(user)},
    }


@router.put("/users/{user_id}/status")
async def toggle_user_status(
    user_id: uuid.UUID,
    admin: User = Depends(require_admin),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    user = await _service.toggle_status(session, admin, user_id, context)
    return {
        "success": True,
        "message": f"User {'activated' if user.is_active else 'deactivated'} successfully",
        "data": {"user": serialize_user(user)},
    }


@router.get("/stats")
async def system_stats(
    admin: User = Depends(require_admin),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    stats = await _service.system_stats(session, admin, context)
    return {"success": True, "data": stats}


@router.post("/users", status_code=201)
async def create_admin_user(
    request: AdminCreateRequest,
    admin: User = Depends(require_admin),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    user = await _service.create_admin(session, request, context, created_by=admin)
    return {
        "success": True,
        "message": "Admin user created successfully",
        "data": {"user": serialize_user(user)},
    }
