"""Registration, login, profile and logout."""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_current_user, request_context
from src.config import settings
from src.db.database import get_session
from src.db.models import User
from src.domains.users.models import LoginRequest, RegisterRequest
from src.domains.users.service import UserService, serialize_user
from src.shared.audit import RequestContext

router = APIRouter(prefix="/api/auth", tags=["auth"])

_service = UserService()


def _public_user(user: User) -> dict:
    data = serialize_user(user)
    return {key: data[key] for key in ("id", "email", "firstName", "lastName", "role")}


@router.post("/register", status_code=201)
async def register(
    request: RegisterRequest,
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    user, token = await _service.register(session, request, context)
    return {
        "success": True,
        "message": "User registered successfully",
        "data": {"user": _public_user(user), "token": token},
    }


@router.post("/login")
async def login(
    request: LoginRequest,
    response: Response,
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    user, token = await _service.login(session, request, context)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.jwt_expires_hours * 3600,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return {
        "success": True,
        "message": "Login successful",
        "data": {"user": _public_user(user), "token": token},
    }


@router.get("/profile")
async def profile(user: User = Depends(get_current_user)) -> dict:  # noqa: B008
    return {"success": True, "data": {"user": _public_user(user)}}


@router.post("/logout")
async def logout(
    response: Response,
    user: User = Depends(get_current_user),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    await _service.logout(session, user, context)
    response.delete_cookie(
        settings.session_cookie_name,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return {"success": True, "message": "Logout successful"}
