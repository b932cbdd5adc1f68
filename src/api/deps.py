"""Shared route dependencies: authentication and request metadata."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.db.database import get_session
from src.db.models import User
from src.domains.users import repository
from src.domains.users.security import decode_access_token
from src.shared.audit import RequestContext
from src.shared.errors import AuthenticationError, AuthorizationError


def _token_from(request: Request) -> str | None:
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> User:
    token = _token_from(request)
    if token is None:
        raise AuthenticationError("Access token required")

    user_id = decode_access_token(token)
    user = await repository.get_user(session, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("Invalid or inactive user")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:  # noqa: B008
    if user.role != "admin":
        raise AuthorizationError("Insufficient permissions")
    return user


def request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("User-Agent"),
    )
