"""Registration, login and admin user management."""

import math
import uuid
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import User
from src.shared.audit import RequestContext, record_audit
from src.shared.errors import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    NotFoundError,
)

from . import repository
from .models import ROLES, AdminCreateRequest, LoginRequest, RegisterRequest
from .security import create_access_token, hash_password, verify_password

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def serialize_user(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "role": user.role,
        "isActive": user.is_active,
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


class UserService:
    async def _create_user(
        self,
        session: AsyncSession,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: str,
    ) -> User:
        if await repository.get_user_by_email(session, email) is not None:
            raise ConflictError("User already exists with this email")

        now = datetime.now(UTC)
        user = User(
            id=uuid.uuid4(),
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        session.add(user)
        # must be inserted before any audit_logs row that references it
        await session.flush()
        return user

    async def register(
        self, session: AsyncSession, request: RegisterRequest, context: RequestContext
    ) -> tuple[User, str]:
        user = await self._create_user(
            session, request.email, request.password, request.first_name, request.last_name, "user"
        )
        record_audit(
            session,
            "user_registered",
            "user",
            context,
            user_id=user.id,
            resource_id=user.id,
            new_values={"email": user.email, "role": user.role},
        )
        await session.commit()

        logger.info("user_registered", user_id=str(user.id))
        return user, create_access_token(user.id)

    async def login(
        self, session: AsyncSession, request: LoginRequest, context: RequestContext
    ) -> tuple[User, str]:
        user = await repository.get_user_by_email(session, request.email)
        if user is None:
            logger.info("login_failed", reason="unknown_email")
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            logger.info("login_failed", user_id=str(user.id), reason="deactivated")
            raise AuthenticationError("Account is deactivated")

        if not verify_password(request.password, user.password_hash):
            record_audit(session, "login_failed", "user", context, user_id=user.id)
            await session.commit()
            logger.info("login_failed", user_id=str(user.id), reason="bad_password")
            raise AuthenticationError("Invalid email or password")

        record_audit(
            session, "login_success", "user", context, user_id=user.id, resource_id=user.id
        )
        await session.commit()

        logger.info("login_success", user_id=str(user.id))
        return user, create_access_token(user.id)

    async def logout(self, session: AsyncSession, user: User, context: RequestContext) -> None:
        record_audit(session, "logout", "user", context, user_id=user.id)
        await session.commit()
        logger.info("logout", user_id=str(user.id))

    async def list_users(
        self,
        session: AsyncSession,
        admin: User,
        context: RequestContext,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: str | None = None,
        role: str | None = None,
    ) -> dict:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        users, total = await repository.list_users(session, page, limit, search, role)

        record_audit(session, "admin_view_users", "user", context, user_id=admin.id)
        await session.commit()

        return {
            "users": [serialize_user(user) for user in users],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit),
            },
        }

    async def _target(self, session: AsyncSession, user_id: uuid.UUID) -> User:
        user = await repository.get_user(session, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_role(
        self,
        session: AsyncSession,
        admin: User,
        user_id: uuid.UUID,
        role: str,
        context: RequestContext,
    ) -> User:
        if role not in ROLES:
            raise BadRequestError('Invalid role. Must be "user" or "admin"')

        user = await self._target(session, user_id)
        if user.id == admin.id and role != "admin":
            raise BadRequestError("Cannot demote yourself from admin role")

        previous = user.role
        user.role = role
        user.updated_at = datetime.now(UTC)

        record_audit(
            session,
            "admin_update_role",
            "user",
            context,
            user_id=admin.id,
            resource_id=user.id,
            old_values={"role": previous},
            new_values={"role": role},
        )
        await session.commit()

        logger.info("user_role_updated", user_id=str(user.id), old_role=previous, new_role=role)
        return user

    async def toggle_status(
        self,
        session: AsyncSession,
        admin: User,
        user_id: uuid.UUID,
        context: RequestContext,
    ) -> User:
        user = await self._target(session, user_id)
        if user.id == admin.id:
            raise BadRequestError("Cannot deactivate your own account")

        previous = user.is_active
        user.is_active = not previous
        user.updated_at = datetime.now(UTC)

        record_audit(
            session,
            "admin_toggle_status",
            "user",
            context,
            user_id=admin.id,
            resource_id=user.id,
            old_values={"is_active": previous},
            new_values={"is_active": user.is_active},
        )
        await session.commit()

        logger.info("user_status_toggled", user_id=str(user.id), is_active=user.is_active)
        return user

    async def system_stats(
        self, session: AsyncSession, admin: User, context: RequestContext
    ) -> dict:
        now = datetime.now(UTC)
        stats = await repository.system_statistics(session, now - timedelta(hours=24))

        record_audit(session, "admin_view_stats", "system", context, user_id=admin.id)
        await session.commit()

        stats["generatedAt"] = now.isoformat()
        return stats

    async def create_admin(
        self,
        session: AsyncSession,
        request: AdminCreateRequest,
        context: RequestContext,
        created_by: User | None = None,
    ) -> User:
        """Create an admin account. ``created_by`` is None when bootstrapping from the CLI."""
        user = await self._create_user(
            session, request.email, request.password, request.first_name, request.last_name, "admin"
        )
        record_audit(
            session,
            "admin_user_created",
            "user",
            context,
            user_id=created_by.id if created_by else user.id,
            resource_id=user.id,
            new_values={"email": user.email, "role": user.role},
        )
        await session.commit()

        logger.info("admin_user_created", user_id=str(user.id))
        return user
