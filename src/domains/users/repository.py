"""User queries and the admin statistics aggregates."""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import AuditLog, FraudScore, Transaction, User


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


def _filtered(stmt: Select, search: str | None, role: str | None) -> Select:
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(
            or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    if role:
        stmt = stmt.where(User.role == role)
    return stmt


async def list_users(
    session: AsyncSession,
    page: int,
    limit: int,
    search: str | None = None,
    role: str | None = None,
) -> tuple[list[User], int]:
    """One page of users, newest first, plus the total matching count."""
    stmt = _filtered(select(User), search, role)
    stmt = stmt.order_by(User.created_at.desc()).limit(limit).offset((page - 1) * limit)
    result = await session.execute(stmt)
    users = list(result.scalars().all())

    count_stmt = _filtered(select(func.count(User.id)), search, role)
    total = (await session.execute(count_stmt)).scalar_one()
    return users, int(total or 0)


def _count_when(condition):
    return func.count(case((condition, 1)))


def _number(value):
    if isinstance(value, Decimal):
        return float(value)
    return value


async def _aggregate(session: AsyncSession, stmt: Select) -> dict:
    row = (await session.execute(stmt)).one()
    return {key: _number(value) for key, value in row._mapping.items()}


async def system_statistics(session: AsyncSession, since: datetime) -> dict:
    """User, transaction and fraud totals plus audit activity since ``since``."""
    users = await _aggregate(
        session,
        select(
            func.count(User.id).label("total_users"),
            _count_when(User.role == "admin").label("admin_users"),
            _count_when(User.role == "user").label("regular_users"),
            _count_when(User.is_active.is_(True)).label("active_users"),
            _count_when(User.is_active.is_(False)).label("inactive_users"),
        ),
    )
    transactions = await _aggregate(
        session,
        select(
            func.count(Transaction.id).label("total_transactions"),
            _count_when(Transaction.status == "authorized").label("authorized_transactions"),
            _count_when(Transaction.status == "captured").label("captured_transactions"),
            _count_when(Transaction.status == "failed").label("failed_transactions"),
            _count_when(Transaction.status == "refunded").label("refunded_transactions"),
            func.coalesce(
                func.sum(case((Transaction.status == "captured", Transaction.amount), else_=0)), 0
            ).label("total_captured_amount"),
            func.avg(case((Transaction.status == "captured", Transaction.amount))).label(
                "avg_transaction_amount"
            ),
        ),
    )
    fraud = await _aggregate(
        session,
        select(
            func.count(FraudScore.id).label("total_fraud_analyses"),
            _count_when(FraudScore.risk_level == "low").label("low_risk_count"),
            _count_when(FraudScore.risk_level == "medium").label("medium_risk_count"),
            _count_when(FraudScore.risk_level == "high").label("high_risk_count"),
            _count_when(FraudScore.risk_level == "critical").label("critical_risk_count"),
            func.avg(FraudScore.risk_score).label("avg_risk_score"),
        ),
    )
    activity = await _aggregate(
        session,
        select(
            _count_when(AuditLog.action == "user_registered").label("new_registrations"),
            _count_when(AuditLog.action == "payment_authorized").label("new_authorizations"),
            _count_when(AuditLog.action == "fraud_analysis").label("fraud_analyses"),
        ).where(AuditLog.created_at > since),
    )
    return {
        "users": users,
        "transactions": transactions,
        "fraud": fraud,
        "recentActivity": activity,
    }
