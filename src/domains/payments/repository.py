"""Transaction and payment-method queries."""

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import FraudScore, PaymentMethod, Transaction


async def get_payment_method(
    session: AsyncSession, payment_method_id: uuid.UUID, user_id: uuid.UUID
) -> PaymentMethod | None:
    stmt = select(PaymentMethod).where(
        PaymentMethod.id == payment_method_id,
        PaymentMethod.user_id == user_id,
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_payment_methods(session: AsyncSession, user_id: uuid.UUID) -> list[PaymentMethod]:
    stmt = (
        select(PaymentMethod)
        .where(PaymentMethod.user_id == user_id)
        .order_by(PaymentMethod.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_user_transaction(
    session: AsyncSession,
    transaction_id: uuid.UUID,
    user_id: uuid.UUID,
    status: str | None = None,
) -> Transaction | None:
    stmt = select(Transaction).where(
        Transaction.id == transaction_id,
        Transaction.user_id == user_id,
    )
    if status is not None:
        stmt = stmt.where(Transaction.status == status)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_transaction_detail(
    session: AsyncSession, transaction_id: uuid.UUID, user_id: uuid.UUID
) -> tuple[Transaction, PaymentMethod | None, FraudScore | None] | None:
    stmt = (
        select(Transaction, PaymentMethod, FraudScore)
        .outerjoin(PaymentMethod, Transaction.payment_method_id == PaymentMethod.id)
        .outerjoin(FraudScore, FraudScore.transaction_id == Transaction.id)
        .where(Transaction.id == transaction_id, Transaction.user_id == user_id)
    )
    result = await session.execute(stmt)
    row = result.one_or_none()
    if row is None:
        return None
    return row[0], row[1], row[2]


async def list_transactions(
    session: AsyncSession,
    user_id: uuid.UUID,
    limit: int,
    status: str | None = None,
) -> list[tuple[Transaction, PaymentMethod | None, FraudScore | None]]:
    stmt = (
        select(Transaction, PaymentMethod, FraudScore)
        .outerjoin(PaymentMethod, Transaction.payment_method_id == PaymentMethod.id)
        .outerjoin(FraudScore, FraudScore.transaction_id == Transaction.id)
        .where(Transaction.user_id == user_id)
        .order_by(Transaction.created_at.desc())
        .limit(limit)
    )
    if status:
        stmt = stmt.where(Transaction.status == status)
    result = await session.execute(stmt)
    return [(row[0], row[1], row[2]) for row in result.all()]
