"""fraud_scores persistence and reporting queries."""

import uuid
from datetime import datetime

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import FraudScore, PaymentMethod, Transaction, User

RISK_LEVELS = ("low", "medium", "high", "critical")


async def replace_fraud_score(session: AsyncSession, row: FraudScore) -> FraudScore:
    """Delete any existing score for the transaction, then stage the new row.

    Both statements run in the caller's transaction, so at most one row per
    transaction_id is ever visible.
    """
    await session.execute(delete(FraudScore).where(FraudScore.transaction_id == row.transaction_id))
    session.add(row)
    return row


async def get_fraud_score(session: AsyncSession, transaction_id: uuid.UUID) -> FraudScore | None:
    stmt = select(FraudScore).where(FraudScore.transaction_id == transaction_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def fraud_statistics(
    session: AsyncSession,
    since: datetime,
    user_id: uuid.UUID | None = None,
) -> dict:
    level_counts = [
        func.count(case((FraudScore.risk_level == level, 1))).label(f"{level}_risk")
        for level in RISK_LEVELS
    ]
    stmt = select(
        func.count(FraudScore.id).label("total_transactions"),
        *level_counts,
        func.avg(FraudScore.risk_score).label("avg_risk_score"),
        func.max(FraudScore.risk_score).label("max_risk_score"),
    ).where(FraudScore.created_at > since)

    if user_id is not None:
        stmt = stmt.join(Transaction, FraudScore.transaction_id == Transaction.id).where(
            Transaction.user_id == user_id
        )

    result = await session.execute(stmt)
    row = result.one()
    return dict(row._mapping)


async def flagged_transactions(
    session: AsyncSession,
    risk_level: str,
    limit: int,
    user_id: uuid.UUID | None = None,
) -> list[dict]:
    stmt = (
        select(
            FraudScore.id.label("fraud_score_id"),
            FraudScore.risk_score,
            FraudScore.risk_level,
            FraudScore.rules_triggered,
            FraudScore.created_at.label("analysis_time"),
            Transaction.id.label("transaction_id"),
            Transaction.amount,
            Transaction.currency,
            Transaction.status,
            Transaction.created_at.label("transaction_time"),
            User.email.label("user_email"),
            PaymentMethod.last_four,
            PaymentMethod.brand,
        )
        .join(Transaction, FraudScore.transaction_id == Transaction.id)
        .join(User, Transaction.user_id == User.id)
        .outerjoin(PaymentMethod, Transaction.payment_method_id == PaymentMethod.id)
        .where(FraudScore.risk_level == risk_level)
        .order_by(FraudScore.risk_score.desc(), FraudScore.created_at.desc())
        .limit(limit)
    )
    if user_id is not None:
        stmt = stmt.where(Transaction.user_id == user_id)

    result = await session.execute(stmt)
    return [dict(row._mapping) for row in result.all()]
