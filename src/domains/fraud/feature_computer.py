"""Compute fraud features from transactions and payment_methods."""

import ipaddress
import uuid
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import PaymentMethod, Transaction

from .config import ExtendedRuleConfig
from .models import TransactionFeatures

logger = structlog.get_logger()

SETTLED_STATUSES = ("authorized", "captured")


def is_new_card(created_at: datetime | None, now: datetime, max_age_hours: int) -> bool:
    if created_at is None:
        return False
    return now - created_at < timedelta(hours=max_age_hours)


def is_expiring_card(expiry_month: int, expiry_year: int, now: datetime, within_days: int) -> bool:
    """Cards are treated as expiring at the start of their expiry month.

    Already-expired cards count as expiring.
    """
    expiry = datetime(expiry_year, expiry_month, 1, tzinfo=UTC)
    days_left = (expiry - now).total_seconds() / 86400
    return days_left <= within_days


def has_geo_mismatch(ip_address: str | None, modulus: int) -> bool:
    """Simulated IP/card-country mismatch: IPv4 addresses whose last octet divides by ``modulus``."""
    if not ip_address:
        return False
    try:
        address = ipaddress.ip_address(ip_address)
    except ValueError:
        return False
    if address.version != 4:
        return False
    return int(str(address).rsplit(".", 1)[-1]) % modulus == 0


class FeatureComputer:
    """Queries transactions and payment methods to build TransactionFeatures."""

    async def user_velocity(
        self,
        session: AsyncSession,
        user_id: uuid.UUID,
        since: datetime,
        statuses: tuple[str, ...] | None = None,
        exclude_transaction_id: uuid.UUID | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(Transaction).where(
            Transaction.user_id == user_id,
            Transaction.created_at > since,
        )
        if statuses:
            stmt = stmt.where(Transaction.status.in_(statuses))
        if exclude_transaction_id is not None:
            stmt = stmt.where(Transaction.id != exclude_transaction_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def card_velocity(
        self,
        session: AsyncSession,
        payment_method_id: uuid.UUID,
        since: datetime,
        statuses: tuple[str, ...] = SETTLED_STATUSES,
    ) -> int:
        stmt = select(func.count()).select_from(Transaction).where(
            Transaction.payment_method_id == payment_method_id,
            Transaction.created_at > since,
            Transaction.status.in_(statuses),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    async def payment_method(
        self, session: AsyncSession, payment_method_id: uuid.UUID | None
    ) -> PaymentMethod | None:
        if payment_method_id is None:
            return None
        stmt = select(PaymentMethod).where(PaymentMethod.id == payment_method_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def extended_features(
        self,
        session: AsyncSession,
        transaction: Transaction,
        config: ExtendedRuleConfig,
        ip_address: str | None = None,
        user_agent: str | None = None,
        now: datetime | None = None,
    ) -> TransactionFeatures:
        """Gather every signal the extended rule set reads. Lookup errors propagate."""
        now = now or datetime.now(UTC)

        card_velocity = 0
        if transaction.payment_method_id is not None:
            card_velocity = await self.card_velocity(
                session,
                transaction.payment_method_id,
                now - timedelta(minutes=config.card_velocity_window_minutes),
            )
        user_velocity = await self.user_velocity(
            session,
            transaction.user_id,
            now - timedelta(minutes=config.user_velocity_window_minutes),
            statuses=SETTLED_STATUSES,
        )

        card = await self.payment_method(session, transaction.payment_method_id)
        new_card = False
        expiring_card = False
        if card is not None:
            new_card = is_new_card(card.created_at, now, config.new_card_max_age_hours)
            expiring_card = is_expiring_card(
                card.expiry_month, card.expiry_year, now, config.expiring_card_days
            )

        features = TransactionFeatures(
            amount=float(transaction.amount),
            transaction_type=transaction.transaction_type,
            card_velocity=card_velocity,
            user_velocity=user_velocity,
            timestamp=transaction.created_at or now,
            is_new_card=new_card,
            is_expiring_card=expiring_card,
            has_geo_mismatch=has_geo_mismatch(ip_address, config.geo_mismatch_modulus),
            currency=transaction.currency,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        logger.debug(
            "extended_features_computed",
            transaction_id=str(transaction.id),
            card_velocity=card_velocity,
            user_velocity=user_velocity,
            is_new_card=new_card,
            is_expiring_card=expiring_card,
        )
        return features
