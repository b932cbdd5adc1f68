"""Payment lifecycle: authorize -> capture -> refund against the mock acquirer."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.db.models import FraudScore, PaymentMethod, Transaction, User
from src.domains.fraud import repository as fraud_repository
from src.domains.fraud.scorer import FraudScorer
from src.shared.audit import RequestContext, record_audit
from src.shared.errors import NotFoundError

from . import repository
from .acquirer import AcquirerResponse, MockAcquirer
from .models import AuthorizeRequest, PaymentMethodCreate, SettleRequest

logger = structlog.get_logger()

CENTS = Decimal("0.01")
DEFAULT_HISTORY_LIMIT = 25
MAX_HISTORY_LIMIT = 100


@dataclass
class PaymentOutcome:
    success: bool
    data: dict


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _amount(value: Decimal | None) -> str | None:
    return str(value) if value is not None else None


def serialize_payment_method(method: PaymentMethod) -> dict:
    return {
        "id": str(method.id),
        "lastFour": method.last_four,
        "brand": method.brand,
        "expiryMonth": method.expiry_month,
        "expiryYear": method.expiry_year,
        "cardholderName": method.cardholder_name,
        "createdAt": _iso(method.created_at),
    }


def serialize_fraud(score: FraudScore | None) -> dict | None:
    if score is None:
        return None
    return {
        "riskScore": score.risk_score,
        "riskLevel": score.risk_level,
        "rulesTriggered": [hit.get("rule") for hit in score.rules_triggered or []],
    }


def serialize_transaction(
    txn: Transaction,
    method: PaymentMethod | None = None,
    score: FraudScore | None = None,
) -> dict:
    return {
        "id": str(txn.id),
        "amount": _amount(txn.amount),
        "currency": txn.currency,
        "status": txn.status,
        "transactionType": txn.transaction_type,
        "description": txn.description,
        "externalId": txn.external_id,
        "metadata": txn.metadata_,
        "paymentMethod": (
            {
                "lastFour": method.last_four,
                "brand": method.brand,
                "expiryMonth": method.expiry_month,
                "expiryYear": method.expiry_year,
            }
            if method is not None
            else None
        ),
        "fraud": serialize_fraud(score),
        "createdAt": _iso(txn.created_at),
        "updatedAt": _iso(txn.updated_at),
    }


def serialize_acquirer(response: AcquirerResponse) -> dict:
    data = {
        "responseCode": response.response_code,
        "responseMessage": response.response_message,
    }
    if response.auth_code:
        data["authCode"] = response.auth_code
    return data


class PaymentService:
    def __init__(
        self,
        acquirer: MockAcquirer | None = None,
        scorer: FraudScorer | None = None,
    ) -> None:
        self._acquirer = acquirer or MockAcquirer(
            min_delay_ms=settings.acquirer_min_delay_ms,
            max_delay_ms=settings.acquirer_max_delay_ms,
        )
        self._scorer = scorer or FraudScorer()

    async def authorize(
        self,
        session: AsyncSession,
        user: User,
        request: AuthorizeRequest,
        context: RequestContext,
    ) -> PaymentOutcome:
        method = await repository.get_payment_method(session, request.payment_method_id, user.id)
        if method is None:
            raise NotFoundError("Payment method not found")

        now = datetime.now(UTC)
        amount = request.amount.quantize(CENTS)
        txn = Transaction(
            id=uuid.uuid4(),
            user_id=user.id,
            payment_method_id=method.id,
            amount=amount,
            currency=request.currency,
            status="pending",
            transaction_type="authorize",
            description=request.description,
            created_at=now,
            updated_at=now,
        )
        session.add(txn)
        await session.flush()

        score, assessment = await self._scorer.score_transaction(session, txn, context, now=now)
        await session.commit()

        response = await self._acquirer.authorize(
            amount=amount,
            currency=request.currency,
            last_four=method.last_four,
            brand=method.brand,
            expiry_month=method.expiry_month,
            expiry_year=method.expiry_year,
        )

        txn.status = "authorized" if response.success else "failed"
        txn.external_id = response.transaction_id
        txn.metadata_ = response.model_dump()
        txn.updated_at = datetime.now(UTC)

        record_audit(
            session,
            "payment_authorized",
            "transaction",
            context,
            user_id=user.id,
            resource_id=txn.id,
            new_values={
                "amount": str(amount),
                "currency": request.currency,
                "status": txn.status,
                "riskLevel": assessment.risk_level.value,
            },
        )
        await session.commit()

        logger.info(
            "payment_authorized",
            transaction_id=str(txn.id),
            user_id=str(user.id),
            status=txn.status,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level.value,
        )

        return PaymentOutcome(
            success=response.success,
            data={
                "transaction": serialize_transaction(txn, method, score),
                "acquirerResponse": serialize_acquirer(response),
            },
        )

    async def capture(
        self,
        session: AsyncSession,
        user: User,
        transaction_id: uuid.UUID,
        request: SettleRequest,
        context: RequestContext,
    ) -> PaymentOutcome:
        txn = await repository.get_user_transaction(
            session, transaction_id, user.id, status="authorized"
        )
        if txn is None:
            raise NotFoundError("Authorized transaction not found")

        response = await self._acquirer.capture(txn.external_id, request.amount or txn.amount)

        txn.status = "captured" if response.success else "failed"
        txn.metadata_ = response.model_dump()
        txn.updated_at = datetime.now(UTC)

        score = await fraud_repository.get_fraud_score(session, txn.id)

        record_audit(
            session,
            "payment_captured",
            "transaction",
            context,
            user_id=user.id,
            resource_id=txn.id,
            new_values={"amount": _amount(request.amount or txn.amount), "status": txn.status},
        )
        await session.commit()

        logger.info(
            "payment_captured",
            transaction_id=str(txn.id),
            status=txn.status,
            risk_level=score.risk_level if score else None,
        )

        return PaymentOutcome(
            success=response.success,
            data={
                "transaction": serialize_transaction(txn, score=score),
                "acquirerResponse": serialize_acquirer(response),
            },
        )

    async def refund(
        self,
        session: AsyncSession,
        user: User,
        transaction_id: uuid.UUID,
        request: SettleRequest,
        context: RequestContext,
    ) -> PaymentOutcome:
        txn = await repository.get_user_transaction(
            session, transaction_id, user.id, status="captured"
        )
        if txn is None:
            raise NotFoundError("Captured transaction not found")

        score, assessment = await self._scorer.score_transaction(
            session, txn, context, transaction_type="refund"
        )
        await session.commit()

        response = await self._acquirer.refund(txn.external_id, request.amount or txn.amount)

        txn.status = "refunded" if response.success else "failed"
        txn.metadata_ = response.model_dump()
        txn.updated_at = datetime.now(UTC)

        record_audit(
            session,
            "payment_refunded",
            "transaction",
            context,
            user_id=user.id,
            resource_id=txn.id,
            new_values={
                "amount": _amount(request.amount or txn.amount),
                "status": txn.status,
                "riskLevel": assessment.risk_level.value,
            },
        )
        await session.commit()

        logger.info(
            "payment_refunded",
            transaction_id=str(txn.id),
            status=txn.status,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level.value,
        )

        return PaymentOutcome(
            success=response.success,
            data={
                "transaction": serialize_transaction(txn, score=score),
                "acquirerResponse": serialize_acquirer(response),
            },
        )

    async def get_transaction(
        self, session: AsyncSession, user: User, transaction_id: uuid.UUID
    ) -> dict:
        detail = await repository.get_transaction_detail(session, transaction_id, user.id)
        if detail is None:
            raise NotFoundError("Transaction not found")
        txn, method, score = detail
        return serialize_transaction(txn, method, score)

    async def list_transactions(
        self,
        session: AsyncSession,
        user: User,
        limit: int | None = None,
        status: str | None = None,
        user_id: uuid.UUID | None = None,
    ) -> list[dict]:
        """History for the caller; admins may look at another user's history."""
        limit = min(limit or DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT)
        target = user_id if user.role == "admin" and user_id else user.id
        rows = await repository.list_transactions(session, target, limit, status)
        return [serialize_transaction(txn, method, score) for txn, method, score in rows]

    async def list_payment_methods(self, session: AsyncSession, user: User) -> list[dict]:
        methods = await repository.list_payment_methods(session, user.id)
        return [serialize_payment_method(method) for method in methods]

    async def add_payment_method(
        self,
        session: AsyncSession,
        user: User,
        request: PaymentMethodCreate,
        context: RequestContext,
    ) -> dict:
        method = PaymentMethod(
            id=uuid.uuid4(),
            user_id=user.id,
            token=request.token or f"tok_{uuid.uuid4().hex[:24]}",
            last_four=request.last_four,
            brand=request.brand,
            expiry_month=request.expiry_month,
            expiry_year=request.expiry_year,
            cardholder_name=request.cardholder_name,
            created_at=datetime.now(UTC),
        )
        session.add(method)
        record_audit(
            session,
            "payment_method_added",
            "payment_method",
            context,
            user_id=user.id,
            resource_id=method.id,
            new_values={"brand": method.brand, "lastFour": method.last_four},
        )
        await session.commit()

        logger.info("payment_method_added", user_id=str(user.id), brand=method.brand)
        return serialize_payment_method(method)
