"""Payment endpoints: authorize, capture, refund, history and saved cards."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_current_user, request_context
from src.db.database import get_session
from src.db.models import User
from src.domains.payments.models import AuthorizeRequest, PaymentMethodCreate, SettleRequest
from src.domains.payments.service import PaymentOutcome, PaymentService
from src.shared.audit import RequestContext

router = APIRouter(prefix="/api/payments", tags=["payments"])

_service = PaymentService()


def get_payment_service() -> PaymentService:
    return _service


def _outcome_response(outcome: PaymentOutcome, approved: str, declined: str) -> dict:
    """Acquirer declines are reported in-band with success=false."""
    return {
        "success": outcome.success,
        "message": approved if outcome.success else declined,
        "data": outcome.data,
    }


@router.post("/authorize")
async def authorize_payment(
    request: AuthorizeRequest,
    user: User = Depends(get_current_user),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    service: PaymentService = Depends(get_payment_service),  # noqa: B008
) -> dict:
    outcome = await service.authorize(session, user, request, context)
    return _outcome_response(outcome, "Payment authorized successfully", "Payment authorization failed")


@router.get("/history")
async def payment_history(
    limit: int = Query(25, ge=1, le=100),
    status: str | None = Query(None),
    user_id: uuid.UUID | None = Query(None, alias="userId"),
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    service: PaymentService = Depends(get_payment_service),  # noqa: B008
) -> dict:
    transactions = await service.list_transactions(
        session, user, limit=limit, status=status, user_id=user_id
    )
    return {"success": True, "data": {"transactions": transactions}}


@router.get("/methods")
async def list_payment_methods(
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    service: PaymentService = Depends(get_payment_service),  # noqa: B008
) -> dict:
    methods = await service.list_payment_methods(session, user)
    return {"success": True, "data": {"paymentMethods": methods}}


@router.post("/methods", status_code=201)
async def add_payment_method(
    request: PaymentMethodCreate,
    user: User = Depends(get_current_user),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    service: PaymentService = Depends(get_payment_service),  # noqa: B008
) -> dict:
    method = await service.add_payment_method(session, user, request, context)
    return {
        "success": True,
        "message": "Payment method added successfully",
        "data": {"paymentMethod": method},
    }


@router.post("/{transaction_id}/capture")
async def capture_payment(
    transaction_id: uuid.UUID,
    request: SettleRequest | None = None,
    user: User = Depends(get_current_user),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    service: PaymentService = Depends(get_payment_service),  # noqa: B008
) -> dict:
    outcome = await service.capture(
        session, user, transaction_id, request or SettleRequest(), context
    )
    return _outcome_response(outcome, "Payment captured successfully", "Payment capture failed")


@router.post("/{transaction_id}/refund")
async def refund_payment(
    transaction_id: uuid.UUID,
    request: SettleRequest | None = None,
    user: User = Depends(get_current_user),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    service: PaymentService = Depends(get_payment_service),  # noqa: B008
) -> dict:
    outcome = await service.refund(session, user, transaction_id, request or SettleRequest(), context)
    return _outcome_response(outcome, "Payment refunded successfully", "Payment refund failed")


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: uuid.UUID,
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
    service: PaymentService = Depends(get_payment_service),  # noqa: B008
) -> dict:
    transaction = await service.get_transaction(session, user, transaction_id)
    return {"success": True, "data": {"transaction": transaction}}
