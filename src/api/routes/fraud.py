"""Fraud analysis, statistics and rule-table endpoints."""

import uuid
from datetime import UTC, datetime, timedelta

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_current_user, request_context
from src.db.database import get_session
from src.db.models import User
from src.domains.fraud import repository
from src.domains.fraud.scorer import FraudScorer
from src.domains.payments import repository as payments_repository
from src.shared.audit import RequestContext, record_audit
from src.shared.errors import BadRequestError, NotFoundError

logger = structlog.get_logger()
router = APIRouter(prefix="/api/fraud", tags=["fraud"])

_scorer = FraudScorer()

TIME_RANGES = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


@router.post("/analyze/{transaction_id}")
async def analyze_transaction(
    transaction_id: uuid.UUID,
    user: User = Depends(get_current_user),  # noqa: B008
    context: RequestContext = Depends(request_context),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    txn = await payments_repository.get_user_transaction(session, transaction_id, user.id)
    if txn is None:
        raise NotFoundError("Transaction not found")

    score, assessment = await _scorer.analyze_transaction(session, txn, context)
    record_audit(
        session,
        "fraud_analysis",
        "fraud_score",
        context,
        user_id=user.id,
        resource_id=score.id,
        new_values={
            "riskScore": assessment.risk_score,
            "riskLevel": assessment.risk_level.value,
        },
    )
    await session.commit()

    return {
        "success": True,
        "message": "Fraud analysis completed",
        "data": {
            "transaction": {
                "id": str(txn.id),
                "amount": str(txn.amount),
                "currency": txn.currency,
                "status": txn.status,
            },
            "fraudAnalysis": {
                "riskScore": assessment.risk_score,
                "riskLevel": assessment.risk_level.value,
                "triggeredRules": [hit.model_dump(mode="json") for hit in assessment.rules_triggered],
                "ruleSet": assessment.rule_set,
                "analysisTimestamp": score.created_at.isoformat(),
            },
        },
    }


@router.get("/statistics")
async def fraud_statistics(
    time_range: str = Query("24h", alias="timeRange"),
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    """Risk distribution over a window; admins see every user, others only themselves."""
    window = TIME_RANGES.get(time_range)
    if window is None:
        raise BadRequestError(f"Invalid timeRange. Must be one of: {', '.join(TIME_RANGES)}")

    scope = None if user.role == "admin" else user.id
    stats = await repository.fraud_statistics(session, datetime.now(UTC) - window, user_id=scope)

    return {
        "success": True,
        "data": {
            "timeRange": time_range,
            "statistics": {
                "totalTransactions": int(stats["total_transactions"] or 0),
                "riskDistribution": {
                    level: int(stats[f"{level}_risk"] or 0) for level in repository.RISK_LEVELS
                },
                "averageRiskScore": round(float(stats["avg_risk_score"] or 0), 2),
                "maxRiskScore": int(stats["max_risk_score"] or 0),
            },
        },
    }


@router.get("/flagged")
async def flagged_transactions(
    risk_level: str = Query("high", alias="riskLevel"),
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    if risk_level not in repository.RISK_LEVELS:
        raise BadRequestError(
            f"Invalid riskLevel. Must be one of: {', '.join(repository.RISK_LEVELS)}"
        )

    scope = None if user.role == "admin" else user.id
    rows = await repository.flagged_transactions(session, risk_level, limit, user_id=scope)

    return {
        "success": True,
        "data": {
            "riskLevel": risk_level,
            "transactions": [
                {
                    "fraudScoreId": str(row["fraud_score_id"]),
                    "riskScore": row["risk_score"],
                    "riskLevel": row["risk_level"],
                    "triggeredRules": row["rules_triggered"],
                    "analysisTime": row["analysis_time"].isoformat(),
                    "transaction": {
                        "id": str(row["transaction_id"]),
                        "amount": str(row["amount"]),
                        "currency": row["currency"],
                        "status": row["status"],
                        "createdAt": row["transaction_time"].isoformat(),
                    },
                    "userEmail": row["user_email"] if scope is None else None,
                    "paymentMethod": (
                        {"lastFour": row["last_four"], "brand": row["brand"]}
                        if row["last_four"]
                        else None
                    ),
                }
                for row in rows
            ],
        },
    }


@router.get("/rules", dependencies=[Depends(get_current_user)])
async def list_rules() -> dict:
    return {
        "success": True,
        "data": {
            "ruleSets": [
                _scorer.authorization_rules.describe(),
                _scorer.extended_rules.describe(),
            ],
        },
    }
