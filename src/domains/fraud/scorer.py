"""Fraud scoring pipeline: features -> rule table -> persist."""

import uuid
from datetime import UTC, datetime, timedelta

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import FraudScore as FraudScoreDB
from src.db.models import Transaction
from src.shared.audit import RequestContext

from . import repository
from .config import FraudConfig, default_config
from .feature_computer import FeatureComputer
from .models import RiskAssessment, TransactionFeatures
from .rules import RuleSet, authorization_rule_set, extended_rule_set
from .rules_engine import evaluate, fallback_assessment

logger = structlog.get_logger()


class FraudScorer:
    """Scores transactions with the authorization or extended rule set and stores the result."""

    def __init__(
        self,
        config: FraudConfig | None = None,
        feature_computer: FeatureComputer | None = None,
    ) -> None:
        self._config = config or default_config
        self._feature_computer = feature_computer or FeatureComputer()
        self._authorization_rules = authorization_rule_set(self._config)
        self._extended_rules = extended_rule_set(self._config)

    @property
    def authorization_rules(self) -> RuleSet:
        return self._authorization_rules

    @property
    def extended_rules(self) -> RuleSet:
        return self._extended_rules

    def assess(self, features: TransactionFeatures) -> RiskAssessment:
        """Pure authorization scoring: amount tier, velocity tier, refund surcharge."""
        return evaluate(features, self._authorization_rules)

    async def score_transaction(
        self,
        session: AsyncSession,
        transaction: Transaction,
        context: RequestContext,
        transaction_type: str | None = None,
        now: datetime | None = None,
    ) -> tuple[FraudScoreDB, RiskAssessment]:
        """Score a transaction with the authorization rules and replace its stored score.

        A failed velocity lookup scores as zero recent transactions.
        """
        now = now or datetime.now(UTC)
        window = timedelta(hours=self._config.authorization.velocity_window_hours)

        try:
            async with session.begin_nested():
                velocity = await self._feature_computer.user_velocity(
                    session,
                    transaction.user_id,
                    now - window,
                    exclude_transaction_id=transaction.id,
                )
        except SQLAlchemyError:
            logger.warning(
                "velocity_lookup_failed",
                transaction_id=str(transaction.id),
                user_id=str(transaction.user_id),
                exc_info=True,
            )
            velocity = 0

        features = TransactionFeatures(
            amount=float(transaction.amount),
            transaction_type=transaction_type or transaction.transaction_type,
            velocity_count=velocity,
            currency=transaction.currency,
        )
        assessment = self.assess(features)
        row = await self._persist(session, transaction.id, assessment, context, now)

        logger.info(
            "transaction_scored",
            transaction_id=str(transaction.id),
            rule_set=assessment.rule_set,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level.value,
            rules=assessment.rule_ids,
        )
        return row, assessment

    async def analyze_transaction(
        self,
        session: AsyncSession,
        transaction: Transaction,
        context: RequestContext,
        now: datetime | None = None,
    ) -> tuple[FraudScoreDB, RiskAssessment]:
        """Run the extended rule set and replace the stored score.

        Any failure while gathering inputs yields the medium-risk fallback
        instead of an error.
        """
        now = now or datetime.now(UTC)

        try:
            async with session.begin_nested():
                features = await self._feature_computer.extended_features(
                    session,
                    transaction,
                    self._config.extended,
                    ip_address=context.ip_address,
                    user_agent=context.user_agent,
                    now=now,
                )
            assessment = evaluate(features, self._extended_rules)
        except Exception as exc:
            logger.warning(
                "fraud_analysis_fallback",
                transaction_id=str(transaction.id),
                error=str(exc),
                exc_info=True,
            )
            assessment = fallback_assessment(
                self._extended_rules, exc, score=self._config.extended.fallback_score
            )

        row = await self._persist(session, transaction.id, assessment, context, now)

        logger.info(
            "transaction_analyzed",
            transaction_id=str(transaction.id),
            rule_set=assessment.rule_set,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level.value,
            rules=assessment.rule_ids,
        )
        return row, assessment

    async def _persist(
        self,
        session: AsyncSession,
        transaction_id: uuid.UUID,
        assessment: RiskAssessment,
        context: RequestContext,
        now: datetime,
    ) -> FraudScoreDB:
        row = FraudScoreDB(
            id=uuid.uuid4(),
            transaction_id=transaction_id,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level.value,
            rules_triggered=[hit.model_dump(mode="json") for hit in assessment.rules_triggered],
            features=assessment.features,
            rule_set=assessment.rule_set,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            created_at=now,
        )
        return await repository.replace_fraud_score(session, row)
