"""Pydantic models for the fraud domain."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class TransactionFeatures(BaseModel):
    """Inputs to a rule set. Authorization scoring only reads the first three."""

    model_config = ConfigDict(frozen=True)

    amount: float
    transaction_type: str = "authorize"
    velocity_count: int = Field(default=0, ge=0)

    # Extended analysis signals
    card_velocity: int = Field(default=0, ge=0)
    user_velocity: int = Field(default=0, ge=0)
    timestamp: datetime | None = None
    is_new_card: bool = False
    is_expiring_card: bool = False
    has_geo_mismatch: bool = False

    # Recorded for later review, never scored
    currency: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


class RuleHit(BaseModel):
    rule: str
    weight: int
    value: Any = None
    threshold: float | None = None


class RiskAssessment(BaseModel):
    risk_score: int = Field(ge=0)
    risk_level: RiskLevel
    rules_triggered: list[RuleHit] = []
    rule_set: str
    features: dict = Field(default_factory=dict)

    @property
    def rule_ids(self) -> list[str]:
        return [hit.rule for hit in self.rules_triggered]
