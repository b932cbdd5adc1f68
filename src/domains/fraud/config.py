"""Fraud scoring configuration with sensible defaults.

All thresholds are frozen dataclasses: a config instance is built once and
handed to the rule-set builders, so tuning means constructing a new instance
(``dataclasses.replace`` or ``FraudConfig.from_env``), never mutating one.
"""

import os
from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class AuthorizationRuleConfig:
    """Inline scoring applied when a payment is authorized or refunded."""

    high_value_min: float = 5_000.0
    high_value_weight: int = 50
    mid_value_min: float = 1_000.0
    mid_value_weight: int = 25
    velocity_spike_above: int = 5
    velocity_spike_weight: int = 30
    velocity_warning_above: int = 3
    velocity_warning_weight: int = 15
    refund_weight: int = 10
    velocity_window_hours: int = 24
    high_threshold: int = 75
    medium_threshold: int = 40


@dataclass(frozen=True)
class ExtendedRuleConfig:
    """On-demand transaction analysis with card, timing and geo signals."""

    card_velocity_threshold: int = 5
    card_velocity_window_minutes: int = 10
    card_velocity_weight: int = 25
    user_velocity_threshold: int = 10
    user_velocity_window_minutes: int = 30
    user_velocity_weight: int = 20
    high_amount_min: float = 5_000.0
    high_amount_weight: int = 15
    unusual_amount_min: float = 10_000.0
    unusual_amount_weight: int = 10
    timezone: str = "UTC"  # IANA name; night and weekend rules read local wall-clock time
    night_start_hour: int = 22
    night_end_hour: int = 6
    night_weight: int = 5
    weekend_days: tuple[int, ...] = (5, 6)  # date.weekday(): Saturday, Sunday
    weekend_weight: int = 3
    new_card_max_age_hours: int = 24
    new_card_weight: int = 10
    expiring_card_days: int = 30
    expiring_card_weight: int = 5
    geo_mismatch_modulus: int = 7
    geo_mismatch_weight: int = 20
    score_cap: int = 100
    critical_threshold: int = 90
    high_threshold: int = 80
    medium_threshold: int = 60
    fallback_score: int = 50


@dataclass(frozen=True)
class FraudConfig:
    authorization: AuthorizationRuleConfig = field(default_factory=AuthorizationRuleConfig)
    extended: ExtendedRuleConfig = field(default_factory=ExtendedRuleConfig)

    @classmethod
    def from_env(cls) -> "FraudConfig":
        """Load config with env var overrides. Env vars use FRAUD_ prefix."""
        authorization = AuthorizationRuleConfig()
        extended = ExtendedRuleConfig()

        auth_overrides: dict = {}
        if v := os.getenv("FRAUD_HIGH_VALUE_MIN"):
            auth_overrides["high_value_min"] = float(v)
        if v := os.getenv("FRAUD_MID_VALUE_MIN"):
            auth_overrides["mid_value_min"] = float(v)
        if v := os.getenv("FRAUD_VELOCITY_SPIKE_ABOVE"):
            auth_overrides["velocity_spike_above"] = int(v)
        if v := os.getenv("FRAUD_VELOCITY_WARNING_ABOVE"):
            auth_overrides["velocity_warning_above"] = int(v)
        if v := os.getenv("FRAUD_AUTH_HIGH_THRESHOLD"):
            auth_overrides["high_threshold"] = int(v)
        if v := os.getenv("FRAUD_AUTH_MEDIUM_THRESHOLD"):
            auth_overrides["medium_threshold"] = int(v)

        extended_overrides: dict = {}
        if v := os.getenv("FRAUD_CARD_VELOCITY_THRESHOLD"):
            extended_overrides["card_velocity_threshold"] = int(v)
        if v := os.getenv("FRAUD_USER_VELOCITY_THRESHOLD"):
            extended_overrides["user_velocity_threshold"] = int(v)
        if v := os.getenv("FRAUD_HIGH_AMOUNT_MIN"):
            extended_overrides["high_amount_min"] = float(v)
        if v := os.getenv("FRAUD_UNUSUAL_AMOUNT_MIN"):
            extended_overrides["unusual_amount_min"] = float(v)
        if v := os.getenv("FRAUD_SCORE_CAP"):
            extended_overrides["score_cap"] = int(v)
        if v := os.getenv("FRAUD_TIMEZONE"):
            extended_overrides["timezone"] = v

        return cls(
            authorization=replace(authorization, **auth_overrides),
            extended=replace(extended, **extended_overrides),
        )


# Module-level default instance
default_config = FraudConfig()
