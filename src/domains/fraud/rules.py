"""Fraud rule tables.

A rule set is an ordered table of weighted boolean rules plus the bands that
turn a score into a risk level. Rules that share a ``group`` are mutually
exclusive tiers: the first one that fires (in table order) claims the group
and later members are skipped, so higher tiers must be listed first.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from .config import AuthorizationRuleConfig, ExtendedRuleConfig, FraudConfig, default_config
from .models import RiskLevel, TransactionFeatures

AUTHORIZATION_RULE_SET = "authorization-v1"
EXTENDED_RULE_SET = "extended-v1"


@dataclass(frozen=True)
class ScoringRule:
    rule_id: str
    weight: int
    predicate: Callable[[TransactionFeatures], bool]
    observe: Callable[[TransactionFeatures], Any] | None = None
    threshold: float | None = None
    group: str | None = None
    description: str = ""


@dataclass(frozen=True)
class RiskBand:
    min_score: int
    level: RiskLevel


@dataclass(frozen=True)
class RuleSet:
    name: str
    rules: tuple[ScoringRule, ...]
    bands: tuple[RiskBand, ...]  # highest min_score first
    cap: int | None = None
    floor_level: RiskLevel = RiskLevel.LOW

    def classify(self, score: int) -> RiskLevel:
        for band in self.bands:
            if score >= band.min_score:
                return band.level
        return self.floor_level

    def describe(self) -> dict:
        return {
            "name": self.name,
            "cap": self.cap,
            "rules": [
                {
                    "rule_id": rule.rule_id,
                    "weight": rule.weight,
                    "threshold": rule.threshold,
                    "group": rule.group,
                    "description": rule.description,
                }
                for rule in self.rules
            ],
            "thresholds": {band.level.value: band.min_score for band in self.bands},
        }


def local_time(timestamp: datetime | None, timezone: str = "UTC") -> datetime | None:
    """Convert to wall-clock time in ``timezone``. Naive timestamps are taken as UTC."""
    if timestamp is None:
        return None
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return timestamp.astimezone(ZoneInfo(timezone))


def is_night(
    timestamp: datetime | None, start_hour: int, end_hour: int, timezone: str = "UTC"
) -> bool:
    """Night window wraps midnight; both boundary hours count as night."""
    local = local_time(timestamp, timezone)
    if local is None:
        return False
    return local.hour >= start_hour or local.hour <= end_hour


def is_weekend(
    timestamp: datetime | None, weekend_days: tuple[int, ...], timezone: str = "UTC"
) -> bool:
    local = local_time(timestamp, timezone)
    if local is None:
        return False
    return local.weekday() in weekend_days


def authorization_rule_set(config: FraudConfig | None = None) -> RuleSet:
    """Rules scored inline on authorize and refund. Uncapped."""
    cfg: AuthorizationRuleConfig = (config or default_config).authorization

    rules = (
        ScoringRule(
            rule_id="HIGH_VALUE",
            weight=cfg.high_value_weight,
            predicate=lambda f: f.amount >= cfg.high_value_min,
            observe=lambda f: f.amount,
            threshold=cfg.high_value_min,
            group="amount",
            description=f"Amount >= {cfg.high_value_min:,.0f}",
        ),
        ScoringRule(
            rule_id="MID_VALUE",
            weight=cfg.mid_value_weight,
            predicate=lambda f: f.amount >= cfg.mid_value_min,
            observe=lambda f: f.amount,
            threshold=cfg.mid_value_min,
            group="amount",
            description=f"Amount >= {cfg.mid_value_min:,.0f}",
        ),
        ScoringRule(
            rule_id="VELOCITY_SPIKE",
            weight=cfg.velocity_spike_weight,
            predicate=lambda f: f.velocity_count > cfg.velocity_spike_above,
            observe=lambda f: f.velocity_count,
            threshold=cfg.velocity_spike_above,
            group="velocity",
            description=(
                f"More than {cfg.velocity_spike_above} transactions "
                f"in {cfg.velocity_window_hours}h"
            ),
        ),
        ScoringRule(
            rule_id="VELOCITY_WARNING",
            weight=cfg.velocity_warning_weight,
            predicate=lambda f: f.velocity_count > cfg.velocity_warning_above,
            observe=lambda f: f.velocity_count,
            threshold=cfg.velocity_warning_above,
            group="velocity",
            description=(
                f"More than {cfg.velocity_warning_above} transactions "
                f"in {cfg.velocity_window_hours}h"
            ),
        ),
        ScoringRule(
            rule_id="REFUND_ACTIVITY",
            weight=cfg.refund_weight,
            predicate=lambda f: f.transaction_type == "refund",
            observe=lambda f: f.transaction_type,
            description="Refund request",
        ),
    )

    return RuleSet(
        name=AUTHORIZATION_RULE_SET,
        rules=rules,
        bands=(
            RiskBand(cfg.high_threshold, RiskLevel.HIGH),
            RiskBand(cfg.medium_threshold, RiskLevel.MEDIUM),
        ),
        cap=None,
    )


def extended_rule_set(config: FraudConfig | None = None) -> RuleSet:
    """Rules for on-demand analysis. Capped at ``score_cap``."""
    cfg: ExtendedRuleConfig = (config or default_config).extended

    rules = (
        ScoringRule(
            rule_id="VELOCITY_SAME_CARD",
            weight=cfg.card_velocity_weight,
            predicate=lambda f: f.card_velocity >= cfg.card_velocity_threshold,
            observe=lambda f: f.card_velocity,
            threshold=cfg.card_velocity_threshold,
            description=(
                f"{cfg.card_velocity_threshold}+ authorized/captured transactions on the "
                f"same card in {cfg.card_velocity_window_minutes} minutes"
            ),
        ),
        ScoringRule(
            rule_id="VELOCITY_SAME_USER",
            weight=cfg.user_velocity_weight,
            predicate=lambda f: f.user_velocity >= cfg.user_velocity_threshold,
            observe=lambda f: f.user_velocity,
            threshold=cfg.user_velocity_threshold,
            description=(
                f"{cfg.user_velocity_threshold}+ authorized/captured transactions by the "
                f"same user in {cfg.user_velocity_window_minutes} minutes"
            ),
        ),
        ScoringRule(
            rule_id="HIGH_AMOUNT",
            weight=cfg.high_amount_weight,
            predicate=lambda f: f.amount >= cfg.high_amount_min,
            observe=lambda f: f.amount,
            threshold=cfg.high_amount_min,
            description=f"Amount >= {cfg.high_amount_min:,.0f}",
        ),
        ScoringRule(
            rule_id="UNUSUAL_AMOUNT",
            weight=cfg.unusual_amount_weight,
            predicate=lambda f: f.amount >= cfg.unusual_amount_min,
            observe=lambda f: f.amount,
            threshold=cfg.unusual_amount_min,
            description=f"Amount >= {cfg.unusual_amount_min:,.0f}",
        ),
        ScoringRule(
            rule_id="NIGHT_TRANSACTION",
            weight=cfg.night_weight,
            predicate=lambda f: is_night(
                f.timestamp, cfg.night_start_hour, cfg.night_end_hour, cfg.timezone
            ),
            observe=lambda f: local_time(f.timestamp, cfg.timezone).hour if f.timestamp else None,
            description=(
                f"Between {cfg.night_start_hour}:00 and {cfg.night_end_hour}:59 {cfg.timezone}"
            ),
        ),
        ScoringRule(
            rule_id="WEEKEND_TRANSACTION",
            weight=cfg.weekend_weight,
            predicate=lambda f: is_weekend(f.timestamp, cfg.weekend_days, cfg.timezone),
            observe=lambda f: (
                local_time(f.timestamp, cfg.timezone).weekday() if f.timestamp else None
            ),
            description=f"Saturday or Sunday {cfg.timezone}",
        ),
        ScoringRule(
            rule_id="NEW_CARD",
            weight=cfg.new_card_weight,
            predicate=lambda f: f.is_new_card,
            observe=lambda f: True,
            description=f"Card added within {cfg.new_card_max_age_hours}h",
        ),
        ScoringRule(
            rule_id="EXPIRING_CARD",
            weight=cfg.expiring_card_weight,
            predicate=lambda f: f.is_expiring_card,
            observe=lambda f: True,
            description=f"Card expires within {cfg.expiring_card_days} days",
        ),
        ScoringRule(
            rule_id="GEO_MISMATCH",
            weight=cfg.geo_mismatch_weight,
            predicate=lambda f: f.has_geo_mismatch,
            observe=lambda f: True,
            description="Simulated IP vs card country mismatch",
        ),
    )

    return RuleSet(
        name=EXTENDED_RULE_SET,
        rules=rules,
        bands=(
            RiskBand(cfg.critical_threshold, RiskLevel.CRITICAL),
            RiskBand(cfg.high_threshold, RiskLevel.HIGH),
            RiskBand(cfg.medium_threshold, RiskLevel.MEDIUM),
        ),
        cap=cfg.score_cap,
    )
