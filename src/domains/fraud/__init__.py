"""Fraud detection domain."""

from .config import FraudConfig, default_config
from .feature_computer import FeatureComputer
from .models import RiskAssessment, RiskLevel, RuleHit, TransactionFeatures
from .rules import RuleSet, ScoringRule, authorization_rule_set, extended_rule_set
from .rules_engine import evaluate, fallback_assessment
from .scorer import FraudScorer

__all__ = [
    "FeatureComputer",
    "FraudConfig",
    "FraudScorer",
    "RiskAssessment",
    "RiskLevel",
    "RuleHit",
    "RuleSet",
    "ScoringRule",
    "TransactionFeatures",
    "authorization_rule_set",
    "default_config",
    "evaluate",
    "extended_rule_set",
    "fallback_assessment",
]
