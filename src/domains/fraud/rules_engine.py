"""Table-driven fraud rule evaluation.

Scoring is a plain additive walk over a RuleSet:
1. Evaluate rules in table order, skipping groups already claimed by a hit
2. Sum the weights of the hits
3. Clamp to the rule set's cap, when it has one
4. Map the score through the rule set's bands

No I/O and no clock reads happen here, so the same features and rule set
always produce the same assessment.
"""

from .models import RiskAssessment, RiskLevel, RuleHit, TransactionFeatures
from .rules import RuleSet

ANALYSIS_ERROR = "ANALYSIS_ERROR"


def evaluate(features: TransactionFeatures, rule_set: RuleSet) -> RiskAssessment:
    score = 0
    hits: list[RuleHit] = []
    claimed_groups: set[str] = set()

    for rule in rule_set.rules:
        if rule.group is not None and rule.group in claimed_groups:
            continue
        if not rule.predicate(features):
            continue

        score += rule.weight
        hits.append(
            RuleHit(
                rule=rule.rule_id,
                weight=rule.weight,
                value=rule.observe(features) if rule.observe else None,
                threshold=rule.threshold,
            )
        )
        if rule.group is not None:
            claimed_groups.add(rule.group)

    if rule_set.cap is not None:
        score = min(score, rule_set.cap)

    return RiskAssessment(
        risk_score=score,
        risk_level=rule_set.classify(score),
        rules_triggered=hits,
        rule_set=rule_set.name,
        features=features.model_dump(mode="json", exclude_none=True),
    )


def fallback_assessment(rule_set: RuleSet, error: Exception, score: int = 50) -> RiskAssessment:
    """Medium-risk result used when the inputs for a rule set could not be gathered."""
    return RiskAssessment(
        risk_score=score,
        risk_level=RiskLevel.MEDIUM,
        rules_triggered=[RuleHit(rule=ANALYSIS_ERROR, weight=0, value=str(error))],
        rule_set=rule_set.name,
        features={},
    )
