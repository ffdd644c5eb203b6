"""
Recommendation generation for fairness audits.

Recommendations are advisory. action_required marks the ones a reviewer
should resolve before approving the payout.
"""

from typing import Dict, List, Sequence, Tuple

from bounty_audit.schemas.audit import (
    GreenFlag,
    Recommendation,
    RecommendationSeverity,
    RedFlag,
)


# flag -> (severity, description, action_required)
RED_FLAG_RECOMMENDATIONS: Dict[RedFlag, Tuple[RecommendationSeverity, str, bool]] = {
    RedFlag.SINGLE_CONTRIBUTOR_DOMINANCE: (
        RecommendationSeverity.CRITICAL,
        "One contributor receives >70% of payout. "
        "Review contribution weights to ensure fair attribution.",
        True,
    ),
    RedFlag.UNPAID_WORK_DETECTED: (
        RecommendationSeverity.CRITICAL,
        "Contributors with recorded work are not receiving payment. "
        "Ensure all contributors are compensated.",
        True,
    ),
    RedFlag.EXTREME_INEQUALITY: (
        RecommendationSeverity.CRITICAL,
        "Distribution shows extreme inequality (Gini: {gini:.2f}). "
        "Consider more equitable payout allocation.",
        True,
    ),
    RedFlag.MISSING_ATTRIBUTION: (
        RecommendationSeverity.CRITICAL,
        "Some contributors are missing from the composition manifest. "
        "Update manifest to include all contributors.",
        True,
    ),
    RedFlag.SUSPICIOUS_TIMING: (
        RecommendationSeverity.WARNING,
        "Manifest was signed <1 hour before payout proposal. "
        "Allow adequate review time for transparency.",
        True,
    ),
    RedFlag.UNEXPLAINED_VARIANCE: (
        RecommendationSeverity.CRITICAL,
        "Payout percentages deviate >5% from manifest weights without explanation. "
        "Align payouts with agreed attribution.",
        True,
    ),
    RedFlag.NO_DIVERSE_ROLES: (
        RecommendationSeverity.WARNING,
        "All contributions are the same type. "
        "Consider if additional skills/roles were needed but unrecognized.",
        False,
    ),
    RedFlag.EXPLOITATION_PATTERN: (
        RecommendationSeverity.CRITICAL,
        "Project leader has history of disputes/unfair distributions. "
        "Require additional oversight for this payout.",
        True,
    ),
}

MODEL_PRACTICE_TEXT = (
    "Excellent fairness practices detected. "
    "This distribution serves as a good model for future challenges."
)
NO_MANIFEST_TEXT = (
    "No composition manifest found. "
    "Create and sign a manifest to improve transparency and auditability."
)
MODERATE_INEQUALITY_TEXT = (
    "Distribution shows moderate inequality (Gini: {gini:.2f}). "
    "Review if this reflects actual contribution differences."
)

MODEL_PRACTICE_MIN_GREEN_FLAGS = 3
MODERATE_GINI_LOWER = 0.5
MODERATE_GINI_UPPER = 0.7


def generate_recommendations(
    red_flags: Sequence[RedFlag],
    green_flags: Sequence[GreenFlag],
    gini: float,
    has_manifest: bool,
) -> List[Recommendation]:
    """One recommendation per red flag, then the general observations."""
    recommendations: List[Recommendation] = []

    for flag in red_flags:
        severity, text, action_required = RED_FLAG_RECOMMENDATIONS[flag]
        recommendations.append(Recommendation(
            severity=severity,
            flag=flag.value,
            description=text.format(gini=gini),
            action_required=action_required,
        ))

    if not red_flags and len(green_flags) >= MODEL_PRACTICE_MIN_GREEN_FLAGS:
        recommendations.append(Recommendation(
            severity=RecommendationSeverity.SUGGESTION,
            description=MODEL_PRACTICE_TEXT,
            action_required=False,
        ))

    if not has_manifest:
        recommendations.append(Recommendation(
            severity=RecommendationSeverity.WARNING,
            description=NO_MANIFEST_TEXT,
            action_required=True,
        ))

    if (
        MODERATE_GINI_LOWER < gini <= MODERATE_GINI_UPPER
        and RedFlag.EXTREME_INEQUALITY not in red_flags
    ):
        recommendations.append(Recommendation(
            severity=RecommendationSeverity.WARNING,
            description=MODERATE_INEQUALITY_TEXT.format(gini=gini),
            action_required=False,
        ))

    return recommendations
