"""
Fairness Scorer - aggregates inequality and flags into a single score.
"""

from typing import Optional, Sequence

from bounty_audit.engines.fairness.gini_calculator import InequalityAnalyzer
from bounty_audit.engines.fairness.recommendations import generate_recommendations
from bounty_audit.engines.fairness.rule_engine import FairnessRuleEngine
from bounty_audit.schemas.audit import FairnessAnalysis, GreenFlag, RedFlag
from bounty_audit.schemas.challenge import (
    CompositionManifest,
    ContributionRecord,
    PayoutDistribution,
    ReputationRecord,
)


class FairnessScorer:
    """
    score = clamp(1 - 0.3*gini - 0.15*red + 0.05*green, 0, 1)

    Interpretation:
    - >= 0.85 EXCELLENT
    - >= 0.70 GOOD (passes review)
    - >= 0.50 FAIR
    - >= 0.30 POOR
    - otherwise CRITICAL
    """

    GINI_WEIGHT = 0.30
    RED_FLAG_PENALTY = 0.15
    GREEN_FLAG_BONUS = 0.05

    EXCELLENT_THRESHOLD = 0.85
    GOOD_THRESHOLD = 0.70
    FAIR_THRESHOLD = 0.50
    POOR_THRESHOLD = 0.30

    PASS_THRESHOLD = 0.70

    @classmethod
    def score(cls, gini: float, red_flag_count: int, green_flag_count: int) -> float:
        raw = (
            1.0
            - cls.GINI_WEIGHT * gini
            - cls.RED_FLAG_PENALTY * red_flag_count
            + cls.GREEN_FLAG_BONUS * green_flag_count
        )
        return min(1.0, max(0.0, raw))

    @classmethod
    def interpret(cls, score: float) -> str:
        if score >= cls.EXCELLENT_THRESHOLD:
            return "EXCELLENT"
        if score >= cls.GOOD_THRESHOLD:
            return "GOOD"
        if score >= cls.FAIR_THRESHOLD:
            return "FAIR"
        if score >= cls.POOR_THRESHOLD:
            return "POOR"
        return "CRITICAL"

    @classmethod
    def passes_threshold(cls, score: float, threshold: Optional[float] = None) -> bool:
        return score >= (cls.PASS_THRESHOLD if threshold is None else threshold)

    @classmethod
    def summarize(
        cls,
        gini: float,
        red_flags: Sequence[RedFlag],
        green_flags: Sequence[GreenFlag],
        has_manifest: bool,
    ) -> FairnessAnalysis:
        score = cls.score(gini, len(red_flags), len(green_flags))
        return FairnessAnalysis(
            gini_coefficient=gini,
            inequality_level=InequalityAnalyzer.inequality_level(gini),
            fairness_score=score,
            score_interpretation=cls.interpret(score),
            passes_threshold=cls.passes_threshold(score),
            red_flags=list(red_flags),
            green_flags=list(green_flags),
            recommendations=generate_recommendations(red_flags, green_flags, gini, has_manifest),
        )

    @classmethod
    def analyze(
        cls,
        contributions: Sequence[ContributionRecord],
        manifest: Optional[CompositionManifest],
        distribution: PayoutDistribution,
        reputation: Optional[ReputationRecord] = None,
    ) -> FairnessAnalysis:
        """Run the full pure pipeline: gini, rules, score and recommendations."""
        gini = InequalityAnalyzer.gini(distribution.amounts)
        red_flags, green_flags = FairnessRuleEngine.evaluate(
            contributions, manifest, distribution, reputation, gini,
        )
        return cls.summarize(gini, red_flags, green_flags, manifest is not None)
