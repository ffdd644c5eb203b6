"""
Fairness engines - pure, synchronous computation over audit inputs.
"""

from bounty_audit.engines.fairness.split_calculator import PayoutSplitCalculator
from bounty_audit.engines.fairness.gini_calculator import InequalityAnalyzer
from bounty_audit.engines.fairness.rule_engine import FairnessRuleEngine, payout_share
from bounty_audit.engines.fairness.fairness_scorer import FairnessScorer
from bounty_audit.engines.fairness.recommendations import generate_recommendations

__all__ = [
    "PayoutSplitCalculator",
    "InequalityAnalyzer",
    "FairnessRuleEngine",
    "payout_share",
    "FairnessScorer",
    "generate_recommendations",
]
