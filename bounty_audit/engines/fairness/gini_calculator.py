"""
Inequality Analyzer - Gini coefficient over a payout vector.
"""

from decimal import Decimal
from typing import Sequence, Union


class InequalityAnalyzer:
    """
    Gini coefficient: 0 is perfectly equal, 1 is maximally unequal.

    Sorted ascending, gini = 2*sum((i+1)*x_i) / (n*total) - (n+1)/n,
    clamped to [0, 1].
    """

    # Reporting buckets (upper bounds, exclusive)
    EXCELLENT_BELOW = 0.3
    GOOD_BELOW = 0.4
    FAIR_BELOW = 0.6
    POOR_BELOW = 0.7

    @classmethod
    def gini(cls, amounts: Sequence[Union[Decimal, float, int]]) -> float:
        values = sorted(float(a) for a in amounts)
        n = len(values)
        if n <= 1:
            return 0.0

        total = sum(values)
        if total <= 0:
            return 0.0

        weighted = sum((i + 1) * x for i, x in enumerate(values))
        coefficient = (2 * weighted) / (n * total) - (n + 1) / n
        return min(1.0, max(0.0, coefficient))

    @classmethod
    def inequality_level(cls, gini: float) -> str:
        if gini < cls.EXCELLENT_BELOW:
            return "EXCELLENT"
        if gini < cls.GOOD_BELOW:
            return "GOOD"
        if gini < cls.FAIR_BELOW:
            return "FAIR"
        if gini < cls.POOR_BELOW:
            return "POOR"
        return "EXTREME"
