"""Unit tests for the Gini coefficient."""

from decimal import Decimal

import pytest

from bounty_audit.engines.fairness.gini_calculator import InequalityAnalyzer


class TestGini:

    def test_equal_distribution_is_zero(self):
        assert InequalityAnalyzer.gini([250, 250, 250, 250]) == pytest.approx(0.0)

    def test_known_value(self):
        """[100, 100, 800]: 2*2700/(3*1000) - 4/3 = 0.4667"""
        assert InequalityAnalyzer.gini([800, 100, 100]) == pytest.approx(0.466667, abs=1e-5)

    def test_three_way_split(self):
        gini = InequalityAnalyzer.gini([Decimal("400.00"), Decimal("333.33"), Decimal("266.67")])
        assert gini == pytest.approx(0.08889, abs=1e-4)

    def test_order_does_not_matter(self):
        assert InequalityAnalyzer.gini([1, 5, 10]) == InequalityAnalyzer.gini([10, 1, 5])

    def test_all_to_one(self):
        """One of n holding everything gives (n-1)/n."""
        assert InequalityAnalyzer.gini([0, 0, 0, 1000]) == pytest.approx(0.75)

    @pytest.mark.parametrize("amounts", [[], [500], [0, 0, 0]])
    def test_degenerate_inputs_are_zero(self, amounts):
        assert InequalityAnalyzer.gini(amounts) == 0.0

    def test_always_within_bounds(self):
        for amounts in ([1, 2, 3], [0, 0, 1], [5, 5], [1e-9, 1e9], [3, 0, 0, 0, 0, 0, 0]):
            gini = InequalityAnalyzer.gini(amounts)
            assert 0.0 <= gini <= 1.0


class TestInequalityLevel:

    @pytest.mark.parametrize("gini,level", [
        (0.0, "EXCELLENT"),
        (0.29, "EXCELLENT"),
        (0.3, "GOOD"),
        (0.39, "GOOD"),
        (0.4, "FAIR"),
        (0.59, "FAIR"),
        (0.6, "POOR"),
        (0.69, "POOR"),
        (0.7, "EXTREME"),
        (1.0, "EXTREME"),
    ])
    def test_buckets(self, gini, level):
        assert InequalityAnalyzer.inequality_level(gini) == level
