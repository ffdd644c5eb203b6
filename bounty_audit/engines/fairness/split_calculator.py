"""
Payout Split Calculator - proportional allocation of a bounty.

amount_i = w_i / sum(w) * bounty, rounded half-even to cents, with the
rounding residual reconciled onto the largest-weight entry so the amounts
always add up to the bounty exactly.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from bounty_audit.exceptions import ValidationFailure
from bounty_audit.schemas.audit import ContributorShare
from bounty_audit.schemas.challenge import ContributionRecord

Number = Union[Decimal, int, float, str]


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps floats like 0.1 from dragging in binary noise
    return Decimal(str(value))


class PayoutSplitCalculator:
    """
    Splits a bounty across contributors in proportion to their weights.

    Usage:
        shares = PayoutSplitCalculator.calculate(
            Decimal("1000"), [("alice", 30), ("bob", 25), ("carol", 20)]
        )
    """

    CURRENCY_QUANTUM = Decimal("0.01")
    PERCENT_QUANTUM = Decimal("0.0001")
    HUNDRED = Decimal("100")

    @classmethod
    def calculate(
        cls,
        bounty_amount: Number,
        weights: Sequence[Tuple[str, Number]],
    ) -> List[ContributorShare]:
        """
        Compute each contributor's percentage and amount.

        Raises:
            ValidationFailure: bounty <= 0, a negative weight, or all weights zero
        """
        bounty = _to_decimal(bounty_amount)
        if not bounty.is_finite() or bounty <= 0:
            raise ValidationFailure(
                "Bounty amount must be positive",
                {"bounty_amount": str(bounty_amount)},
            )

        if not weights:
            return []

        parsed: List[Tuple[str, Decimal]] = []
        for contributor_id, weight in weights:
            w = _to_decimal(weight)
            if not w.is_finite() or w < 0:
                raise ValidationFailure(
                    "Contribution weight must be a non-negative number",
                    {"contributor_id": contributor_id, "weight": str(weight)},
                )
            parsed.append((contributor_id, w))

        total_weight = sum((w for _, w in parsed), Decimal("0"))
        if total_weight == 0:
            raise ValidationFailure(
                "Total contribution weight is zero",
                {"contributors": len(parsed)},
            )

        shares: List[ContributorShare] = []
        for contributor_id, w in parsed:
            ratio = w / total_weight
            shares.append(ContributorShare(
                contributor_id=contributor_id,
                weight=w,
                percentage=(ratio * cls.HUNDRED).quantize(cls.PERCENT_QUANTUM, rounding=ROUND_HALF_EVEN),
                amount=(ratio * bounty).quantize(cls.CURRENCY_QUANTUM, rounding=ROUND_HALF_EVEN),
            ))

        cls._reconcile(shares, bounty.quantize(cls.CURRENCY_QUANTUM, rounding=ROUND_HALF_EVEN))
        return shares

    @classmethod
    def from_contributions(
        cls,
        bounty_amount: Number,
        contributions: Iterable[ContributionRecord],
    ) -> List[ContributorShare]:
        """Split using each contributor's summed token_value, in first-appearance order."""
        totals: Dict[str, Decimal] = {}
        for record in contributions:
            totals[record.contributor_id] = totals.get(record.contributor_id, Decimal("0")) + record.token_value
        return cls.calculate(bounty_amount, list(totals.items()))

    @staticmethod
    def _reconcile(shares: List[ContributorShare], bounty: Decimal) -> None:
        residual = bounty - sum((s.amount for s in shares), Decimal("0"))
        if residual == 0:
            return
        # max() returns the first of equal weights
        largest = max(shares, key=lambda s: s.weight)
        largest.amount += residual
