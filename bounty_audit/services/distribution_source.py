"""
Distribution source resolution.

An audit evaluates the latest proposed distribution when one exists and
falls back to the realized payment records otherwise. The choice is made
once per audit and carried through to the stored record.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional, Union

from bounty_audit.exceptions import NotFound, ValidationFailure
from bounty_audit.schemas.audit import DistributionSourceKind
from bounty_audit.schemas.challenge import PaymentRecord, PayoutDistribution, PayoutEntry


@dataclass(frozen=True)
class ProposedDistribution:
    distribution: PayoutDistribution
    kind: DistributionSourceKind = field(default=DistributionSourceKind.PROPOSAL, init=False)


@dataclass(frozen=True)
class RealizedPayments:
    distribution: PayoutDistribution
    kind: DistributionSourceKind = field(default=DistributionSourceKind.PAYMENTS, init=False)

    @classmethod
    def from_payments(cls, challenge_id: str, payments: List[PaymentRecord]) -> "RealizedPayments":
        """Sum payments per contributor. created_at is the latest payment's time."""
        totals: Dict[str, Decimal] = {}
        refs: Dict[str, List[str]] = {}
        for payment in payments:
            totals[payment.contributor_id] = totals.get(payment.contributor_id, Decimal("0")) + payment.amount
            refs.setdefault(payment.contributor_id, []).append(payment.id)

        entries = [
            PayoutEntry(
                contributor_id=contributor_id,
                amount=amount,
                rationale="Realized payment",
                evidence_refs=refs[contributor_id],
            )
            for contributor_id, amount in totals.items()
        ]
        return cls(PayoutDistribution(
            challenge_id=challenge_id,
            entries=entries,
            created_at=max(p.created_at for p in payments),
        ))


DistributionSource = Union[ProposedDistribution, RealizedPayments]


def resolve_distribution_source(
    challenge_id: str,
    proposal: Optional[PayoutDistribution],
    payments: List[PaymentRecord],
) -> DistributionSource:
    """
    Pick the distribution to audit.

    Raises:
        ValidationFailure: a proposal exists but distributes nothing
        NotFound: neither a proposal nor any payments exist
    """
    if proposal is not None:
        if not proposal.entries:
            raise ValidationFailure(
                "Payout proposal has an empty distribution",
                {"challenge_id": challenge_id},
            )
        return ProposedDistribution(proposal)

    if payments:
        return RealizedPayments.from_payments(challenge_id, payments)

    raise NotFound(
        "No payout proposal or payments found",
        {"challenge_id": challenge_id},
    )
