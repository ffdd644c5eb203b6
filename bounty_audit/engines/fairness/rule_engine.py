"""
Fairness Rule Engine - deterministic red/green flag detection.

Every rule is a pure predicate over the audit inputs. Flags are returned
in the fixed order of the RedFlag / GreenFlag enums regardless of which
fire, so two evaluations of the same input are identical.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence, Set, Tuple

from bounty_audit.kernel.models.base import as_utc
from bounty_audit.schemas.audit import GreenFlag, RedFlag
from bounty_audit.schemas.challenge import (
    CompositionManifest,
    ContributionRecord,
    PayoutDistribution,
    ReputationRecord,
)


class FairnessRuleEngine:
    """
    Evaluates 8 red-flag and 4 green-flag rules.

    Red flags:
    - SINGLE_CONTRIBUTOR_DOMINANCE: one payout > 70% of the total
    - UNPAID_WORK_DETECTED: a contributor with recorded work has no positive payout
    - EXTREME_INEQUALITY: gini > 0.7
    - MISSING_ATTRIBUTION: a contributor is absent from the manifest
    - SUSPICIOUS_TIMING: manifest signed less than 1h before the distribution
    - UNEXPLAINED_VARIANCE: manifest weight and payout share differ by > 5 points
    - NO_DIVERSE_ROLES: every contribution has the same type
    - EXPLOITATION_PATTERN: the project leader has a dispute history

    Green flags:
    - DIVERSE_CONTRIBUTION_TYPES: 3+ contribution types
    - ALL_CONTRIBUTORS_PAID: every contributor is paid a positive amount
    - FAIR_DISTRIBUTION: gini < 0.4
    - TRANSPARENT_MANIFEST: manifest signed 24h+ before the distribution
    """

    DOMINANCE_THRESHOLD = 0.70
    EXTREME_GINI_THRESHOLD = 0.70
    FAIR_GINI_THRESHOLD = 0.40
    VARIANCE_TOLERANCE = 0.05
    DIVERSE_TYPE_COUNT = 3

    EXPLOITATION_DISPUTES = 3
    LOW_LEADERSHIP_SCORE = 50.0

    SUSPICIOUS_TIMING_WINDOW = timedelta(hours=1)
    TRANSPARENT_MANIFEST_LEAD = timedelta(hours=24)

    @classmethod
    def evaluate(
        cls,
        contributions: Sequence[ContributionRecord],
        manifest: Optional[CompositionManifest],
        distribution: PayoutDistribution,
        reputation: Optional[ReputationRecord],
        gini: float,
    ) -> Tuple[List[RedFlag], List[GreenFlag]]:
        """Evaluate every rule and return (red_flags, green_flags)."""
        return (
            cls.detect_red_flags(contributions, manifest, distribution, reputation, gini),
            cls.detect_green_flags(contributions, manifest, distribution, gini),
        )

    @classmethod
    def detect_red_flags(
        cls,
        contributions: Sequence[ContributionRecord],
        manifest: Optional[CompositionManifest],
        distribution: PayoutDistribution,
        reputation: Optional[ReputationRecord],
        gini: float,
    ) -> List[RedFlag]:
        flags: List[RedFlag] = []

        if cls.check_dominance(distribution):
            flags.append(RedFlag.SINGLE_CONTRIBUTOR_DOMINANCE)

        if cls.unpaid_contributors(contributions, distribution):
            flags.append(RedFlag.UNPAID_WORK_DETECTED)

        if gini > cls.EXTREME_GINI_THRESHOLD:
            flags.append(RedFlag.EXTREME_INEQUALITY)

        if manifest is not None and cls.check_missing_attribution(contributions, manifest):
            flags.append(RedFlag.MISSING_ATTRIBUTION)

        if manifest is not None and cls.check_suspicious_timing(manifest.signed_at, distribution.created_at):
            flags.append(RedFlag.SUSPICIOUS_TIMING)

        if manifest is not None and cls.check_unexplained_variance(manifest, distribution):
            flags.append(RedFlag.UNEXPLAINED_VARIANCE)

        if cls.check_no_diverse_roles(contributions):
            flags.append(RedFlag.NO_DIVERSE_ROLES)

        if reputation is not None and cls.check_exploitation_pattern(reputation):
            flags.append(RedFlag.EXPLOITATION_PATTERN)

        return flags

    @classmethod
    def detect_green_flags(
        cls,
        contributions: Sequence[ContributionRecord],
        manifest: Optional[CompositionManifest],
        distribution: PayoutDistribution,
        gini: float,
    ) -> List[GreenFlag]:
        flags: List[GreenFlag] = []

        if len(cls._contribution_types(contributions)) >= cls.DIVERSE_TYPE_COUNT:
            flags.append(GreenFlag.DIVERSE_CONTRIBUTION_TYPES)

        contributors = {c.contributor_id for c in contributions}
        if contributors and not cls.unpaid_contributors(contributions, distribution):
            flags.append(GreenFlag.ALL_CONTRIBUTORS_PAID)

        if gini < cls.FAIR_GINI_THRESHOLD:
            flags.append(GreenFlag.FAIR_DISTRIBUTION)

        if manifest is not None and cls.check_transparent_manifest(manifest.signed_at, distribution.created_at):
            flags.append(GreenFlag.TRANSPARENT_MANIFEST)

        return flags

    # ---- individual rules ----

    @classmethod
    def check_dominance(cls, distribution: PayoutDistribution) -> bool:
        total = distribution.total
        if total <= 0:
            return False
        return float(max(distribution.amounts) / total) > cls.DOMINANCE_THRESHOLD

    @staticmethod
    def unpaid_contributors(
        contributions: Sequence[ContributionRecord],
        distribution: PayoutDistribution,
    ) -> Set[str]:
        """Contributors with recorded work but no positive payout."""
        paid = {e.contributor_id for e in distribution.entries if e.amount > 0}
        return {c.contributor_id for c in contributions} - paid

    @staticmethod
    def check_missing_attribution(
        contributions: Sequence[ContributionRecord],
        manifest: CompositionManifest,
    ) -> bool:
        declared = {e.contributor_id for e in manifest.entries}
        return any(c.contributor_id not in declared for c in contributions)

    @classmethod
    def check_suspicious_timing(cls, signed_at: Optional[datetime], distributed_at: datetime) -> bool:
        # A manifest signed after the distribution also counts
        if signed_at is None:
            return False
        return as_utc(distributed_at) - as_utc(signed_at) < cls.SUSPICIOUS_TIMING_WINDOW

    @classmethod
    def check_transparent_manifest(cls, signed_at: Optional[datetime], distributed_at: datetime) -> bool:
        if signed_at is None:
            return False
        return as_utc(distributed_at) - as_utc(signed_at) >= cls.TRANSPARENT_MANIFEST_LEAD

    @classmethod
    def check_unexplained_variance(
        cls,
        manifest: CompositionManifest,
        distribution: PayoutDistribution,
    ) -> bool:
        total = distribution.total
        if total <= 0:
            return False

        shares = {}
        for entry in distribution.entries:
            shares[entry.contributor_id] = float(entry.amount / total)

        for entry in manifest.entries:
            # A manifest entry with no payout line counts as a 0 share
            share = shares.get(entry.contributor_id, 0.0)
            if abs(entry.weight - share) > cls.VARIANCE_TOLERANCE:
                return True
        return False

    @classmethod
    def check_no_diverse_roles(cls, contributions: Sequence[ContributionRecord]) -> bool:
        if not contributions:
            return False
        return len(cls._contribution_types(contributions)) == 1

    @classmethod
    def check_exploitation_pattern(cls, reputation: ReputationRecord) -> bool:
        if reputation.disputes_against >= cls.EXPLOITATION_DISPUTES:
            return True
        return reputation.leadership_score < cls.LOW_LEADERSHIP_SCORE and reputation.disputes_against > 0

    @staticmethod
    def _contribution_types(contributions: Sequence[ContributionRecord]) -> Set[str]:
        return {c.type.value.upper() for c in contributions}


def payout_share(distribution: PayoutDistribution, contributor_id: str) -> Decimal:
    """Fraction of the distribution total paid to contributor_id (0 when the total is 0)."""
    total = distribution.total
    if total <= 0:
        return Decimal("0")
    paid = sum(
        (e.amount for e in distribution.entries if e.contributor_id == contributor_id),
        Decimal("0"),
    )
    return paid / total
