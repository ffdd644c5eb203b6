"""
Read-only access to upstream challenge data.

The audit and evidence components never query upstream tables directly;
they go through an injected ChallengeDataSource. Methods returning
Optional return None when the record does not exist and raise when the
source itself fails.
"""

from typing import Any, Awaitable, Callable, List, Optional, Protocol, TypeVar

from bounty_audit.exceptions import AuditError, DataUnavailable
from bounty_audit.kernel.cache.resilience import ResiliencePolicy
from bounty_audit.schemas.challenge import (
    ChallengeEvent,
    ChallengeSummary,
    CompositionManifest,
    ContributionRecord,
    FileHashRecord,
    PaymentRecord,
    PayoutDistribution,
    ReputationRecord,
)

T = TypeVar("T")


class ChallengeDataSource(Protocol):
    """Upstream data consumed by audits and evidence packages."""

    async def get_challenge(self, challenge_id: str) -> Optional[ChallengeSummary]:
        ...

    async def get_contributions(self, challenge_id: str) -> List[ContributionRecord]:
        ...

    async def get_manifest(self, challenge_id: str) -> Optional[CompositionManifest]:
        ...

    async def get_latest_payout_distribution(self, challenge_id: str) -> Optional[PayoutDistribution]:
        ...

    async def get_payments(self, challenge_id: str) -> List[PaymentRecord]:
        ...

    async def get_reputation(self, contributor_id: str) -> Optional[ReputationRecord]:
        ...

    async def get_events(self, entity_type: str, entity_id: str, limit: int) -> List[ChallengeEvent]:
        """Most recent `limit` events for an entity, in any order."""
        ...

    async def get_file_hashes(self, challenge_id: str, limit: int) -> List[FileHashRecord]:
        ...


async def fetch_from_source(
    policy: ResiliencePolicy,
    source: str,
    func: Callable[..., Awaitable[T]],
    *args: Any,
) -> T:
    """
    Call an upstream accessor under the resilience policy.

    Errors that are not already AuditErrors surface as DataUnavailable
    naming the source, once retries are exhausted.
    """
    try:
        return await policy.run(func, *args)
    except AuditError:
        raise
    except Exception as exc:
        raise DataUnavailable(
            f"Data source failed: {source}",
            {"source": source, "error": str(exc) or type(exc).__name__},
        ) from exc
