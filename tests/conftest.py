"""
Pytest fixtures for audit engine tests.

Uses a file-based SQLite database per test (aiosqlite) and an in-memory
ChallengeDataSource seeded with one healthy three-person challenge.
"""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

# Point settings at SQLite before anything imports the database module
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
from bounty_audit.config import Settings, get_settings
get_settings.cache_clear()

import pytest
import pytest_asyncio

from bounty_audit.database import close_db, create_engine_for_url, create_session_maker, init_db
from bounty_audit.kernel.cache.audit_cache import AuditCache, InMemoryCacheStore
from bounty_audit.kernel.storage.blob_store import LocalBlobStore
from bounty_audit.schemas.challenge import (
    ChallengeEvent,
    ChallengeSummary,
    CompositionManifest,
    ContributionRecord,
    ContributionType,
    FileHashRecord,
    ManifestEntry,
    PaymentRecord,
    PayoutDistribution,
    PayoutEntry,
    ReputationRecord,
)


CHALLENGE_ID = "ch-1"
LEADER_ID = "leader-1"
BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class TickingClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start: datetime = BASE_TIME + timedelta(days=10)):
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current += timedelta(seconds=1)
        return now


class FakeChallengeData:
    """
    In-memory ChallengeDataSource.

    Set failures["get_events"] = RuntimeError("down") to make a method raise;
    calls counts invocations per method.
    """

    def __init__(self):
        self.challenges: Dict[str, ChallengeSummary] = {}
        self.contributions: Dict[str, List[ContributionRecord]] = {}
        self.manifests: Dict[str, CompositionManifest] = {}
        self.proposals: Dict[str, PayoutDistribution] = {}
        self.payments: Dict[str, List[PaymentRecord]] = {}
        self.reputations: Dict[str, ReputationRecord] = {}
        self.events: Dict[str, List[ChallengeEvent]] = {}
        self.files: Dict[str, List[FileHashRecord]] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: Dict[str, int] = {}

    def _enter(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if name in self.failures:
            raise self.failures[name]

    async def get_challenge(self, challenge_id: str) -> Optional[ChallengeSummary]:
        self._enter("get_challenge")
        return self.challenges.get(challenge_id)

    async def get_contributions(self, challenge_id: str) -> List[ContributionRecord]:
        self._enter("get_contributions")
        return list(self.contributions.get(challenge_id, []))

    async def get_manifest(self, challenge_id: str) -> Optional[CompositionManifest]:
        self._enter("get_manifest")
        return self.manifests.get(challenge_id)

    async def get_latest_payout_distribution(self, challenge_id: str) -> Optional[PayoutDistribution]:
        self._enter("get_latest_payout_distribution")
        return self.proposals.get(challenge_id)

    async def get_payments(self, challenge_id: str) -> List[PaymentRecord]:
        self._enter("get_payments")
        return list(self.payments.get(challenge_id, []))

    async def get_reputation(self, contributor_id: str) -> Optional[ReputationRecord]:
        self._enter("get_reputation")
        return self.reputations.get(contributor_id)

    async def get_events(self, entity_type: str, entity_id: str, limit: int) -> List[ChallengeEvent]:
        self._enter("get_events")
        events = sorted(self.events.get(entity_id, []), key=lambda e: e.created_at, reverse=True)
        return events[:limit]

    async def get_file_hashes(self, challenge_id: str, limit: int) -> List[FileHashRecord]:
        self._enter("get_file_hashes")
        return list(self.files.get(challenge_id, []))[:limit]


def make_distribution(amounts: Dict[str, str], created_at: datetime = BASE_TIME) -> PayoutDistribution:
    return PayoutDistribution(
        challenge_id=CHALLENGE_ID,
        entries=[PayoutEntry(contributor_id=cid, amount=Decimal(a)) for cid, a in amounts.items()],
        created_at=created_at,
    )


def seed_challenge(data: FakeChallengeData) -> FakeChallengeData:
    """Bounty 1000 split 30/25/20 across code, design and research; manifest signed 48h ahead."""
    data.challenges[CHALLENGE_ID] = ChallengeSummary(
        id=CHALLENGE_ID,
        title="Build the ledger exporter",
        bounty_amount=Decimal("1000.00"),
        status="COMPLETED",
        project_leader_id=LEADER_ID,
        project_leader_email="leader@example.com",
        created_at=BASE_TIME - timedelta(days=7),
    )
    data.contributions[CHALLENGE_ID] = [
        ContributionRecord(challenge_id=CHALLENGE_ID, contributor_id="alice",
                           type=ContributionType.CODE, token_value=Decimal("30")),
        ContributionRecord(challenge_id=CHALLENGE_ID, contributor_id="bob",
                           type=ContributionType.DESIGN, token_value=Decimal("25")),
        ContributionRecord(challenge_id=CHALLENGE_ID, contributor_id="carol",
                           type=ContributionType.RESEARCH, token_value=Decimal("20")),
    ]
    data.manifests[CHALLENGE_ID] = CompositionManifest(
        challenge_id=CHALLENGE_ID,
        entries=[
            ManifestEntry(contributor_id="alice", type=ContributionType.CODE, weight=0.4, reference="git:a1b2c3"),
            ManifestEntry(contributor_id="bob", type=ContributionType.DESIGN, weight=0.333333),
            ManifestEntry(contributor_id="carol", type=ContributionType.RESEARCH, weight=0.266667),
        ],
        signed_at=BASE_TIME - timedelta(hours=48),
    )
    data.proposals[CHALLENGE_ID] = make_distribution(
        {"alice": "400.00", "bob": "333.33", "carol": "266.67"},
    )
    data.reputations[LEADER_ID] = ReputationRecord(contributor_id=LEADER_ID, leadership_score=92.0)
    data.events[CHALLENGE_ID] = [
        ChallengeEvent(id="ev-1", entity_type="challenge", entity_id=CHALLENGE_ID,
                       action="CONTRIBUTION_SUBMITTED", actor_email="alice@example.com",
                       created_at=BASE_TIME - timedelta(days=5)),
        ChallengeEvent(id="ev-2", entity_type="challenge", entity_id=CHALLENGE_ID,
                       action="COMMENT_ADDED", actor_email="bob@example.com",
                       created_at=BASE_TIME - timedelta(days=4)),
        ChallengeEvent(id="ev-3", entity_type="challenge", entity_id=CHALLENGE_ID,
                       action="MANIFEST_SIGNED", actor_email="leader@example.com",
                       created_at=BASE_TIME - timedelta(hours=48)),
        ChallengeEvent(id="ev-4", entity_type="challenge", entity_id=CHALLENGE_ID,
                       action="PAYOUT_PROPOSED", actor_email="leader@example.com",
                       created_at=BASE_TIME),
    ]
    data.files[CHALLENGE_ID] = [
        FileHashRecord(filename="exporter.py", sha256="ab" * 32),
        FileHashRecord(filename="design.fig", sha256="cd" * 32),
    ]
    return data


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Fast settings: no backoff, one retry, evidence under tmp_path."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'audit.db'}",
        evidence_storage_path=str(tmp_path / "evidence"),
        evidence_base_url="https://audit.example.com/verify",
        max_retries=1,
        retry_backoff_seconds=0.0,
        io_timeout_seconds=2.0,
        render_timeout_seconds=10.0,
    )


@pytest_asyncio.fixture(scope="function")
async def db_engine(settings: Settings):
    engine = create_engine_for_url(settings.database_url)
    await init_db(engine)
    yield engine
    await close_db(engine)


@pytest.fixture
def session_maker(db_engine):
    return create_session_maker(db_engine)


@pytest.fixture
def blob_store(settings: Settings) -> LocalBlobStore:
    return LocalBlobStore(settings.evidence_storage_path)


@pytest.fixture
def memory_cache(clock: TickingClock) -> AuditCache:
    return AuditCache(InMemoryCacheStore(), service_id="ETHICS", clock=clock)


@pytest.fixture
def data_source() -> FakeChallengeData:
    return seed_challenge(FakeChallengeData())


@pytest.fixture
def distribution_factory():
    """Build a PayoutDistribution for the seeded challenge from {contributor: amount}."""
    return make_distribution
