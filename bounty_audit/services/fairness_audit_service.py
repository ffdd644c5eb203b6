"""
Fairness Audit Service - runs and records payout fairness audits.

An audit fetches the challenge inputs, resolves which distribution to
evaluate, runs the pure fairness pipeline (cached by input hash) and
appends an immutable audit record plus an event in one transaction.
Findings are advisory; nothing here blocks a payout.
"""

import uuid
from datetime import datetime
from typing import Callable, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bounty_audit.config import Settings, get_settings
from bounty_audit.engines.fairness.fairness_scorer import FairnessScorer
from bounty_audit.exceptions import DataUnavailable, NotFound, OperationTimeout, StorageFailure
from bounty_audit.kernel.cache.audit_cache import AuditCache, SqlCacheStore, hash_input
from bounty_audit.kernel.cache.resilience import ResiliencePolicy, with_timeout
from bounty_audit.kernel.events.event_store import EventStore
from bounty_audit.kernel.events.event_types import FairnessAuditCompletedEvent
from bounty_audit.kernel.models.base import as_utc, generate_uuid, utcnow
from bounty_audit.kernel.models.event_log import EventType
from bounty_audit.kernel.models.fairness_audit import FairnessAudit
from bounty_audit.kernel.records.audit_repository import FairnessAuditRepository
from bounty_audit.logging_config import correlation_scope, get_logger
from bounty_audit.schemas.audit import AuditRecordView, AuditResult, FairnessAnalysis
from bounty_audit.schemas.challenge import CompositionManifest, ReputationRecord
from bounty_audit.services.data_access import ChallengeDataSource, fetch_from_source
from bounty_audit.services.distribution_source import resolve_distribution_source

logger = get_logger(__name__)

CACHE_SERVICE_ID = "ETHICS"

# Challenge events that serve as evidence for an audit
EVIDENCE_ACTIONS = (
    "MANIFEST_SIGNED",
    "PAYOUT_PROPOSED",
    "CONTRIBUTION_SUBMITTED",
    "CHALLENGE_COMPLETED",
)


class FairnessAuditService:
    """
    Usage:
        service = FairnessAuditService(data_source, async_session_maker)
        result = await service.run_fairness_audit(challenge_id)
        history = await service.get_audit_history(challenge_id)
    """

    def __init__(
        self,
        data_source: ChallengeDataSource,
        session_maker: async_sessionmaker[AsyncSession],
        cache: Optional[AuditCache] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.data_source = data_source
        self.session_maker = session_maker
        self.settings = settings or get_settings()
        self.policy = ResiliencePolicy.from_settings(self.settings)
        self.cache = cache or AuditCache(
            SqlCacheStore(session_maker),
            service_id=CACHE_SERVICE_ID,
            ttl_seconds=self.settings.cache_ttl_seconds,
            enabled=self.settings.enable_caching,
            timeout_seconds=self.settings.io_timeout_seconds,
            clock=clock,
        )
        self._clock = clock

    async def run_fairness_audit(self, challenge_id: str) -> AuditResult:
        """
        Audit the current payout distribution of a challenge.

        Raises:
            NotFound: challenge missing, or no proposal and no payments
            ValidationFailure: the proposal distributes nothing
            DataUnavailable: a mandatory source failed
            StorageFailure: the audit record could not be committed
        """
        with correlation_scope(f"audit:{challenge_id}:{uuid.uuid4().hex[:8]}"):
            return await self._run(challenge_id)

    async def _run(self, challenge_id: str) -> AuditResult:
        logger.info("Starting fairness audit", extra={"challenge_id": challenge_id})

        challenge = await self._fetch("challenge", self.data_source.get_challenge, challenge_id)
        if challenge is None:
            raise NotFound("Challenge not found", {"challenge_id": challenge_id})

        contributions = await self._fetch("contributions", self.data_source.get_contributions, challenge_id)
        manifest = await self._fetch("manifest", self.data_source.get_manifest, challenge_id)
        proposal = await self._fetch(
            "payout_distribution", self.data_source.get_latest_payout_distribution, challenge_id,
        )
        payments = []
        if proposal is None:
            payments = await self._fetch("payments", self.data_source.get_payments, challenge_id)

        source = resolve_distribution_source(challenge_id, proposal, payments)
        distribution = source.distribution

        incomplete: List[str] = []
        warnings = self._manifest_warnings(manifest)

        reputation: Optional[ReputationRecord] = None
        if challenge.project_leader_id:
            reputation = await self._fetch_optional(
                "reputation", incomplete, self.data_source.get_reputation, challenge.project_leader_id,
            )

        input_hash = hash_input({
            "contributions": contributions,
            "manifest": manifest,
            "distribution": distribution,
            "reputation": reputation,
        })
        analysis = await self._analyze(input_hash, contributions, manifest, distribution, reputation)

        evidence_links = await self._collect_evidence_links(challenge_id, incomplete)

        audit = FairnessAudit(
            id=generate_uuid(),
            challenge_id=challenge_id,
            gini_coefficient=analysis.gini_coefficient,
            fairness_score=analysis.fairness_score,
            red_flags=[f.value for f in analysis.red_flags],
            green_flags=[f.value for f in analysis.green_flags],
            recommendations=[r.model_dump(mode="json") for r in analysis.recommendations],
            evidence_links=evidence_links,
            distribution_source=source.kind.value,
            incomplete_sections=incomplete,
            warnings=warnings,
            input_hash=input_hash,
            created_at=as_utc(self._clock()),
        )
        try:
            await with_timeout(self.settings.io_timeout_seconds)(self._persist)(audit, analysis)
        except OperationTimeout as exc:
            raise StorageFailure(
                "Timed out recording fairness audit; commit outcome unknown",
                {"challenge_id": challenge_id, "audit_id": str(audit.id), "commit_outcome": "unknown"},
            ) from exc

        logger.info(
            "Fairness audit recorded",
            extra={
                "challenge_id": challenge_id,
                "audit_id": str(audit.id),
                "fairness_score": analysis.fairness_score,
                "red_flags": len(analysis.red_flags),
            },
        )

        return AuditResult(
            audit_id=audit.id,
            challenge_id=challenge_id,
            gini_coefficient=analysis.gini_coefficient,
            fairness_score=analysis.fairness_score,
            score_interpretation=analysis.score_interpretation,
            passes_threshold=analysis.passes_threshold,
            red_flags=analysis.red_flags,
            green_flags=analysis.green_flags,
            recommendations=analysis.recommendations,
            evidence_links=evidence_links,
            distribution_source=source.kind,
            incomplete_sections=incomplete,
            warnings=warnings,
            created_at=audit.created_at,
        )

    async def get_audit_history(self, challenge_id: str) -> List[AuditRecordView]:
        """Every audit recorded for the challenge, newest first."""
        async with self.session_maker() as session:
            audits = await FairnessAuditRepository(session).list_for_challenge(challenge_id)
            return [AuditRecordView.model_validate(a) for a in audits]

    async def get_latest_audit(self, challenge_id: str) -> Optional[AuditRecordView]:
        async with self.session_maker() as session:
            audit = await FairnessAuditRepository(session).latest(challenge_id)
            return AuditRecordView.model_validate(audit) if audit else None

    # ---- internals ----

    async def _fetch(self, source: str, func, *args):
        return await fetch_from_source(self.policy, source, func, *args)

    async def _fetch_optional(self, section: str, incomplete: List[str], func, *args):
        try:
            return await self._fetch(section, func, *args)
        except DataUnavailable as exc:
            logger.warning("Optional source unavailable, omitting %s: %s", section, exc)
            if section not in incomplete:
                incomplete.append(section)
            return None

    def _manifest_warnings(self, manifest: Optional[CompositionManifest]) -> List[str]:
        if manifest is None or not manifest.entries:
            return []
        total = manifest.total_weight
        if abs(total - 1.0) <= self.settings.manifest_weight_tolerance:
            return []
        message = f"Manifest weights sum to {total:.4f}, expected 1.0"
        logger.warning(message, extra={"challenge_id": manifest.challenge_id})
        return [message]

    async def _analyze(self, input_hash: str, contributions, manifest, distribution, reputation) -> FairnessAnalysis:
        cached = await self.cache.check_cache(input_hash)
        if cached is not None:
            try:
                return FairnessAnalysis.model_validate(cached)
            except ValidationError as exc:
                logger.warning("Discarding unreadable cached analysis: %s", exc)

        analysis = FairnessScorer.analyze(contributions, manifest, distribution, reputation)
        await self.cache.set_cache(input_hash, analysis.model_dump(mode="json"), confidence=1.0)
        return analysis

    async def _collect_evidence_links(self, challenge_id: str, incomplete: List[str]) -> List[str]:
        events = await self._fetch_optional(
            "evidence_links", incomplete,
            self.data_source.get_events, "challenge", challenge_id, self.settings.evidence_link_limit,
        )
        links = [
            f"event:{e.id}:{e.action}"
            for e in sorted(events or [], key=lambda e: as_utc(e.created_at))
            if e.action in EVIDENCE_ACTIONS
        ]

        files = await self._fetch_optional(
            "evidence_links", incomplete,
            self.data_source.get_file_hashes, challenge_id, self.settings.evidence_link_limit,
        )
        links.extend(f"file:{f.sha256}:{f.filename}" for f in files or [])
        return links

    async def _persist(self, audit: FairnessAudit, analysis: FairnessAnalysis) -> None:
        try:
            async with self.session_maker() as session:
                await FairnessAuditRepository(session).record(audit)
                await EventStore(session).log_from_model(
                    event_type=EventType.FAIRNESS_AUDIT_COMPLETED,
                    entity_type="challenge",
                    entity_id=audit.challenge_id,
                    payload_model=FairnessAuditCompletedEvent(
                        audit_id=str(audit.id),
                        fairness_score=analysis.fairness_score,
                        gini_coefficient=analysis.gini_coefficient,
                        red_flags=[f.value for f in analysis.red_flags],
                        distribution_source=audit.distribution_source,
                        incomplete_sections=list(audit.incomplete_sections),
                    ),
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageFailure(
                f"Failed to record fairness audit: {exc}",
                {"challenge_id": audit.challenge_id},
            ) from exc

