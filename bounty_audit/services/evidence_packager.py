"""
Evidence Packager - builds, stores and records tamper-evident audit documents.

Sequence for one package:
1. Gather the challenge (mandatory) and the requested optional sections
2. Assemble and render the document to PDF bytes
3. SHA-256 the exact bytes
4. Write the bytes and confirm the stored size
5. Commit metadata and the GENERATED event in one transaction

Bytes whose metadata never commits (commit failure, cancellation) are
discarded, so committed metadata always points at complete content. A commit
that times out is settled by looking the row up: bytes are kept when it
landed or when the lookup cannot tell.
"""

import asyncio
import hashlib
import secrets
from datetime import datetime
from typing import Callable, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bounty_audit.config import Settings, get_settings
from bounty_audit.engines.evidence.document import (
    assemble_document,
    build_checklist,
    build_fairness_section,
    build_file_hashes,
    build_payout_rows,
    build_signatures,
    build_timeline,
)
from bounty_audit.engines.evidence.pdf_renderer import render_pdf
from bounty_audit.exceptions import (
    AuditError,
    DataUnavailable,
    NotFound,
    OperationTimeout,
    StorageFailure,
    ValidationFailure,
)
from bounty_audit.kernel.cache.resilience import ResiliencePolicy, with_timeout
from bounty_audit.kernel.events.event_store import EventStore
from bounty_audit.kernel.events.event_types import EvidencePackageGeneratedEvent
from bounty_audit.kernel.models.base import as_utc, generate_uuid, utcnow
from bounty_audit.kernel.models.event_log import EventType
from bounty_audit.kernel.models.evidence_package import EvidencePackage, EvidencePackageKind
from bounty_audit.kernel.models.fairness_audit import FairnessAudit
from bounty_audit.kernel.records.audit_repository import FairnessAuditRepository
from bounty_audit.kernel.records.evidence_repository import EvidencePackageRepository
from bounty_audit.kernel.storage.blob_store import BlobStore
from bounty_audit.logging_config import correlation_scope, get_logger
from bounty_audit.schemas.challenge import (
    ChallengeSummary,
    PayoutDistribution,
)
from bounty_audit.schemas.evidence import (
    EvidenceDocument,
    EvidencePackageMetadata,
    GeneratedEvidence,
    InclusionFlags,
)
from bounty_audit.services.data_access import ChallengeDataSource, fetch_from_source
from bounty_audit.services.distribution_source import RealizedPayments

logger = get_logger(__name__)


class EvidencePackager:
    """
    Usage:
        packager = EvidencePackager(data_source, async_session_maker, LocalBlobStore("./evidence"))
        package = await packager.generate_evidence_package(
            challenge_id, EvidencePackageKind.PAYOUT_AUDIT, InclusionFlags(ai_analysis=False)
        )
    """

    def __init__(
        self,
        data_source: ChallengeDataSource,
        session_maker: async_sessionmaker[AsyncSession],
        blob_store: BlobStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
        renderer: Callable[[EvidenceDocument], bytes] = render_pdf,
    ):
        self.data_source = data_source
        self.session_maker = session_maker
        self.blob_store = blob_store
        self.settings = settings or get_settings()
        self.policy = ResiliencePolicy.from_settings(self.settings)
        self._clock = clock
        self._renderer = renderer

    async def generate_evidence_package(
        self,
        challenge_id: str,
        kind: Union[EvidencePackageKind, str] = EvidencePackageKind.PAYOUT_AUDIT,
        flags: Optional[InclusionFlags] = None,
    ) -> GeneratedEvidence:
        """
        Generate, store and record an evidence package.

        Raises:
            ValidationFailure: unknown package kind
            NotFound: challenge does not exist
            DataUnavailable: the challenge could not be fetched
            StorageFailure: bytes or metadata could not be persisted
        """
        try:
            kind = EvidencePackageKind(kind)
        except ValueError as exc:
            raise ValidationFailure("Unknown evidence package kind", {"kind": str(kind)}) from exc

        flags = flags or InclusionFlags()
        reference = secrets.token_hex(16)

        with correlation_scope(f"evidence:{challenge_id}:{reference[:8]}"):
            return await self._generate(challenge_id, kind, flags, reference)

    async def list_evidence_packages(self, challenge_id: str) -> List[EvidencePackageMetadata]:
        """All packages for the challenge, newest first."""
        async with self.session_maker() as session:
            packages = await EvidencePackageRepository(session).list_for_challenge(challenge_id)
            return [EvidencePackageMetadata.model_validate(p) for p in packages]

    async def _generate(
        self,
        challenge_id: str,
        kind: EvidencePackageKind,
        flags: InclusionFlags,
        reference: str,
    ) -> GeneratedEvidence:
        logger.info("Generating evidence package", extra={"challenge_id": challenge_id, "kind": kind.value})

        challenge = await fetch_from_source(self.policy, "challenge", self.data_source.get_challenge, challenge_id)
        if challenge is None:
            raise NotFound("Challenge not found", {"challenge_id": challenge_id})

        generated_at = as_utc(self._clock())
        verification_url = f"{self.settings.evidence_base_url.rstrip('/')}/{reference}"
        document = await self._gather(challenge, kind, flags, generated_at, reference, verification_url)

        pdf_bytes = await self._render(document)
        digest = hashlib.sha256(pdf_bytes).hexdigest()

        artifact_id = generate_uuid()
        file_name = f"audit_{challenge_id}_{generated_at.strftime('%Y-%m-%dT%H-%M-%S')}.pdf"
        storage_key = f"{artifact_id.hex}/{file_name}"

        package = EvidencePackage(
            id=artifact_id,
            challenge_id=challenge_id,
            kind=kind.value,
            file_name=file_name,
            storage_key=storage_key,
            size_bytes=len(pdf_bytes),
            sha256=digest,
            verification_reference=reference,
            verification_url=verification_url,
            includes_timeline=flags.timeline,
            includes_file_hashes=flags.file_hashes,
            includes_signatures=flags.signatures,
            includes_ai_analysis=flags.ai_analysis,
            incomplete_sections=list(document.incomplete_sections),
            created_at=generated_at,
        )
        await self._store_and_commit(package, pdf_bytes)

        logger.info(
            "Evidence package committed",
            extra={
                "challenge_id": challenge_id,
                "artifact_id": str(artifact_id),
                "sha256": digest,
                "size_bytes": package.size_bytes,
            },
        )

        return GeneratedEvidence(
            artifact_id=artifact_id,
            challenge_id=challenge_id,
            kind=kind,
            file_name=file_name,
            size_bytes=package.size_bytes,
            sha256=digest,
            verification_reference=reference,
            verification_url=verification_url,
            incomplete_sections=list(document.incomplete_sections),
            supersedes_id=package.supersedes_id,
            generated_at=generated_at,
        )

    async def _gather(
        self,
        challenge: ChallengeSummary,
        kind: EvidencePackageKind,
        flags: InclusionFlags,
        generated_at: datetime,
        reference: str,
        verification_url: str,
    ) -> EvidenceDocument:
        """Fetch optional sections; a failed source omits its section and marks it incomplete."""
        challenge_id = challenge.id
        incomplete: List[str] = []

        contributions = await self._optional(
            "payout_table", incomplete, self.data_source.get_contributions, challenge_id,
        )
        distribution = None
        if contributions is not None:
            distribution = await self._optional(
                "payout_table", incomplete, self._load_distribution, challenge_id,
            )
        payout_rows = None
        if "payout_table" not in incomplete:
            payout_rows = build_payout_rows(challenge.bounty_amount, contributions, distribution)

        manifest_section = "signatures" if flags.signatures else "compliance_checklist"
        manifest = await self._optional(manifest_section, incomplete, self.data_source.get_manifest, challenge_id)
        signatures = None
        if flags.signatures and manifest_section not in incomplete:
            signatures = build_signatures(manifest)

        audit = None
        fairness = None
        if flags.ai_analysis:
            audit = await self._optional("fairness_analysis", incomplete, self._load_latest_audit, challenge_id)
            if audit is not None:
                fairness = build_fairness_section(audit)

        timeline = None
        if flags.timeline:
            limit = self.settings.timeline_event_limit
            events = await self._optional(
                "timeline", incomplete, self.data_source.get_events, "challenge", challenge_id, limit,
            )
            if events is not None:
                timeline = build_timeline(events, limit)

        file_hashes = None
        if flags.file_hashes:
            limit = self.settings.file_hash_limit
            files = await self._optional(
                "file_hashes", incomplete, self.data_source.get_file_hashes, challenge_id, limit,
            )
            if files is not None:
                file_hashes = build_file_hashes(files, limit)

        checklist = build_checklist(challenge.bounty_amount, contributions, distribution, manifest, audit)

        return assemble_document(
            challenge=challenge,
            kind=kind,
            generated_at=generated_at,
            verification_reference=reference,
            verification_url=verification_url,
            payout_rows=payout_rows,
            checklist=checklist,
            fairness=fairness,
            timeline=timeline,
            file_hashes=file_hashes,
            signatures=signatures,
            incomplete_sections=incomplete,
        )

    async def _optional(self, section: str, incomplete: List[str], func, *args):
        try:
            return await fetch_from_source(self.policy, section, func, *args)
        except DataUnavailable as exc:
            logger.warning("Optional section %s omitted: %s", section, exc)
            if section not in incomplete:
                incomplete.append(section)
            return None

    async def _load_distribution(self, challenge_id: str) -> Optional[PayoutDistribution]:
        distribution = await self.data_source.get_latest_payout_distribution(challenge_id)
        if distribution is not None and distribution.entries:
            return distribution
        payments = await self.data_source.get_payments(challenge_id)
        if not payments:
            return None
        return RealizedPayments.from_payments(challenge_id, payments).distribution

    async def _load_latest_audit(self, challenge_id: str) -> Optional[FairnessAudit]:
        try:
            async with self.session_maker() as session:
                return await FairnessAuditRepository(session).latest(challenge_id)
        except SQLAlchemyError as exc:
            raise DataUnavailable(f"Audit history unavailable: {exc}", {"challenge_id": challenge_id}) from exc

    async def _render(self, document: EvidenceDocument) -> bytes:
        async def render() -> bytes:
            return await asyncio.to_thread(self._renderer, document)

        try:
            return await with_timeout(self.settings.render_timeout_seconds)(render)()
        except AuditError:
            raise
        except Exception as exc:
            raise StorageFailure(
                f"Failed to render evidence document: {exc}",
                {"challenge_id": document.challenge_id},
            ) from exc

    async def _store_and_commit(self, package: EvidencePackage, data: bytes) -> None:
        key = package.storage_key
        try:
            stored = await self.policy.run(self.blob_store.write_bytes, key, data)
            if stored != len(data):
                raise StorageFailure(
                    "Stored size does not match rendered size",
                    {"expected": len(data), "stored": stored, "key": key},
                )
            await with_timeout(self.settings.io_timeout_seconds)(self._commit)(package)
        except asyncio.CancelledError:
            await asyncio.shield(self.blob_store.discard(key))
            logger.warning("Evidence packaging cancelled; discarded uncommitted bytes", extra={"key": key})
            raise
        except OperationTimeout as exc:
            await self._settle_timed_out_commit(package, exc)
        except Exception as exc:
            await self.blob_store.discard(key)
            if isinstance(exc, StorageFailure):
                raise
            raise StorageFailure(
                f"Failed to persist evidence package: {exc}",
                {"challenge_id": package.challenge_id, "key": key},
            ) from exc

    async def _settle_timed_out_commit(self, package: EvidencePackage, exc: OperationTimeout) -> None:
        """
        A timed-out commit may still have landed. Bytes are discarded only
        once the metadata row is confirmed absent.
        """
        key = package.storage_key
        try:
            committed = await with_timeout(self.settings.io_timeout_seconds)(self._lookup)(
                package.verification_reference
            )
        except Exception as lookup_exc:
            logger.error(
                "Evidence commit outcome unknown; keeping stored bytes",
                extra={"key": key, "error": str(lookup_exc)},
            )
            raise StorageFailure(
                "Evidence package commit timed out and its outcome is unknown",
                {"challenge_id": package.challenge_id, "key": key, "commit_outcome": "unknown"},
            ) from exc

        if committed is None:
            await self.blob_store.discard(key)
            raise StorageFailure(
                f"Failed to persist evidence package: {exc}",
                {"challenge_id": package.challenge_id, "key": key, "commit_outcome": "absent"},
            ) from exc

        package.supersedes_id = committed.supersedes_id
        logger.warning("Evidence commit acknowledged after timeout", extra={"key": key})

    async def _lookup(self, verification_reference: str) -> Optional[EvidencePackage]:
        async with self.session_maker() as session:
            return await EvidencePackageRepository(session).find_by_reference(verification_reference)

    async def _commit(self, package: EvidencePackage) -> None:
        async with self.session_maker() as session:
            repo = EvidencePackageRepository(session)
            previous = await repo.latest_for_kind(package.challenge_id, EvidencePackageKind(package.kind))
            if previous is not None:
                package.supersedes_id = previous.id

            await repo.create(package)
            await EventStore(session).log_from_model(
                event_type=EventType.EVIDENCE_PACKAGE_GENERATED,
                entity_type="challenge",
                entity_id=package.challenge_id,
                payload_model=EvidencePackageGeneratedEvent(
                    artifact_id=str(package.id),
                    kind=package.kind,
                    sha256=package.sha256,
                    size_bytes=package.size_bytes,
                    verification_reference=package.verification_reference,
                    supersedes_id=str(package.supersedes_id) if package.supersedes_id else None,
                    incomplete_sections=list(package.incomplete_sections),
                ),
            )
            await session.commit()

