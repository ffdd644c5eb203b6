"""
Integrity Verifier - re-checks stored evidence against its recorded hash.

Verification fails closed: any lookup, read or comparison failure yields
valid=False rather than an exception.
"""

import hashlib
import hmac
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bounty_audit.config import Settings, get_settings
from bounty_audit.kernel.cache.resilience import ResiliencePolicy, with_timeout
from bounty_audit.kernel.models.base import as_utc
from bounty_audit.kernel.models.evidence_package import EvidencePackage
from bounty_audit.kernel.records.evidence_repository import EvidencePackageRepository
from bounty_audit.kernel.storage.blob_store import BlobStore
from bounty_audit.logging_config import correlation_scope, get_logger
from bounty_audit.schemas.evidence import VerificationResult

logger = get_logger(__name__)


def parse_reference(reference: str) -> str:
    """Accept a bare token or a full verification URL (token is the last path segment)."""
    return (reference or "").strip().rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0]


class IntegrityVerifier:
    """
    Usage:
        verifier = IntegrityVerifier(async_session_maker, LocalBlobStore("./evidence"))
        result = await verifier.verify_evidence_package(package.verification_url)
        if not result.valid:
            ...
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        blob_store: BlobStore,
        settings: Optional[Settings] = None,
    ):
        self.session_maker = session_maker
        self.blob_store = blob_store
        self.settings = settings or get_settings()
        self.policy = ResiliencePolicy.from_settings(self.settings)

    async def verify_evidence_package(self, reference: str) -> VerificationResult:
        token = parse_reference(reference)
        with correlation_scope(f"verify:{token[:8] or '-'}"):
            return await self._verify(token)

    async def _verify(self, token: str) -> VerificationResult:
        if not token:
            return VerificationResult(valid=False, verification_reference=token, reason="Empty reference")

        try:
            package = await with_timeout(self.settings.io_timeout_seconds)(self._lookup)(token)
        except Exception as exc:
            logger.warning("Evidence lookup failed for %s: %s", token, exc)
            return VerificationResult(valid=False, verification_reference=token, reason="Lookup failed")

        if package is None:
            logger.info("Unknown verification reference", extra={"verification_reference": token})
            return VerificationResult(valid=False, verification_reference=token, reason="Not found")

        result = VerificationResult(
            valid=False,
            verification_reference=token,
            sha256=package.sha256,
            recorded_at=as_utc(package.created_at),
            artifact_id=package.id,
            challenge_id=package.challenge_id,
        )

        try:
            data = await self.policy.run(self.blob_store.read_bytes, package.storage_key)
        except Exception as exc:
            logger.warning("Evidence bytes unreadable for %s: %s", package.id, exc)
            result.reason = "Stored bytes unreadable"
            return result

        recomputed = hashlib.sha256(data).hexdigest()
        result.recomputed_hash = recomputed
        result.valid = hmac.compare_digest(recomputed, package.sha256)

        if result.valid:
            logger.info("Evidence package verified", extra={"artifact_id": str(package.id)})
        else:
            result.reason = "Hash mismatch"
            logger.warning(
                "Evidence package hash mismatch",
                extra={"artifact_id": str(package.id), "recorded": package.sha256, "recomputed": recomputed},
            )
        return result

    async def _lookup(self, token: str) -> Optional[EvidencePackage]:
        async with self.session_maker() as session:
            return await EvidencePackageRepository(session).find_by_reference(token)
