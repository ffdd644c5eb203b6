"""
Wiring for the audit services.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bounty_audit.config import Settings, get_settings
from bounty_audit.kernel.cache.audit_cache import AuditCache, SqlCacheStore
from bounty_audit.kernel.models.base import utcnow
from bounty_audit.kernel.storage.blob_store import BlobStore, LocalBlobStore
from bounty_audit.logging_config import configure_logging
from bounty_audit.services.data_access import ChallengeDataSource
from bounty_audit.services.evidence_packager import EvidencePackager
from bounty_audit.services.fairness_audit_service import CACHE_SERVICE_ID, FairnessAuditService
from bounty_audit.services.integrity_verifier import IntegrityVerifier


@dataclass
class AuditServices:
    audits: FairnessAuditService
    packager: EvidencePackager
    verifier: IntegrityVerifier


def create_audit_services(
    data_source: ChallengeDataSource,
    session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
    blob_store: Optional[BlobStore] = None,
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utcnow,
    setup_logging: bool = False,
) -> AuditServices:
    """
    Build the three services over shared storage, cache and settings.

    setup_logging=True also installs the root log handler for
    settings.environment (JSON in production).
    """
    settings = settings or get_settings()
    if setup_logging:
        configure_logging(settings)
    if session_maker is None:
        from bounty_audit.database import async_session_maker
        session_maker = async_session_maker
    blob_store = blob_store or LocalBlobStore(settings.evidence_storage_path)

    cache = AuditCache(
        SqlCacheStore(session_maker),
        service_id=CACHE_SERVICE_ID,
        ttl_seconds=settings.cache_ttl_seconds,
        enabled=settings.enable_caching,
        timeout_seconds=settings.io_timeout_seconds,
        clock=clock,
    )

    return AuditServices(
        audits=FairnessAuditService(data_source, session_maker, cache=cache, settings=settings, clock=clock),
        packager=EvidencePackager(data_source, session_maker, blob_store, settings=settings, clock=clock),
        verifier=IntegrityVerifier(session_maker, blob_store, settings=settings),
    )
