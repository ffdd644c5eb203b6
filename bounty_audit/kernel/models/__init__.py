"""
Kernel Data Models

SQLAlchemy models owned by the audit engine: audit records, evidence
package metadata, cache entries and the append-only event log.
"""

from bounty_audit.kernel.models.base import Base, CreatedAtMixin, generate_uuid, utcnow, as_utc
from bounty_audit.kernel.models.event_log import EventLog, EventType
from bounty_audit.kernel.models.fairness_audit import FairnessAudit
from bounty_audit.kernel.models.evidence_package import EvidencePackage, EvidencePackageKind
from bounty_audit.kernel.models.cache_entry import AuditCacheEntry

__all__ = [
    # Base
    "Base",
    "CreatedAtMixin",
    "generate_uuid",
    "utcnow",
    "as_utc",
    # Event Log
    "EventLog",
    "EventType",
    # Audit
    "FairnessAudit",
    # Evidence
    "EvidencePackage",
    "EvidencePackageKind",
    # Cache
    "AuditCacheEntry",
]
