"""
Stable Kernel Layer

Foundational components shared by the audit and evidence engines:
- Immutable Event Log (audit and evidence mutations logged)
- Append-only audit and evidence records
- Audit cache and resilience wrappers
- Durable byte storage

Architectural Invariants:
- Audit records and evidence metadata are never updated or deleted
- Evidence bytes are stored and confirmed before metadata is committed
- Cache keys are hashes of canonical input, never raw input
"""

from bounty_audit.kernel.models import (
    EventLog,
    EventType,
    FairnessAudit,
    EvidencePackage,
    EvidencePackageKind,
    AuditCacheEntry,
)

__all__ = [
    # Event Log
    "EventLog",
    "EventType",
    # Records
    "FairnessAudit",
    "EvidencePackage",
    "EvidencePackageKind",
    # Cache
    "AuditCacheEntry",
]
