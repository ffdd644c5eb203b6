"""
Append-only repositories for audit records and evidence metadata.
"""

from bounty_audit.kernel.records.audit_repository import FairnessAuditRepository
from bounty_audit.kernel.records.evidence_repository import EvidencePackageRepository

__all__ = [
    "FairnessAuditRepository",
    "EvidencePackageRepository",
]
