"""
Orchestration services - the operations exposed to callers.

All I/O runs under the resilience policy; computation is delegated to
the pure engines.
"""

from bounty_audit.services.data_access import ChallengeDataSource, fetch_from_source
from bounty_audit.services.distribution_source import (
    DistributionSource,
    ProposedDistribution,
    RealizedPayments,
    resolve_distribution_source,
)
from bounty_audit.services.fairness_audit_service import FairnessAuditService
from bounty_audit.services.evidence_packager import EvidencePackager
from bounty_audit.services.integrity_verifier import IntegrityVerifier, parse_reference
from bounty_audit.services.factory import AuditServices, create_audit_services

__all__ = [
    "ChallengeDataSource",
    "fetch_from_source",
    "DistributionSource",
    "ProposedDistribution",
    "RealizedPayments",
    "resolve_distribution_source",
    "FairnessAuditService",
    "EvidencePackager",
    "IntegrityVerifier",
    "parse_reference",
    "AuditServices",
    "create_audit_services",
]
