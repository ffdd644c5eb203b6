"""
Pydantic schemas for upstream records, audit results and evidence packages.
"""

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
from bounty_audit.schemas.audit import (
    AuditRecordView,
    AuditResult,
    ContributorShare,
    DistributionSourceKind,
    FairnessAnalysis,
    GreenFlag,
    Recommendation,
    RecommendationSeverity,
    RedFlag,
)
from bounty_audit.schemas.evidence import (
    EvidenceDocument,
    EvidencePackageMetadata,
    GeneratedEvidence,
    InclusionFlags,
    VerificationResult,
)

__all__ = [
    # Upstream records
    "ChallengeEvent",
    "ChallengeSummary",
    "CompositionManifest",
    "ContributionRecord",
    "ContributionType",
    "FileHashRecord",
    "ManifestEntry",
    "PaymentRecord",
    "PayoutDistribution",
    "PayoutEntry",
    "ReputationRecord",
    # Audit
    "AuditRecordView",
    "AuditResult",
    "ContributorShare",
    "DistributionSourceKind",
    "FairnessAnalysis",
    "GreenFlag",
    "Recommendation",
    "RecommendationSeverity",
    "RedFlag",
    # Evidence
    "EvidenceDocument",
    "EvidencePackageMetadata",
    "GeneratedEvidence",
    "InclusionFlags",
    "VerificationResult",
]
