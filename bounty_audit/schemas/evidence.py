"""
Evidence package schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from bounty_audit.kernel.models.evidence_package import EvidencePackageKind


class InclusionFlags(BaseModel):
    """Optional sections requested for an evidence package."""

    timeline: bool = True
    file_hashes: bool = True
    signatures: bool = True
    ai_analysis: bool = True


class GeneratedEvidence(BaseModel):
    """Result of generate_evidence_package."""

    artifact_id: uuid.UUID
    challenge_id: str
    kind: EvidencePackageKind
    file_name: str
    size_bytes: int
    sha256: str
    verification_reference: str
    verification_url: str
    incomplete_sections: List[str] = Field(default_factory=list)
    supersedes_id: Optional[uuid.UUID] = None
    generated_at: datetime


class VerificationResult(BaseModel):
    """Outcome of an integrity check. valid is False on any failure."""

    valid: bool
    verification_reference: str
    sha256: Optional[str] = None
    recomputed_hash: Optional[str] = None
    recorded_at: Optional[datetime] = None
    artifact_id: Optional[uuid.UUID] = None
    challenge_id: Optional[str] = None
    reason: Optional[str] = None


class EvidencePackageMetadata(BaseModel):
    """Read model for a stored evidence package."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    challenge_id: str
    kind: EvidencePackageKind
    file_name: str
    size_bytes: int
    sha256: str
    verification_reference: str
    verification_url: str
    includes_timeline: bool
    includes_file_hashes: bool
    includes_signatures: bool
    includes_ai_analysis: bool
    incomplete_sections: List[str] = Field(default_factory=list)
    supersedes_id: Optional[uuid.UUID] = None
    created_at: datetime


class PayoutRow(BaseModel):
    contributor_id: str
    contribution_types: List[str] = Field(default_factory=list)
    declared_weight: str
    amount: str
    percentage: str


class ChecklistItem(BaseModel):
    label: str
    passed: bool
    detail: Optional[str] = None


class TimelineRow(BaseModel):
    timestamp: datetime
    action: str
    entity: str
    actor: Optional[str] = None


class SignatureRow(BaseModel):
    contributor_id: str
    contribution_type: str
    weight: float
    reference: Optional[str] = None
    signed_at: Optional[datetime] = None


class FileHashRow(BaseModel):
    filename: str
    sha256: str


class FairnessSection(BaseModel):
    audited_at: datetime
    fairness_score: float
    gini_coefficient: float
    red_flags: List[str] = Field(default_factory=list)
    green_flags: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class EvidenceDocument(BaseModel):
    """
    Everything that goes into a rendered evidence package.

    A section set to None was either not requested or its source failed;
    the latter is listed in incomplete_sections.
    """

    challenge_id: str
    title: str
    kind: EvidencePackageKind
    status: str
    bounty_amount: str
    project_leader: Optional[str] = None
    challenge_created_at: datetime
    generated_at: datetime
    payout_rows: Optional[List[PayoutRow]] = None
    checklist: List[ChecklistItem] = Field(default_factory=list)
    fairness: Optional[FairnessSection] = None
    timeline: Optional[List[TimelineRow]] = None
    file_hashes: Optional[List[FileHashRow]] = None
    signatures: Optional[List[SignatureRow]] = None
    verification_reference: str
    verification_url: str
    incomplete_sections: List[str] = Field(default_factory=list)
