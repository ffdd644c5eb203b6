"""
Fairness audit schemas.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RedFlag(str, Enum):
    """Fairness risk patterns, in evaluation order."""
    SINGLE_CONTRIBUTOR_DOMINANCE = "SINGLE_CONTRIBUTOR_DOMINANCE"
    UNPAID_WORK_DETECTED = "UNPAID_WORK_DETECTED"
    EXTREME_INEQUALITY = "EXTREME_INEQUALITY"
    MISSING_ATTRIBUTION = "MISSING_ATTRIBUTION"
    SUSPICIOUS_TIMING = "SUSPICIOUS_TIMING"
    UNEXPLAINED_VARIANCE = "UNEXPLAINED_VARIANCE"
    NO_DIVERSE_ROLES = "NO_DIVERSE_ROLES"
    EXPLOITATION_PATTERN = "EXPLOITATION_PATTERN"


class GreenFlag(str, Enum):
    """Positive fairness patterns, in evaluation order."""
    DIVERSE_CONTRIBUTION_TYPES = "DIVERSE_CONTRIBUTION_TYPES"
    ALL_CONTRIBUTORS_PAID = "ALL_CONTRIBUTORS_PAID"
    FAIR_DISTRIBUTION = "FAIR_DISTRIBUTION"
    TRANSPARENT_MANIFEST = "TRANSPARENT_MANIFEST"


class RecommendationSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"
    SUGGESTION = "SUGGESTION"


class DistributionSourceKind(str, Enum):
    """Where the audited distribution came from."""
    PROPOSAL = "proposal"
    PAYMENTS = "payments"


class Recommendation(BaseModel):
    """Advisory output attached to an audit. Never enforced."""

    severity: RecommendationSeverity
    flag: Optional[str] = None
    description: str
    action_required: bool


class ContributorShare(BaseModel):
    """One row of a computed payout split."""

    contributor_id: str
    weight: Decimal
    percentage: Decimal
    amount: Decimal


class FairnessAnalysis(BaseModel):
    """Derived numbers and flags for one distribution (cacheable)."""

    gini_coefficient: float = Field(ge=0.0, le=1.0)
    inequality_level: str
    fairness_score: float = Field(ge=0.0, le=1.0)
    score_interpretation: str
    passes_threshold: bool
    red_flags: List[RedFlag] = Field(default_factory=list)
    green_flags: List[GreenFlag] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)


class AuditResult(BaseModel):
    """Outcome of run_fairness_audit, mirroring the appended record."""

    audit_id: uuid.UUID
    challenge_id: str
    gini_coefficient: float
    fairness_score: float
    score_interpretation: str
    passes_threshold: bool
    red_flags: List[RedFlag] = Field(default_factory=list)
    green_flags: List[GreenFlag] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    evidence_links: List[str] = Field(default_factory=list)
    distribution_source: DistributionSourceKind
    incomplete_sections: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    created_at: datetime


class AuditRecordView(BaseModel):
    """Read model for a stored fairness audit."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    challenge_id: str
    gini_coefficient: float
    fairness_score: float
    red_flags: List[str] = Field(default_factory=list)
    green_flags: List[str] = Field(default_factory=list)
    recommendations: List[Recommendation] = Field(default_factory=list)
    evidence_links: List[str] = Field(default_factory=list)
    distribution_source: str
    incomplete_sections: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    created_at: datetime
