"""
Upstream record schemas.

These are the read-only shapes the audit engine consumes from the
data-access layer. None of them are persisted by this package.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ContributionType(str, Enum):
    """Kinds of work recorded against a challenge."""
    CODE = "CODE"
    DESIGN = "DESIGN"
    IDEA = "IDEA"
    RESEARCH = "RESEARCH"


class ChallengeSummary(BaseModel):
    """The mandatory challenge overview."""

    id: str
    title: str
    bounty_amount: Decimal
    status: str
    project_leader_id: Optional[str] = None
    project_leader_email: Optional[str] = None
    created_at: datetime


class ContributionRecord(BaseModel):
    """A unit of recorded work and its declared weight."""

    challenge_id: str
    contributor_id: str
    type: ContributionType
    token_value: Decimal = Field(ge=0)
    id: Optional[str] = None
    created_at: Optional[datetime] = None


class ManifestEntry(BaseModel):
    """One contributor's declared share in a composition manifest."""

    contributor_id: str
    type: ContributionType
    weight: float = Field(ge=0.0, le=1.0)
    reference: Optional[str] = None  # git commit, file hash, etc.


class CompositionManifest(BaseModel):
    """Signed declaration of each contributor's share of the work."""

    challenge_id: str
    entries: List[ManifestEntry] = Field(default_factory=list)
    signed_at: Optional[datetime] = None

    @property
    def total_weight(self) -> float:
        return sum(e.weight for e in self.entries)


class PayoutEntry(BaseModel):
    """One line of a payout distribution."""

    contributor_id: str
    amount: Decimal = Field(ge=0)
    rationale: Optional[str] = None
    evidence_refs: List[str] = Field(default_factory=list)


class PayoutDistribution(BaseModel):
    """Who gets what, as proposed (or as reconstructed from payments)."""

    challenge_id: str
    entries: List[PayoutEntry] = Field(default_factory=list)
    created_at: datetime

    @property
    def amounts(self) -> List[Decimal]:
        return [e.amount for e in self.entries]

    @property
    def total(self) -> Decimal:
        return sum(self.amounts, Decimal("0"))


class PaymentRecord(BaseModel):
    """A realized payment made for a challenge."""

    id: str
    challenge_id: str
    contributor_id: str
    amount: Decimal = Field(ge=0)
    created_at: datetime


class ReputationRecord(BaseModel):
    """Dispute history and leadership standing for a contributor."""

    contributor_id: str
    disputes_raised: int = 0
    disputes_against: int = 0
    leadership_score: float = 100.0


class ChallengeEvent(BaseModel):
    """An entry of a challenge's event timeline."""

    id: str
    entity_type: str
    entity_id: str
    action: str
    created_at: datetime
    actor_email: Optional[str] = None


class FileHashRecord(BaseModel):
    """Content hash of a file attached to a challenge."""

    filename: str
    sha256: str
    created_at: Optional[datetime] = None
