"""
Event payload schemas for the audit trail.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseEvent(BaseModel):
    """Base event payload structure."""

    model_config = ConfigDict(extra="allow")

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = Field(default_factory=dict)


class FairnessAuditCompletedEvent(BaseEvent):
    """A fairness audit record was appended."""

    audit_id: str
    fairness_score: float
    gini_coefficient: float
    red_flags: List[str] = Field(default_factory=list)
    distribution_source: str
    incomplete_sections: List[str] = Field(default_factory=list)


class EvidencePackageGeneratedEvent(BaseEvent):
    """An evidence package was stored and committed."""

    artifact_id: str
    kind: str
    sha256: str
    size_bytes: int
    verification_reference: str
    supersedes_id: Optional[str] = None
    incomplete_sections: List[str] = Field(default_factory=list)
