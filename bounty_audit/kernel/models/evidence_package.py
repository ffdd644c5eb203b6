"""
Evidence package metadata.

A row is committed only after its bytes are durably stored, so committed
metadata never points at missing or partial content. Rows are never edited
or deleted; a newer package for the same challenge and kind points back at
the one it supersedes.
"""

import uuid
from enum import Enum
from typing import List, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, Index, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bounty_audit.kernel.models.base import Base, CreatedAtMixin, generate_uuid


class EvidencePackageKind(str, Enum):
    """Kinds of evidence package."""
    PAYOUT_AUDIT = "PAYOUT_AUDIT"
    COMPLIANCE_REPORT = "COMPLIANCE_REPORT"
    INCIDENT_EVIDENCE = "INCIDENT_EVIDENCE"
    ETHICS_CERTIFICATION = "ETHICS_CERTIFICATION"


class EvidencePackage(Base, CreatedAtMixin):
    """Immutable, hash-verifiable rendered evidence document."""

    __tablename__ = "evidence_packages"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    challenge_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )
    kind: Mapped[EvidencePackageKind] = mapped_column(
        String(50),
        nullable=False,
    )

    # Stored content
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_key: Mapped[str] = mapped_column(Text, nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    sha256: Mapped[str] = mapped_column(String(64), nullable=False)

    # Third-party verification
    verification_reference: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
    )
    verification_url: Mapped[str] = mapped_column(Text, nullable=False)

    # Inclusion flags
    includes_timeline: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    includes_file_hashes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    includes_signatures: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    includes_ai_analysis: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Requested sections whose data source failed
    incomplete_sections: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    supersedes_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("evidence_packages.id"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_evidence_packages_challenge_kind", "challenge_id", "kind", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EvidencePackage {self.kind} {self.challenge_id} {self.sha256[:12]}>"
