"""
Fairness audit records - one row per audit run.

Rows are never updated. Re-auditing a challenge appends a new record,
so the full history of observations is retained.
"""

import uuid
from typing import List, Optional

from sqlalchemy import Float, String, Index, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bounty_audit.kernel.models.base import Base, CreatedAtMixin, generate_uuid


class FairnessAudit(Base, CreatedAtMixin):
    """Immutable result of a fairness audit over one challenge's payouts."""

    __tablename__ = "fairness_audits"

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

    gini_coefficient: Mapped[float] = mapped_column(Float, nullable=False)
    fairness_score: Mapped[float] = mapped_column(Float, nullable=False)

    red_flags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    green_flags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    # Serialized Recommendation models
    recommendations: Mapped[List[dict]] = mapped_column(JSON, nullable=False, default=list)
    evidence_links: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # "proposal" or "payments"
    distribution_source: Mapped[str] = mapped_column(String(20), nullable=False)
    incomplete_sections: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    warnings: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    input_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_fairness_audits_challenge_time", "challenge_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<FairnessAudit {self.challenge_id} score={self.fairness_score:.2f}>"
