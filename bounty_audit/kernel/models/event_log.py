"""
Immutable event log for audit trail.

Audit records and evidence artifacts are logged here in the same
transaction that creates them. This implements the append-only
audit requirement.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String, Index, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bounty_audit.kernel.models.base import Base, generate_uuid, utcnow


class EventType(str, Enum):
    """All event types for the audit log."""

    # Challenge lifecycle (recorded by upstream collaborators)
    CONTRIBUTION_SUBMITTED = "CONTRIBUTION_SUBMITTED"
    MANIFEST_SIGNED = "MANIFEST_SIGNED"
    PAYOUT_PROPOSED = "PAYOUT_PROPOSED"
    CHALLENGE_COMPLETED = "CHALLENGE_COMPLETED"

    # Fairness audit
    FAIRNESS_AUDIT_COMPLETED = "FAIRNESS_AUDIT_COMPLETED"

    # Evidence
    EVIDENCE_PACKAGE_GENERATED = "EVIDENCE_PACKAGE_GENERATED"


class EventLog(Base):
    """
    Immutable audit event log.

    This table is append-only - no updates or deletes allowed.
    """

    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )

    event_type: Mapped[EventType] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    # Entity reference (challenge ids are opaque strings owned upstream)
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    entity_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    # Actor (system events have none)
    actor_id: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_event_logs_entity", "entity_type", "entity_id"),
        Index("ix_event_logs_type_time", "event_type", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<EventLog {self.event_type} {self.entity_type}:{self.entity_id}>"
