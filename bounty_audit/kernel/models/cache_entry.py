"""
Cache entries for derived audit results.

Keyed by SHA-256 of the canonicalized input; raw inputs are never stored.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Float, String, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from bounty_audit.kernel.models.base import Base, CreatedAtMixin, generate_uuid


class AuditCacheEntry(Base, CreatedAtMixin):
    """A cached derived result with an expiry."""

    __tablename__ = "audit_cache_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    service_id: Mapped[str] = mapped_column(String(50), nullable=False)
    input_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    cached_result: Mapped[dict] = mapped_column(JSON, nullable=False)
    confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        UniqueConstraint("service_id", "input_hash", name="uq_audit_cache_service_hash"),
    )
