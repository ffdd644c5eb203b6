"""
Event sourcing infrastructure.

Provides append-only audit logging with immutable events.
"""

from bounty_audit.kernel.events.event_store import EventStore
from bounty_audit.kernel.events.event_types import (
    BaseEvent,
    FairnessAuditCompletedEvent,
    EvidencePackageGeneratedEvent,
)

__all__ = [
    "EventStore",
    "BaseEvent",
    "FairnessAuditCompletedEvent",
    "EvidencePackageGeneratedEvent",
]
