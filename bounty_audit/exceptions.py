"""
Error taxonomy for audit and evidence operations.

ValidationFailure and NotFound fail fast and are never retried.
DataUnavailable is absorbed for optional sources and fatal for mandatory ones.
StorageFailure aborts the operation with nothing committed.
Integrity mismatches are results (valid=False), not exceptions.
"""

from typing import Any, Dict, Optional


class AuditError(Exception):
    """Base class for all audit engine errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{self.message} ({details})"


class ValidationFailure(AuditError, ValueError):
    """Input cannot be audited or allocated as given."""


class NotFound(AuditError, LookupError):
    """A referenced challenge, distribution or artifact does not exist."""


class DataUnavailable(AuditError, RuntimeError):
    """A data source failed transiently."""


class OperationTimeout(DataUnavailable):
    """A unit of work exceeded its time bound."""


class StorageFailure(AuditError, RuntimeError):
    """Bytes or metadata could not be persisted."""
