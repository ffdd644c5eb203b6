"""
Audit cache and resilience wrappers shared by all I/O-performing components.
"""

from bounty_audit.kernel.cache.audit_cache import (
    AuditCache,
    CachedResult,
    CacheStore,
    InMemoryCacheStore,
    SqlCacheStore,
    hash_input,
)
from bounty_audit.kernel.cache.resilience import (
    ResiliencePolicy,
    with_retry,
    with_timeout,
)

__all__ = [
    "AuditCache",
    "CachedResult",
    "CacheStore",
    "InMemoryCacheStore",
    "SqlCacheStore",
    "hash_input",
    "ResiliencePolicy",
    "with_retry",
    "with_timeout",
]
