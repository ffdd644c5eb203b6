"""
Audit Cache - hash-keyed TTL cache for derived results.

Keys are SHA-256 over a canonical JSON rendering of the input, so raw
inputs never reach the cache. Expired entries are evicted lazily on read
and never served. Concurrent writers of the same key are allowed; the
last write wins.

Cache failures never fail the caller: a broken backend reads as a miss
and writes become no-ops (logged as warnings).
"""

import hashlib
import json
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bounty_audit.kernel.cache.resilience import with_timeout
from bounty_audit.kernel.models.base import as_utc, utcnow
from bounty_audit.kernel.models.cache_entry import AuditCacheEntry
from bounty_audit.logging_config import get_logger

logger = get_logger(__name__)


def _canonical_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Cannot canonicalize {type(value).__name__}")


def hash_input(payload: Any) -> str:
    """SHA-256 of the canonical JSON form of payload (sorted keys, no whitespace)."""
    canonical = json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        default=_canonical_default,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class CachedResult:
    """A stored result and its expiry."""
    result: Dict[str, Any]
    expires_at: datetime
    confidence: Optional[float] = None


class CacheStore(Protocol):
    """Backend for AuditCache."""

    async def get(self, service_id: str, input_hash: str) -> Optional[CachedResult]:
        ...

    async def put(self, service_id: str, input_hash: str, entry: CachedResult) -> None:
        ...

    async def evict(self, service_id: str, input_hash: str) -> None:
        ...


class InMemoryCacheStore:
    """Process-local cache backend."""

    def __init__(self) -> None:
        self._entries: Dict[tuple[str, str], CachedResult] = {}

    async def get(self, service_id: str, input_hash: str) -> Optional[CachedResult]:
        return self._entries.get((service_id, input_hash))

    async def put(self, service_id: str, input_hash: str, entry: CachedResult) -> None:
        self._entries[(service_id, input_hash)] = entry

    async def evict(self, service_id: str, input_hash: str) -> None:
        self._entries.pop((service_id, input_hash), None)

    def __len__(self) -> int:
        return len(self._entries)


class SqlCacheStore:
    """Cache backend on the audit_cache_entries table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get(self, service_id: str, input_hash: str) -> Optional[CachedResult]:
        async with self._session_maker() as session:
            row = await self._find(session, service_id, input_hash)
            if row is None:
                return None
            return CachedResult(
                result=row.cached_result,
                expires_at=as_utc(row.expires_at),
                confidence=row.confidence,
            )

    async def put(self, service_id: str, input_hash: str, entry: CachedResult) -> None:
        try:
            await self._upsert(service_id, input_hash, entry)
        except IntegrityError:
            # Another writer inserted the key first; overwrite it
            await self._upsert(service_id, input_hash, entry)

    async def evict(self, service_id: str, input_hash: str) -> None:
        async with self._session_maker() as session:
            await session.execute(
                delete(AuditCacheEntry).where(
                    AuditCacheEntry.service_id == service_id,
                    AuditCacheEntry.input_hash == input_hash,
                )
            )
            await session.commit()

    async def _upsert(self, service_id: str, input_hash: str, entry: CachedResult) -> None:
        async with self._session_maker() as session:
            row = await self._find(session, service_id, input_hash)
            if row is None:
                session.add(AuditCacheEntry(
                    service_id=service_id,
                    input_hash=input_hash,
                    cached_result=entry.result,
                    confidence=entry.confidence,
                    expires_at=entry.expires_at,
                ))
            else:
                row.cached_result = entry.result
                row.confidence = entry.confidence
                row.expires_at = entry.expires_at
            await session.commit()

    @staticmethod
    async def _find(session: AsyncSession, service_id: str, input_hash: str) -> Optional[AuditCacheEntry]:
        result = await session.execute(
            select(AuditCacheEntry).where(
                AuditCacheEntry.service_id == service_id,
                AuditCacheEntry.input_hash == input_hash,
            )
        )
        return result.scalar_one_or_none()


class AuditCache:
    """
    Shared cache used by every component that performs external work.

    Usage:
        cache = AuditCache(SqlCacheStore(session_maker), service_id="ETHICS", ttl_seconds=604800)
        key = hash_input({"distribution": distribution})
        hit = await cache.check_cache(key)
        if hit is None:
            result = compute()
            await cache.set_cache(key, result, confidence=1.0)
    """

    def __init__(
        self,
        store: CacheStore,
        service_id: str,
        ttl_seconds: int = 604800,
        enabled: bool = True,
        timeout_seconds: float = 5.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.service_id = service_id
        self.ttl_seconds = ttl_seconds
        self.enabled = enabled
        self._clock = clock
        self._bounded = with_timeout(timeout_seconds)

    async def check_cache(self, input_hash: str) -> Optional[Dict[str, Any]]:
        """Return the cached result for input_hash, or None on miss/expiry/failure."""
        if not self.enabled:
            return None

        try:
            entry = await self._bounded(self.store.get)(self.service_id, input_hash)
        except Exception as exc:
            logger.warning("[%s] Cache check failed: %s", self.service_id, exc)
            return None

        if entry is None:
            return None

        if as_utc(self._clock()) >= as_utc(entry.expires_at):
            try:
                await self._bounded(self.store.evict)(self.service_id, input_hash)
            except Exception as exc:
                logger.warning("[%s] Cache eviction failed: %s", self.service_id, exc)
            return None

        logger.debug("[%s] Cache hit: %s", self.service_id, input_hash)
        return entry.result

    async def set_cache(
        self,
        input_hash: str,
        result: Dict[str, Any],
        confidence: Optional[float] = None,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """Store a derived result under input_hash."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        if not self.enabled or ttl <= 0:
            return

        entry = CachedResult(
            result=result,
            expires_at=as_utc(self._clock()) + timedelta(seconds=ttl),
            confidence=confidence,
        )
        try:
            await self._bounded(self.store.put)(self.service_id, input_hash, entry)
            logger.debug("[%s] Cached result: %s", self.service_id, input_hash)
        except Exception as exc:
            logger.warning("[%s] Cache storage failed: %s", self.service_id, exc)
