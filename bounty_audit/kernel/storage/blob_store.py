"""
Durable byte storage for evidence packages.

write_bytes returns only after the bytes are flushed and fsynced, and
reports the number of bytes on disk so the caller can confirm the write
before committing metadata. discard exists solely to drop bytes whose
metadata was never committed.
"""

import asyncio
import os
from pathlib import Path
from typing import Protocol

from bounty_audit.exceptions import StorageFailure
from bounty_audit.logging_config import get_logger

logger = get_logger(__name__)


class BlobStore(Protocol):
    """Key -> bytes storage."""

    async def write_bytes(self, key: str, data: bytes) -> int:
        """Store data under key and return the stored size."""
        ...

    async def read_bytes(self, key: str) -> bytes:
        ...

    async def discard(self, key: str) -> None:
        """Remove uncommitted bytes. Missing keys are ignored."""
        ...


class LocalBlobStore:
    """Filesystem-backed BlobStore rooted at base_path."""

    def __init__(self, base_path: str | os.PathLike[str]):
        self.base_path = Path(base_path)

    def _resolve(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        root = self.base_path.resolve()
        if root != path and root not in path.parents:
            raise StorageFailure("Storage key escapes storage root", {"key": key})
        return path

    async def write_bytes(self, key: str, data: bytes) -> int:
        path = self._resolve(key)
        try:
            return await asyncio.to_thread(self._write_sync, path, data)
        except OSError as exc:
            raise StorageFailure(f"Failed to write bytes: {exc}", {"key": key}) from exc

    async def read_bytes(self, key: str) -> bytes:
        path = self._resolve(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise StorageFailure(f"Failed to read bytes: {exc}", {"key": key}) from exc

    async def discard(self, key: str) -> None:
        path = self._resolve(key)
        try:
            await asyncio.to_thread(self._discard_sync, path)
        except OSError as exc:
            logger.warning("Failed to discard uncommitted bytes at %s: %s", key, exc)

    @staticmethod
    def _discard_sync(path: Path) -> None:
        # An interrupted write leaves only the temp file behind
        path.with_name(path.name + ".part").unlink(missing_ok=True)
        path.unlink(missing_ok=True)

    @staticmethod
    def _write_sync(path: Path, data: bytes) -> int:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".part")
        with open(tmp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
        return path.stat().st_size
