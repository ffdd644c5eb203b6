"""
Durable storage for rendered evidence bytes.
"""

from bounty_audit.kernel.storage.blob_store import BlobStore, LocalBlobStore

__all__ = [
    "BlobStore",
    "LocalBlobStore",
]
