"""Parsed-file cache with TTL eviction for analysis engines.

Provides in-memory caching of parsed sources keyed by filename, with access
tracking and thread-safe concurrency control.
"""

import hashlib
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def source_digest(source: bytes) -> str:
    return hashlib.sha256(source).hexdigest()


class CacheEntry:
    """In-memory cache entry for one parsed file.

    Attributes:
        filename: Absolute path the source was read from
        digest: SHA-256 of the source bytes the tree was built from
        tree: Parsed representation (engine specific)
        last_accessed: Timestamp of last access
        ttl_minutes: Time-to-live in minutes before eviction
        access_count: Number of times this entry has been accessed
    """

    def __init__(self, filename: str, digest: str, tree: Any, ttl_minutes: int = 10):
        self.filename = filename
        self.digest = digest
        self.tree = tree

        self.created_at: datetime = datetime.now()
        self.last_accessed: datetime = self.created_at
        self.ttl_minutes: int = ttl_minutes
        self.access_count: int = 0

    def update_access(self) -> None:
        self.last_accessed = datetime.now()
        self.access_count += 1

    def is_expired(self) -> bool:
        """Check if cache entry has exceeded its TTL."""
        ttl_delta = timedelta(minutes=self.ttl_minutes)
        return datetime.now() - self.last_accessed >= ttl_delta

    def get_stats(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "access_count": self.access_count,
            "last_accessed": self.last_accessed.isoformat(),
            "ttl_minutes": self.ttl_minutes,
        }


class ParsedFileCache:
    """Thread-safe map of filename to CacheEntry.

    A lookup only hits when the cached tree was built from the exact same
    source bytes; edited buffers always miss.
    """

    def __init__(self, ttl_minutes: int = 10):
        self.ttl_minutes = ttl_minutes
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get(self, filename: str, source: bytes) -> Optional[Any]:
        digest = source_digest(source)
        with self._lock:
            self.evict_expired()
            entry = self._entries.get(filename)
            if entry is None or entry.digest != digest:
                self.misses += 1
                return None
            entry.update_access()
            self.hits += 1
            return entry.tree

    def get_latest(self, filename: str) -> Optional[Any]:
        """Last tree stored for `filename`, whatever source it came from."""
        with self._lock:
            entry = self._entries.get(filename)
            if entry is None or entry.is_expired():
                return None
            entry.update_access()
            return entry.tree

    def put(self, filename: str, source: bytes, tree: Any) -> None:
        with self._lock:
            self._entries[filename] = CacheEntry(
                filename, source_digest(source), tree, ttl_minutes=self.ttl_minutes
            )

    def evict_expired(self) -> int:
        """Drop expired entries and return how many were dropped."""
        with self._lock:
            expired = [name for name, entry in self._entries.items() if entry.is_expired()]
            for name in expired:
                del self._entries[name]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "cached_files": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "ttl_minutes": self.ttl_minutes,
            }
