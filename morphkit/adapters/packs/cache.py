# morphkit/adapters/packs/cache.py
"""
packs/cache.py
--------------

URL-keyed cache for fetched pack bytes.

Goals
=====
- Fetch every pack resource at most once per session.
- Optionally persist raw bytes to a cache directory so a new session does not
  hit the network again (match-then-fetch-then-store).
- Thread-safe; the worker may serve requests from more than one thread in
  tests.

Bytes are cached exactly as fetched (before integrity check and
decompression), so a cached entry is verified again on every load.
"""

from __future__ import annotations

import hashlib
import threading
from pathlib import Path
from typing import Dict, List, Optional

import structlog

logger = structlog.get_logger()


def _cache_filename(url: str) -> str:
    return hashlib.sha256(url.encode("utf-8")).hexdigest() + ".bin"


class PackCache:
    """In-memory pack cache with an optional on-disk layer."""

    def __init__(self, directory: Optional[str] = None):
        self._entries: Dict[str, bytes] = {}
        self._lock = threading.RLock()
        self.directory = Path(directory) if directory else None

    def match(self, url: str) -> Optional[bytes]:
        with self._lock:
            data = self._entries.get(url)
            if data is not None:
                return data

            if self.directory is None:
                return None

            path = self.directory / _cache_filename(url)
            if not path.exists():
                return None
            try:
                data = path.read_bytes()
            except OSError as e:
                logger.warning("pack_cache_read_failed", url=url, path=str(path), error=str(e))
                return None

            self._entries[url] = data
            logger.info("pack_cache_disk_hit", url=url, size=len(data))
            return data

    def put(self, url: str, data: bytes) -> None:
        with self._lock:
            self._entries[url] = data
            if self.directory is None:
                return
            try:
                self.directory.mkdir(parents=True, exist_ok=True)
                (self.directory / _cache_filename(url)).write_bytes(data)
            except OSError as e:
                logger.warning("pack_cache_write_failed", url=url, error=str(e))

    def clear(self, url: Optional[str] = None) -> None:
        """Clear one URL (memory only) or the whole in-memory cache."""
        with self._lock:
            if url is None:
                self._entries.clear()
                return
            self._entries.pop(url, None)

    def cached_urls(self) -> List[str]:
        with self._lock:
            return sorted(self._entries.keys())


__all__ = ["PackCache"]
