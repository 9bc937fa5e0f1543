"""
cache.py

ProcessingCache: bounded, TTL-checked LRU map of processing results.

- Capacity is enforced on insert: once full, the least recently used entry
  is evicted, so the cache never holds more than max_entries.
- TTL is enforced lazily on every read; there is no background sweep.
- A hit bumps the entry's hit_count and marks it most recently used.

All access goes through one lock. Stored frames are immutable, so entries can
be handed out without copying.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .frame import Frame

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 500
DEFAULT_TTL_SECONDS = 1800.0
INFO_ENTRY_LIMIT = 10


@dataclass
class CacheEntry:
    input_hash: str
    output_frame: Frame
    optimizations: List[Any] = field(default_factory=list)
    confidence: Optional[float] = None
    timestamp: float = 0.0
    hit_count: int = 0


class ProcessingCache:
    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        *,
        time_fn: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._time_fn = time_fn

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def _expired(self, entry: CacheEntry) -> bool:
        return self._time_fn() - entry.timestamp > self._ttl

    def get(self, key: str) -> Optional[CacheEntry]:
        """Live entry for key (hit_count incremented), or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._expired(entry):
                del self._entries[key]
                logger.debug("Cache entry expired", extra={"context": {"key": key}})
                return None
            entry.hit_count += 1
            self._entries.move_to_end(key)
            return entry

    def put(
        self,
        key: str,
        output_frame: Frame,
        optimizations: Optional[List[Any]] = None,
        confidence: Optional[float] = None,
    ) -> CacheEntry:
        entry = CacheEntry(
            input_hash=key,
            output_frame=output_frame,
            optimizations=list(optimizations or []),
            confidence=confidence,
            timestamp=self._time_fn(),
        )
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self._max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache entry evicted", extra={"context": {"key": evicted}})
            self._entries[key] = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def info(self) -> Dict[str, Any]:
        """Size plus the first INFO_ENTRY_LIMIT entries, least recently used first."""
        with self._lock:
            entries = [
                {"key": key, "hitCount": entry.hit_count}
                for key, entry in list(self._entries.items())[:INFO_ENTRY_LIMIT]
            ]
            return {"size": len(self._entries), "entries": entries}
