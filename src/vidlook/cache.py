"""
Query result caching module for VidLook.

Keeps the records fetched for each category or search query together with
the bookkeeping needed to continue paging: the provider cursor, the number
of pages fetched and whether the provider reported the end of the listing.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .config import APP_NAME
from .constants import CacheConstants
from .models import CanonicalRecord, QueryKey

logger = logging.getLogger(APP_NAME + ".cache")


@dataclass
class QueryCacheEntry:
    """Records and paging state cached for one query key."""

    records: List[CanonicalRecord] = field(default_factory=list)
    refreshed_at: Optional[float] = None
    cursor: Optional[str] = None
    pages_fetched: int = 0
    exhausted: bool = False
    # Number of records already handed to the caller
    delivered: int = 0

    @property
    def was_fetched(self) -> bool:
        return self.refreshed_at is not None

    def __len__(self) -> int:
        return len(self.records)

    def ids(self) -> List[str]:
        return [record.id for record in self.records]

    def extend_unique(self, records: Sequence[CanonicalRecord]) -> List[CanonicalRecord]:
        """Append records whose id is not cached yet; returns those appended."""
        seen = set(self.ids())
        added = []
        for record in records:
            if record.id in seen:
                continue
            seen.add(record.id)
            added.append(record)
        self.records.extend(added)
        return added


class QueryCache:
    """
    Session-scoped cache of query results with a freshness window.

    Entries are never evicted; they are replaced when reset or found stale.
    """

    def __init__(
        self,
        freshness_seconds: float = CacheConstants.DEFAULT_FRESHNESS_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            freshness_seconds: Maximum age of an entry before it is refetched
            clock: Monotonic time source, injectable for tests
        """
        if freshness_seconds < CacheConstants.MIN_FRESHNESS_SECONDS:
            raise ValueError("freshness_seconds cannot be negative")
        self._entries: Dict[QueryKey, QueryCacheEntry] = {}
        self.freshness_seconds = freshness_seconds
        self.clock = clock
        self._hits = 0
        self._misses = 0
        logger.debug(f"Initialized QueryCache with freshness: {freshness_seconds}s")

    def get(self, key: QueryKey) -> Optional[QueryCacheEntry]:
        return self._entries.get(key)

    def get_or_create(self, key: QueryKey) -> QueryCacheEntry:
        entry = self._entries.get(key)
        if entry is None:
            entry = QueryCacheEntry()
            self._entries[key] = entry
        return entry

    def reset(self, key: QueryKey) -> QueryCacheEntry:
        """Replace the entry for `key` with an empty one."""
        entry = QueryCacheEntry()
        self._entries[key] = entry
        logger.debug(f"Reset cache entry: {key}")
        return entry

    def clear(self) -> int:
        """Drop every entry; returns how many were removed."""
        count = len(self._entries)
        self._entries.clear()
        logger.info(f"Cleared {count} cache entries")
        return count

    def is_stale(self, key: QueryKey) -> bool:
        """True when the entry is missing, never fetched, or past freshness."""
        entry = self._entries.get(key)
        if entry is None or entry.refreshed_at is None:
            return True
        return self.clock() - entry.refreshed_at > self.freshness_seconds

    def is_fresh(self, key: QueryKey) -> bool:
        return not self.is_stale(key)

    def mark_refreshed(self, key: QueryKey) -> None:
        self.get_or_create(key).refreshed_at = self.clock()

    def append(
        self, key: QueryKey, records: Sequence[CanonicalRecord]
    ) -> List[CanonicalRecord]:
        """
        Append records not already cached under `key`.

        Returns:
            The records that were actually appended, in order
        """
        added = self.get_or_create(key).extend_unique(records)
        if len(added) != len(records):
            logger.debug(
                f"Dropped {len(records) - len(added)} duplicate records for {key}"
            )
        return added

    def record_lookup(self, hit: bool) -> None:
        if hit:
            self._hits += 1
        else:
            self._misses += 1

    def stats(self) -> Dict[str, Any]:
        """Summary of cache contents for diagnostics."""
        now = self.clock()
        fresh = sum(
            1
            for entry in self._entries.values()
            if entry.refreshed_at is not None
            and now - entry.refreshed_at <= self.freshness_seconds
        )
        total_lookups = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "fresh_entries": fresh,
            "stale_entries": len(self._entries) - fresh,
            "total_records": sum(len(e) for e in self._entries.values()),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": self._hits / total_lookups if total_lookups else 0.0,
            "freshness_seconds": self.freshness_seconds,
        }

    def __contains__(self, key: QueryKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
