from __future__ import annotations

import threading
import time
from typing import Dict, Optional, Tuple

from adapters.metrics.prometheus import cache_events_total
from querytool.executor import TableLookup
from querytool.types import ConnectionProfile, TableDescriptor

_Key = Tuple[Optional[int], str]


class TableCache(TableLookup):
    """
    Tiny in-memory TTL cache for table descriptors.

    Keyed by (data source id, table name). Lets repeated queries against the
    same table skip catalog introspection. A ttl of 0 disables caching.
    """

    def __init__(self, ttl: float = 60.0) -> None:
        self.ttl = ttl
        self._store: Dict[_Key, Tuple[float, TableDescriptor]] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def _gc(self, now: float) -> None:
        """Remove expired entries based on the configured TTL."""
        expired_keys = [
            key for key, (ts, _) in self._store.items() if now - ts > self.ttl
        ]
        for key in expired_keys:
            del self._store[key]

    def get(self, profile: ConnectionProfile, table: str) -> Optional[TableDescriptor]:
        """
        Return the cached descriptor if present and not expired, otherwise None.
        Also updates Prometheus counters for hits/misses.
        """
        if not self.enabled:
            return None

        now = time.time()
        with self._lock:
            self._gc(now)
            entry = self._store.get((profile.id, table))

        if entry is None:
            cache_events_total.labels(hit="false").inc()
            return None

        cache_events_total.labels(hit="true").inc()
        return entry[1]

    def set(self, profile: ConnectionProfile, descriptor: TableDescriptor) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._store[(profile.id, descriptor.name)] = (time.time(), descriptor)

    def invalidate(self, data_source_id: Optional[int]) -> int:
        """Drop every entry for one data source; returns how many were dropped."""
        with self._lock:
            keys = [k for k in self._store if k[0] == data_source_id]
            for key in keys:
                del self._store[key]
        return len(keys)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
