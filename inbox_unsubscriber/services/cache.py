"""
Namespaced TTL cache shared by every pipeline component.

Each namespace (message, search, domain, classification) has its own TTL
and key ceiling. Entries are never returned once their TTL has elapsed.
Memory-pressure eviction runs from ``sweep()``, driven by an injectable
timer rather than from request paths.
"""

import asyncio
import logging
import os
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..config.settings import CacheConfig

logger = logging.getLogger(__name__)

# Least valuable namespace first
EVICTION_ORDER = ('search', 'message', 'domain', 'classification')
EVICTION_FRACTION = 0.25
EVICTION_TARGET_RATIO = 0.8


class _Miss:
    def __bool__(self):
        return False

    def __repr__(self):
        return 'MISS'


MISS = _Miss()


@dataclass
class CacheEntry:
    key: str
    value: Any
    created_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl


def process_memory_mb() -> float:
    """Resident set size of this process in megabytes."""
    try:
        with open('/proc/self/statm') as f:
            resident_pages = int(f.read().split()[1])
        return resident_pages * os.sysconf('SC_PAGE_SIZE') / (1024 * 1024)
    except (OSError, ValueError, IndexError):
        import resource
        # ru_maxrss is KiB on Linux
        return resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024


class TTLStore:
    """Insertion-ordered TTL store for a single namespace."""

    def __init__(self, config: CacheConfig, clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.clock = clock
        self._entries: 'OrderedDict[str, CacheEntry]' = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return MISS
        if entry.is_expired(self.clock()):
            del self._entries[key]
            self.misses += 1
            return MISS
        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        # Re-setting a key moves it to the newest position
        self._entries.pop(key, None)
        while len(self._entries) >= self.config.max_keys:
            self._entries.popitem(last=False)
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            created_at=self.clock(),
            ttl=self.config.ttl if ttl is None else ttl,
        )

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> List[str]:
        return list(self._entries.keys())

    def purge_expired(self) -> int:
        now = self.clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def purge_oldest(self, fraction: float) -> int:
        """Drop the oldest-inserted ``fraction`` of keys (at least one if non-empty)."""
        if not self._entries:
            return 0
        count = max(1, int(len(self._entries) * fraction))
        for _ in range(count):
            self._entries.popitem(last=False)
        return count

    def stats(self) -> Dict[str, int]:
        return {'keys': len(self._entries), 'hits': self.hits, 'misses': self.misses}


class CacheService:
    """Process-wide cache injected into every consumer.

    Args:
        configs: Per-namespace settings, defaults to ``CacheConfig.defaults()``
        clock: Monotonic clock used for TTL checks
        memory_probe: Returns current process memory in MB
        memory_threshold_mb: Usage above which ``sweep()`` evicts
    """

    def __init__(
        self,
        configs: Optional[Dict[str, CacheConfig]] = None,
        clock: Callable[[], float] = time.monotonic,
        memory_probe: Callable[[], float] = process_memory_mb,
        memory_threshold_mb: float = 500,
    ):
        configs = configs or CacheConfig.defaults()
        self.stores: Dict[str, TTLStore] = {
            name: TTLStore(config, clock) for name, config in configs.items()
        }
        self.memory_probe = memory_probe
        self.memory_threshold_mb = memory_threshold_mb

    def _store(self, namespace: str) -> TTLStore:
        try:
            return self.stores[namespace]
        except KeyError:
            raise KeyError(f"Unknown cache namespace: {namespace}") from None

    def get(self, namespace: str, key: str) -> Any:
        """Return the cached value or ``MISS``."""
        return self._store(namespace).get(key)

    def set(self, namespace: str, key: str, value: Any, ttl: Optional[float] = None) -> None:
        self._store(namespace).set(key, value, ttl)

    def delete(self, namespace: str, key: str) -> bool:
        return self._store(namespace).delete(key)

    def clear(self, namespace: Optional[str] = None) -> None:
        if namespace is None:
            for store in self.stores.values():
                store.clear()
        else:
            self._store(namespace).clear()

    def stats(self) -> Dict[str, Dict[str, int]]:
        return {name: store.stats() for name, store in self.stores.items()}

    # Convenience helpers used by the provider and domain expander

    def cache_message(self, message) -> None:
        self.set('message', message.id, message)

    def get_cached_message(self, message_id: str) -> Any:
        return self.get('message', message_id)

    def cache_search_results(self, query: str, max_results: int, messages) -> None:
        self.set('search', f"{query}|{max_results}", list(messages))

    def get_cached_search_results(self, query: str, max_results: int) -> Any:
        return self.get('search', f"{query}|{max_results}")

    def cache_domain_messages(self, domain: str, messages) -> None:
        self.set('domain', domain, list(messages))

    def get_cached_domain_messages(self, domain: str) -> Any:
        return self.get('domain', domain)

    def sweep(self) -> Dict[str, int]:
        """One eviction pass. Never raises.

        Returns:
            Number of keys purged per namespace
        """
        purged: Dict[str, int] = {}
        try:
            for store in self.stores.values():
                store.purge_expired()

            usage = self.memory_probe()
            if usage <= self.memory_threshold_mb:
                return purged

            logger.warning(
                f"Cache memory pressure: {usage:.1f}MB > {self.memory_threshold_mb}MB, evicting"
            )
            target = self.memory_threshold_mb * EVICTION_TARGET_RATIO
            for namespace in EVICTION_ORDER:
                store = self.stores.get(namespace)
                if store is None:
                    continue
                purged[namespace] = store.purge_oldest(EVICTION_FRACTION)
                usage = self.memory_probe()
                if usage < target:
                    break
            logger.info(f"Cache eviction complete: purged={purged}, usage={usage:.1f}MB")
        except Exception as e:
            logger.error(f"Cache sweep failed: {e}")
        return purged

    async def run_eviction_loop(
        self,
        interval: float,
        sleep: Callable[[float], Any] = asyncio.sleep,
        iterations: Optional[int] = None,
    ) -> None:
        """Sweep every ``interval`` seconds, forever or for ``iterations`` rounds."""
        completed = 0
        while iterations is None or completed < iterations:
            await sleep(interval)
            self.sweep()
            completed += 1
