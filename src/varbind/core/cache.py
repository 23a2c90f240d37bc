"""
Resolution Cache.

Holds resolved values for bound properties under one active-mode selection.
Entries are computed lazily and dropped only when the Mutation API reports
them in an invalidation set; everything else stays cached across store
versions.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, NamedTuple, Optional

from .resolver import ActiveModes, ResolutionResult, Resolver
from .store import StoreSnapshot
from .types import BindingRef, VariableType

logger = logging.getLogger(__name__)

ExpectedTypeLookup = Callable[[BindingRef], Optional[VariableType]]


@dataclass
class CacheStats:
    """
    Counters for cache behaviour.

    Attributes:
        hits: Lookups answered from the cache.
        computations: Lookups that ran the resolver.
        invalidated: Entries dropped by invalidation.
    """

    hits: int = 0
    computations: int = 0
    invalidated: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.computations
        return round(self.hits / total, 3) if total else 0.0


class _Entry(NamedTuple):
    version: int
    result: ResolutionResult


class ResolutionCache:
    """
    Lazily filled cache of binding resolutions.

    Each entry remembers the store version it was computed at and is only
    served to snapshots at or after that version. Results computed from a
    snapshot older than the last invalidation are returned but not stored,
    so a slow reader can never re-insert a value the Mutation API has
    already declared stale.

    Example:
        ```python
        cache = ResolutionCache({"brand": "dark"})
        api.register_cache(cache)
        result = cache.get(store.snapshot(), BindingRef(node_id="cta", property_path="fill.color"))
        ```
    """

    def __init__(
        self,
        active_modes: Optional[ActiveModes] = None,
        expected_type_for: Optional[ExpectedTypeLookup] = None,
    ):
        self.active_modes: Dict[str, str] = dict(active_modes or {})
        self._expected_type_for = expected_type_for
        self._entries: Dict[BindingRef, _Entry] = {}
        self._floor_version = 0
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def get(self, snapshot: StoreSnapshot, ref: BindingRef) -> Optional[ResolutionResult]:
        """Return the resolution for `ref` as of `snapshot`, or None if it is not bound."""
        with self._lock:
            entry = self._entries.get(ref)
            if entry is not None and entry.version <= snapshot.version:
                self.stats.hits += 1
                return entry.result
            active_modes = self.active_modes

        binding = snapshot.get_binding(ref)
        if binding is None:
            return None

        expected = self._expected_type_for(ref) if self._expected_type_for else None
        result = Resolver(snapshot, active_modes).resolve_binding(binding, expected)

        with self._lock:
            self.stats.computations += 1
            if snapshot.version >= self._floor_version and active_modes is self.active_modes:
                current = self._entries.get(ref)
                if current is None or current.version <= snapshot.version:
                    self._entries[ref] = _Entry(snapshot.version, result)
        return result

    def peek(self, ref: BindingRef) -> Optional[ResolutionResult]:
        entry = self._entries.get(ref)
        return entry.result if entry else None

    def entry_version(self, ref: BindingRef) -> Optional[int]:
        entry = self._entries.get(ref)
        return entry.version if entry else None

    def invalidate(self, refs: Iterable[BindingRef], version: int) -> int:
        """Drop `refs` and refuse results from snapshots older than `version`."""
        with self._lock:
            self._floor_version = max(self._floor_version, version)
            dropped = 0
            for ref in refs:
                if self._entries.pop(ref, None) is not None:
                    dropped += 1
            self.stats.invalidated += dropped
        return dropped

    def invalidate_all(self, version: Optional[int] = None) -> None:
        with self._lock:
            if version is not None:
                self._floor_version = max(self._floor_version, version)
            self.stats.invalidated += len(self._entries)
            self._entries.clear()

    def set_active_modes(self, active_modes: ActiveModes) -> None:
        """Switch mode selection; every cached value is discarded."""
        new_modes = dict(active_modes)
        with self._lock:
            if new_modes == self.active_modes:
                return
            self.active_modes = new_modes
            self.stats.invalidated += len(self._entries)
            self._entries.clear()
        logger.debug("Active modes changed to %s, cache cleared", new_modes)

    def __contains__(self, ref: BindingRef) -> bool:
        return ref in self._entries

    def __len__(self) -> int:
        return len(self._entries)
