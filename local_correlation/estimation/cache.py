"""
Result cache for local correlation grids and their bootstrap.

Entries are keyed by a SHA-256 fingerprint of the dataset bytes and every
parameter that changes the correlation grid. A bootstrap result is stored
on the entry of the grid it was computed from, so any change of input
(a different fingerprint) can never return a stale bootstrap.
"""

import hashlib
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from local_correlation.core.constants import DEFAULT_CACHE_ENTRIES
from local_correlation.core.exceptions import InvalidInputError
from local_correlation.core.logging_config import get_logger
from local_correlation.estimation.results import BootstrapResult, LocalCorrelationResult

logger = get_logger(__name__)


def fingerprint(
    x: np.ndarray,
    y: np.ndarray,
    bandwidth: Optional[float],
    grid_size: int,
    min_weight: float
) -> str:
    """
    Structural hash of everything the correlation grid depends on.

    Hashes the full float64 contents of both axes (not a sample of them),
    so distinct datasets sharing a prefix and length get distinct keys.
    """
    sha256 = hashlib.sha256()
    for values in (x, y):
        array = np.ascontiguousarray(values, dtype=np.float64)
        sha256.update(str(len(array)).encode("ascii"))
        sha256.update(b"|")
        sha256.update(array.tobytes())
    sha256.update(
        f"|bw={'auto' if bandwidth is None else repr(float(bandwidth))}"
        f"|g={int(grid_size)}|w={repr(float(min_weight))}".encode("ascii")
    )
    return sha256.hexdigest()


@dataclass
class CacheEntry:
    """
    Cached results for one fingerprint.

    Attributes:
        key: Fingerprint the entry belongs to
        correlation: Correlation/density grids and marginals
        bootstrap: Bootstrap result, None until requested
    """
    key: str
    correlation: LocalCorrelationResult
    bootstrap: Optional[BootstrapResult] = None


class ResultCache:
    """
    Thread-safe LRU cache of CacheEntry objects.

    With the default single slot, computing a new fingerprint replaces the
    previous entry together with its bootstrap. A lock serializes every
    read and write so a replacement is complete before the next read.
    """

    def __init__(self, max_entries: int = DEFAULT_CACHE_ENTRIES):
        """
        Initialize cache.

        Args:
            max_entries: Number of fingerprints retained (least recently used evicted)
        """
        if max_entries < 1:
            raise InvalidInputError(
                f"max_entries must be at least 1, got {max_entries}",
                parameter="max_entries",
                value=max_entries
            )
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key`` (marking it recently used) or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def get_or_compute(
        self,
        key: str,
        compute: Callable[[], LocalCorrelationResult]
    ) -> CacheEntry:
        """
        Return the entry for ``key``, computing the correlation on a miss.

        The computation runs under the lock, so concurrent requests for the
        same key compute it once.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self.hits += 1
                self._entries.move_to_end(key)
                logger.debug(f"Cache hit for {key[:12]}")
                return entry

            self.misses += 1
            logger.debug(f"Cache miss for {key[:12]}; computing correlation grid")
            entry = CacheEntry(key=key, correlation=compute())
            self._entries[key] = entry
            while len(self._entries) > self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry {evicted_key[:12]}")
            return entry

    def store_bootstrap(self, key: str, result: BootstrapResult) -> bool:
        """
        Attach a bootstrap result to an existing entry.

        Returns:
            False (and stores nothing) when the entry was evicted meanwhile,
            i.e. the inputs changed while the bootstrap was running
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Discarding bootstrap for evicted entry {key[:12]}")
                return False
            entry.bootstrap = result
            return True

    def invalidate(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
