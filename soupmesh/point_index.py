"""
Point Deduplication Index
=========================

Collapses repeated corner coordinates into single vertex slots while a
triangle soup is indexed.

A Bloom filter screens every lookup first. When the filter says a point
has definitely not been seen, the point is stored immediately and no scan
runs. Only a "possibly present" answer pays for an exact linear scan.
"""

import hashlib
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .geometry import point_key


DEFAULT_COMPLEXITY = 10


@dataclass
class DedupStats:
    """Counters collected while indexing one mesh."""
    lookups: int = 0
    scans: int = 0
    scan_cost: int = 0
    false_positives: int = 0

    @property
    def saved(self) -> int:
        """Lookups the filter answered without a linear scan."""
        return self.lookups - self.scans

    @property
    def saved_percent(self) -> float:
        return 100.0 * self.saved / self.lookups if self.lookups else 0.0

    @property
    def false_positive_percent(self) -> float:
        return 100.0 * self.false_positives / self.scans if self.scans else 0.0

    @property
    def average_scan_cost(self) -> float:
        return self.scan_cost / self.scans if self.scans else 0.0


class BloomFilter:
    """
    Fixed-size Bloom filter over byte keys.

    Bit positions come from double hashing a single blake2b digest:
    pos_i = (h1 + i * h2) mod num_bits. There are no false negatives.
    """

    def __init__(self, num_bits: int, num_hashes: int):
        if num_bits < 1 or num_hashes < 1:
            raise ValueError("Bloom filter needs at least one bit and one hash")

        self.num_bits = num_bits
        self.num_hashes = num_hashes
        self._bits = np.zeros(num_bits, dtype=bool)
        self._steps = np.arange(num_hashes, dtype=np.uint64)

    def _positions(self, key: bytes) -> np.ndarray:
        digest = hashlib.blake2b(key, digest_size=16).digest()
        h1 = np.uint64(int.from_bytes(digest[:8], "little"))
        # odd stride so successive probes never collapse onto one bit
        h2 = np.uint64(int.from_bytes(digest[8:], "little") | 1)
        # uint64 array arithmetic wraps modulo 2**64
        return (h1 + self._steps * h2) % np.uint64(self.num_bits)

    def add(self, key: bytes):
        self._bits[self._positions(key)] = True

    def might_contain(self, key: bytes) -> bool:
        return bool(self._bits[self._positions(key)].all())

    def __contains__(self, key: bytes) -> bool:
        return self.might_contain(key)


class PointIndex:
    """
    Maps coordinates to dense vertex slots, creating slots on first sight.

    The filter holds ``expected_points * complexity`` bits and uses
    ``complexity * 4`` hash functions, so a higher complexity trades memory
    for fewer false positives.
    """

    def __init__(self, expected_points: int, complexity: int = DEFAULT_COMPLEXITY):
        if complexity < 1:
            raise ValueError("complexity must be at least 1")

        self.filter = BloomFilter(max(64, expected_points * complexity),
                                  complexity * 4)
        self.stats = DedupStats()

        self._points = np.zeros((max(16, expected_points), 3))
        self._count = 0

    def __len__(self) -> int:
        return self._count

    @property
    def points(self) -> np.ndarray:
        """(N, 3) view of the distinct points seen so far."""
        return self._points[:self._count]

    def _scan(self, point: np.ndarray) -> Optional[int]:
        """Exact linear search; charges the comparisons made to the stats."""
        matches = np.flatnonzero(np.all(self.points == point, axis=1))
        if len(matches) == 0:
            self.stats.scan_cost += self._count
            return None

        self.stats.scan_cost += int(matches[0]) + 1
        return int(matches[0])

    def _append(self, point: np.ndarray, key: bytes) -> int:
        if self._count == len(self._points):
            grown = np.zeros((len(self._points) * 2, 3))
            grown[:self._count] = self._points[:self._count]
            self._points = grown

        self._points[self._count] = point
        self.filter.add(key)
        self._count += 1
        return self._count - 1

    def lookup_or_add(self, point: np.ndarray) -> int:
        """
        Resolve a coordinate to its vertex slot.

        Args:
            point: 3D coordinate

        Returns:
            Index of the existing slot holding this coordinate, or of the
            newly created one.
        """
        key = point_key(point)
        self.stats.lookups += 1

        if self.filter.might_contain(key):
            self.stats.scans += 1
            found = self._scan(point)
            if found is not None:
                return found
            # filter said maybe, scan said no
            self.stats.false_positives += 1

        return self._append(point, key)
