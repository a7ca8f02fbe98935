import random

import numpy as np
import pytest

from soupmesh.geometry import as_point, point_key
from soupmesh.point_index import BloomFilter, DedupStats, PointIndex


def test_bloom_filter_has_no_false_negatives():
    bloom = BloomFilter(num_bits=256, num_hashes=6)
    keys = [point_key(as_point(i, i * 2, -i)) for i in range(500)]
    for key in keys:
        bloom.add(key)

    assert all(key in bloom for key in keys)


def test_bloom_filter_empty_rejects_everything():
    bloom = BloomFilter(num_bits=1024, num_hashes=4)
    assert not bloom.might_contain(point_key(as_point(1, 2, 3)))


def test_bloom_filter_validates_size():
    with pytest.raises(ValueError):
        BloomFilter(0, 1)
    with pytest.raises(ValueError):
        BloomFilter(10, 0)


def test_repeated_point_gets_one_slot():
    index = PointIndex(expected_points=10)
    p = as_point(3, 4, 5)

    slots = [index.lookup_or_add(p) for _ in range(7)]

    assert slots == [0] * 7
    assert len(index) == 1
    assert index.stats.lookups == 7
    # first sighting is rejected by the filter, the rest are scanned
    assert index.stats.scans == 6
    assert index.stats.scan_cost == 6
    assert index.stats.false_positives == 0
    assert index.stats.saved == 1


def test_duplicates_resolve_regardless_of_order():
    points = [as_point(x, y, 0) for x in range(4) for y in range(4)]
    sequence = points * 3
    random.Random(7).shuffle(sequence)

    index = PointIndex(expected_points=len(sequence))
    slots = {}
    for p in sequence:
        slot = index.lookup_or_add(p)
        slots.setdefault(point_key(p), set()).add(slot)

    assert len(index) == len(points)
    assert all(len(s) == 1 for s in slots.values())


def test_negative_zero_is_the_same_point():
    index = PointIndex(expected_points=4)
    assert index.lookup_or_add(as_point(0.0, 1, 2)) == index.lookup_or_add(as_point(-0.0, 1, 2))
    assert len(index) == 1


def test_false_positives_are_counted():
    index = PointIndex(expected_points=4)
    # a one-bit filter answers "maybe" to everything once anything is in it
    index.filter = BloomFilter(1, 1)

    for i in range(3):
        index.lookup_or_add(as_point(i, 0, 0))

    assert len(index) == 3
    assert index.stats.lookups == 3
    assert index.stats.scans == 2
    assert index.stats.false_positives == 2
    # missed scans pay for the whole list
    assert index.stats.scan_cost == 1 + 2


def test_point_storage_grows():
    index = PointIndex(expected_points=1)
    for i in range(100):
        assert index.lookup_or_add(as_point(i, 0, 0)) == i

    assert index.points.shape == (100, 3)
    assert np.array_equal(index.points[42], [42, 0, 0])


def test_complexity_must_be_positive():
    with pytest.raises(ValueError):
        PointIndex(expected_points=10, complexity=0)


def test_empty_stats():
    stats = DedupStats()
    assert stats.saved_percent == 0.0
    assert stats.false_positive_percent == 0.0
    assert stats.average_scan_cost == 0.0
