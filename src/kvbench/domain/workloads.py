# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Workload generators for the benchmark scenarios.

Every generator is pure with respect to its inputs except sample_indices,
which draws from an unseeded source. The sample scenario only checks
round-trip equality, so its lookup order is not reproducible.
"""

import random
from collections.abc import Iterator

from kvbench.domain.value_objects import GeoPoint, GeoQuery, GeoRadiusOptions, GeoUnit

INCREMENT_COUNT = 500
INCREMENT_SEED = 12345
INCREMENT_DELTA_BOUND = 50
BULK_COUNT = 100_000

GEO_DATASET: tuple[GeoPoint, ...] = (
    GeoPoint("Palermo", 13.361389, 38.115556),
    GeoPoint("Catania", 15.087269, 37.502669),
)

GEO_QUERY = GeoQuery(
    longitude=15.0,
    latitude=37.0,
    radius=200.0,
    unit=GeoUnit.KILOMETERS,
    options=(
        GeoRadiusOptions.WITH_COORDINATES
        | GeoRadiusOptions.WITH_DISTANCE
        | GeoRadiusOptions.WITH_GEOHASH
    ),
)


def increment_deltas(count: int = INCREMENT_COUNT, seed: int = INCREMENT_SEED) -> Iterator[int]:
    """Yield ``count`` deltas drawn uniformly from [0, 50) in draw order.

    The same seed always yields the same sequence, so the running sum is
    a fixed expected counter value.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    rng = random.Random(seed)
    for _ in range(count):
        yield rng.randrange(INCREMENT_DELTA_BOUND)


def bulk_load_pairs(count: int = BULK_COUNT) -> Iterator[tuple[str, int]]:
    """Yield ``(key, value)`` pairs ``("0", 0) .. (str(count - 1), count - 1)``."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    for i in range(count):
        yield str(i), i


def sample_indices(count: int = BULK_COUNT, rng: random.Random | None = None) -> Iterator[int]:
    """Yield ``count`` lookup indices drawn uniformly from [0, count - 1).

    Args:
        count: Number of lookups, also the size of the loaded key space.
        rng: Optional source for tests. Defaults to a fresh unseeded
            ``random.Random`` per call.
    """
    if count < 2:
        raise ValueError(f"count must be >= 2, got {count}")
    if rng is None:
        rng = random.Random()
    for _ in range(count):
        yield rng.randrange(0, count - 1)
