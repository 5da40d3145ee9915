"""Pytest configuration and shared fixtures.

This module defines:
- Test markers (unit, integration, property)
- An in-memory store that honors both store ports, for unit tests
- Shared fixtures for suite sessions
"""

import math
from collections import defaultdict
from collections.abc import Iterator
from typing import Any

import pytest

from kvbench.adapters.config.settings import WorkloadSettings
from kvbench.application.fixtures import CoreSuiteFixture, LoadSuiteFixture, ScenarioContext
from kvbench.domain.errors import StoreConnectionError
from kvbench.domain.value_objects import GeoRadiusOptions, GeoRadiusResult, GeoUnit

# Earth radius used by the Redis geo commands
EARTH_RADIUS_M = 6372797.560856

UNIT_IN_METERS = {
    GeoUnit.METERS: 1.0,
    GeoUnit.KILOMETERS: 1000.0,
    GeoUnit.MILES: 1609.34,
    GeoUnit.FEET: 0.3048,
}


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "unit: Fast unit tests against the in-memory store (no server)",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests against a live Valkey/Redis server (KVBENCH_INTEGRATION=1)",
    )
    config.addinivalue_line(
        "markers",
        "property: Hypothesis property-based tests",
    )


def haversine_m(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    u = math.sin((lat2_r - lat1_r) / 2)
    v = math.sin(math.radians(lon2 - lon1) / 2)
    return 2.0 * EARTH_RADIUS_M * math.asin(math.sqrt(u * u + math.cos(lat1_r) * math.cos(lat2_r) * v * v))


class InMemoryServer:
    """Shared state behind every fake handle: one dict per logical database."""

    def __init__(self) -> None:
        self.dbs: dict[int, dict[str, Any]] = defaultdict(dict)
        self.calls: list[tuple[str, str, str]] = []
        self.unreachable = False
        self.corrupt_increments = False


class FakeBlockingStore:
    """In-memory BlockingStorePort. Records (mode, command, key) per call."""

    mode = "blocking"

    def __init__(self, server: InMemoryServer, db: int) -> None:
        self.server = server
        self.db = db
        self.close_count = 0
        self.fail_close = False

    @property
    def data(self) -> dict[str, Any]:
        return self.server.dbs[self.db]

    def _record(self, command: str, key: str = "") -> None:
        if self.server.unreachable:
            raise StoreConnectionError("connection refused")
        self.server.calls.append((self.mode, command, key))

    def ping(self) -> bool:
        self._record("PING")
        return True

    def increment(self, key: str, delta: int, fire_and_forget: bool = False) -> int | None:
        self._record("INCRBY", key)
        if self.server.corrupt_increments:
            delta += 1
        value = int(self.data.get(key, "0")) + delta
        self.data[key] = str(value)
        return None if fire_and_forget else value

    def get_string(self, key: str) -> str | None:
        self._record("GET", key)
        value = self.data.get(key)
        return value if isinstance(value, str) else None

    def set_string(self, key: str, value: str | int, fire_and_forget: bool = False) -> bool | None:
        self._record("SET", key)
        self.data[key] = str(value)
        return None if fire_and_forget else True

    def delete(self, key: str, fire_and_forget: bool = False) -> int | None:
        self._record("DEL", key)
        removed = 1 if self.data.pop(key, None) is not None else 0
        return None if fire_and_forget else removed

    def geo_add(self, key: str, longitude: float, latitude: float, member: str) -> int:
        self._record("GEOADD", key)
        members = self.data.setdefault(key, {})
        added = 0 if member in members else 1
        members[member] = (longitude, latitude)
        return added

    def geo_radius(
        self,
        key: str,
        longitude: float,
        latitude: float,
        radius: float,
        unit: GeoUnit,
        options: GeoRadiusOptions = GeoRadiusOptions.NONE,
    ) -> list[GeoRadiusResult]:
        self._record("GEORADIUS", key)
        scale = UNIT_IN_METERS[unit]
        results = []
        for member, (lon, lat) in self.data.get(key, {}).items():
            distance = haversine_m(longitude, latitude, lon, lat) / scale
            if distance > radius:
                continue
            results.append(
                GeoRadiusResult(
                    member=member,
                    distance=distance if GeoRadiusOptions.WITH_DISTANCE in options else None,
                    geohash=hash((lon, lat)) & 0xFFFFFFFFFFFFF
                    if GeoRadiusOptions.WITH_GEOHASH in options
                    else None,
                    longitude=lon if GeoRadiusOptions.WITH_COORDINATES in options else None,
                    latitude=lat if GeoRadiusOptions.WITH_COORDINATES in options else None,
                )
            )
        return results

    def close(self) -> None:
        self.close_count += 1
        if self.fail_close:
            raise RuntimeError("close failed")


class FakeSuspendingStore:
    """In-memory SuspendingStorePort delegating to the blocking fake."""

    def __init__(self, server: InMemoryServer, db: int) -> None:
        self._inner = FakeBlockingStore(server, db)
        self._inner.mode = "suspending"
        self.close_count = 0
        self.fail_close = False

    @property
    def data(self) -> dict[str, Any]:
        return self._inner.data

    async def ping(self) -> bool:
        return self._inner.ping()

    async def increment(self, key: str, delta: int, fire_and_forget: bool = False) -> int | None:
        return self._inner.increment(key, delta, fire_and_forget)

    async def get_string(self, key: str) -> str | None:
        return self._inner.get_string(key)

    async def set_string(
        self, key: str, value: str | int, fire_and_forget: bool = False
    ) -> bool | None:
        return self._inner.set_string(key, value, fire_and_forget)

    async def delete(self, key: str, fire_and_forget: bool = False) -> int | None:
        return self._inner.delete(key, fire_and_forget)

    async def geo_add(self, key: str, longitude: float, latitude: float, member: str) -> int:
        return self._inner.geo_add(key, longitude, latitude, member)

    async def geo_radius(
        self,
        key: str,
        longitude: float,
        latitude: float,
        radius: float,
        unit: GeoUnit,
        options: GeoRadiusOptions = GeoRadiusOptions.NONE,
    ) -> list[GeoRadiusResult]:
        return self._inner.geo_radius(key, longitude, latitude, radius, unit, options)

    async def close(self) -> None:
        self.close_count += 1
        if self.fail_close:
            raise RuntimeError("close failed")


class FakeStoreFactory:
    """StoreFactoryPort handing out in-memory handles and remembering them."""

    def __init__(self, server: InMemoryServer) -> None:
        self.server = server
        self.blocking_handles: list[FakeBlockingStore] = []
        self.suspending_handles: list[FakeSuspendingStore] = []

    def blocking(self, db: int) -> FakeBlockingStore:
        handle = FakeBlockingStore(self.server, db)
        self.blocking_handles.append(handle)
        return handle

    def suspending(self, db: int) -> FakeSuspendingStore:
        handle = FakeSuspendingStore(self.server, db)
        self.suspending_handles.append(handle)
        return handle


@pytest.fixture
def server() -> InMemoryServer:
    return InMemoryServer()


@pytest.fixture
def store_factory(server: InMemoryServer) -> FakeStoreFactory:
    return FakeStoreFactory(server)


@pytest.fixture
def workload() -> WorkloadSettings:
    """Reference workload shrunk to keep unit tests fast."""
    return WorkloadSettings(batch_size=50, bulk_size=200)


@pytest.fixture
def core_ctx(store_factory: FakeStoreFactory, workload: WorkloadSettings) -> Iterator[ScenarioContext]:
    with CoreSuiteFixture(store_factory, workload).session() as ctx:
        yield ctx


@pytest.fixture
def load_ctx(store_factory: FakeStoreFactory, workload: WorkloadSettings) -> Iterator[ScenarioContext]:
    with LoadSuiteFixture(store_factory, workload).session() as ctx:
        yield ctx
