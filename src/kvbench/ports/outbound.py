# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Outbound port interfaces (driven adapters).

These ports define the contract the benchmark core needs from a store
client. Implementations are provided by outbound adapters (Valkey today).

All interfaces use Protocol (PEP 544) for structural typing, allowing
implicit implementation without inheritance. The blocking and suspending
ports are deliberately identical apart from ``async``.
"""

from typing import Protocol

from kvbench.domain.value_objects import GeoRadiusOptions, GeoRadiusResult, GeoUnit


class BlockingStorePort(Protocol):
    """Port for a store connection used in blocking style.

    Every call completes before returning. Calls made with
    ``fire_and_forget=True`` return None without waiting for the server
    acknowledgment, but are still sent in issue order.
    """

    def ping(self) -> bool:
        """Check the connection.

        Raises:
            StoreConnectionError: If the store is unreachable.
        """
        ...

    def increment(self, key: str, delta: int, fire_and_forget: bool = False) -> int | None:
        """Add ``delta`` to the integer stored at ``key`` (INCRBY)."""
        ...

    def get_string(self, key: str) -> str | None:
        """Read the value at ``key``; None when the key does not exist."""
        ...

    def set_string(self, key: str, value: str | int, fire_and_forget: bool = False) -> bool | None:
        """Store ``value`` at ``key``."""
        ...

    def delete(self, key: str, fire_and_forget: bool = False) -> int | None:
        """Delete ``key``. Returns the number of keys removed."""
        ...

    def geo_add(self, key: str, longitude: float, latitude: float, member: str) -> int:
        """Add a member to the geo set at ``key``. Returns members added."""
        ...

    def geo_radius(
        self,
        key: str,
        longitude: float,
        latitude: float,
        radius: float,
        unit: GeoUnit,
        options: GeoRadiusOptions = GeoRadiusOptions.NONE,
    ) -> list[GeoRadiusResult]:
        """Members of ``key`` within ``radius`` of the center point."""
        ...

    def close(self) -> None:
        """Release the connection. Safe to call once per handle."""
        ...


class SuspendingStorePort(Protocol):
    """Port for a store connection used in suspending (asyncio) style.

    Callers await each call before issuing the next one; implementations
    must not reorder calls.
    """

    async def ping(self) -> bool: ...

    async def increment(
        self, key: str, delta: int, fire_and_forget: bool = False
    ) -> int | None: ...

    async def get_string(self, key: str) -> str | None: ...

    async def set_string(
        self, key: str, value: str | int, fire_and_forget: bool = False
    ) -> bool | None: ...

    async def delete(self, key: str, fire_and_forget: bool = False) -> int | None: ...

    async def geo_add(self, key: str, longitude: float, latitude: float, member: str) -> int: ...

    async def geo_radius(
        self,
        key: str,
        longitude: float,
        latitude: float,
        radius: float,
        unit: GeoUnit,
        options: GeoRadiusOptions = GeoRadiusOptions.NONE,
    ) -> list[GeoRadiusResult]: ...

    async def close(self) -> None: ...


class StoreFactoryPort(Protocol):
    """Port for creating store handles bound to one logical database."""

    def blocking(self, db: int) -> BlockingStorePort:
        """Create a blocking handle. Must not perform network I/O."""
        ...

    def suspending(self, db: int) -> SuspendingStorePort:
        """Create a suspending handle. Must not perform network I/O."""
        ...
