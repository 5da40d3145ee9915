# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Valkey store adapter.

Implements BlockingStorePort and SuspendingStorePort on top of the
``valkey`` client (Redis protocol) and its asyncio counterpart.

Fire-and-forget writes are queued on a non-transactional pipeline and sent
without waiting for their replies until the next acknowledged call (or until
``flush_threshold`` commands are queued). Queued commands always reach the
server before any later call, so issue order is preserved in both modes.
Replies to fire-and-forget commands are discarded, errors included.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
import valkey
import valkey.asyncio
from valkey.exceptions import ConnectionError as ValkeyConnectionError
from valkey.exceptions import TimeoutError as ValkeyTimeoutError
from valkey.exceptions import ValkeyError

from kvbench.adapters.config.settings import StoreSettings
from kvbench.domain.errors import StoreConnectionError, StoreError
from kvbench.domain.value_objects import GeoRadiusOptions, GeoRadiusResult, GeoUnit

logger = structlog.get_logger(__name__)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Map valkey client errors onto the domain error hierarchy."""
    try:
        yield
    except (ValkeyConnectionError, ValkeyTimeoutError) as exc:
        raise StoreConnectionError(f"{operation} failed: {exc}") from exc
    except ValkeyError as exc:
        raise StoreError(f"{operation} failed: {exc}") from exc


def parse_geo_entry(raw: Any, options: GeoRadiusOptions) -> GeoRadiusResult:
    """Convert one GEORADIUS reply entry into a GeoRadiusResult.

    Without options the client returns bare member names. With options it
    returns ``[member, distance?, geohash?, (longitude, latitude)?]`` in
    that order, containing only the requested fields.
    """
    if options == GeoRadiusOptions.NONE:
        return GeoRadiusResult(member=raw)

    member, *fields = raw
    distance = geohash = longitude = latitude = None
    if GeoRadiusOptions.WITH_DISTANCE in options:
        distance = float(fields.pop(0))
    if GeoRadiusOptions.WITH_GEOHASH in options:
        geohash = int(fields.pop(0))
    if GeoRadiusOptions.WITH_COORDINATES in options:
        longitude, latitude = (float(c) for c in fields.pop(0))
    return GeoRadiusResult(
        member=member,
        distance=distance,
        geohash=geohash,
        longitude=longitude,
        latitude=latitude,
    )


def _georadius_kwargs(unit: GeoUnit, options: GeoRadiusOptions) -> dict[str, Any]:
    return {
        "unit": unit.value,
        "withdist": GeoRadiusOptions.WITH_DISTANCE in options,
        "withcoord": GeoRadiusOptions.WITH_COORDINATES in options,
        "withhash": GeoRadiusOptions.WITH_GEOHASH in options,
    }


class ValkeyBlockingStore:
    """Blocking store handle backed by ``valkey.Valkey``."""

    def __init__(self, client: valkey.Valkey, flush_threshold: int = 1024) -> None:
        self._client = client
        self._flush_threshold = flush_threshold
        self._pending: Any = None
        self._pending_count = 0

    def _queue(self) -> Any:
        if self._pending is None:
            self._pending = self._client.pipeline(transaction=False)
        self._pending_count += 1
        return self._pending

    def _after_queue(self) -> None:
        if self._pending_count >= self._flush_threshold:
            self.flush()

    def flush(self) -> None:
        """Send queued fire-and-forget commands, discarding their replies."""
        if self._pending is None:
            return
        pending, self._pending, self._pending_count = self._pending, None, 0
        with _translate_errors("flush"):
            pending.execute(raise_on_error=False)

    def ping(self) -> bool:
        self.flush()
        with _translate_errors("PING"):
            return bool(self._client.ping())

    def increment(self, key: str, delta: int, fire_and_forget: bool = False) -> int | None:
        if fire_and_forget:
            self._queue().incrby(key, delta)
            self._after_queue()
            return None
        self.flush()
        with _translate_errors("INCRBY"):
            return self._client.incrby(key, delta)

    def get_string(self, key: str) -> str | None:
        self.flush()
        with _translate_errors("GET"):
            return self._client.get(key)

    def set_string(self, key: str, value: str | int, fire_and_forget: bool = False) -> bool | None:
        if fire_and_forget:
            self._queue().set(key, value)
            self._after_queue()
            return None
        self.flush()
        with _translate_errors("SET"):
            return bool(self._client.set(key, value))

    def delete(self, key: str, fire_and_forget: bool = False) -> int | None:
        if fire_and_forget:
            self._queue().delete(key)
            self._after_queue()
            return None
        self.flush()
        with _translate_errors("DEL"):
            return self._client.delete(key)

    def geo_add(self, key: str, longitude: float, latitude: float, member: str) -> int:
        self.flush()
        with _translate_errors("GEOADD"):
            return self._client.geoadd(key, [longitude, latitude, member])

    def geo_radius(
        self,
        key: str,
        longitude: float,
        latitude: float,
        radius: float,
        unit: GeoUnit,
        options: GeoRadiusOptions = GeoRadiusOptions.NONE,
    ) -> list[GeoRadiusResult]:
        self.flush()
        with _translate_errors("GEORADIUS"):
            raw = self._client.georadius(
                key, longitude, latitude, radius, **_georadius_kwargs(unit, options)
            )
        return [parse_geo_entry(entry, options) for entry in raw]

    def close(self) -> None:
        try:
            self.flush()
        finally:
            self._client.close()


class ValkeySuspendingStore:
    """Suspending store handle backed by ``valkey.asyncio.Valkey``.

    Must be used from a single event loop for its whole lifetime.
    """

    def __init__(self, client: valkey.asyncio.Valkey, flush_threshold: int = 1024) -> None:
        self._client = client
        self._flush_threshold = flush_threshold
        self._pending: Any = None
        self._pending_count = 0

    def _queue(self) -> Any:
        if self._pending is None:
            self._pending = self._client.pipeline(transaction=False)
        self._pending_count += 1
        return self._pending

    async def _after_queue(self) -> None:
        if self._pending_count >= self._flush_threshold:
            await self.flush()

    async def flush(self) -> None:
        """Send queued fire-and-forget commands, discarding their replies."""
        if self._pending is None:
            return
        pending, self._pending, self._pending_count = self._pending, None, 0
        with _translate_errors("flush"):
            await pending.execute(raise_on_error=False)

    async def ping(self) -> bool:
        await self.flush()
        with _translate_errors("PING"):
            return bool(await self._client.ping())

    async def increment(self, key: str, delta: int, fire_and_forget: bool = False) -> int | None:
        if fire_and_forget:
            self._queue().incrby(key, delta)
            await self._after_queue()
            return None
        await self.flush()
        with _translate_errors("INCRBY"):
            return await self._client.incrby(key, delta)

    async def get_string(self, key: str) -> str | None:
        await self.flush()
        with _translate_errors("GET"):
            return await self._client.get(key)

    async def set_string(
        self, key: str, value: str | int, fire_and_forget: bool = False
    ) -> bool | None:
        if fire_and_forget:
            self._queue().set(key, value)
            await self._after_queue()
            return None
        await self.flush()
        with _translate_errors("SET"):
            return bool(await self._client.set(key, value))

    async def delete(self, key: str, fire_and_forget: bool = False) -> int | None:
        if fire_and_forget:
            self._queue().delete(key)
            await self._after_queue()
            return None
        await self.flush()
        with _translate_errors("DEL"):
            return await self._client.delete(key)

    async def geo_add(self, key: str, longitude: float, latitude: float, member: str) -> int:
        await self.flush()
        with _translate_errors("GEOADD"):
            return await self._client.geoadd(key, [longitude, latitude, member])

    async def geo_radius(
        self,
        key: str,
        longitude: float,
        latitude: float,
        radius: float,
        unit: GeoUnit,
        options: GeoRadiusOptions = GeoRadiusOptions.NONE,
    ) -> list[GeoRadiusResult]:
        await self.flush()
        with _translate_errors("GEORADIUS"):
            raw = await self._client.georadius(
                key, longitude, latitude, radius, **_georadius_kwargs(unit, options)
            )
        return [parse_geo_entry(entry, options) for entry in raw]

    async def close(self) -> None:
        try:
            await self.flush()
        finally:
            await self._client.aclose()


class ValkeyStoreFactory:
    """Creates Valkey store handles from StoreSettings.

    Client construction is lazy: no connection is opened until the first
    command, so creating handles never blocks.
    """

    def __init__(self, settings: StoreSettings) -> None:
        self._settings = settings

    def _client_kwargs(self, db: int) -> dict[str, Any]:
        password = self._settings.password.get_secret_value() or None
        return {
            "host": self._settings.host,
            "port": self._settings.port,
            "db": db,
            "password": password,
            "decode_responses": True,
            "socket_timeout": self._settings.socket_timeout,
            "socket_connect_timeout": self._settings.socket_connect_timeout,
        }

    def blocking(self, db: int) -> ValkeyBlockingStore:
        logger.debug("store_handle_created", mode="blocking", host=self._settings.host, db=db)
        client = valkey.Valkey(**self._client_kwargs(db))
        return ValkeyBlockingStore(client, flush_threshold=self._settings.flush_threshold)

    def suspending(self, db: int) -> ValkeySuspendingStore:
        logger.debug("store_handle_created", mode="suspending", host=self._settings.host, db=db)
        client = valkey.asyncio.Valkey(**self._client_kwargs(db))
        return ValkeySuspendingStore(client, flush_threshold=self._settings.flush_threshold)
