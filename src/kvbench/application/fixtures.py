# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Scenario fixtures: scoped setup and guaranteed teardown.

A fixture owns the store handles of one suite for the lifetime of a
session. ``session()`` acquires both handles, checks the connection, seeds
suite state and yields a ScenarioContext. When the session ends, whatever
the outcome (success, correctness failure, setup failure), every handle
that was acquired is released exactly once. Release errors are logged and
swallowed so they never replace the result of the session.
"""

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog

from kvbench.adapters.config.settings import WorkloadSettings
from kvbench.domain.oracle import CardinalityOracle
from kvbench.domain.value_objects import GeoQuery
from kvbench.domain.workloads import GEO_DATASET, GEO_QUERY
from kvbench.ports.outbound import BlockingStorePort, StoreFactoryPort, SuspendingStorePort

logger = structlog.get_logger(__name__)


@dataclass
class ScenarioContext:
    """Everything one suite session needs, threaded through every scenario.

    Attributes:
        suite: Name of the suite that created this context.
        blocking: Blocking store handle.
        suspending: Suspending store handle, only used on ``runner``.
        runner: Event loop runner that drives every suspending call.
        workload: Batch sizes, seed and key names.
        geo_query: Radius query issued by the geo scenarios.
        geo_oracle: Match-count reference shared by both execution modes.
    """

    suite: str
    blocking: BlockingStorePort
    suspending: SuspendingStorePort
    runner: asyncio.Runner
    workload: WorkloadSettings
    geo_query: GeoQuery = GEO_QUERY
    geo_oracle: CardinalityOracle = field(
        default_factory=lambda: CardinalityOracle("GEORADIUS match count")
    )

    @property
    def counter_key(self) -> str:
        return self.workload.counter_key

    @property
    def geo_key(self) -> str:
        return self.workload.geo_key


class SuiteFixture:
    """Base fixture: acquire, seed, yield, release.

    Subclasses set ``name`` and ``db`` and override ``seed`` when the suite
    needs store state before the first invocation.
    """

    name = "suite"
    db = 0

    def __init__(
        self,
        factory: StoreFactoryPort,
        workload: WorkloadSettings,
        db: int | None = None,
    ) -> None:
        self._factory = factory
        self._workload = workload
        if db is not None:
            self.db = db

    def seed(self, ctx: ScenarioContext) -> None:
        """Prepare store state once per session (default: nothing)."""

    @contextmanager
    def session(self) -> Iterator[ScenarioContext]:
        runner = asyncio.Runner()
        blocking: BlockingStorePort | None = None
        suspending: SuspendingStorePort | None = None
        try:
            blocking = self._factory.blocking(self.db)
            suspending = self._factory.suspending(self.db)
            ctx = ScenarioContext(
                suite=self.name,
                blocking=blocking,
                suspending=suspending,
                runner=runner,
                workload=self._workload,
            )
            blocking.ping()
            runner.run(suspending.ping())
            self.seed(ctx)
            logger.info("suite_setup", suite=self.name, db=self.db)
            yield ctx
        finally:
            self._release(runner, blocking, suspending)

    def _release(
        self,
        runner: asyncio.Runner,
        blocking: BlockingStorePort | None,
        suspending: SuspendingStorePort | None,
    ) -> None:
        if blocking is not None:
            self._best_effort("blocking", blocking.close)
        if suspending is not None:
            self._best_effort("suspending", lambda: runner.run(suspending.close()))
        self._best_effort("runner", runner.close)
        logger.info("suite_teardown", suite=self.name)

    def _best_effort(self, handle: str, release: Any) -> None:
        try:
            release()
        except Exception as exc:
            logger.warning(
                "teardown_failed",
                suite=self.name,
                handle=handle,
                error_type=type(exc).__name__,
                error_message=str(exc),
            )


class CoreSuiteFixture(SuiteFixture):
    """Counter and geo scenarios. Seeds the two-point geo set once."""

    name = "core"
    db = 3

    def seed(self, ctx: ScenarioContext) -> None:
        ctx.blocking.delete(ctx.geo_key, fire_and_forget=True)
        for point in GEO_DATASET:
            ctx.blocking.geo_add(ctx.geo_key, point.longitude, point.latitude, point.member)
        ctx.geo_oracle.reset()


class LoadSuiteFixture(SuiteFixture):
    """Bulk-load and random-sample scenarios on a plain key space."""

    name = "load"
    db = 0
