# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Explicit scenario registry.

Maps a scenario id to its function and measurement configuration, and a
suite name to the fixture that provides its context. Registration order is
execution order.
"""

import fnmatch
import inspect
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from kvbench.adapters.config.settings import WorkloadSettings
from kvbench.application import scenarios
from kvbench.application.fixtures import (
    CoreSuiteFixture,
    LoadSuiteFixture,
    ScenarioContext,
    SuiteFixture,
)
from kvbench.domain.errors import ScenarioNotFoundError
from kvbench.domain.value_objects import ExecutionMode, ScenarioConfig, Variant
from kvbench.ports.outbound import StoreFactoryPort

FixtureFactory = Callable[[StoreFactoryPort, WorkloadSettings], SuiteFixture]


@dataclass(frozen=True)
class ScenarioEntry:
    """A registered scenario.

    Attributes:
        scenario_id: Stable id, e.g. ``incrby.blocking``.
        operation: Operation name used in the description, e.g. ``INCRBY``.
        func: Scenario function; a coroutine function for suspending mode.
        config: Measurement configuration.
        suite: Name of the suite whose fixture provides the context.
    """

    scenario_id: str
    operation: str
    func: Callable[[ScenarioContext], Any]
    config: ScenarioConfig
    suite: str

    @property
    def description(self) -> str:
        return self.config.describe(self.operation)

    def invoke(self, ctx: ScenarioContext) -> Any:
        """Run one invocation; suspending scenarios run on the session's runner."""
        if self.config.mode is ExecutionMode.SUSPENDING:
            return ctx.runner.run(self.func(ctx))
        return self.func(ctx)


class ScenarioRegistry:
    """Ordered scenario and suite registry."""

    def __init__(self) -> None:
        self._entries: dict[str, ScenarioEntry] = {}
        self._suites: dict[str, FixtureFactory] = {}

    def register_suite(self, name: str, fixture_factory: FixtureFactory) -> None:
        if name in self._suites:
            raise ValueError(f"Suite already registered: {name}")
        self._suites[name] = fixture_factory

    def register(
        self,
        scenario_id: str,
        operation: str,
        func: Callable[[ScenarioContext], Any],
        config: ScenarioConfig,
        suite: str,
    ) -> ScenarioEntry:
        if scenario_id in self._entries:
            raise ValueError(f"Scenario already registered: {scenario_id}")
        if suite not in self._suites:
            raise ValueError(f"Unknown suite '{suite}' for scenario {scenario_id}")
        is_coroutine = inspect.iscoroutinefunction(func)
        if is_coroutine != (config.mode is ExecutionMode.SUSPENDING):
            raise ValueError(
                f"Scenario {scenario_id}: {config.mode.value} mode needs "
                f"{'a coroutine' if not is_coroutine else 'a plain'} function"
            )
        entry = ScenarioEntry(scenario_id, operation, func, config, suite)
        self._entries[scenario_id] = entry
        return entry

    def __iter__(self) -> Iterator[ScenarioEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, scenario_id: str) -> ScenarioEntry:
        try:
            return self._entries[scenario_id]
        except KeyError:
            raise ScenarioNotFoundError(f"No scenario registered as '{scenario_id}'") from None

    def fixture_for(
        self, suite: str, factory: StoreFactoryPort, workload: WorkloadSettings
    ) -> SuiteFixture:
        return self._suites[suite](factory, workload)

    def select(self, patterns: list[str] | None = None) -> list[ScenarioEntry]:
        """Entries matching any shell-style pattern, in registration order.

        Patterns match the scenario id or the description. No patterns
        selects everything.
        """
        if not patterns:
            return list(self._entries.values())
        selected = [
            entry
            for entry in self._entries.values()
            if any(
                fnmatch.fnmatchcase(entry.scenario_id, p) or fnmatch.fnmatchcase(entry.description, p)
                for p in patterns
            )
        ]
        if not selected:
            raise ScenarioNotFoundError(f"No scenario matches {', '.join(patterns)}")
        return selected

    def group_by_suite(self, entries: list[ScenarioEntry]) -> dict[str, list[ScenarioEntry]]:
        """Group entries by suite, keeping first-seen suite order."""
        groups: dict[str, list[ScenarioEntry]] = {}
        for entry in entries:
            groups.setdefault(entry.suite, []).append(entry)
        return groups


def build_registry(
    variant: Variant,
    workload: WorkloadSettings,
    core_db: int | None = None,
    load_db: int | None = None,
) -> ScenarioRegistry:
    """Register the eight standard scenarios for one client variant.

    Load scenarios are registered before sample scenarios so the sample
    lookups read keys that the load scenarios wrote.
    """
    registry = ScenarioRegistry()
    registry.register_suite("core", lambda f, w: CoreSuiteFixture(f, w, db=core_db))
    registry.register_suite("load", lambda f, w: LoadSuiteFixture(f, w, db=load_db))

    table = [
        ("incrby", "INCRBY", "core", workload.batch_size,
         scenarios.increment_batch, scenarios.increment_batch_suspending),
        ("georadius", "GEORADIUS", "core", workload.batch_size,
         scenarios.geo_radius_batch, scenarios.geo_radius_batch_suspending),
        ("load", "LOAD", "load", workload.bulk_size,
         scenarios.bulk_set_batch, scenarios.bulk_set_batch_suspending),
        ("sample", "SAMPLE", "load", workload.bulk_size,
         scenarios.random_sample_batch, scenarios.random_sample_batch_suspending),
    ]
    for name, operation, suite, ops, blocking_func, suspending_func in table:
        for mode, func in (
            (ExecutionMode.BLOCKING, blocking_func),
            (ExecutionMode.SUSPENDING, suspending_func),
        ):
            registry.register(
                f"{name}.{mode.value}",
                operation,
                func,
                ScenarioConfig(operations_per_invocation=ops, variant=variant, mode=mode),
                suite,
            )
    return registry
