# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Domain value objects (immutable data structures)."""

from dataclasses import dataclass
from enum import Enum, Flag, auto


class ExecutionMode(Enum):
    """Calling style a scenario uses against the store.

    BLOCKING:   each store call returns its result before the next is issued.
    SUSPENDING: each store call is awaited before the next is issued.
                Same order and results as BLOCKING, only timing differs.
    """

    BLOCKING = "blocking"
    SUSPENDING = "suspending"

    @property
    def suffix(self) -> str:
        """Short label used in scenario descriptions ("s" or "a")."""
        return "s" if self is ExecutionMode.BLOCKING else "a"


class Variant(Enum):
    """Client variant under test. Used for reporting labels only."""

    BASELINE = "baseline"
    CANDIDATE = "candidate"

    @property
    def label(self) -> str:
        return "v1" if self is Variant.BASELINE else "v2"


class GeoUnit(Enum):
    """Distance units accepted by GEORADIUS."""

    METERS = "m"
    KILOMETERS = "km"
    MILES = "mi"
    FEET = "ft"


class GeoRadiusOptions(Flag):
    """Extra fields requested for each GEORADIUS match."""

    NONE = 0
    WITH_COORDINATES = auto()
    WITH_DISTANCE = auto()
    WITH_GEOHASH = auto()


@dataclass(frozen=True)
class GeoPoint:
    """A named member of a geo set."""

    member: str
    longitude: float
    latitude: float

    def __post_init__(self) -> None:
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude must be in [-180, 180], got {self.longitude}")
        if not -85.05112878 <= self.latitude <= 85.05112878:
            raise ValueError(f"latitude must be in [-85.05112878, 85.05112878], got {self.latitude}")


@dataclass(frozen=True)
class GeoQuery:
    """Fixed parameters of a radius query."""

    longitude: float
    latitude: float
    radius: float
    unit: GeoUnit = GeoUnit.KILOMETERS
    options: GeoRadiusOptions = GeoRadiusOptions.NONE


@dataclass(frozen=True)
class GeoRadiusResult:
    """One GEORADIUS match. Optional fields are set only when requested."""

    member: str
    distance: float | None = None
    geohash: int | None = None
    longitude: float | None = None
    latitude: float | None = None


@dataclass(frozen=True)
class ScenarioConfig:
    """Measurement configuration attached to a registered scenario.

    Attributes:
        operations_per_invocation: Logical operations one invocation performs;
            the host divides by it to report per-operation throughput.
        variant: Client variant label (never changes behavior).
        mode: Blocking or suspending calling style.
    """

    operations_per_invocation: int
    variant: Variant
    mode: ExecutionMode

    def __post_init__(self) -> None:
        if self.operations_per_invocation <= 0:
            raise ValueError(
                f"operations_per_invocation must be > 0, got {self.operations_per_invocation}"
            )

    def describe(self, operation: str) -> str:
        """Human-readable label, e.g. ``INCRBY:v1/s``."""
        return f"{operation}:{self.variant.label}/{self.mode.suffix}"


class Diagnoser(Enum):
    """Optional extra measurements taken by the host."""

    MEMORY = "memory"


class StatisticColumn(Enum):
    """Summary columns the host can report."""

    OPERATIONS_PER_SECOND = "ops_per_second"
    MEAN = "mean"
    MIN = "min"
    MAX = "max"


@dataclass(frozen=True)
class HostConfig:
    """Options recognized by the measurement host.

    Passed explicitly to MeasurementHost; there is no config inheritance.

    Attributes:
        force_garbage_collection: Full collection before each measured invocation.
        in_process_execution: Measure in this interpreter; otherwise spawn
            one child interpreter per suite.
        diagnosers: Extra measurements (memory = one traced invocation).
        statistic_columns: Columns shown in the summary.
        fail_on_missed_optimizations: Refuse to measure under a tracer,
            development mode or asyncio debug mode.
        warmup_iterations: Unmeasured invocations before sampling.
        iterations: Measured invocations per scenario.
    """

    force_garbage_collection: bool = True
    in_process_execution: bool = True
    diagnosers: frozenset[Diagnoser] = frozenset({Diagnoser.MEMORY})
    statistic_columns: frozenset[StatisticColumn] = frozenset(
        {StatisticColumn.OPERATIONS_PER_SECOND, StatisticColumn.MEAN}
    )
    fail_on_missed_optimizations: bool = True
    warmup_iterations: int = 1
    iterations: int = 5

    def __post_init__(self) -> None:
        if self.warmup_iterations < 0:
            raise ValueError(f"warmup_iterations must be >= 0, got {self.warmup_iterations}")
        if self.iterations <= 0:
            raise ValueError(f"iterations must be > 0, got {self.iterations}")
        if not self.statistic_columns:
            raise ValueError("statistic_columns must not be empty")

    @property
    def ordered_columns(self) -> list[str]:
        """Selected column names in display order."""
        return [c.value for c in StatisticColumn if c in self.statistic_columns]
