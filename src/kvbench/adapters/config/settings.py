# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Configuration management using Pydantic Settings."""

from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kvbench.domain.value_objects import Diagnoser, HostConfig, StatisticColumn, Variant
from kvbench.domain.workloads import BULK_COUNT, INCREMENT_COUNT, INCREMENT_SEED

StatisticName = Literal["ops_per_second", "mean", "min", "max"]


class StoreSettings(BaseSettings):
    """Store connection configuration.

    Both suites share one server; each selects its own logical database.
    """

    model_config = SettingsConfigDict(
        env_prefix="KVBENCH_STORE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(
        default="127.0.0.1",
        description="Store server address",
    )

    port: int = Field(
        default=6379,
        ge=1,
        le=65535,
        description="Store server port",
    )

    password: SecretStr = Field(
        default=SecretStr(""),
        description="Optional AUTH password",
    )

    core_db: int = Field(
        default=3,
        ge=0,
        le=15,
        description="Logical database for the counter and geo scenarios",
    )

    load_db: int = Field(
        default=0,
        ge=0,
        le=15,
        description="Logical database for the bulk-load and sample scenarios",
    )

    socket_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-command socket timeout in seconds (None = client default)",
    )

    socket_connect_timeout: float | None = Field(
        default=5.0,
        gt=0,
        description="Connect timeout in seconds",
    )

    flush_threshold: int = Field(
        default=1024,
        ge=1,
        le=1_000_000,
        description="Queued fire-and-forget commands that force a pipeline flush",
    )


class WorkloadSettings(BaseSettings):
    """Workload sizes and key names. Defaults are the reference values."""

    model_config = SettingsConfigDict(
        env_prefix="KVBENCH_WORKLOAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    batch_size: int = Field(
        default=INCREMENT_COUNT,
        ge=1,
        description="Logical operations per counter/geo invocation",
    )

    seed: int = Field(
        default=INCREMENT_SEED,
        description="Seed of the increment delta sequence",
    )

    bulk_size: int = Field(
        default=BULK_COUNT,
        ge=2,
        description="Keys written by the load scenario and looked up by the sample scenario",
    )

    counter_key: str = Field(default="counter", min_length=1)

    geo_key: str = Field(default="GeoTest", min_length=1)


class HostSettings(BaseSettings):
    """Measurement host and reporting configuration."""

    model_config = SettingsConfigDict(
        env_prefix="KVBENCH_HOST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    variant: Variant = Field(
        default=Variant.CANDIDATE,
        description="Client variant label used in reports (baseline or candidate)",
    )

    warmup_iterations: int = Field(default=1, ge=0, le=100)

    iterations: int = Field(default=5, ge=1, le=1000)

    force_gc: bool = Field(
        default=True,
        description="Run a full garbage collection before each measured invocation",
    )

    in_process: bool = Field(
        default=True,
        description="Measure in this interpreter (False = one child process per suite)",
    )

    memory_diagnoser: bool = Field(
        default=True,
        description="Trace allocations of one extra invocation per scenario",
    )

    statistic_columns: list[StatisticName] = Field(
        default_factory=lambda: ["ops_per_second", "mean"],
        description="Columns shown in the summary table",
    )

    fail_on_missed_optimizations: bool = Field(
        default=True,
        description="Refuse to measure under a tracer, dev mode or asyncio debug",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    json_logs: bool = Field(
        default=False,
        description="Render logs as JSON instead of console output",
    )

    @field_validator("statistic_columns")
    @classmethod
    def validate_statistic_columns(cls, v: list[str]) -> list[str]:
        """Reject an empty column list."""
        if not v:
            raise ValueError("statistic_columns must name at least one column")
        return v

    def to_host_config(self) -> HostConfig:
        """Build the plain HostConfig value passed to the measurement host."""
        return HostConfig(
            force_garbage_collection=self.force_gc,
            in_process_execution=self.in_process,
            diagnosers=frozenset({Diagnoser.MEMORY}) if self.memory_diagnoser else frozenset(),
            statistic_columns=frozenset(StatisticColumn(c) for c in self.statistic_columns),
            fail_on_missed_optimizations=self.fail_on_missed_optimizations,
            warmup_iterations=self.warmup_iterations,
            iterations=self.iterations,
        )


class Settings(BaseSettings):
    """Root settings container.

    Aggregates all subsettings into a single object.

    Example:
        >>> settings = Settings()
        >>> settings.store.core_db
        3
        >>> settings.workload.batch_size
        500
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    store: StoreSettings = Field(default_factory=StoreSettings)
    workload: WorkloadSettings = Field(default_factory=WorkloadSettings)
    host: HostSettings = Field(default_factory=HostSettings)


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings singleton.

    Loads configuration from environment variables and .env file.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings (for testing).

    Forces reload of configuration from environment.
    """
    global _settings
    _settings = Settings()
    return _settings
