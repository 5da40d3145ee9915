"""Unit tests for the paired blocking/suspending scenarios.

Runs every scenario against the in-memory store and checks that both
execution modes issue the same calls in the same order and return the
same values.
"""

import dataclasses

import pytest

from kvbench.application import scenarios
from kvbench.domain.errors import CorrectnessError
from kvbench.domain.value_objects import GeoRadiusOptions
from kvbench.domain.workloads import increment_deltas

pytestmark = pytest.mark.unit


def _calls_without_mode(server, since: int = 0) -> list[tuple[str, str]]:
    return [(command, key) for _, command, key in server.calls[since:]]


class TestIncrementBatch:
    def test_blocking_returns_seeded_total(self, core_ctx, workload) -> None:
        expected = sum(increment_deltas(workload.batch_size, workload.seed))
        assert scenarios.increment_batch(core_ctx) == expected

    def test_suspending_returns_seeded_total(self, core_ctx, workload) -> None:
        expected = sum(increment_deltas(workload.batch_size, workload.seed))
        assert core_ctx.runner.run(scenarios.increment_batch_suspending(core_ctx)) == expected

    def test_reference_workload_total_is_identical_in_both_modes(self, store_factory) -> None:
        from kvbench.adapters.config.settings import WorkloadSettings
        from kvbench.application.fixtures import CoreSuiteFixture

        reference = WorkloadSettings()
        with CoreSuiteFixture(store_factory, reference).session() as ctx:
            blocking = scenarios.increment_batch(ctx)
            suspending = ctx.runner.run(scenarios.increment_batch_suspending(ctx))
        assert blocking == 11756
        assert suspending == 11756

    def test_counter_is_reset_every_invocation(self, core_ctx) -> None:
        first = scenarios.increment_batch(core_ctx)
        second = scenarios.increment_batch(core_ctx)
        assert first == second

    def test_modes_issue_identical_call_sequences(self, core_ctx, server) -> None:
        start = len(server.calls)
        scenarios.increment_batch(core_ctx)
        middle = len(server.calls)
        core_ctx.runner.run(scenarios.increment_batch_suspending(core_ctx))

        blocking_calls = _calls_without_mode(server, start)[: middle - start]
        suspending_calls = _calls_without_mode(server, middle)
        assert blocking_calls == suspending_calls
        assert blocking_calls[0] == ("DEL", "counter")
        assert blocking_calls[-1] == ("GET", "counter")
        assert {mode for mode, _, _ in server.calls[middle:]} == {"suspending"}

    def test_wrong_counter_is_a_correctness_failure(self, core_ctx, server) -> None:
        server.corrupt_increments = True
        with pytest.raises(CorrectnessError) as info:
            scenarios.increment_batch(core_ctx)
        assert info.value.actual != info.value.expected

    def test_suspending_wrong_counter_is_a_correctness_failure(self, core_ctx, server) -> None:
        server.corrupt_increments = True
        with pytest.raises(CorrectnessError):
            core_ctx.runner.run(scenarios.increment_batch_suspending(core_ctx))


class TestGeoRadiusBatch:
    def test_both_seeded_points_match(self, core_ctx, workload) -> None:
        assert scenarios.geo_radius_batch(core_ctx) == 2 * workload.batch_size
        assert core_ctx.geo_oracle.reference == 2

    def test_modes_agree_on_match_count(self, core_ctx) -> None:
        blocking = scenarios.geo_radius_batch(core_ctx)
        suspending = core_ctx.runner.run(scenarios.geo_radius_batch_suspending(core_ctx))
        assert blocking == suspending

    @pytest.mark.parametrize(
        "options",
        [
            GeoRadiusOptions.NONE,
            GeoRadiusOptions.WITH_DISTANCE,
            GeoRadiusOptions.WITH_COORDINATES | GeoRadiusOptions.WITH_GEOHASH,
            GeoRadiusOptions.WITH_COORDINATES
            | GeoRadiusOptions.WITH_DISTANCE
            | GeoRadiusOptions.WITH_GEOHASH,
        ],
    )
    def test_requested_fields_do_not_change_match_count(self, core_ctx, workload, options) -> None:
        core_ctx.geo_query = dataclasses.replace(core_ctx.geo_query, options=options)
        assert scenarios.geo_radius_batch(core_ctx) == 2 * workload.batch_size
        assert core_ctx.runner.run(scenarios.geo_radius_batch_suspending(core_ctx)) == (
            2 * workload.batch_size
        )

    def test_lost_member_is_a_correctness_failure(self, core_ctx) -> None:
        scenarios.geo_radius_batch(core_ctx)
        del core_ctx.blocking.data[core_ctx.geo_key]["Palermo"]
        with pytest.raises(CorrectnessError):
            core_ctx.runner.run(scenarios.geo_radius_batch_suspending(core_ctx))


class TestBulkSetBatch:
    def test_every_key_reads_back_as_itself(self, load_ctx, workload) -> None:
        assert scenarios.bulk_set_batch(load_ctx) == workload.bulk_size
        for k in range(workload.bulk_size):
            assert load_ctx.blocking.get_string(str(k)) == str(k)

    def test_suspending_writes_the_same_keys(self, load_ctx, workload) -> None:
        written = load_ctx.runner.run(scenarios.bulk_set_batch_suspending(load_ctx))
        assert written == workload.bulk_size
        assert load_ctx.blocking.data == {str(k): str(k) for k in range(workload.bulk_size)}

    def test_writes_in_ascending_key_order(self, load_ctx, server) -> None:
        start = len(server.calls)
        scenarios.bulk_set_batch(load_ctx)
        keys = [key for _, command, key in server.calls[start:] if command == "SET"]
        assert keys == [str(k) for k in range(len(keys))]


class TestRandomSampleBatch:
    def test_round_trip_after_load(self, load_ctx, workload) -> None:
        scenarios.bulk_set_batch(load_ctx)
        assert scenarios.random_sample_batch(load_ctx) == workload.bulk_size

    def test_suspending_round_trip_after_load(self, load_ctx, workload) -> None:
        load_ctx.runner.run(scenarios.bulk_set_batch_suspending(load_ctx))
        assert load_ctx.runner.run(scenarios.random_sample_batch_suspending(load_ctx)) == (
            workload.bulk_size
        )

    def test_missing_keys_fail_round_trip(self, load_ctx) -> None:
        with pytest.raises(CorrectnessError, match="Unexpected None"):
            scenarios.random_sample_batch(load_ctx)

    def test_tampered_value_fails_round_trip(self, load_ctx, workload) -> None:
        scenarios.bulk_set_batch(load_ctx)
        for k in range(workload.bulk_size):
            load_ctx.blocking.data[str(k)] = str(k + 1)
        with pytest.raises(CorrectnessError):
            load_ctx.runner.run(scenarios.random_sample_batch_suspending(load_ctx))


class TestSuspendingCoroutines:
    @pytest.mark.asyncio
    async def test_increment_can_be_awaited_directly(self, store_factory, workload, server) -> None:
        from kvbench.application.fixtures import ScenarioContext

        ctx = ScenarioContext(
            suite="core",
            blocking=store_factory.blocking(3),
            suspending=store_factory.suspending(3),
            runner=None,  # type: ignore[arg-type]
            workload=workload,
        )
        result = await scenarios.increment_batch_suspending(ctx)
        assert result == sum(increment_deltas(workload.batch_size, workload.seed))
        assert all(mode == "suspending" for mode, _, _ in server.calls)
