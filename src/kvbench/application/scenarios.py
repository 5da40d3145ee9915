# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Scenario entry points: one blocking and one suspending function per workload.

Each pair issues the same store calls in the same order and returns the
same value for deterministic workloads. The suspending functions await
every call before issuing the next; nothing is gathered, scheduled as a
task or pipelined beyond what fire-and-forget already allows.
"""

from kvbench.application.fixtures import ScenarioContext
from kvbench.domain.oracle import check_exact, check_round_trip
from kvbench.domain.workloads import bulk_load_pairs, increment_deltas, sample_indices


def increment_batch(ctx: ScenarioContext) -> int:
    """Reset the counter, INCRBY every delta fire-and-forget, read it back."""
    store = ctx.blocking
    store.delete(ctx.counter_key, fire_and_forget=True)
    expected = 0
    for delta in increment_deltas(ctx.workload.batch_size, ctx.workload.seed):
        expected += delta
        store.increment(ctx.counter_key, delta, fire_and_forget=True)
    actual = store.get_string(ctx.counter_key)
    return check_exact(expected, actual, subject=ctx.counter_key)


async def increment_batch_suspending(ctx: ScenarioContext) -> int:
    store = ctx.suspending
    await store.delete(ctx.counter_key, fire_and_forget=True)
    expected = 0
    for delta in increment_deltas(ctx.workload.batch_size, ctx.workload.seed):
        expected += delta
        await store.increment(ctx.counter_key, delta, fire_and_forget=True)
    actual = await store.get_string(ctx.counter_key)
    return check_exact(expected, actual, subject=ctx.counter_key)


def geo_radius_batch(ctx: ScenarioContext) -> int:
    """Run the fixed radius query once per operation; total match count."""
    store, query = ctx.blocking, ctx.geo_query
    total = 0
    for _ in range(ctx.workload.batch_size):
        results = store.geo_radius(
            ctx.geo_key, query.longitude, query.latitude, query.radius, query.unit, query.options
        )
        total += ctx.geo_oracle.observe(len(results))
    return total


async def geo_radius_batch_suspending(ctx: ScenarioContext) -> int:
    store, query = ctx.suspending, ctx.geo_query
    total = 0
    for _ in range(ctx.workload.batch_size):
        results = await store.geo_radius(
            ctx.geo_key, query.longitude, query.latitude, query.radius, query.unit, query.options
        )
        total += ctx.geo_oracle.observe(len(results))
    return total


def bulk_set_batch(ctx: ScenarioContext) -> int:
    """SET every key ``k`` to ``k``; returns the number of writes."""
    store = ctx.blocking
    written = 0
    for key, value in bulk_load_pairs(ctx.workload.bulk_size):
        store.set_string(key, value)
        written += 1
    return written


async def bulk_set_batch_suspending(ctx: ScenarioContext) -> int:
    store = ctx.suspending
    written = 0
    for key, value in bulk_load_pairs(ctx.workload.bulk_size):
        await store.set_string(key, value)
        written += 1
    return written


def random_sample_batch(ctx: ScenarioContext) -> int:
    """GET randomly chosen loaded keys; each must read back as its own index."""
    store = ctx.blocking
    reads = 0
    for index in sample_indices(ctx.workload.bulk_size):
        check_round_trip(index, store.get_string(str(index)))
        reads += 1
    return reads


async def random_sample_batch_suspending(ctx: ScenarioContext) -> int:
    store = ctx.suspending
    reads = 0
    for index in sample_indices(ctx.workload.bulk_size):
        check_round_trip(index, await store.get_string(str(index)))
        reads += 1
    return reads
