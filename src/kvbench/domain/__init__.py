"""Domain layer for the benchmark engine.

This package contains pure logic with zero external dependencies.
All domain code uses only Python stdlib (random, dataclasses, enum).

Modules:
    value_objects: Immutable value objects (GeoPoint, GeoQuery, ScenarioConfig)
    workloads: Deterministic and sampled operation sequences
    oracle: Correctness checks gating every measurement
    errors: Domain exception hierarchy
"""
