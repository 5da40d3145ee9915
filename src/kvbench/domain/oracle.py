# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""Correctness oracle.

Compares what the store returned with what the workload says it must
return. Any mismatch raises CorrectnessError immediately. Nothing here
retries.

Three policies:
    check_exact:        final counter value equals the accumulated sum
    check_round_trip:   value read back for key k is the integer k
    CardinalityOracle:  every radius query returns the same number of matches
"""

from typing import Any

from kvbench.domain.errors import CorrectnessError


def as_int(value: Any) -> int | None:
    """Interpret a store reply as an integer (replies may arrive as text).

    Returns None for a missing value or a reply that is not an integer.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="replace")
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def check_exact(expected: int, actual: Any, subject: str = "value") -> int:
    """Exact integer equality. Returns the observed integer."""
    observed = as_int(actual)
    if observed is None or observed != expected:
        raise CorrectnessError(
            f"{subject}: expected: {expected}, actual: {actual!r}",
            expected=expected,
            actual=actual,
        )
    return observed


def check_round_trip(key: int, actual: Any) -> int:
    """Value stored under key ``k`` must read back as the integer ``k``."""
    observed = as_int(actual)
    if observed is None or observed != key:
        raise CorrectnessError(
            f"Unexpected {actual!r}, expected {key}",
            expected=key,
            actual=actual,
        )
    return observed


class CardinalityOracle:
    """Result-set size must stay the same for every run of one query.

    There is no independently computed expectation for a radius query; the
    first observation becomes the reference and every later one (from either
    execution mode) must match it.
    """

    def __init__(self, subject: str = "result count") -> None:
        self.subject = subject
        self._reference: int | None = None

    @property
    def reference(self) -> int | None:
        return self._reference

    def observe(self, count: int) -> int:
        if self._reference is None:
            self._reference = count
        elif count != self._reference:
            raise CorrectnessError(
                f"{self.subject}: expected: {self._reference}, actual: {count}",
                expected=self._reference,
                actual=count,
            )
        return count

    def reset(self) -> None:
        self._reference = None
