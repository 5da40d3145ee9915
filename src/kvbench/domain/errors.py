"""Domain exception hierarchy.

All benchmark errors inherit from BenchError.
This allows clean exception handling at adapter and CLI boundaries.
"""

from typing import Any


class BenchError(Exception):
    """Base exception for all benchmark errors."""


class StoreError(BenchError):
    """Store client operation failed (server error reply, protocol error)."""


class StoreConnectionError(StoreError):
    """Store could not be reached or timed out (fatal for the whole run)."""


class CorrectnessError(BenchError):
    """Observed store result differs from the expected result.

    Fatal for the current invocation and never retried: the measurement
    is recorded as a failed run rather than a timing sample.
    """

    def __init__(self, message: str, expected: Any = None, actual: Any = None) -> None:
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class HostConfigurationError(BenchError):
    """Measurement host refused to run (invalid config, missed optimizations)."""


class ScenarioNotFoundError(BenchError):
    """Requested scenario id or pattern is not registered."""
