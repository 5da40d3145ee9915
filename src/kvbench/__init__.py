# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Yakov Shkolnikov and contributors
"""kvbench: dual-mode throughput benchmarks for key-value/geo store clients.

Runs the same workloads against a Redis-protocol store in a blocking and an
asyncio (suspending) calling style, and refuses to trust a measurement unless
the store returned the expected results.

Architecture: Hexagonal (Ports & Adapters)
- Domain core: workloads, correctness oracle, value objects (stdlib only)
- Ports: Protocol-based store interfaces
- Adapters: Valkey client bindings, settings, logging
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
