"""Integration test configuration.

Integration tests talk to a real Valkey/Redis server configured through the
usual KVBENCH_STORE_* variables. They are skipped unless
KVBENCH_INTEGRATION=1, and they only touch the databases named in the store
settings.
"""

import os

import pytest

from kvbench.adapters.config.settings import StoreSettings, WorkloadSettings
from kvbench.adapters.outbound.valkey_store_adapter import ValkeyStoreFactory


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.environ.get("KVBENCH_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set KVBENCH_INTEGRATION=1 to run against a live server")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def store_settings() -> StoreSettings:
    return StoreSettings()


@pytest.fixture
def live_factory(store_settings: StoreSettings) -> ValkeyStoreFactory:
    return ValkeyStoreFactory(store_settings)


@pytest.fixture
def live_workload() -> WorkloadSettings:
    return WorkloadSettings(batch_size=100, bulk_size=1000)
