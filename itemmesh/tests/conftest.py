"""Shared fixtures."""

import pytest

from itemmesh.context import StoreContext
from itemmesh.core.config import ItemMeshConfig
from itemmesh.items.registry import RecastRegistry
from itemmesh.observability.metrics import MetricsCollector
from itemmesh.tests.fakes import FakeExecutor, FaultyCache, GasGiant, Planet


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def cache():
    return FaultyCache()


@pytest.fixture
def registry():
    registry = RecastRegistry()
    registry.register(Planet, "gas_giant", GasGiant)
    return registry


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def context(executor, cache, registry, metrics):
    return StoreContext(executor, cache=cache, registry=registry, config=ItemMeshConfig(), metrics=metrics)
