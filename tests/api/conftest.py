# tests/api/conftest.py
"""
Shared fixtures for API tests.
Uses FastAPI's TestClient with dependency overrides to inject an engine
backed by the deterministic mock provider and a controlled clock.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from greenplace.api.app import create_app
from greenplace.api.dependencies import get_aggregator, get_cache, get_directory
from greenplace.core.aggregator import SustainabilityAggregator
from greenplace.core.cache import CarbonDataCache
from greenplace.core.region_directory import RegionDirectory
from greenplace.models.node import NodeUsage
from greenplace.providers.mock_provider import MockProvider

WEST = "aws:us-west-2"
EAST = "aws:us-east-1"

NODES = [
    NodeUsage(
        name="db-0",
        labels={"eks.amazonaws.com/nodegroup": "ng", "topology.kubernetes.io/zone": "us-west-2a"},
        energy_kwh=1.0,
    ),
    NodeUsage(name="db-1", labels={"eks.amazonaws.com/nodegroup": "ng"}, energy_kwh=1.0),
]


@pytest.fixture
def directory():
    return RegionDirectory()


@pytest.fixture
def engine_cache(clock):
    return CarbonDataCache(
        [MockProvider(intensities={WEST: 50, EAST: 400}, clock=clock)],
        current_ttl=300,
        forecast_ttl=86400,
        provider_timeout=1.0,
        refresh_timeout=1.0,
        workers=1,
        clock=clock,
    )


@pytest.fixture
def aggregator(engine_cache, directory, clock):
    aggregator = SustainabilityAggregator(engine_cache, directory, baseline_kwh=0.2, clock=clock)

    async def warm():
        for region in (WEST, EAST):
            await engine_cache.refresh_current(region)
            await engine_cache.refresh_forecast(region)
        await aggregator.rebuild(nodes=NODES)

    asyncio.run(warm())
    return aggregator


@pytest.fixture
def client(engine_cache, directory, aggregator):
    """Creates a TestClient with dependency overrides for the engine components."""
    app = create_app()
    app.dependency_overrides[get_cache] = lambda: engine_cache
    app.dependency_overrides[get_directory] = lambda: directory
    app.dependency_overrides[get_aggregator] = lambda: aggregator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
