# src/greenplace/api/dependencies.py
"""
FastAPI dependency injection functions.

These functions provide the engine's components to API route handlers via
FastAPI's Depends() mechanism, so tests can swap them with
`app.dependency_overrides`.
"""

import logging

from greenplace.core.aggregator import SustainabilityAggregator
from greenplace.core.cache import CarbonDataCache
from greenplace.core.region_directory import RegionDirectory

logger = logging.getLogger(__name__)


async def get_cache() -> CarbonDataCache:
    """Provides the CarbonDataCache instance via the factory."""
    from greenplace.core.factory import get_cache as factory_get_cache

    return factory_get_cache()


async def get_directory() -> RegionDirectory:
    from greenplace.core.factory import get_directory as factory_get_directory

    return factory_get_directory()


async def get_aggregator() -> SustainabilityAggregator:
    from greenplace.core.factory import get_aggregator as factory_get_aggregator

    return factory_get_aggregator()
