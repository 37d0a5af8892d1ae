# src/greenplace/core/factory.py
"""
Factory functions to instantiate the engine's core components: the region
directory, the provider chain and cache, the scorer and the aggregator.
"""

import logging
from functools import lru_cache
from typing import List, Optional, Sequence

from ..collectors.node_collector import NodeCollector
from ..exporters.json_exporter import JSONLinesSink
from ..providers.base_provider import BaseProvider
from ..providers.custom_api_provider import CustomApiProvider
from ..providers.electricity_maps_provider import ElectricityMapsProvider
from ..providers.mock_provider import MockProvider
from .aggregator import SustainabilityAggregator
from .cache import CarbonDataCache
from .config import config
from .jobs import SustainabilityJobs
from .region_directory import RegionDirectory
from .scorer import CarbonScorer

logger = logging.getLogger(__name__)


def build_providers(directory: RegionDirectory, names: Optional[Sequence[str]] = None) -> List[BaseProvider]:
    """
    Instantiate providers in priority order.

    The Electricity Maps provider is skipped when no token is configured.
    If nothing usable remains, the mock provider is used so the engine
    still produces deterministic data.
    """
    providers: List[BaseProvider] = []
    for name in names if names is not None else config.CARBON_PROVIDERS:
        if name == "electricity_maps":
            if not config.ELECTRICITY_MAPS_TOKEN:
                logger.warning("Skipping the electricity_maps provider: ELECTRICITY_MAPS_TOKEN is not set.")
                continue
            providers.append(ElectricityMapsProvider(directory))
        elif name == "custom_api":
            providers.append(CustomApiProvider())
        elif name == "mock":
            providers.append(MockProvider())
        else:
            raise ValueError(f"Unknown carbon data provider '{name}'")

    if not providers:
        logger.warning("No carbon data provider is usable; falling back to the mock provider.")
        providers.append(MockProvider())

    logger.info("Carbon data provider chain: %s", ", ".join(p.name for p in providers))
    return providers


@lru_cache(maxsize=1)
def get_directory() -> RegionDirectory:
    """
    Loads the region directory from the configured mapping file.
    Uses lru_cache to act as a singleton.
    """
    return RegionDirectory.from_file(config.REGION_MAPPING_FILE)


@lru_cache(maxsize=1)
def get_cache() -> CarbonDataCache:
    """The process-wide carbon data cache and provider chain."""
    return CarbonDataCache(build_providers(get_directory()))


@lru_cache(maxsize=1)
def get_scorer() -> CarbonScorer:
    return CarbonScorer(get_cache(), get_directory())


@lru_cache(maxsize=1)
def get_aggregator() -> SustainabilityAggregator:
    sink = None
    if config.FOOTPRINT_SINK_PATH:
        logger.info("Footprint sink enabled: %s", config.FOOTPRINT_SINK_PATH)
        sink = JSONLinesSink(config.FOOTPRINT_SINK_PATH)
    return SustainabilityAggregator(get_cache(), get_directory(), sink=sink)


@lru_cache(maxsize=1)
def get_jobs() -> SustainabilityJobs:
    return SustainabilityJobs(get_cache(), get_directory(), get_aggregator(), NodeCollector())


def clear_caches() -> None:
    """Forget every singleton, e.g. between tests."""
    for factory in (get_directory, get_cache, get_scorer, get_aggregator, get_jobs):
        factory.cache_clear()
