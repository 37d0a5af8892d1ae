# src/greenplace/core/jobs.py
"""
Periodic work run by the service: keeping the cache warm for every region in
use and rebuilding the dashboard snapshot.
"""

import asyncio
import logging
from typing import List, Set

from ..collectors.base_collector import BaseCollector
from ..models.metrics import SustainabilitySnapshot
from ..models.node import NodeUsage
from .aggregator import SustainabilityAggregator
from .cache import CarbonDataCache
from .exceptions import UnknownTopology
from .region_directory import RegionDirectory

logger = logging.getLogger(__name__)


class SustainabilityJobs:
    """Holds the last discovered nodes between scheduled runs."""

    def __init__(
        self,
        cache: CarbonDataCache,
        directory: RegionDirectory,
        aggregator: SustainabilityAggregator,
        node_collector: BaseCollector,
    ):
        self.cache = cache
        self.directory = directory
        self.aggregator = aggregator
        self.node_collector = node_collector
        self.nodes: List[NodeUsage] = []
        self.regions: Set[str] = set()

    async def discover_nodes(self) -> List[NodeUsage]:
        """Refresh the node list and the set of regions in use."""
        self.nodes = await self.node_collector.collect()
        regions = set()
        for node in self.nodes:
            try:
                regions.add(self.directory.resolve(node.labels))
            except UnknownTopology as e:
                logger.info("Node '%s' is outside the region directory: %s", node.name, e.reason)
        self.regions = regions
        logger.info("Discovered %d node(s) across %d region(s).", len(self.nodes), len(regions))
        return self.nodes

    async def warm_cache(self):
        """Refresh current and forecast data for every region in use."""
        await self.discover_nodes()
        regions = sorted(self.regions)
        if not regions:
            return
        results = await asyncio.gather(
            *(self.cache.refresh_current(region) for region in regions),
            *(self.cache.refresh_forecast(region) for region in regions),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        for failure in failures:
            logger.warning("Cache warm-up: %s", failure)
        logger.info("Cache warm-up done for %d region(s), %d failed refresh(es).", len(regions), len(failures))

    async def rebuild_snapshot(self) -> SustainabilitySnapshot:
        known = self.regions | self.aggregator.cached_directory_regions()
        return await self.aggregator.rebuild(known, self.nodes)
