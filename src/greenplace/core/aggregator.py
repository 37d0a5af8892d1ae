# src/greenplace/core/aggregator.py
"""
Builds the sustainability snapshot served to the dashboard.

A snapshot is computed from a point-in-time copy of the cache and published
with a single reference swap, so readers only ever see a complete snapshot:
the previous one until the new one is fully built.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from ..exporters.base_exporter import BaseSink
from ..models.carbon import CacheEntry, Confidence
from ..models.metrics import (
    ForecastView,
    NodeFootprint,
    RegionMetric,
    SnapshotTotals,
    SustainabilitySnapshot,
)
from ..models.node import NodeUsage
from ..utils.date_utils import utcnow
from .cache import CarbonDataCache, current_confidence, forecast_confidence
from .config import config
from .exceptions import UnknownTopology
from .region_directory import RegionDirectory
from .telemetry import snapshot_rebuilds

logger = logging.getLogger(__name__)


def _region_metrics(regions: Iterable[str], entries: Dict[str, CacheEntry], now: datetime) -> List[RegionMetric]:
    """
    Rank regions ascending by intensity, ties broken by region id. Regions
    without data come last, unranked.
    """
    with_data = []
    without_data = []
    for region in sorted(set(regions)):
        entry = entries.get(region)
        confidence = current_confidence(entry, now)
        if confidence is Confidence.UNAVAILABLE:
            without_data.append(RegionMetric(region=region, confidence=confidence))
        else:
            with_data.append((entry.sample, confidence))

    with_data.sort(key=lambda item: (item[0].intensity, item[0].region))
    ranked = [
        RegionMetric(
            region=sample.region,
            intensity=sample.intensity,
            renewable_percentage=sample.renewable_percentage,
            confidence=confidence,
            rank=rank,
            observed_at=sample.observed_at,
            source=sample.source,
        )
        for rank, (sample, confidence) in enumerate(with_data, start=1)
    ]
    return ranked + without_data


def _forecast_view(region: str, entry: Optional[CacheEntry], now: datetime) -> ForecastView:
    confidence = forecast_confidence(entry, now)
    if confidence is Confidence.UNAVAILABLE:
        return ForecastView(region=region)
    forecast = entry.forecast
    return ForecastView(
        region=region,
        points=list(forecast.points),
        generated_at=forecast.generated_at,
        source=forecast.source,
        stale=confidence is Confidence.STALE,
        available=True,
    )


class SustainabilityAggregator:
    """Combines cache state, known regions and node usage into snapshots."""

    def __init__(
        self,
        cache: CarbonDataCache,
        directory: RegionDirectory,
        baseline_kwh: Optional[float] = None,
        sink: Optional[BaseSink] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.cache = cache
        self.directory = directory
        self.baseline_kwh = baseline_kwh if baseline_kwh is not None else config.NODE_BASELINE_KWH
        self.sink = sink
        self.clock = clock
        self._snapshot = SustainabilitySnapshot(generated_at=clock())

    def latest(self) -> SustainabilitySnapshot:
        """The last fully built snapshot."""
        return self._snapshot

    def build_snapshot(self, known_regions: Iterable[str], nodes: Sequence[NodeUsage]) -> SustainabilitySnapshot:
        """
        Build a snapshot from a copy of the cache. Read-only: no refresh is
        triggered and nothing waits on a provider.
        """
        now = self.clock()
        entries = self.cache.snapshot()
        regions = sorted(set(known_regions))

        region_metrics = _region_metrics(regions, entries, now)
        footprints = [self._footprint(node, entries, now) for node in nodes]
        forecasts = [_forecast_view(region, entries.get(region), now) for region in regions]

        known = [f for f in footprints if f.status == "known"]
        with_data = [m for m in region_metrics if m.rank is not None]
        totals = SnapshotTotals(
            total_co2e_grams=sum(f.co2e_grams for f in known),
            known_node_count=len(known),
            unknown_node_count=len(footprints) - len(known),
            region_count=len(region_metrics),
            regions_with_data=len(with_data),
            average_intensity=(sum(m.intensity for m in with_data) / len(with_data)) if with_data else None,
            greenest_region=with_data[0].region if with_data else None,
        )

        return SustainabilitySnapshot(
            generated_at=now,
            regions=region_metrics,
            nodes=footprints,
            forecasts=forecasts,
            totals=totals,
        )

    async def rebuild(
        self, known_regions: Optional[Iterable[str]] = None, nodes: Sequence[NodeUsage] = ()
    ) -> SustainabilitySnapshot:
        """
        Build and publish a new snapshot, then hand it to the sink.

        When `known_regions` is omitted, the regions of the given nodes plus
        every cached region the directory knows are reported.
        """
        if known_regions is None:
            known_regions = self.cached_directory_regions() | self._node_regions(nodes)
        snapshot = self.build_snapshot(known_regions, nodes)
        self._snapshot = snapshot
        snapshot_rebuilds.add(1)
        logger.info(
            "Published sustainability snapshot: %d region(s), %d node(s), %.1f gCO2e",
            snapshot.totals.region_count,
            len(snapshot.nodes),
            snapshot.totals.total_co2e_grams,
        )

        if self.sink is not None:
            try:
                await self.sink.write(snapshot)
            except Exception as e:
                logger.error(f"Failed to write snapshot to footprint sink: {e}", exc_info=True)
        return snapshot

    def cached_directory_regions(self) -> set:
        """Cached regions that the directory also knows."""
        return {region for region in self.cache.snapshot() if region in self.directory}

    def forecast_view(self, region: str) -> ForecastView:
        """Live read-only forecast view for one region."""
        return _forecast_view(region, self.cache.snapshot().get(region), self.clock())

    def _node_regions(self, nodes: Sequence[NodeUsage]) -> set:
        regions = set()
        for node in nodes:
            try:
                regions.add(self.directory.resolve(node.labels))
            except UnknownTopology:
                continue
        return regions

    def _footprint(self, node: NodeUsage, entries: Dict[str, CacheEntry], now: datetime) -> NodeFootprint:
        energy = node.energy_kwh if node.energy_kwh is not None else self.baseline_kwh
        try:
            region = self.directory.resolve(node.labels)
        except UnknownTopology as e:
            logger.debug("Node '%s' has unknown topology: %s", node.name, e.reason)
            return NodeFootprint(node=node.name, status="unknown", energy_kwh=energy, reason=e.reason)

        entry = entries.get(region)
        confidence = current_confidence(entry, now)
        if confidence is Confidence.UNAVAILABLE:
            return NodeFootprint(
                node=node.name,
                region=region,
                status="unknown",
                energy_kwh=energy,
                reason="no carbon data for region",
            )

        intensity = entry.sample.intensity
        return NodeFootprint(
            node=node.name,
            region=region,
            status="known",
            energy_kwh=energy,
            intensity=intensity,
            co2e_grams=energy * intensity,
            confidence=confidence,
        )
