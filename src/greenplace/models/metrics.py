# src/greenplace/models/metrics.py
"""
This module defines the Pydantic data models for the sustainability metrics
served to the dashboard. A SustainabilitySnapshot is built once and never
modified; the aggregator swaps whole snapshots.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .carbon import Confidence, ForecastPoint


class RegionMetric(BaseModel):
    """Carbon metrics for one canonical region at snapshot time."""

    model_config = ConfigDict(frozen=True)

    region: str = Field(..., description="Canonical region identifier.")
    intensity: Optional[float] = Field(None, description="Carbon intensity in gCO2/kWh, if known.")
    renewable_percentage: Optional[float] = Field(None, description="Renewable share, if known.")
    confidence: Confidence = Field(..., description="Freshness of the underlying sample.")
    rank: Optional[int] = Field(None, description="1 is the lowest-carbon region; None without data.")
    observed_at: Optional[datetime] = Field(None, description="When the sample was measured.")
    source: Optional[str] = Field(None, description="Provider that produced the sample.")


class NodeFootprint(BaseModel):
    """
    Estimated emissions attributed to a node. An unresolved region or missing
    carbon data yields status 'unknown' and a null footprint, never zero.
    """

    model_config = ConfigDict(frozen=True)

    node: str
    region: Optional[str] = None
    status: str = Field(..., description="'known' or 'unknown'.")
    energy_kwh: float = Field(..., description="Energy use the estimate is based on.")
    intensity: Optional[float] = None
    co2e_grams: Optional[float] = None
    confidence: Confidence = Confidence.UNAVAILABLE
    reason: Optional[str] = Field(None, description="Why the footprint is unknown.")


class ForecastView(BaseModel):
    """Cached 24-hour forecast of a region, flagged stale past its deadline."""

    model_config = ConfigDict(frozen=True)

    region: str
    points: List[ForecastPoint] = Field(default_factory=list)
    generated_at: Optional[datetime] = None
    source: Optional[str] = None
    stale: bool = False
    available: bool = False


class SnapshotTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_co2e_grams: float = 0.0
    known_node_count: int = 0
    unknown_node_count: int = 0
    region_count: int = 0
    regions_with_data: int = 0
    average_intensity: Optional[float] = None
    greenest_region: Optional[str] = None


class SustainabilitySnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    generated_at: datetime
    regions: List[RegionMetric] = Field(default_factory=list)
    nodes: List[NodeFootprint] = Field(default_factory=list)
    forecasts: List[ForecastView] = Field(default_factory=list)
    totals: SnapshotTotals = Field(default_factory=SnapshotTotals)

    def region(self, region: str) -> Optional[RegionMetric]:
        for metric in self.regions:
            if metric.region == region:
                return metric
        return None
