# src/greenplace/api/schemas.py
"""
Pydantic response schemas for the API.
Keeps API-specific response shapes separate from internal domain models.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from greenplace.models.carbon import ForecastPoint, ProviderHealth
from greenplace.models.metrics import RegionMetric, SnapshotTotals
from greenplace.models.region_mapping import RegionMapping


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str = Field(..., description="Health status of the API.")
    version: str = Field(..., description="Current application version.")


class VersionResponse(BaseModel):
    """Response schema for the version endpoint."""

    version: str = Field(..., description="Current application version.")


class ConfigResponse(BaseModel):
    """Non-sensitive configuration values."""

    carbon_providers: List[str]
    current_ttl_seconds: float
    forecast_ttl_seconds: float
    provider_timeout_seconds: float
    refresh_timeout_seconds: float
    default_intensity: float
    node_baseline_kwh: float
    score_max: float
    neutral_score: float
    fallback_score: float
    snapshot_interval: str
    cache_warm_interval: str
    log_level: str
    api_host: str
    api_port: int


class SustainabilitySummaryResponse(BaseModel):
    """Headline numbers of the latest published snapshot."""

    generated_at: datetime = Field(..., description="When the snapshot was built.")
    totals: SnapshotTotals


class RegionDetailResponse(BaseModel):
    """Carbon metrics for one region together with its directory entry."""

    metric: RegionMetric
    mapping: Optional[RegionMapping] = Field(None, description="Cloud region behind the canonical id, if mapped.")


class ForecastResponse(BaseModel):
    region: str
    points: List[ForecastPoint] = Field(default_factory=list)
    generated_at: Optional[datetime] = None
    source: Optional[str] = None
    stale: bool = Field(False, description="True once the forecast is past its freshness deadline.")
    available: bool = Field(False, description="False when no forecast has ever been cached.")


class ProviderHealthResponse(BaseModel):
    """Per-provider health in fallback priority order."""

    status: str = Field(..., description="'ok' when at least one provider is currently succeeding.")
    providers: List[ProviderHealth]


class UnknownRegionResponse(BaseModel):
    """Typed body returned with 404 for regions the engine does not know."""

    error: str = "unknown_region"
    region: str
    detail: str
