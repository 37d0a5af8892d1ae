# src/greenplace/api/routers/sustainability.py
"""
API routes for the sustainability dashboard.

Every endpoint is read-only: it serves the last published snapshot or a
peek at the cache, and never waits on a carbon data provider.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from greenplace.api.dependencies import get_aggregator, get_cache, get_directory
from greenplace.api.schemas import (
    ForecastResponse,
    ProviderHealthResponse,
    RegionDetailResponse,
    SustainabilitySummaryResponse,
    UnknownRegionResponse,
)
from greenplace.core.aggregator import SustainabilityAggregator
from greenplace.core.cache import CarbonDataCache
from greenplace.core.region_directory import RegionDirectory
from greenplace.models.metrics import NodeFootprint, RegionMetric

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sustainability")

_UNKNOWN_REGION = {status.HTTP_404_NOT_FOUND: {"model": UnknownRegionResponse}}


def _is_known(region: str, directory: RegionDirectory) -> bool:
    return region in directory


def _unknown_region(region: str) -> JSONResponse:
    body = UnknownRegionResponse(region=region, detail=f"Region '{region}' is not known to the engine.")
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body.model_dump())


@router.get("/metrics", response_model=SustainabilitySummaryResponse)
async def get_metrics(aggregator: SustainabilityAggregator = Depends(get_aggregator)):
    """Return the headline totals of the latest snapshot."""
    snapshot = aggregator.latest()
    return SustainabilitySummaryResponse(generated_at=snapshot.generated_at, totals=snapshot.totals)


@router.get("/regions", response_model=List[RegionMetric])
async def list_regions(aggregator: SustainabilityAggregator = Depends(get_aggregator)):
    """Return every known region, lowest carbon first."""
    return aggregator.latest().regions


@router.get("/regions/{region}", response_model=RegionDetailResponse, responses=_UNKNOWN_REGION)
async def get_region(
    region: str,
    aggregator: SustainabilityAggregator = Depends(get_aggregator),
    directory: RegionDirectory = Depends(get_directory),
    cache: CarbonDataCache = Depends(get_cache),
):
    """Return one region's metrics and its directory entry."""
    if not _is_known(region, directory):
        return _unknown_region(region)

    metric = aggregator.latest().region(region)
    if metric is None:
        # Not part of the last snapshot yet; report what the cache holds now.
        reading = cache.peek_current(region)
        sample = reading.sample
        metric = RegionMetric(
            region=region,
            intensity=sample.intensity if sample else None,
            renewable_percentage=sample.renewable_percentage if sample else None,
            confidence=reading.confidence,
            observed_at=sample.observed_at if sample else None,
            source=sample.source if sample else None,
        )
    return RegionDetailResponse(metric=metric, mapping=directory.describe(region))


@router.get("/forecast/{region}", response_model=ForecastResponse, responses=_UNKNOWN_REGION)
async def get_forecast(
    region: str,
    aggregator: SustainabilityAggregator = Depends(get_aggregator),
    directory: RegionDirectory = Depends(get_directory),
):
    """Return the cached forecast, flagged stale past its deadline."""
    if not _is_known(region, directory):
        return _unknown_region(region)
    view = aggregator.forecast_view(region)
    return ForecastResponse(**view.model_dump())


@router.get("/nodes", response_model=List[NodeFootprint])
async def list_nodes(aggregator: SustainabilityAggregator = Depends(get_aggregator)):
    """Return the per-node footprints of the latest snapshot."""
    return aggregator.latest().nodes


@router.get("/health", response_model=ProviderHealthResponse)
async def provider_health(cache: CarbonDataCache = Depends(get_cache)):
    """Return the health of each carbon data provider in priority order."""
    providers = cache.health()
    healthy = any(p.consecutive_failures == 0 for p in providers)
    return ProviderHealthResponse(status="ok" if healthy else "degraded", providers=providers)
