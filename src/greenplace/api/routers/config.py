# src/greenplace/api/routers/config.py
"""
API routes for exposing non-sensitive configuration and version information.
"""

import logging

from fastapi import APIRouter

from greenplace import __version__
from greenplace.api.schemas import ConfigResponse, HealthResponse, VersionResponse
from greenplace.core.config import config

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    return HealthResponse(status="ok", version=__version__)


@router.get("/version", response_model=VersionResponse)
async def version():
    """Return the current application version."""
    return VersionResponse(version=__version__)


@router.get("/config", response_model=ConfigResponse)
async def get_config():
    """Return non-sensitive configuration values.

    Provider tokens and endpoint credentials are never exposed.
    """
    return ConfigResponse(
        carbon_providers=config.CARBON_PROVIDERS,
        current_ttl_seconds=config.CURRENT_TTL_SECONDS,
        forecast_ttl_seconds=config.FORECAST_TTL_SECONDS,
        provider_timeout_seconds=config.PROVIDER_TIMEOUT_SECONDS,
        refresh_timeout_seconds=config.REFRESH_TIMEOUT_SECONDS,
        default_intensity=config.DEFAULT_INTENSITY,
        node_baseline_kwh=config.NODE_BASELINE_KWH,
        score_max=config.SCORE_MAX,
        neutral_score=config.NEUTRAL_SCORE,
        fallback_score=config.FALLBACK_SCORE,
        snapshot_interval=config.SNAPSHOT_INTERVAL,
        cache_warm_interval=config.CACHE_WARM_INTERVAL,
        log_level=config.LOG_LEVEL,
        api_host=config.API_HOST,
        api_port=config.API_PORT,
    )
