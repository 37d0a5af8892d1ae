# src/greenplace/providers/electricity_maps_provider.py
import asyncio
import logging
from datetime import datetime
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import config
from ..core.exceptions import ProviderUnreachable, UnsupportedRegion
from ..core.region_directory import RegionDirectory
from ..models.carbon import CarbonForecast, CarbonSample, ForecastPoint
from ..utils.date_utils import utcnow
from ..utils.http_client import get_async_http_client
from .base_provider import HttpProvider

logger = logging.getLogger(__name__)


class _LatestIntensity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    zone: str
    carbon_intensity: float = Field(..., alias="carbonIntensity", ge=0)
    measured_at: datetime = Field(..., alias="datetime")


class _PowerBreakdown(BaseModel):
    model_config = ConfigDict(extra="ignore")

    zone: str
    renewable_percentage: float = Field(..., alias="renewablePercentage", ge=0, le=100)


class _ForecastEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    carbon_intensity: float = Field(..., alias="carbonIntensity", ge=0)
    timestamp: datetime = Field(..., alias="datetime")


class _Forecast(BaseModel):
    model_config = ConfigDict(extra="ignore")

    zone: str
    forecast: List[_ForecastEntry] = Field(..., min_length=1)
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class ElectricityMapsProvider(HttpProvider):
    """
    Metered provider backed by the Electricity Maps v3 API. Canonical regions
    are translated to Electricity Maps zones through the region directory.
    """

    name = "electricity_maps"

    def __init__(
        self,
        directory: RegionDirectory,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.directory = directory
        self.api_token = token if token is not None else config.ELECTRICITY_MAPS_TOKEN
        if not self.api_token:
            logger.warning("ELECTRICITY_MAPS_TOKEN is not set in the environment. Requests will fail over.")
        headers = {"auth-token": self.api_token} if self.api_token else {}
        super().__init__(
            client
            or get_async_http_client(base_url=base_url or config.ELECTRICITY_MAPS_API_URL, headers=headers)
        )

    def _zone(self, region: str) -> str:
        if not self.api_token:
            raise ProviderUnreachable(self.name, "no API token configured")
        zone = self.directory.zone_for(region)
        if not zone:
            raise UnsupportedRegion(self.name, f"no Electricity Maps zone for region '{region}'")
        return zone

    async def fetch_current(self, region: str) -> CarbonSample:
        zone = self._zone(region)
        logger.info(f"Fetching latest carbon intensity for region {region} (zone {zone})...")
        requests = [
            asyncio.create_task(self._get_json("/carbon-intensity/latest", params={"zone": zone})),
            asyncio.create_task(self._get_json("/power-breakdown/latest", params={"zone": zone})),
        ]
        try:
            intensity_payload, breakdown_payload = await asyncio.gather(*requests)
        except BaseException:
            # A failed request abandons its sibling.
            for request in requests:
                request.cancel()
            raise
        latest = self._validate(_LatestIntensity, intensity_payload)
        breakdown = self._validate(_PowerBreakdown, breakdown_payload)

        return CarbonSample(
            region=region,
            intensity=latest.carbon_intensity,
            renewable_percentage=breakdown.renewable_percentage,
            observed_at=latest.measured_at,
            source=self.name,
        )

    async def fetch_forecast(self, region: str) -> CarbonForecast:
        zone = self._zone(region)
        logger.info(f"Fetching carbon intensity forecast for region {region} (zone {zone})...")
        payload = self._validate(_Forecast, await self._get_json("/carbon-intensity/forecast", params={"zone": zone}))

        return CarbonForecast(
            region=region,
            points=[ForecastPoint(timestamp=e.timestamp, intensity=e.carbon_intensity) for e in payload.forecast],
            generated_at=payload.updated_at or utcnow(),
            source=self.name,
        )
