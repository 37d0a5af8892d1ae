# src/greenplace/providers/custom_api_provider.py
import logging
from datetime import datetime
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..core.config import config
from ..core.exceptions import InvalidProviderResponse
from ..models.carbon import CarbonForecast, CarbonSample, ForecastPoint
from ..utils.http_client import get_async_http_client
from .base_provider import HttpProvider

logger = logging.getLogger(__name__)


class _IntensityPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    region: str
    carbon_intensity: float = Field(..., ge=0)
    renewable_percentage: float = Field(..., ge=0, le=100)
    timestamp: datetime


class _ForecastPointPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timestamp: datetime
    carbon_intensity: float = Field(..., ge=0)


class _ForecastPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    region: str
    generated_at: datetime
    points: List[_ForecastPointPayload] = Field(..., min_length=1)


class CustomApiProvider(HttpProvider):
    """
    Provider for an enterprise carbon API keyed directly on canonical regions:

    - GET {base}/v1/intensity/{region}
    - GET {base}/v1/forecast/{region}
    """

    name = "custom_api"

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        token = token if token is not None else config.CUSTOM_API_TOKEN
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        super().__init__(
            client
            or get_async_http_client(
                base_url=base_url or config.CUSTOM_API_URL or "",
                headers=headers,
                verify=config.CUSTOM_API_VERIFY_CERTS,
            )
        )

    def _check_region(self, region: str, payload_region: str) -> None:
        if payload_region != region:
            raise InvalidProviderResponse(self.name, f"asked for region '{region}', got '{payload_region}'")

    async def fetch_current(self, region: str) -> CarbonSample:
        logger.debug("Fetching current intensity for %s from custom API", region)
        payload = self._validate(_IntensityPayload, await self._get_json(f"/v1/intensity/{region}"))
        self._check_region(region, payload.region)
        return CarbonSample(
            region=region,
            intensity=payload.carbon_intensity,
            renewable_percentage=payload.renewable_percentage,
            observed_at=payload.timestamp,
            source=self.name,
        )

    async def fetch_forecast(self, region: str) -> CarbonForecast:
        logger.debug("Fetching forecast for %s from custom API", region)
        payload = self._validate(_ForecastPayload, await self._get_json(f"/v1/forecast/{region}"))
        self._check_region(region, payload.region)
        return CarbonForecast(
            region=region,
            points=[ForecastPoint(timestamp=p.timestamp, intensity=p.carbon_intensity) for p in payload.points],
            generated_at=payload.generated_at,
            source=self.name,
        )
