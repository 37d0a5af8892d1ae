# src/greenplace/providers/mock_provider.py
import asyncio
import hashlib
import math
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from ..models.carbon import CarbonForecast, CarbonSample, ForecastPoint
from ..utils.date_utils import utcnow
from .base_provider import BaseProvider

MIN_SYNTHETIC_INTENSITY = 50
SYNTHETIC_SPAN = 650
FORECAST_HOURS = 24


class MockProvider(BaseProvider):
    """
    Deterministic, network-free provider. Intensities come from the explicit
    `intensities` mapping when given, otherwise they are seeded from a hash of
    the region id so the same region always yields the same value.
    """

    name = "mock"

    def __init__(
        self,
        intensities: Optional[Dict[str, float]] = None,
        clock: Callable[[], datetime] = utcnow,
        latency: float = 0.0,
    ):
        self.intensities = dict(intensities or {})
        self.clock = clock
        self.latency = latency

    def intensity_for(self, region: str) -> float:
        if region in self.intensities:
            return float(self.intensities[region])
        digest = hashlib.sha256(region.encode("utf-8")).digest()
        return float(MIN_SYNTHETIC_INTENSITY + int.from_bytes(digest[:4], "big") % SYNTHETIC_SPAN)

    @staticmethod
    def renewable_for(intensity: float) -> float:
        # Cleaner grids carry a larger renewable share.
        return round(max(0.0, min(100.0, 100.0 - intensity / 8.0)), 1)

    async def fetch_current(self, region: str) -> CarbonSample:
        if self.latency:
            await asyncio.sleep(self.latency)
        intensity = self.intensity_for(region)
        return CarbonSample(
            region=region,
            intensity=intensity,
            renewable_percentage=self.renewable_for(intensity),
            observed_at=self.clock(),
            source=self.name,
        )

    async def fetch_forecast(self, region: str) -> CarbonForecast:
        if self.latency:
            await asyncio.sleep(self.latency)
        now = self.clock()
        base = self.intensity_for(region)
        start = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
        points = []
        for offset in range(FORECAST_HOURS):
            ts = start + timedelta(hours=offset)
            # Diurnal curve with its trough in the early afternoon.
            factor = 1.0 - 0.2 * math.cos(2 * math.pi * (ts.hour - 13) / 24)
            points.append(ForecastPoint(timestamp=ts, intensity=round(base * factor, 2)))
        return CarbonForecast(region=region, points=points, generated_at=now, source=self.name)
