# tests/conftest.py

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from greenplace.core.exceptions import ProviderError
from greenplace.models.carbon import CarbonForecast, CarbonSample, ForecastPoint
from greenplace.providers.base_provider import BaseProvider

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock injected wherever the engine reads the time."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class ScriptedProvider(BaseProvider):
    """
    Provider whose answers are set per region by the test. A value may be a
    number (intensity), a ProviderError instance to raise, or a callable
    returning either. `delay` makes every call sleep first and `gate`, when
    set, makes every call wait on the event.
    """

    def __init__(self, name="scripted", intensities=None, clock=None, delay=0.0):
        self.name = name
        self.intensities = dict(intensities or {})
        self.clock = clock or FakeClock()
        self.delay = delay
        self.gate = None
        self.current_calls = []
        self.forecast_calls = []
        self.closed = False

    def _answer(self, region):
        value = self.intensities.get(region)
        if callable(value):
            value = value()
        if isinstance(value, ProviderError):
            raise value
        if value is None:
            raise ProviderError(self.name, f"nothing scripted for {region}")
        return float(value)

    async def _wait(self):
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)

    async def fetch_current(self, region):
        self.current_calls.append(region)
        await self._wait()
        intensity = self._answer(region)
        return CarbonSample(
            region=region,
            intensity=intensity,
            renewable_percentage=50.0,
            observed_at=self.clock(),
            source=self.name,
        )

    async def fetch_forecast(self, region):
        self.forecast_calls.append(region)
        await self._wait()
        intensity = self._answer(region)
        now = self.clock()
        points = [ForecastPoint(timestamp=now + timedelta(hours=h + 1), intensity=intensity) for h in range(24)]
        return CarbonForecast(region=region, points=points, generated_at=now, source=self.name)

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def mock_settings_env_vars(monkeypatch):
    """
    Pytest fixture to mock environment variables for the config module.

    This fixture runs automatically for every test (`autouse=True`) so the
    configuration is predictable and isolated from the actual environment.
    """
    monkeypatch.setenv("CARBON_PROVIDERS", "mock")
    monkeypatch.setenv("CURRENT_TTL_SECONDS", "300")
    monkeypatch.setenv("FORECAST_TTL_SECONDS", "86400")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scripted_provider(clock):
    """Factory for scripted providers sharing the test clock."""

    def _make(name="scripted", intensities=None, delay=0.0):
        return ScriptedProvider(name=name, intensities=intensities, clock=clock, delay=delay)

    return _make


@pytest.fixture
def sample_at():
    """Factory building a CarbonSample for a region at a given time."""

    def _make(region, intensity, observed_at, source="scripted"):
        return CarbonSample(
            region=region,
            intensity=intensity,
            renewable_percentage=40.0,
            observed_at=observed_at,
            source=source,
        )

    return _make
