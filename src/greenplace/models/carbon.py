# src/greenplace/models/carbon.py
"""
Pydantic models for carbon-intensity data as it flows from the providers,
through the cache and into the scorer. Everything a provider produces is
frozen: a newer sample supersedes an older one, nothing is patched in place.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..utils.date_utils import ensure_utc


class Confidence(str, Enum):
    """How much a cached carbon value can be trusted at read time."""

    FRESH = "fresh"
    STALE = "stale"
    UNAVAILABLE = "unavailable"


class CarbonSample(BaseModel):
    """Current carbon intensity observed for a region."""

    model_config = ConfigDict(frozen=True)

    region: str = Field(..., description="Canonical region identifier, e.g. 'aws:us-west-2'.")
    intensity: float = Field(..., ge=0, description="Carbon intensity in gCO2/kWh.")
    renewable_percentage: float = Field(..., ge=0, le=100, description="Share of renewable generation.")
    observed_at: datetime = Field(..., description="When the upstream source measured the value.")
    source: str = Field(..., description="Name of the provider that produced the sample.")

    @field_validator("observed_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class ForecastPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    intensity: float = Field(..., ge=0, description="Predicted carbon intensity in gCO2/kWh.")

    @field_validator("timestamp")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class CarbonForecast(BaseModel):
    """A 24-hour intensity forecast. Replaced wholesale on refresh."""

    model_config = ConfigDict(frozen=True)

    region: str
    points: List[ForecastPoint] = Field(default_factory=list)
    generated_at: datetime
    source: str

    @field_validator("points")
    @classmethod
    def _ordered(cls, v: List[ForecastPoint]) -> List[ForecastPoint]:
        return sorted(v, key=lambda p: p.timestamp)

    @field_validator("generated_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class CacheEntry(BaseModel):
    """
    What the cache currently believes about one region. At most one sample
    and one forecast, each with its own freshness deadline.
    """

    region: str
    sample: Optional[CarbonSample] = None
    current_expires_at: Optional[datetime] = None
    forecast: Optional[CarbonForecast] = None
    forecast_expires_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None


class ProviderHealth(BaseModel):
    """Failure bookkeeping for a single provider."""

    provider: str
    consecutive_failures: int = 0
    total_failures: int = 0
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None
    last_error: Optional[str] = None


class CarbonReading(BaseModel):
    """
    Result of a cache read. `intensity` is always usable: it is the sample's
    value when there is one and the configured default otherwise.
    """

    model_config = ConfigDict(frozen=True)

    region: str
    sample: Optional[CarbonSample] = None
    confidence: Confidence
    intensity: float


class ForecastReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    region: str
    forecast: Optional[CarbonForecast] = None
    confidence: Confidence
    stale: bool = False


class ScoreResult(BaseModel):
    """Carbon component of a placement score. Never stored."""

    model_config = ConfigDict(frozen=True)

    region: str
    score: float
    confidence: Confidence
    rationale: str
    intensity: Optional[float] = None
    observed_at: Optional[datetime] = None
