# src/greenplace/core/cache.py
"""
Provider chain and per-region carbon data cache.

This is the single place that knows what the engine currently believes about
a region's carbon intensity. Reads never block on upstream APIs for longer
than the configured refresh timeout: stale data is served while a background
refresh runs, and a missing region degrades to an 'unavailable' reading with
the configured default intensity.

All mutation funnels through the refresh path, which is single-flight per
(kind, region): concurrent callers asking for the same refresh attach to the
one in-flight task instead of issuing duplicate upstream calls.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple, Union

from ..models.carbon import (
    CacheEntry,
    CarbonForecast,
    CarbonReading,
    CarbonSample,
    Confidence,
    ForecastReading,
    ProviderHealth,
)
from ..providers.base_provider import BaseProvider
from ..utils.date_utils import utcnow
from .config import config
from .exceptions import CarbonDataUnavailable, InvalidProviderResponse, ProviderError, ProviderUnreachable
from .telemetry import cache_reads, provider_failures

logger = logging.getLogger(__name__)

CURRENT = "current"
FORECAST = "forecast"

RefreshKey = Tuple[str, str]


def current_confidence(entry: Optional[CacheEntry], now: datetime) -> Confidence:
    """Confidence tier of an entry's current sample at time `now`."""
    if entry is None or entry.sample is None:
        return Confidence.UNAVAILABLE
    if entry.current_expires_at is not None and now < entry.current_expires_at:
        return Confidence.FRESH
    return Confidence.STALE


def forecast_confidence(entry: Optional[CacheEntry], now: datetime) -> Confidence:
    if entry is None or entry.forecast is None:
        return Confidence.UNAVAILABLE
    if entry.forecast_expires_at is not None and now < entry.forecast_expires_at:
        return Confidence.FRESH
    return Confidence.STALE


class CarbonDataCache:
    """
    Wraps an ordered list of providers with a TTL cache, fallback and health
    tracking. Provider order is priority order.
    """

    def __init__(
        self,
        providers: Sequence[BaseProvider],
        current_ttl: Optional[float] = None,
        forecast_ttl: Optional[float] = None,
        provider_timeout: Optional[float] = None,
        refresh_timeout: Optional[float] = None,
        default_intensity: Optional[float] = None,
        workers: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        if not providers:
            raise ValueError("CarbonDataCache needs at least one provider")
        names = [p.name for p in providers]
        if len(set(names)) != len(names):
            raise ValueError(f"Provider names must be unique, got {names}")

        self.providers: List[BaseProvider] = list(providers)
        self.current_ttl = timedelta(seconds=current_ttl if current_ttl is not None else config.CURRENT_TTL_SECONDS)
        self.forecast_ttl = timedelta(
            seconds=forecast_ttl if forecast_ttl is not None else config.FORECAST_TTL_SECONDS
        )
        self.provider_timeout = provider_timeout if provider_timeout is not None else config.PROVIDER_TIMEOUT_SECONDS
        self.refresh_timeout = refresh_timeout if refresh_timeout is not None else config.REFRESH_TIMEOUT_SECONDS
        self.default_intensity = default_intensity if default_intensity is not None else config.DEFAULT_INTENSITY
        self.worker_count = workers if workers is not None else config.REFRESH_WORKERS
        self._clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._health: Dict[str, ProviderHealth] = {name: ProviderHealth(provider=name) for name in names}
        self._lock = asyncio.Lock()
        self._inflight: Dict[RefreshKey, asyncio.Task] = {}
        self._queue: "asyncio.Queue[RefreshKey]" = asyncio.Queue()
        self._queued: Set[RefreshKey] = set()
        self._workers: List[asyncio.Task] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_current(self, region: str) -> CarbonReading:
        """
        Current intensity for a region, tagged with a confidence tier.

        Never raises for provider failures: a stale sample is served while a
        background refresh is queued, and a region with no data at all gets
        one bounded synchronous refresh before falling back to the default.
        """
        entry = self._entries.get(region)
        confidence = current_confidence(entry, self._clock())

        if confidence is not Confidence.UNAVAILABLE:
            if confidence is Confidence.STALE:
                self.request_refresh(region, CURRENT)
            return self._record_read(
                CarbonReading(region=region, sample=entry.sample, confidence=confidence, intensity=entry.sample.intensity)
            )

        sample = None
        try:
            sample = await asyncio.wait_for(self.refresh_current(region), timeout=self.refresh_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Synchronous refresh for region '%s' exceeded %.2fs; serving fallback intensity %s",
                region,
                self.refresh_timeout,
                self.default_intensity,
            )
        except CarbonDataUnavailable as e:
            logger.warning("%s; serving fallback intensity %s", e, self.default_intensity)

        if sample is not None:
            return self._record_read(
                CarbonReading(region=region, sample=sample, confidence=Confidence.FRESH, intensity=sample.intensity)
            )
        return self._record_read(
            CarbonReading(region=region, sample=None, confidence=Confidence.UNAVAILABLE, intensity=self.default_intensity)
        )

    async def get_forecast(self, region: str) -> ForecastReading:
        """Forecast for a region with the same serve-stale policy as get_current."""
        entry = self._entries.get(region)
        confidence = forecast_confidence(entry, self._clock())

        if confidence is Confidence.FRESH:
            return ForecastReading(region=region, forecast=entry.forecast, confidence=confidence, stale=False)
        if confidence is Confidence.STALE:
            self.request_refresh(region, FORECAST)
            return ForecastReading(region=region, forecast=entry.forecast, confidence=confidence, stale=True)

        try:
            forecast = await asyncio.wait_for(self.refresh_forecast(region), timeout=self.refresh_timeout)
        except asyncio.TimeoutError:
            logger.warning("Synchronous forecast refresh for region '%s' timed out", region)
        except CarbonDataUnavailable as e:
            logger.warning("%s", e)
        else:
            return ForecastReading(region=region, forecast=forecast, confidence=Confidence.FRESH, stale=False)
        return ForecastReading(region=region, forecast=None, confidence=Confidence.UNAVAILABLE, stale=False)

    def peek_current(self, region: str) -> CarbonReading:
        """Read-only view of the cached sample. Never refreshes, never blocks."""
        entry = self._entries.get(region)
        confidence = current_confidence(entry, self._clock())
        if confidence is Confidence.UNAVAILABLE:
            return CarbonReading(region=region, confidence=confidence, intensity=self.default_intensity)
        return CarbonReading(region=region, sample=entry.sample, confidence=confidence, intensity=entry.sample.intensity)

    def peek_forecast(self, region: str) -> ForecastReading:
        entry = self._entries.get(region)
        confidence = forecast_confidence(entry, self._clock())
        return ForecastReading(
            region=region,
            forecast=entry.forecast if entry is not None else None,
            confidence=confidence,
            stale=confidence is Confidence.STALE,
        )

    def snapshot(self) -> Dict[str, CacheEntry]:
        """Point-in-time copy of every cache entry."""
        return {region: entry.model_copy() for region, entry in list(self._entries.items())}

    def intensity_bounds(self) -> Optional[Tuple[float, float]]:
        """(min, max) intensity over every cached sample, stale ones included."""
        values = [e.sample.intensity for e in list(self._entries.values()) if e.sample is not None]
        if not values:
            return None
        return min(values), max(values)

    def health(self) -> List[ProviderHealth]:
        """Provider health in priority order."""
        return [self._health[p.name].model_copy() for p in self.providers]

    def now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Refresh path
    # ------------------------------------------------------------------

    async def refresh_current(self, region: str) -> CarbonSample:
        """
        Refresh the current sample for a region through the provider chain.

        Raises:
            CarbonDataUnavailable: every provider failed. The previous entry,
                if any, is kept and keeps being served as stale.
        """
        return await self._single_flight(CURRENT, region)

    async def refresh_forecast(self, region: str) -> CarbonForecast:
        return await self._single_flight(FORECAST, region)

    async def _single_flight(self, kind: str, region: str):
        key = (kind, region)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._refresh(kind, region), name=f"greenplace-refresh-{kind}-{region}")
            self._inflight[key] = task
            task.add_done_callback(lambda t, key=key: self._finish_flight(key, t))
        else:
            logger.debug("Joining in-flight %s refresh for region '%s'", kind, region)
        # Shielded so a caller giving up does not cancel the refresh others wait on.
        return await asyncio.shield(task)

    def _finish_flight(self, key: RefreshKey, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Refresh %s ended with %r", key, task.exception())

    async def _refresh(self, kind: str, region: str) -> Union[CarbonSample, CarbonForecast]:
        try:
            result = await self._run_chain(kind, region)
        except CarbonDataUnavailable as e:
            logger.error("All carbon data providers failed for %s data of region '%s'", kind, region)
            await self._record_refresh_error(region, str(e))
            raise
        return await self._store(kind, region, result)

    async def _run_chain(self, kind: str, region: str) -> Union[CarbonSample, CarbonForecast]:
        errors: List[ProviderError] = []
        for provider in self.providers:
            fetch = provider.fetch_current if kind == CURRENT else provider.fetch_forecast
            try:
                result = await asyncio.wait_for(fetch(region), timeout=self.provider_timeout)
            except asyncio.TimeoutError:
                error = ProviderUnreachable(provider.name, f"no answer within {self.provider_timeout}s")
            except ProviderError as e:
                error = e
            except Exception as e:
                logger.error("Provider %s raised an untyped error for region '%s'", provider.name, region, exc_info=True)
                error = ProviderUnreachable(provider.name, f"unexpected error: {e!r}")
            else:
                if result.region == region:
                    self._record_success(provider.name)
                    logger.debug("Provider %s served %s data for region '%s'", provider.name, kind, region)
                    return result
                error = InvalidProviderResponse(provider.name, f"answered for region '{result.region}'")

            self._record_failure(provider.name, error)
            errors.append(error)
        raise CarbonDataUnavailable(region, kind, errors)

    async def _store(self, kind: str, region: str, result):
        """
        Write a refresh result unless the cache already holds newer data.
        Returns whatever the cache holds for `kind` afterwards.
        """
        now = self._clock()
        async with self._lock:
            entry = self._entries.get(region) or CacheEntry(region=region)
            if kind == CURRENT:
                held = entry.sample
                if held is not None and held.observed_at > result.observed_at:
                    logger.info(
                        "Discarding sample for '%s' observed at %s; cache holds newer one from %s",
                        region,
                        result.observed_at,
                        held.observed_at,
                    )
                    return held
                update = {"sample": result, "current_expires_at": now + self.current_ttl}
            else:
                held = entry.forecast
                if held is not None and held.generated_at > result.generated_at:
                    logger.info(
                        "Discarding forecast for '%s' generated at %s; cache holds a newer one",
                        region,
                        result.generated_at,
                    )
                    return held
                update = {"forecast": result, "forecast_expires_at": now + self.forecast_ttl}
            update.update({"last_error": None, "last_error_at": None})
            self._entries[region] = entry.model_copy(update=update)
        return result

    async def _record_refresh_error(self, region: str, message: str) -> None:
        async with self._lock:
            entry = self._entries.get(region) or CacheEntry(region=region)
            self._entries[region] = entry.model_copy(update={"last_error": message, "last_error_at": self._clock()})

    def _record_success(self, provider: str) -> None:
        health = self._health[provider]
        self._health[provider] = health.model_copy(update={"consecutive_failures": 0, "last_success": self._clock()})

    def _record_failure(self, provider: str, error: ProviderError) -> None:
        health = self._health[provider]
        self._health[provider] = health.model_copy(
            update={
                "consecutive_failures": health.consecutive_failures + 1,
                "total_failures": health.total_failures + 1,
                "last_failure": self._clock(),
                "last_error": str(error),
            }
        )
        provider_failures.add(1, {"provider": provider, "error": type(error).__name__})
        logger.warning("Carbon data provider failed: %s", error)

    def _record_read(self, reading: CarbonReading) -> CarbonReading:
        cache_reads.add(1, {"confidence": reading.confidence.value})
        return reading

    # ------------------------------------------------------------------
    # Background refresh
    # ------------------------------------------------------------------

    def request_refresh(self, region: str, kind: str = CURRENT) -> bool:
        """
        Queue a background refresh. Returns False when the same refresh is
        already queued or in flight.
        """
        key = (kind, region)
        if key in self._queued or key in self._inflight:
            return False
        self._queued.add(key)
        self._queue.put_nowait(key)
        logger.debug("Queued background %s refresh for region '%s'", kind, region)
        return True

    async def _worker(self, index: int):
        while True:
            kind, region = await self._queue.get()
            self._queued.discard((kind, region))
            try:
                await self._single_flight(kind, region)
            except CarbonDataUnavailable as e:
                logger.warning("Background refresh worker %d: %s", index, e)
            except Exception as e:
                logger.error(f"Background refresh of {kind} data for '{region}' failed: {e}", exc_info=True)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        """Launch the background refresh workers. Requires a running loop."""
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"greenplace-refresher-{i}")
            for i in range(max(1, self.worker_count))
        ]
        logger.info("Started %d background refresh worker(s).", len(self._workers))

    async def join(self) -> None:
        """Wait until every queued background refresh has been processed."""
        await self._queue.join()

    async def stop(self) -> None:
        for task in self._workers:
            task.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers.clear()

    async def close(self) -> None:
        await self.stop()
        for provider in self.providers:
            await provider.close()
