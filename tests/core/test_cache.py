# tests/core/test_cache.py
"""
Tests for the provider chain and carbon data cache: serve-stale reads,
bounded refreshes, single-flight, write ordering and provider health.
"""

import asyncio

import pytest

from greenplace.core.cache import CURRENT, FORECAST, CarbonDataCache
from greenplace.core.exceptions import CarbonDataUnavailable, ProviderUnreachable
from greenplace.models.carbon import Confidence

REGION = "aws:eu-west-3"


@pytest.fixture
def make_cache(clock):
    def _make(providers, **overrides):
        params = dict(
            current_ttl=300,
            forecast_ttl=86400,
            provider_timeout=1.0,
            refresh_timeout=1.0,
            default_intensity=500,
            workers=1,
            clock=clock,
        )
        params.update(overrides)
        return CarbonDataCache(providers, **params)

    return _make


def test_cache_requires_providers():
    with pytest.raises(ValueError):
        CarbonDataCache([])


def test_cache_rejects_duplicate_provider_names(scripted_provider):
    with pytest.raises(ValueError):
        CarbonDataCache([scripted_provider("a"), scripted_provider("a")])


async def test_fresh_read_does_not_call_provider_again(make_cache, scripted_provider):
    provider = scripted_provider(intensities={REGION: 80})
    cache = make_cache([provider])

    first = await cache.get_current(REGION)
    second = await cache.get_current(REGION)

    assert first.confidence is Confidence.FRESH
    assert second.confidence is Confidence.FRESH
    assert second.intensity == 80
    assert provider.current_calls == [REGION]


async def test_stale_read_is_served_and_refreshed_in_background(make_cache, scripted_provider, clock):
    provider = scripted_provider(intensities={REGION: 80})
    cache = make_cache([provider])
    await cache.refresh_current(REGION)

    clock.advance(seconds=301)
    provider.intensities[REGION] = 120
    reading = await cache.get_current(REGION)

    # The stale value is returned immediately, the refresh only queued.
    assert reading.confidence is Confidence.STALE
    assert reading.intensity == 80
    assert provider.current_calls == [REGION]

    cache.start()
    try:
        await asyncio.wait_for(cache.join(), timeout=2)
    finally:
        await cache.stop()

    refreshed = cache.peek_current(REGION)
    assert refreshed.confidence is Confidence.FRESH
    assert refreshed.intensity == 120


async def test_unavailable_read_never_raises(make_cache, scripted_provider):
    provider = scripted_provider(intensities={REGION: ProviderUnreachable("scripted", "down")})
    cache = make_cache([provider])

    reading = await cache.get_current(REGION)

    assert reading.confidence is Confidence.UNAVAILABLE
    assert reading.sample is None
    assert reading.intensity == 500
    entry = cache.snapshot()[REGION]
    assert entry.sample is None
    assert "down" in entry.last_error


async def test_failed_refresh_keeps_serving_previous_sample(make_cache, scripted_provider, clock):
    provider = scripted_provider(intensities={REGION: 90})
    cache = make_cache([provider])
    await cache.refresh_current(REGION)

    provider.intensities[REGION] = ProviderUnreachable("scripted", "down")
    clock.advance(seconds=301)
    with pytest.raises(CarbonDataUnavailable):
        await cache.refresh_current(REGION)

    reading = cache.peek_current(REGION)
    assert reading.confidence is Confidence.STALE
    assert reading.intensity == 90


async def test_slow_refresh_is_bounded_and_completes_in_background(make_cache, scripted_provider):
    provider = scripted_provider(intensities={REGION: 70}, delay=0.2)
    cache = make_cache([provider], refresh_timeout=0.05)

    reading = await cache.get_current(REGION)
    assert reading.confidence is Confidence.UNAVAILABLE
    assert reading.intensity == 500

    # The caller gave up but the shielded refresh keeps running.
    await asyncio.sleep(0.4)
    assert cache.peek_current(REGION).confidence is Confidence.FRESH
    assert provider.current_calls == [REGION]


async def test_concurrent_refreshes_share_one_provider_call(make_cache, scripted_provider):
    provider = scripted_provider(intensities={REGION: 60})
    provider.gate = asyncio.Event()
    cache = make_cache([provider])

    tasks = [asyncio.create_task(cache.refresh_current(REGION)) for _ in range(5)]
    await asyncio.sleep(0.01)
    provider.gate.set()
    samples = await asyncio.gather(*tasks)

    assert provider.current_calls == [REGION]
    assert len({s.observed_at for s in samples}) == 1
    assert cache._inflight == {}



async def test_older_sample_never_overwrites_newer(make_cache, scripted_provider, clock):
    provider = scripted_provider(intensities={REGION: 100})
    cache = make_cache([provider])
    clock.advance(minutes=10)
    newer = await cache.refresh_current(REGION)

    # A late answer carrying an older measurement.
    late_observed_at = newer.observed_at.replace(minute=0)
    provider.clock = lambda: late_observed_at
    provider.intensities[REGION] = 999
    held = await cache.refresh_current(REGION)

    assert held == newer
    assert cache.peek_current(REGION).intensity == 100


async def test_out_of_order_completion_keeps_latest_observation(make_cache, scripted_provider, sample_at, clock):
    cache = make_cache([scripted_provider()])
    early = sample_at(REGION, 300, clock())
    late = sample_at(REGION, 150, clock.advance(seconds=30))

    await asyncio.gather(cache._store(CURRENT, REGION, late), cache._store(CURRENT, REGION, early))

    assert cache.snapshot()[REGION].sample == late


async def test_fallback_chain_uses_next_provider(make_cache, scripted_provider):
    primary = scripted_provider("primary", intensities={REGION: ProviderUnreachable("primary", "down")})
    secondary = scripted_provider("secondary", intensities={REGION: 210})
    cache = make_cache([primary, secondary])

    reading = await cache.get_current(REGION)

    assert reading.confidence is Confidence.FRESH
    assert reading.sample.source == "secondary"
    health = {h.provider: h for h in cache.health()}
    assert health["primary"].consecutive_failures == 1
    assert health["primary"].total_failures == 1
    assert health["secondary"].consecutive_failures == 0
    assert health["secondary"].last_success is not None


async def test_provider_timeout_falls_through_to_next_provider(make_cache, scripted_provider):
    slow = scripted_provider("slow", intensities={REGION: 10}, delay=1.0)
    mock = scripted_provider("mock", intensities={REGION: 330})
    cache = make_cache([slow, mock], provider_timeout=0.05)

    sample = await cache.refresh_current(REGION)

    assert sample.source == "mock"
    assert sample.intensity == 330
    slow_health = cache.health()[0]
    assert slow_health.provider == "slow"
    assert slow_health.consecutive_failures == 1
    assert "0.05" in slow_health.last_error


async def test_provider_health_resets_after_success(make_cache, scripted_provider, clock):
    primary = scripted_provider("primary", intensities={REGION: ProviderUnreachable("primary", "down")})
    secondary = scripted_provider("secondary", intensities={REGION: 210})
    cache = make_cache([primary, secondary])
    await cache.refresh_current(REGION)
    clock.advance(seconds=1)
    await cache.refresh_current(REGION)
    assert cache.health()[0].consecutive_failures == 2

    primary.intensities[REGION] = 180
    clock.advance(seconds=1)
    await cache.refresh_current(REGION)

    health = cache.health()[0]
    assert health.consecutive_failures == 0
    assert health.total_failures == 2


async def test_all_providers_failing_raises_with_every_error(make_cache, scripted_provider):
    a = scripted_provider("a", intensities={REGION: ProviderUnreachable("a", "down")})
    b = scripted_provider("b", intensities={REGION: ProviderUnreachable("b", "also down")})
    cache = make_cache([a, b])

    with pytest.raises(CarbonDataUnavailable) as excinfo:
        await cache.refresh_current(REGION)

    assert excinfo.value.region == REGION
    assert excinfo.value.kind == CURRENT
    assert [e.provider for e in excinfo.value.errors] == ["a", "b"]


async def test_request_refresh_is_deduplicated(make_cache, scripted_provider):
    cache = make_cache([scripted_provider(intensities={REGION: 1})])

    assert cache.request_refresh(REGION) is True
    assert cache.request_refresh(REGION) is False
    assert cache.request_refresh(REGION, FORECAST) is True


async def test_stale_forecast_is_flagged(make_cache, scripted_provider, clock):
    provider = scripted_provider(intensities={REGION: 120})
    cache = make_cache([provider])

    fresh = await cache.get_forecast(REGION)
    assert fresh.stale is False
    assert len(fresh.forecast.points) == 24

    clock.advance(hours=25)
    stale = await cache.get_forecast(REGION)
    assert stale.stale is True
    assert stale.confidence is Confidence.STALE
    assert stale.forecast == fresh.forecast


async def test_intensity_bounds_span_cached_samples(make_cache, scripted_provider):
    provider = scripted_provider(intensities={"a": 50, "b": 400, "c": 120})
    cache = make_cache([provider])
    assert cache.intensity_bounds() is None

    for region in ("a", "b", "c"):
        await cache.refresh_current(region)

    assert cache.intensity_bounds() == (50, 400)


async def test_snapshot_is_a_copy(make_cache, scripted_provider):
    cache = make_cache([scripted_provider(intensities={REGION: 75})])
    await cache.refresh_current(REGION)

    copy = cache.snapshot()
    copy.clear()

    assert REGION in cache.snapshot()


async def test_close_stops_workers_and_closes_providers(make_cache, scripted_provider):
    provider = scripted_provider(intensities={REGION: 75})
    cache = make_cache([provider], workers=2)
    cache.start()
    assert len(cache._workers) == 2

    await cache.close()

    assert cache._workers == []
    assert provider.closed is True
