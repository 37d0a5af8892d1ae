# tests/core/test_scorer.py

import asyncio
from datetime import timedelta

import pytest

from greenplace.core.cache import CarbonDataCache
from greenplace.core.exceptions import ProviderUnreachable, UnknownTopology
from greenplace.core.region_directory import RegionDirectory
from greenplace.core.scorer import NO_DATA, NOT_APPLICABLE, CarbonScorer, rank_results
from greenplace.models.carbon import Confidence, ScoreResult
from greenplace.providers.mock_provider import MockProvider

WEST = "aws:us-west-2"
EAST = "aws:us-east-1"


@pytest.fixture
def make_scorer(clock):
    def _make(providers, directory=None):
        cache = CarbonDataCache(
            providers,
            current_ttl=300,
            forecast_ttl=86400,
            provider_timeout=1.0,
            refresh_timeout=1.0,
            default_intensity=500,
            workers=1,
            clock=clock,
        )
        return CarbonScorer(
            cache,
            directory=directory,
            score_max=100,
            neutral_score=50,
            fallback_score=25,
            range_padding=50,
        )

    return _make


def test_normalize_is_strictly_decreasing(make_scorer, scripted_provider):
    scorer = make_scorer([scripted_provider()])
    bounds = (50.0, 400.0)
    intensities = [0, 50, 51, 120, 399, 400, 650]

    scores = [scorer.normalize(i, bounds) for i in intensities]

    assert all(a > b for a, b in zip(scores, scores[1:]))
    assert all(0 <= s <= 100 for s in scores)


def test_normalize_single_region_range(make_scorer, scripted_provider):
    scorer = make_scorer([scripted_provider()])

    assert scorer.normalize(300, None) == pytest.approx(50.0)
    assert scorer.normalize(300, (300, 300)) == pytest.approx(50.0)


async def test_lower_intensity_scores_higher(make_scorer, clock):
    # Scenario: a clean and a dirty region, eligible workload.
    provider = MockProvider(intensities={WEST: 50, EAST: 400}, clock=clock)
    scorer = make_scorer([provider])

    ranked = await scorer.score_candidates([EAST, WEST], eligible=True)

    assert [r.region for r in ranked] == [WEST, EAST]
    assert ranked[0].score > ranked[1].score
    assert ranked[0].confidence is Confidence.FRESH
    assert ranked[0].rationale.startswith("fresh data: 50 gCO2/kWh from mock")


async def test_ineligible_workload_gets_neutral_score_without_cache_access(make_scorer, scripted_provider):
    provider = scripted_provider(intensities={WEST: 50})
    scorer = make_scorer([provider])

    result = await scorer.score(WEST, eligible=False)

    assert result.score == 50
    assert result.rationale == NOT_APPLICABLE
    assert result.confidence is Confidence.UNAVAILABLE
    assert provider.current_calls == []


async def test_ineligible_scores_are_identical_across_regions(make_scorer, clock):
    scorer = make_scorer([MockProvider(intensities={WEST: 50, EAST: 400}, clock=clock)])

    results = await scorer.score_candidates([WEST, EAST], eligible=False)

    assert {r.score for r in results} == {50}


async def test_missing_data_gets_fallback_score(make_scorer, scripted_provider):
    provider = scripted_provider(intensities={WEST: ProviderUnreachable("scripted", "down")})
    scorer = make_scorer([provider])

    result = await scorer.score(WEST, eligible=True)

    assert result.score == 25
    assert result.confidence is Confidence.UNAVAILABLE
    assert result.rationale == NO_DATA
    assert result.intensity is None


async def test_stale_data_is_scored_and_flagged(make_scorer, scripted_provider, clock):
    provider = scripted_provider(intensities={WEST: 80, EAST: 300})
    scorer = make_scorer([provider])
    await scorer.score_candidates([WEST, EAST], eligible=True)

    clock.advance(seconds=301)
    result = await scorer.score(WEST, eligible=True)

    assert result.confidence is Confidence.STALE
    assert result.rationale.startswith("stale data")
    assert result.rationale.endswith("refresh pending")


async def test_scoring_is_idempotent_while_cache_is_fresh(make_scorer, clock):
    scorer = make_scorer([MockProvider(intensities={WEST: 50, EAST: 400}, clock=clock)])
    await scorer.score_candidates([WEST, EAST], eligible=True)

    first = await scorer.score(EAST, eligible=True)
    second = await scorer.score(EAST, eligible=True)

    assert first == second


def test_rank_results_breaks_ties_by_recency_then_region(clock):
    older = clock()
    newer = older + timedelta(minutes=5)
    results = [
        ScoreResult(region="b", score=60, confidence=Confidence.FRESH, rationale="x", observed_at=older),
        ScoreResult(region="a", score=60, confidence=Confidence.FRESH, rationale="x", observed_at=older),
        ScoreResult(region="c", score=60, confidence=Confidence.FRESH, rationale="x", observed_at=newer),
        ScoreResult(region="d", score=90, confidence=Confidence.FRESH, rationale="x", observed_at=older),
    ]

    assert [r.region for r in rank_results(results)] == ["d", "c", "a", "b"]


async def test_score_labels_resolves_region(make_scorer, clock):
    directory = RegionDirectory()
    scorer = make_scorer([MockProvider(intensities={WEST: 50}, clock=clock)], directory=directory)

    result = await scorer.score_labels(
        {"eks.amazonaws.com/nodegroup": "ng-1", "topology.kubernetes.io/zone": "us-west-2b"},
        eligible=True,
    )

    assert result.region == WEST
    assert result.intensity == 50


async def test_score_labels_propagates_unknown_topology(make_scorer, clock):
    scorer = make_scorer([MockProvider(clock=clock)], directory=RegionDirectory())

    with pytest.raises(UnknownTopology):
        await scorer.score_labels({"kubernetes.io/hostname": "db-0"}, eligible=True)


async def test_score_workload_reads_carbon_aware_annotation(make_scorer, clock):
    scorer = make_scorer([MockProvider(intensities={WEST: 50, EAST: 400}, clock=clock)])

    opted_in = await scorer.score_workload([EAST, WEST], {"greenplace.io/carbon-aware": "enabled"})
    opted_out = await scorer.score_workload([EAST, WEST], {"greenplace.io/carbon-aware": "disabled"})
    unset = await scorer.score_workload([EAST, WEST], None)

    assert opted_in[0].region == WEST
    assert opted_in[0].score > opted_in[1].score
    assert {r.score for r in opted_out} == {50}
    assert {r.rationale for r in unset} == {NOT_APPLICABLE}


class StaggeredProvider(MockProvider):
    """Mock provider answering each region after its own delay."""

    def __init__(self, intensities, delays, clock):
        super().__init__(intensities=intensities, clock=clock)
        self.delays = delays

    async def fetch_current(self, region):
        await asyncio.sleep(self.delays[region])
        return await super().fetch_current(region)


async def test_candidates_share_one_range_when_answers_arrive_staggered(make_scorer, clock):
    dirty, clean, dirtier_than_clean = "aws:x", "aws:l", "aws:y"
    provider = StaggeredProvider(
        intensities={dirty: 400, clean: 0, dirtier_than_clean: 390},
        delays={dirty: 0.01, clean: 0.05, dirtier_than_clean: 0.1},
        clock=clock,
    )
    scorer = make_scorer([provider])

    ranked = await scorer.score_candidates([dirty, clean, dirtier_than_clean], eligible=True)
    by_region = {r.region: r for r in ranked}

    assert [r.region for r in ranked] == [clean, dirtier_than_clean, dirty]
    assert by_region[dirtier_than_clean].score > by_region[dirty].score
    assert all("range 0-400" in r.rationale for r in ranked)
