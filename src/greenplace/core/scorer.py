# src/greenplace/core/scorer.py

import asyncio
import logging
from typing import Iterable, List, Mapping, Optional, Tuple

from ..models.carbon import CarbonReading, Confidence, ScoreResult
from .cache import CarbonDataCache
from .config import config
from .eligibility import is_carbon_aware
from .region_directory import RegionDirectory

logger = logging.getLogger(__name__)

NOT_APPLICABLE = "not applicable"
NO_DATA = "no data, fallback applied"


def rank_results(results: Iterable[ScoreResult]) -> List[ScoreResult]:
    """
    Order score results best first. Equal scores prefer the most recent
    sample, then the lexically smallest region id.
    """

    def key(result: ScoreResult):
        recency = result.observed_at.timestamp() if result.observed_at else float("-inf")
        return (-result.score, -recency, result.region)

    return sorted(results, key=key)


class CarbonScorer:
    """
    Produces the carbon component of a placement score.

    Lower intensity yields a higher score, normalised against the range of
    intensities currently cached so scores are comparable within a
    scheduling round. The scorer keeps no state of its own; everything it
    knows comes from the cache at call time.
    """

    def __init__(
        self,
        cache: CarbonDataCache,
        directory: Optional[RegionDirectory] = None,
        score_max: Optional[float] = None,
        neutral_score: Optional[float] = None,
        fallback_score: Optional[float] = None,
        range_padding: Optional[float] = None,
    ):
        self.cache = cache
        self.directory = directory
        self.score_max = score_max if score_max is not None else config.SCORE_MAX
        self.neutral_score = neutral_score if neutral_score is not None else config.NEUTRAL_SCORE
        self.fallback_score = fallback_score if fallback_score is not None else config.FALLBACK_SCORE
        self.range_padding = range_padding if range_padding is not None else config.SCORE_RANGE_PADDING

    def normalize(self, intensity: float, bounds: Optional[Tuple[float, float]]) -> float:
        """
        Map an intensity onto [0, score_max].

        The padded range keeps the score strictly decreasing even for the
        cleanest and dirtiest cached regions, which sit on the range edges.
        """
        lo, hi = bounds if bounds else (intensity, intensity)
        lo, hi = min(lo, intensity), max(hi, intensity)
        pad = self.range_padding
        return self.score_max * (hi - intensity + pad) / (hi - lo + 2 * pad)

    async def score(self, region: str, eligible: bool) -> ScoreResult:
        """Score one candidate region. Never raises for missing carbon data."""
        if not eligible:
            return ScoreResult(
                region=region,
                score=self.neutral_score,
                confidence=Confidence.UNAVAILABLE,
                rationale=NOT_APPLICABLE,
            )

        reading = await self.cache.get_current(region)
        return self._from_reading(reading, self.cache.intensity_bounds())

    async def score_labels(self, labels: Mapping[str, str], eligible: bool) -> ScoreResult:
        """
        Score the region a node's labels resolve to.

        Raises:
            UnknownTopology: the labels do not map to a canonical region.
        """
        if self.directory is None:
            raise RuntimeError("CarbonScorer was built without a RegionDirectory")
        region = self.directory.resolve(labels)
        return await self.score(region, eligible)

    async def score_candidates(self, regions: Iterable[str], eligible: bool) -> List[ScoreResult]:
        """Score every candidate of a scheduling round and rank them."""
        unique = list(dict.fromkeys(regions))
        if not eligible:
            results = [await self.score(region, eligible) for region in unique]
            return rank_results(results)

        # One range for the whole round, read once every reading is in.
        readings = await asyncio.gather(*(self.cache.get_current(region) for region in unique))
        bounds = self.cache.intensity_bounds()
        results = [self._from_reading(reading, bounds) for reading in readings]
        return rank_results(results)

    async def score_workload(
        self, regions: Iterable[str], annotations: Optional[Mapping[str, str]]
    ) -> List[ScoreResult]:
        """Score candidates for a workload, reading eligibility from its carbon-aware annotation."""
        return await self.score_candidates(regions, is_carbon_aware(annotations))

    def _from_reading(self, reading: CarbonReading, bounds: Optional[Tuple[float, float]]) -> ScoreResult:
        if reading.confidence is Confidence.UNAVAILABLE or reading.sample is None:
            return ScoreResult(
                region=reading.region,
                score=self.fallback_score,
                confidence=Confidence.UNAVAILABLE,
                rationale=NO_DATA,
            )

        sample = reading.sample
        value = self.normalize(sample.intensity, bounds)
        lo, hi = bounds if bounds else (sample.intensity, sample.intensity)
        rationale = (
            f"{reading.confidence.value} data: {sample.intensity:.0f} gCO2/kWh from {sample.source} "
            f"observed {sample.observed_at.isoformat()}, cached range {min(lo, sample.intensity):.0f}-"
            f"{max(hi, sample.intensity):.0f} gCO2/kWh"
        )
        if reading.confidence is Confidence.STALE:
            rationale += "; refresh pending"

        logger.debug("Scored region '%s' at %.2f (%s)", reading.region, value, reading.confidence.value)
        return ScoreResult(
            region=reading.region,
            score=value,
            confidence=reading.confidence,
            rationale=rationale,
            intensity=sample.intensity,
            observed_at=sample.observed_at,
        )
