from __future__ import annotations

from abc import ABC, abstractmethod

from ..models.metrics import SustainabilitySnapshot


class BaseSink(ABC):
    """Abstract destination for published sustainability snapshots.

    Long-term footprint history lives outside the engine; a sink only hands
    each published snapshot over to it.
    """

    DEFAULT_FILENAME: str = "greenplace-footprints.jsonl"

    @abstractmethod
    async def write(self, snapshot: SustainabilitySnapshot) -> None:
        """Persist or forward one snapshot."""
        raise NotImplementedError()
