import os

import aiofiles

from ..models.metrics import SustainabilitySnapshot
from .base_exporter import BaseSink


class JSONLinesSink(BaseSink):
    """Appends each snapshot's node footprints and totals as one JSON line."""

    def __init__(self, path: str | None = None):
        self.path = path or self.DEFAULT_FILENAME

    async def write(self, snapshot: SustainabilitySnapshot) -> None:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        record = snapshot.model_dump_json(include={"generated_at", "nodes", "totals"})

        async with aiofiles.open(self.path, "a", encoding="utf-8") as fh:
            await fh.write(record + "\n")
