# src/greenplace/reporters/console_reporter.py
"""
A reporter that displays scores and the region directory as tables in the console.
"""

import logging
from typing import List, Optional

from rich.console import Console
from rich.table import Table

from ..models.carbon import Confidence, ScoreResult
from ..models.region_mapping import RegionMapping

logger = logging.getLogger(__name__)

CONFIDENCE_STYLES = {
    Confidence.FRESH: "green",
    Confidence.STALE: "yellow",
    Confidence.UNAVAILABLE: "red",
}


class ConsoleReporter:
    """
    Renders engine output to the console using the 'rich' library.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def report_scores(self, results: List[ScoreResult]):
        """Displays ranked carbon scores, best candidate first."""
        if not results:
            self.console.print("No regions to score.", style="yellow")
            return

        table = Table(title="GreenPlace Carbon Scores", header_style="bold magenta", show_lines=True)
        table.add_column("Rank", justify="right")
        table.add_column("Region", style="cyan")
        table.add_column("Score", style="green", justify="right")
        table.add_column("Intensity (g/kWh)", justify="right")
        table.add_column("Confidence")
        table.add_column("Rationale", style="dim")

        for rank, result in enumerate(results, start=1):
            table.add_row(
                str(rank),
                result.region,
                f"{result.score:.2f}",
                f"{result.intensity:.0f}" if result.intensity is not None else "-",
                f"[{CONFIDENCE_STYLES[result.confidence]}]{result.confidence.value}[/]",
                result.rationale,
            )
        self.console.print(table)

    def report_regions(self, mappings: List[RegionMapping]):
        if not mappings:
            self.console.print("The region directory is empty.", style="yellow")
            return

        table = Table(title="GreenPlace Region Directory", header_style="bold magenta")
        table.add_column("Region", style="cyan")
        table.add_column("Provider")
        table.add_column("Cloud Region")
        table.add_column("Electricity Maps Zone", style="green")
        table.add_column("Location", style="dim")

        for mapping in mappings:
            table.add_row(
                mapping.canonical_region,
                mapping.cloud_provider,
                mapping.region_id,
                mapping.electricity_maps_zone,
                mapping.location_description or "",
            )
        self.console.print(table)
