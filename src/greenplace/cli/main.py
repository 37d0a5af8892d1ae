# src/greenplace/cli/main.py
"""
This module is the main entry point for the GreenPlace CLI.

It registers the inspection commands (regions, score) and the `start`
sub-app that runs the service.
"""

import asyncio
import logging
from typing import List

import typer
from typing_extensions import Annotated

from ..core.config import config
from ..core.factory import get_directory, get_scorer
from ..models.carbon import ScoreResult
from ..reporters.console_reporter import ConsoleReporter
from . import start

# --- Setup Logger ---
logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


app = typer.Typer(
    name="greenplace",
    help="Carbon-aware placement engine: score regions by grid carbon intensity.",
    add_completion=False,
)


def version_callback(value: bool):
    """
    Prints the version of GreenPlace.
    """
    if value:
        from .. import __version__

        typer.echo(f"GreenPlace version: {__version__}")
        raise typer.Exit()


@app.command()
def version():
    """
    Show the version of GreenPlace.
    """
    from .. import __version__

    typer.echo(f"GreenPlace version: {__version__}")


@app.command()
def regions():
    """
    List the canonical regions of the region directory.
    """
    directory = get_directory()
    mappings = [directory.describe(region) for region in directory.known_regions()]
    ConsoleReporter().report_regions(mappings)


async def _score_regions(regions: List[str], eligible: bool) -> List[ScoreResult]:
    scorer = get_scorer()
    try:
        return await scorer.score_candidates(regions, eligible)
    finally:
        await scorer.cache.close()


@app.command()
def score(
    regions: Annotated[List[str], typer.Argument(help="Canonical regions to score, e.g. 'aws:eu-west-3'.")],
    eligible: Annotated[
        bool,
        typer.Option("--eligible/--not-eligible", help="Whether the workload opted into carbon-aware placement."),
    ] = True,
):
    """
    Score candidate regions and print them best first.
    """
    try:
        results = asyncio.run(_score_regions(regions, eligible))
    except Exception as e:
        logger.error(f"Scoring failed: {e}", exc_info=True)
        typer.secho(f"Scoring failed: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    ConsoleReporter().report_scores(results)


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
):
    """
    GreenPlace CLI main entry point.
    """
    pass


# Register command sub-apps
app.add_typer(start.app, name="start")


if __name__ == "__main__":
    app()
