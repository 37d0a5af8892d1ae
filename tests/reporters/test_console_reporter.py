# tests/reporters/test_console_reporter.py

from rich.console import Console

from greenplace.models.carbon import Confidence, ScoreResult
from greenplace.models.region_mapping import RegionMapping
from greenplace.reporters.console_reporter import ConsoleReporter


def _reporter():
    return ConsoleReporter(console=Console(record=True, width=200))


def test_report_scores_renders_table():
    reporter = _reporter()
    reporter.report_scores(
        [
            ScoreResult(
                region="aws:us-west-2",
                score=83.33,
                confidence=Confidence.FRESH,
                rationale="fresh data",
                intensity=50,
            ),
            ScoreResult(region="aws:us-east-1", score=25, confidence=Confidence.UNAVAILABLE, rationale="no data"),
        ]
    )

    output = reporter.console.export_text()
    assert "GreenPlace Carbon Scores" in output
    assert "aws:us-west-2" in output
    assert "83.33" in output
    assert "unavailable" in output


def test_report_scores_empty():
    reporter = _reporter()
    reporter.report_scores([])
    assert "No regions to score." in reporter.console.export_text()


def test_report_regions_renders_table():
    reporter = _reporter()
    reporter.report_regions(
        [RegionMapping(cloud_provider="aws", region_id="eu-west-3", electricity_maps_zone="FR", location_description="Paris")]
    )

    output = reporter.console.export_text()
    assert "aws:eu-west-3" in output
    assert "FR" in output
    assert "Paris" in output
