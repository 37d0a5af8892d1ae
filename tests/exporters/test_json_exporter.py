# tests/exporters/test_json_exporter.py
import json

from greenplace.exporters.json_exporter import JSONLinesSink
from greenplace.models.metrics import NodeFootprint, SnapshotTotals, SustainabilitySnapshot


def _snapshot(generated_at, grams):
    return SustainabilitySnapshot(
        generated_at=generated_at,
        nodes=[NodeFootprint(node="db-0", region="aws:eu-west-3", status="known", energy_kwh=1.0, co2e_grams=grams)],
        totals=SnapshotTotals(total_co2e_grams=grams, known_node_count=1),
    )


async def test_sink_appends_one_line_per_snapshot(tmp_path, clock):
    out = tmp_path / "history" / "footprints.jsonl"
    sink = JSONLinesSink(str(out))

    await sink.write(_snapshot(clock(), 12.5))
    await sink.write(_snapshot(clock.advance(minutes=1), 13.0))

    lines = out.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert set(first) == {"generated_at", "nodes", "totals"}
    assert first["nodes"][0]["node"] == "db-0"
    assert json.loads(lines[1])["totals"]["total_co2e_grams"] == 13.0


def test_sink_default_path():
    assert JSONLinesSink().path == "greenplace-footprints.jsonl"
