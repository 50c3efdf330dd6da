from __future__ import annotations

import json
from pathlib import Path

import pytest

from signal_journey_recorder import cli


def _simulate(db: Path, capsys: pytest.CaptureFixture[str]) -> dict:
    cli.main(
        [
            "--db",
            str(db),
            "simulate",
            "--name",
            "Test Ride",
            "--duration-s",
            "0.3",
            "--interval-s",
            "0.1",
            "--seed",
            "7",
            "--json",
        ]
    )
    return json.loads(capsys.readouterr().out)


def test_cli_simulate_records_and_lists_journey(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "journeys.db"
    record = _simulate(db, capsys)
    assert record["name"] == "Test Ride"
    assert record["endTime"] is not None
    assert len(record["samples"]) >= 1

    cli.main(["--db", str(db), "list", "--json"])
    listing = json.loads(capsys.readouterr().out)
    assert [j["id"] for j in listing["journeys"]] == [record["id"]]
    assert listing["journeys"][0]["pointCount"] == len(record["samples"])

    cli.main(["--db", str(db), "show", record["id"], "--json"])
    shown = json.loads(capsys.readouterr().out)
    assert shown["journey"]["id"] == record["id"]
    assert shown["stats"]["pointCount"] == len(record["samples"])


def test_cli_export_import_round_trip(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source_db = tmp_path / "source.db"
    record = _simulate(source_db, capsys)

    export_dir = tmp_path / "exports"
    csv_path = tmp_path / "samples.csv"
    cli.main(["--db", str(source_db), "export", record["id"], "--output-dir", str(export_dir), "--csv", str(csv_path)])
    capsys.readouterr()
    exported = list(export_dir.glob("journey-test-ride-*.json"))
    assert len(exported) == 1
    assert csv_path.exists()

    target_db = tmp_path / "target.db"
    cli.main(["--db", str(target_db), "import", str(exported[0])])
    assert record["id"] in capsys.readouterr().out

    cli.main(["--db", str(target_db), "list", "--json"])
    assert [j["id"] for j in json.loads(capsys.readouterr().out)["journeys"]] == [record["id"]]


def test_cli_report_writes_markdown(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "journeys.db"
    record = _simulate(db, capsys)
    report_path = tmp_path / "reports" / "ride.md"

    cli.main(["--db", str(db), "report", record["id"], "--output", str(report_path)])
    content = report_path.read_text(encoding="utf-8")
    assert "# Journey Report" in content
    assert "Test Ride" in content
    assert "## Samples" in content


def test_cli_delete_and_clear(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "journeys.db"
    first = _simulate(db, capsys)
    _simulate(db, capsys)

    cli.main(["--db", str(db), "delete", first["id"]])
    capsys.readouterr()
    cli.main(["--db", str(db), "list", "--json"])
    ids = [j["id"] for j in json.loads(capsys.readouterr().out)["journeys"]]
    assert first["id"] not in ids and len(ids) == 1

    with pytest.raises(SystemExit):
        cli.main(["--db", str(db), "clear"])
    cli.main(["--db", str(db), "clear", "--yes"])
    capsys.readouterr()
    cli.main(["--db", str(db), "list"])
    assert "No journeys stored." in capsys.readouterr().out


def test_cli_missing_journey_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="not found"):
        cli.main(["--db", str(tmp_path / "journeys.db"), "show", "missing"])


def test_cli_import_rejects_malformed_file(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"version": "1.0"}), encoding="utf-8")
    with pytest.raises(SystemExit, match="missing 'journey'"):
        cli.main(["--db", str(tmp_path / "journeys.db"), "import", str(bad)])


def test_cli_version_prints(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["version"])
    assert capsys.readouterr().out.strip()


def test_cli_invalid_config_exits_with_message(tmp_path: Path) -> None:
    config_path = tmp_path / "recorder.yaml"
    config_path.write_text("recording:\n  interval_s: -1\n", encoding="utf-8")
    with pytest.raises(SystemExit, match="Invalid configuration"):
        cli.main(["--config", str(config_path), "--db", str(tmp_path / "journeys.db"), "list"])


def test_cli_unopenable_database_exits_with_message(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(SystemExit, match="^Error: Failed to open journey database"):
        cli.main(["--db", str(blocker / "journeys.db"), "list"])
