import json

import pytest
from typer.testing import CliRunner

from app import app
from config import Config
from core.interchange.payload import import_payload
from core.time_windows.models import build_head

runner = CliRunner()

PAYLOAD = [{"n": "Head 1", "t": 120, "s": [{"n": "Work", "c": 0, "i": [[0, 120]]}]}]


@pytest.fixture
def payload_file(tmp_path):
    path = tmp_path / "line.json"
    path.write_text(json.dumps(PAYLOAD))
    return path


def test_report_prints_summary(payload_file):
    result = runner.invoke(
        app,
        ["report", str(payload_file), "--basis", "hour", "--target-rate", "10", "--actual-output", "20"],
    )
    assert result.exit_code == 0, result.output
    assert "Head 1" in result.output
    assert "Target output: 20.00" in result.output
    assert "Productivity:  100.0%" in result.output


def test_report_rejects_per_shift_without_shift(payload_file):
    result = runner.invoke(app, ["report", str(payload_file), "--basis", "shift"])
    assert result.exit_code == 1
    assert "Shift duration is required" in result.output


def test_report_rejects_out_of_range_shift(payload_file):
    result = runner.invoke(app, ["report", str(payload_file), "--basis", "shift", "--shift", "2000"])
    assert result.exit_code == 1
    assert "1440" in result.output


def test_report_rejects_malformed_payload(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text('[{"n": "H"}]')
    result = runner.invoke(app, ["report", str(path)])
    assert result.exit_code == 1
    assert "missing required field 't'" in result.output


def test_missing_payload_file(tmp_path):
    result = runner.invoke(app, ["report", str(tmp_path / "absent.json")])
    assert result.exit_code == 1
    assert "Cannot read payload" in result.output


def test_invalid_configuration_stops_startup(payload_file, monkeypatch):
    monkeypatch.setattr(Config, "DEFAULT_UNITS_PER_CYCLE", 0.0)
    result = runner.invoke(app, ["report", str(payload_file)])
    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_convert_to_clock_variant(tmp_path):
    head = build_head("Night", 480, [("Weld", [(0, 200), (300, 400)], False)])
    path = tmp_path / "night.json"
    path.write_text(json.dumps([{"n": "Night", "t": 480, "s": [{"n": "Weld", "c": 0, "i": [[0, 200], [300, 400]]}]}]))

    result = runner.invoke(app, ["convert", str(path), "--start-clock", "22:00"])

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data[0]["et"] == "06:00"
    assert import_payload(data) == (head,)


def test_convert_rejects_bad_start_clock(payload_file):
    result = runner.invoke(app, ["convert", str(payload_file), "--start-clock", "25:99"])
    assert result.exit_code == 1
    assert "Error" in result.output
