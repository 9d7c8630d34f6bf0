import json
import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))
sys.path.append(str(ROOT / "backend"))

from analyze_chart import EXIT_INVALID, main
from chart_engine.analysis import setup_chart_logging

CHARTS = [
    {"name": "Natal", "points": [{"name": "Sun", "degree": 0}, {"name": "Moon", "degree": 180}]},
    {"name": "Now", "kind": "transit", "points": [{"name": "Saturn", "degree": 90}]},
]


@pytest.fixture(autouse=True)
def restore_engine_logger():
    yield
    engine_logger = logging.getLogger("chart_engine")
    for handler in list(engine_logger.handlers):
        handler.close()
    engine_logger.handlers.clear()
    engine_logger.propagate = True
    engine_logger.setLevel(logging.NOTSET)


def _write(tmp_path, data):
    path = tmp_path / "charts.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_json_report(tmp_path, capsys):
    assert main([_write(tmp_path, CHARTS), "--patterns"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert [a["chart"]["name"] for a in data["chart_analyses"]] == ["Natal", "Now"]
    assert data["transit_analyses"][0]["patterns"][0]["type"] == "T-Square"


def test_preset_option(tmp_path, capsys):
    assert main([_write(tmp_path, CHARTS), "--preset", "wide"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["settings"]["aspect_preset"] == "wide"
    assert data["transit_analyses"][0]["patterns"] == []


def test_summary_output(tmp_path, capsys):
    assert main([_write(tmp_path, CHARTS), "--patterns", "--summary"]) == 0
    out = capsys.readouterr().out
    assert "== Natal ==" in out
    assert "[TIGHT ASPECTS]" in out
    assert "Natal:Sun opposition Natal:Moon" in out
    assert "== Natal / Now (transits) ==" in out



def test_salience_scores_and_ranking(tmp_path, capsys):
    assert main([_write(tmp_path, CHARTS), "--salience"]) == 0
    natal = json.loads(capsys.readouterr().out)["chart_analyses"][0]
    # opposition at orb 0 between luminaries: 50 x 5 x 1.5
    assert natal["aspects"][0]["salience_score"] == 375.0
    assert [(r["point"], r["rank"]) for r in natal["salience_ranking"]] == [("Sun", 1), ("Moon", 2)]


def test_detail_level_trims_low_scoring_items(tmp_path, capsys):
    assert main([_write(tmp_path, CHARTS), "--detail-level", "summary"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["settings"]["detail_level"] == "summary"
    natal = data["chart_analyses"][0]
    assert natal["placements"] == []
    assert len(natal["aspects"]) == 1
    assert len(data["transit_analyses"][0]["aspects"]) == 2


@pytest.mark.parametrize(
    "data, message",
    [
        ([CHARTS[1], dict(CHARTS[1], name="Later")], "more than one transit chart"),
        ([{"name": "Natal", "points": [{"name": "Sun", "degree": "zero"}]}], "invalid degree value"),
    ],
)
def test_invalid_input_exit_status(tmp_path, capsys, data, message):
    assert main([_write(tmp_path, data)]) == EXIT_INVALID
    assert message in capsys.readouterr().err


def test_invalid_preset_exit_status(tmp_path, capsys):
    assert main([_write(tmp_path, CHARTS), "--preset", "cosmic"]) == EXIT_INVALID
    assert "unknown preset" in capsys.readouterr().err


def test_unreadable_file(tmp_path, capsys):
    assert main([str(tmp_path / "missing.json")]) == EXIT_INVALID
    assert "Could not read" in capsys.readouterr().err


def test_setup_chart_logging_writes_file(tmp_path):
    log_file = tmp_path / "engine.log"
    setup_chart_logging("DEBUG", str(log_file))
    engine_logger = logging.getLogger("chart_engine")
    assert engine_logger.level == logging.DEBUG
    assert engine_logger.propagate is False
    assert len(engine_logger.handlers) == 2

    logging.getLogger("chart_engine.analysis").debug("hello from the engine")
    for handler in engine_logger.handlers:
        handler.flush()
    assert "chart_engine.analysis - DEBUG - hello from the engine" in log_file.read_text(encoding="utf-8")
