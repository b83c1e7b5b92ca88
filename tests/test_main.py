import json
import logging
from pathlib import Path

import pytest

import main
from loggers import logger, setup_logging

DATA_DIR = Path(__file__).parent / "data"


def test_run_detection_writes_results(tmp_path, capsys):
    output = tmp_path / "out" / "sandwich_attacks.json"

    results = main.run_detection(
        str(DATA_DIR / "sample_swaps.csv"), str(DATA_DIR / "pools.json"), output
    )

    assert len(results["heuristic"].attacks) == 6
    assert len(results["simulation"].attacks) == 6

    with output.open(encoding="utf-8") as f:
        data = json.load(f)

    assert data["heuristic"]["total_attacks"] == 6
    assert data["simulation"]["total_attacks"] == 6
    assert data["heuristic"]["summary"]["distinct_sandwiches"] == 3
    assert data["heuristic"]["skipped"][0]["kind"] == "insufficient_transactions"
    assert len(data["heuristic"]["profit"]) == 6

    printed = capsys.readouterr().out
    assert "0xsandwich1 -> 0xvictim001 -> 0xsandwich2" in printed
    assert "0xcross_dex1 -> 0xequiv_victim -> 0xcross_dex2" in printed
    assert "insufficient_transactions: 4" in printed


def test_run_detection_without_pools(tmp_path):
    output = tmp_path / "sandwich_attacks.json"

    results = main.run_detection(str(DATA_DIR / "sample_swaps.csv"), output_file=output)

    assert results["simulation"] is None
    with output.open(encoding="utf-8") as f:
        assert "simulation" not in json.load(f)


def test_main_usage(capsys):
    assert main.main(["main.py"]) == 2
    assert "usage" in capsys.readouterr().out


def test_main_reports_missing_file(tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(main, "setup_logging", lambda *args: None)

    assert main.main(["main.py", str(tmp_path / "missing.csv")]) == 1
    assert "ERROR" in capsys.readouterr().out


@pytest.fixture
def restore_logger():
    yield
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_setup_logging_writes_file(tmp_path, restore_logger):
    log_file = tmp_path / "scan.log"

    configured = setup_logging("debug", str(log_file))
    configured.debug("block 12360 scanned")
    setup_logging("info", str(log_file))

    assert configured is logger
    assert len(logger.handlers) == 2
    assert logger.level == logging.INFO
    assert "DEBUG - block 12360 scanned" in log_file.read_text(encoding="utf-8")
