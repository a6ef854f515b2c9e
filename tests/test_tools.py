"""
Tests for the command-line tools.
"""

from __future__ import annotations

import csv
import json

import pytest

from toxicflow.tools import generate_feed as generate_tool
from toxicflow.tools import run_detection as detect_tool


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("TOXICFLOW_FEED_PATH", "TOXICFLOW_REPORT_PATH", "TOXICFLOW_PARALLEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def feed_path(tmp_path):
    path = tmp_path / "feed.csv"
    assert generate_tool.main([str(path), "--seed", "5", "--blocks", "20"]) == 0
    return path


def test_generate_writes_feed_and_labels(feed_path):
    labels = generate_tool.labels_path_for(feed_path)
    assert labels.name == "feed.labels.csv"
    with open(labels, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert {r["label"] for r in rows} == {"sandwich", "snipe", "arbitrage", "wash_trade"}


def test_detect_to_stdout(feed_path, capsys):
    capsys.readouterr()
    assert detect_tool.main([str(feed_path)]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["summary"]["flags"] > 0


def test_detect_to_output_file(feed_path, tmp_path):
    out = tmp_path / "report.json"
    assert detect_tool.main([str(feed_path), "-o", str(out), "--kinds", "snipe"]) == 0
    data = json.loads(out.read_text())
    assert set(data["summary"]["flags_by_kind"]) == {"snipe"}


def test_detect_report_path_from_env(feed_path, tmp_path, monkeypatch):
    out = tmp_path / "env_report.json"
    monkeypatch.setenv("TOXICFLOW_REPORT_PATH", str(out))
    assert detect_tool.main([str(feed_path)]) == 0
    assert out.is_file()


def test_detect_with_config_file(feed_path, tmp_path, capsys):
    capsys.readouterr()
    cfg = tmp_path / "thresholds.json"
    cfg.write_text(json.dumps({"arb_price_diff_threshold": 0.5}))
    assert detect_tool.main([str(feed_path), "--config", str(cfg), "--kinds", "arbitrage"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["config"]["arb_price_diff_threshold"] == 0.5
    assert data["summary"]["flags"] == 0


def test_malformed_feed_exit_2(tmp_path):
    bad = tmp_path / "bad.csv"
    bad.write_text("tx_id,block_number\nx,notanumber\n")
    assert detect_tool.main([str(bad)]) == 2


def test_bad_config_exit_2(feed_path, tmp_path):
    cfg = tmp_path / "thresholds.json"
    cfg.write_text(json.dumps({"high_risk_threshold": 2.0}))
    assert detect_tool.main([str(feed_path), "--config", str(cfg)]) == 2


def test_missing_feed_exit_2():
    assert detect_tool.main([]) == 2


def test_generate_rejects_bad_suffix(tmp_path):
    with pytest.raises(SystemExit):
        generate_tool.main([str(tmp_path / "feed.txt")])


def test_missing_config_file_exit_2(feed_path, tmp_path):
    assert detect_tool.main([str(feed_path), "--config", str(tmp_path / "nope.json")]) == 2


@pytest.mark.parametrize("name", ["latin1.csv", "latin1.json"])
def test_non_utf8_feed_exit_2(tmp_path, name):
    bad = tmp_path / name
    bad.write_bytes(b"\xff\xfe\xfa tx_id,block_number\n")
    assert detect_tool.main([str(bad)]) == 2
