"""
Tests for combining flags into per-wallet and per-transaction verdicts.
"""

from __future__ import annotations

import pytest

from conftest import PAIR
from toxicflow.aggregator.scorer import (
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    aggregate,
    aggregate_by_transaction,
    combine_confidences,
    score_to_risk_level,
)
from toxicflow.config.settings import DetectionConfig
from toxicflow.heuristics.base import Flag, HeuristicKind


def _flag(kind, tx_ids, actors, confidence, block=1, wallets=None):
    return Flag(
        kind=kind,
        tx_ids=tuple(tx_ids),
        wallets=tuple(wallets or actors),
        actors=tuple(actors),
        block_number=block,
        pair=PAIR,
        confidence=confidence,
    )


def test_two_flags_combine_as_probabilistic_or(config):
    flags = [
        _flag(HeuristicKind.SANDWICH, ["t1", "t2", "t3"], ["W"], 0.5),
        _flag(HeuristicKind.WASH_TRADE, ["t4", "t5"], ["W"], 0.4, block=2),
    ]
    verdicts = aggregate(flags, config)
    assert len(verdicts) == 1
    assert verdicts[0].subject == "W"
    assert verdicts[0].score == pytest.approx(0.7)
    assert verdicts[0].kinds == ("sandwich", "wash_trade")
    assert verdicts[0].flag_count == 2
    assert verdicts[0].risk_level == RISK_MEDIUM


def test_no_flags_no_verdicts(config):
    assert aggregate([], config) == []
    assert aggregate_by_transaction([], config) == []


def test_combine_bounds():
    assert combine_confidences([]) == 0.0
    assert combine_confidences([1.0, 0.3]) == 1.0
    assert combine_confidences([0.2]) == pytest.approx(0.2)
    assert 0.0 <= combine_confidences([0.9] * 20) <= 1.0


def test_score_never_below_strongest_flag(config):
    flags = [_flag(HeuristicKind.SNIPE, [f"t{i}"], ["W"], c) for i, c in enumerate((0.3, 0.6, 0.1))]
    assert aggregate(flags, config)[0].score >= 0.6


def test_victim_not_scored(config):
    flag = _flag(HeuristicKind.SANDWICH, ["a1", "v", "a2"], ["A"], 0.9, wallets=["A", "V"])
    assert [v.subject for v in aggregate([flag], config)] == ["A"]


def test_risk_levels():
    cfg = DetectionConfig()
    assert score_to_risk_level(0.8, cfg) == RISK_HIGH
    assert score_to_risk_level(0.79, cfg) == RISK_MEDIUM
    assert score_to_risk_level(0.5, cfg) == RISK_MEDIUM
    assert score_to_risk_level(0.49, cfg) == RISK_LOW
    strict = DetectionConfig(high_risk_threshold=0.95, medium_risk_threshold=0.9)
    assert score_to_risk_level(0.8, strict) == RISK_LOW


def test_verdicts_sorted_by_score_then_subject(config):
    flags = [
        _flag(HeuristicKind.SNIPE, ["t1"], ["B"], 0.4),
        _flag(HeuristicKind.SNIPE, ["t2"], ["A"], 0.4),
        _flag(HeuristicKind.SNIPE, ["t3"], ["C"], 0.9),
    ]
    assert [v.subject for v in aggregate(flags, config)] == ["C", "A", "B"]


def test_verdict_flags_in_block_order(config):
    flags = [
        _flag(HeuristicKind.SNIPE, ["t9"], ["W"], 0.2, block=9),
        _flag(HeuristicKind.SNIPE, ["t1"], ["W"], 0.2, block=1),
    ]
    assert [f.block_number for f in aggregate(flags, config)[0].flags] == [1, 9]


def test_by_transaction(config):
    flags = [
        _flag(HeuristicKind.SANDWICH, ["a1", "v", "a2"], ["A"], 0.5),
        _flag(HeuristicKind.ARBITRAGE, ["a1"], ["A"], 0.5),
    ]
    verdicts = {v.subject: v for v in aggregate_by_transaction(flags, config)}
    assert set(verdicts) == {"a1", "v", "a2"}
    assert verdicts["a1"].score == pytest.approx(0.75)
    assert verdicts["v"].score == pytest.approx(0.5)


def test_verdict_to_dict(config):
    verdict = aggregate([_flag(HeuristicKind.SNIPE, ["t1"], ["W"], 0.9)], config)[0]
    data = verdict.to_dict()
    assert data["subject"] == "W"
    assert data["risk_level"] == RISK_HIGH
    assert data["kinds"] == ["snipe"]
    assert data["flags"][0]["tx_ids"] == ["t1"]
