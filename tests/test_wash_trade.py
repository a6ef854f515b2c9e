"""
Tests for same-wallet round-trip (wash trade) detection.
"""

from __future__ import annotations

import pytest

from conftest import make_tx
from toxicflow.config.settings import DetectionConfig
from toxicflow.feed.models import TokenPair
from toxicflow.heuristics.base import HeuristicKind
from toxicflow.heuristics.wash_trade import detect_wash_trades, wash_confidence
from toxicflow.indexer.block_index import BlockWindowIndex


def test_round_trip_flagged(config):
    txs = [
        make_tx("b", 10, "W", "buy", price=2.0),
        make_tx("s", 11, "W", "sell", price=2.001),
    ]
    flags = detect_wash_trades(BlockWindowIndex.build(txs), config)
    assert len(flags) == 1
    flag = flags[0]
    assert flag.kind is HeuristicKind.WASH_TRADE
    assert flag.tx_ids == ("b", "s")
    assert flag.actors == ("W",)
    assert flag.evidence["block_gap"] == 1
    assert flag.evidence["price_delta"] == pytest.approx(0.0005)


def test_price_move_not_flagged(config):
    txs = [
        make_tx("b", 10, "W", "buy", price=2.0),
        make_tx("s", 11, "W", "sell", price=2.1),
    ]
    assert detect_wash_trades(BlockWindowIndex.build(txs), config) == []


def test_gap_beyond_max_not_flagged(config):
    txs = [
        make_tx("b", 10, "W", "buy"),
        make_tx("s", 10 + config.wash_max_block_gap + 1, "W", "sell"),
    ]
    assert detect_wash_trades(BlockWindowIndex.build(txs), config) == []


def test_gap_at_max_flagged(config):
    txs = [
        make_tx("b", 10, "W", "buy"),
        make_tx("s", 10 + config.wash_max_block_gap, "W", "sell"),
    ]
    assert len(detect_wash_trades(BlockWindowIndex.build(txs), config)) == 1


def test_same_side_not_flagged(config):
    txs = [make_tx("b1", 10, "W", "buy"), make_tx("b2", 11, "W", "buy")]
    assert detect_wash_trades(BlockWindowIndex.build(txs), config) == []


def test_different_wallets_not_flagged(config):
    txs = [make_tx("b", 10, "W1", "buy"), make_tx("s", 11, "W2", "sell")]
    assert detect_wash_trades(BlockWindowIndex.build(txs), config) == []


def test_different_pairs_not_flagged(config):
    txs = [
        make_tx("b", 10, "W", "buy"),
        make_tx("s", 11, "W", "sell", pair=TokenPair("PEPE", "WETH")),
    ]
    assert detect_wash_trades(BlockWindowIndex.build(txs), config) == []


def test_each_leg_used_once(config):
    txs = [
        make_tx("b1", 10, "W", "buy", position=0),
        make_tx("s1", 10, "W", "sell", position=1),
        make_tx("s2", 11, "W", "sell"),
        make_tx("b2", 12, "W", "buy"),
    ]
    flags = detect_wash_trades(BlockWindowIndex.build(txs), config)
    assert [f.tx_ids for f in flags] == [("b1", "s1"), ("s2", "b2")]


def test_confidence_prefers_tight_round_trips():
    cfg = DetectionConfig()
    assert wash_confidence(0.0, 0, cfg) == 1.0
    assert wash_confidence(0.0, 1, cfg) > wash_confidence(0.0, 3, cfg)
    assert wash_confidence(0.0005, 1, cfg) > wash_confidence(0.0015, 1, cfg)
    assert 0.0 <= wash_confidence(0.0019, 3, cfg) <= 1.0


def test_absolute_delta_mode():
    txs = [
        make_tx("b", 10, "W", "buy", price=100.0),
        make_tx("s", 11, "W", "sell", price=100.1),
    ]
    index = BlockWindowIndex.build(txs)
    assert len(detect_wash_trades(index, DetectionConfig())) == 1
    assert detect_wash_trades(index, DetectionConfig(wash_delta_mode="absolute")) == []
    flags = detect_wash_trades(index, DetectionConfig(wash_delta_mode="absolute", wash_price_delta_threshold=0.5))
    assert len(flags) == 1
    assert flags[0].evidence["wash_delta_mode"] == "absolute"
    assert flags[0].evidence["price_delta"] == pytest.approx(0.1)
