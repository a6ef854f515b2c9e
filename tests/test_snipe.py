"""
Tests for launch snipe detection: supply share, contract origin, and buy clustering.
"""

from __future__ import annotations

import pytest

from conftest import make_tx
from toxicflow.config.settings import DetectionConfig
from toxicflow.feed.models import TokenPair
from toxicflow.heuristics.base import HeuristicKind
from toxicflow.heuristics.snipe import detect_snipes
from toxicflow.indexer.block_index import BlockWindowIndex

NEW = TokenPair("NEWTOKEN", "WETH")
SUPPLY = 1_000_000.0


def _launch(*extra):
    return [make_tx("launch", 100, "deployer", "sell", pair=NEW, amount=10.0, supply=SUPPLY), *extra]


def test_contract_buy_below_supply_threshold_flagged():
    """Contract-origin buy of 0.1% supply one block after launch is flagged via the contract signal."""
    config = DetectionConfig(snipe_window_blocks=5)
    txs = _launch(make_tx("snipe", 101, "bot", "buy", pair=NEW, amount=0.001 * SUPPLY, contract=True, supply=SUPPLY))
    flags = detect_snipes(BlockWindowIndex.build(txs), config)
    assert len(flags) == 1
    flag = flags[0]
    assert flag.kind is HeuristicKind.SNIPE
    assert flag.tx_ids == ("snipe",)
    assert flag.actors == ("bot",)
    assert flag.evidence["launch_block"] == 100
    assert flag.evidence["supply_fraction"] == pytest.approx(0.001)
    assert flag.evidence["supply_fraction"] < config.snipe_supply_threshold
    assert flag.evidence["contract_signal"] == 1.0
    contract_only = config.snipe_contract_weight / config.snipe_weight_total
    assert flag.confidence >= contract_only
    assert flag.confidence > 0


def test_large_supply_buy_flagged(config):
    txs = _launch(make_tx("whale", 102, "w1", "buy", pair=NEW, amount=0.05 * SUPPLY))
    flags = detect_snipes(BlockWindowIndex.build(txs), config)
    assert [f.tx_ids for f in flags] == [("whale",)]
    assert flags[0].evidence["supply_signal"] == 1.0


def test_small_wallet_buy_not_flagged(config):
    txs = _launch(make_tx("retail", 101, "w1", "buy", pair=NEW, amount=0.0001 * SUPPLY))
    assert detect_snipes(BlockWindowIndex.build(txs), config) == []


def test_buy_outside_window_not_flagged(config):
    txs = _launch(make_tx("late", 106, "bot", "buy", pair=NEW, amount=0.5 * SUPPLY, contract=True))
    assert detect_snipes(BlockWindowIndex.build(txs), config) == []


def test_window_edge_included(config):
    txs = _launch(make_tx("edge", 105, "bot", "buy", pair=NEW, amount=1.0, contract=True))
    assert len(detect_snipes(BlockWindowIndex.build(txs), config)) == 1


def test_cluster_of_small_buys_flagged(config):
    buys = [
        make_tx(f"b{i}", 101 + i % 2, f"w{i}", "buy", pair=NEW, amount=10.0, position=i)
        for i in range(4)
    ]
    flags = detect_snipes(BlockWindowIndex.build(_launch(*buys)), config)
    assert len(flags) == 4
    for flag in flags:
        assert flag.evidence["cluster_buys"] == 3
        assert flag.evidence["cluster_signal"] == 1.0


def test_sells_ignored(config):
    txs = _launch(make_tx("dump", 101, "bot", "sell", pair=NEW, amount=0.5 * SUPPLY, contract=True))
    assert detect_snipes(BlockWindowIndex.build(txs), config) == []


def test_unknown_supply_relies_on_other_signals(config):
    pair = TokenPair("NOSUPPLY", "WETH")
    txs = [
        make_tx("l", 50, "dev", "sell", pair=pair),
        make_tx("c", 51, "bot", "buy", pair=pair, amount=1e12, contract=True),
        make_tx("w", 51, "w1", "buy", pair=pair, amount=1e12, position=1),
    ]
    flags = detect_snipes(BlockWindowIndex.build(txs), config)
    assert [f.tx_ids for f in flags] == [("c",)]
    assert flags[0].evidence["supply_fraction"] is None


def test_confidence_grows_with_signals(config):
    alone = detect_snipes(
        BlockWindowIndex.build(_launch(make_tx("c", 101, "bot", "buy", pair=NEW, amount=1.0, contract=True))),
        config,
    )[0]
    big = detect_snipes(
        BlockWindowIndex.build(_launch(make_tx("c", 101, "bot", "buy", pair=NEW, amount=0.02 * SUPPLY, contract=True))),
        config,
    )[0]
    assert big.confidence > alone.confidence
