"""
Tests for the feed loader: schema validation, ordering, and lossless round trip.
"""

from __future__ import annotations

import json

import pytest

from conftest import feed_record, make_tx
from toxicflow.core.exceptions import MalformedFeedError
from toxicflow.feed.loader import FEED_COLUMNS, dump_feed, load_feed, load_records, transactions_to_records
from toxicflow.feed.models import Side, TokenPair
from toxicflow.feed.simulator import generate_feed


def test_load_records_parses_fields():
    txs = load_records([feed_record("t1", 10, is_contract="true", token_supply="1000000", pool="0xpool")])
    assert len(txs) == 1
    tx = txs[0]
    assert tx.tx_id == "t1"
    assert tx.block_number == 10
    assert tx.position == 0
    assert tx.pair == TokenPair("SHIB", "USDC")
    assert tx.side is Side.BUY
    assert tx.amount == 100.0
    assert tx.is_contract is True
    assert tx.token_supply == 1_000_000.0
    assert tx.pool_id == "0xpool"


def test_pair_column_accepted():
    rec = feed_record("t1", 1)
    del rec["base_token"], rec["quote_token"]
    rec["pair"] = "PEPE/WETH"
    assert load_records([rec])[0].pair == TokenPair("PEPE", "WETH")


def test_default_position_follows_input_order():
    txs = load_records([feed_record("a", 5), feed_record("b", 5), feed_record("c", 6)])
    assert [(t.tx_id, t.position) for t in txs] == [("a", 0), ("b", 1), ("c", 0)]


def test_sorted_by_block_then_position():
    records = [
        feed_record("late", 5, position="2"),
        feed_record("early", 5, position="0"),
        feed_record("next", 7, position="0"),
    ]
    txs = load_records(records)
    assert [t.tx_id for t in txs] == ["early", "late", "next"]


@pytest.mark.parametrize("field", ["tx_id", "wallet", "amount", "price", "side", "is_contract", "block_number"])
def test_missing_required_field(field):
    rec = feed_record("t1", 1)
    rec[field] = ""
    with pytest.raises(MalformedFeedError) as exc:
        load_records([rec])
    assert exc.value.field == field
    assert exc.value.record_index == 0


def test_negative_amount():
    with pytest.raises(MalformedFeedError) as exc:
        load_records([feed_record("ok", 1), feed_record("neg", 2, amount="-5")])
    assert exc.value.field == "amount"
    assert exc.value.record_index == 1


def test_non_monotonic_blocks():
    with pytest.raises(MalformedFeedError) as exc:
        load_records([feed_record("a", 10), feed_record("b", 9)])
    assert exc.value.field == "block_number"


def test_duplicate_tx_id():
    with pytest.raises(MalformedFeedError) as exc:
        load_records([feed_record("a", 1), feed_record("a", 2)])
    assert exc.value.field == "tx_id"


def test_duplicate_position():
    with pytest.raises(MalformedFeedError) as exc:
        load_records([feed_record("a", 1, position="0"), feed_record("b", 1, position="0")])
    assert exc.value.field == "position"


def test_bad_side():
    with pytest.raises(MalformedFeedError) as exc:
        load_records([feed_record("a", 1, side="hold")])
    assert exc.value.field == "side"


def test_unparsable_number():
    with pytest.raises(MalformedFeedError) as exc:
        load_records([feed_record("a", 1, price="cheap")])
    assert exc.value.field == "price"


def test_load_feed_missing_file(tmp_path):
    with pytest.raises(MalformedFeedError):
        load_feed(tmp_path / "nope.csv")


def test_load_feed_unsupported_format(tmp_path):
    path = tmp_path / "feed.txt"
    path.write_text("x", encoding="utf-8")
    with pytest.raises(MalformedFeedError):
        load_feed(path)


def test_load_feed_empty_csv(tmp_path):
    path = tmp_path / "feed.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(MalformedFeedError):
        load_feed(path)


def test_load_json_wrapped_and_bare(tmp_path):
    records = [feed_record("a", 1), feed_record("b", 2)]
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(json.dumps({"transactions": records}), encoding="utf-8")
    bare = tmp_path / "bare.json"
    bare.write_text(json.dumps(records), encoding="utf-8")
    assert load_feed(wrapped) == load_feed(bare)


def test_csv_round_trip_is_lossless(tmp_path):
    """load -> dump -> load gives identical transactions; dump output is stable."""
    feed = generate_feed(seed=3, blocks=25)
    first = tmp_path / "first.csv"
    dump_feed(feed.transactions, first)
    loaded = load_feed(first)
    assert loaded == feed.transactions

    second = tmp_path / "second.csv"
    dump_feed(loaded, second)
    assert first.read_text(encoding="utf-8") == second.read_text(encoding="utf-8")


def test_json_round_trip_is_lossless(tmp_path):
    txs = [
        make_tx("a", 1, "w1", price=0.1 + 0.2, supply=1e9, contract=True),
        make_tx("b", 1, "w2", "sell", position=1, price=1 / 3, pool="0xpool"),
    ]
    path = tmp_path / "feed.json"
    dump_feed(txs, path)
    assert load_feed(path) == txs


def test_header_matches_columns(tmp_path):
    path = dump_feed([make_tx("a", 1, "w1")], tmp_path / "feed.csv")
    header = path.read_text(encoding="utf-8").splitlines()[0]
    assert header.split(",") == FEED_COLUMNS


def test_transactions_to_records_native_types():
    rec = transactions_to_records([make_tx("a", 3, "w1", contract=True)])[0]
    assert rec["block_number"] == 3
    assert rec["is_contract"] is True
    assert rec["side"] == "buy"
    assert rec["token_supply"] is None
