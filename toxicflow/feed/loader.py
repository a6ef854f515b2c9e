"""
Transaction feed loader: fixture files and in-memory records to Transactions.

Reads CSV (via pandas, every cell as a string so nothing is coerced) or JSON
and produces a finite, deterministic sequence sorted by (block, position).
Schema violations raise MalformedFeedError naming the record and field.
dump_feed writes the same schema back; floats are written with repr so
load -> dump -> load is lossless.
"""

from __future__ import annotations

import csv
import json
import math
from pathlib import Path
from typing import Any, Iterable, Mapping

import pandas as pd

from toxicflow.core.exceptions import MalformedFeedError
from toxicflow.feed.models import Side, TokenPair, Transaction
from toxicflow.flow_logging import get_logger

logger = get_logger(__name__)

# Column order used when writing feeds.
FEED_COLUMNS = [
    "tx_id",
    "block_number",
    "position",
    "timestamp",
    "wallet",
    "base_token",
    "quote_token",
    "exchange",
    "side",
    "amount",
    "price",
    "gas_price",
    "slippage_tolerance",
    "is_contract",
    "token_supply",
    "pool",
]

REQUIRED_FIELDS = (
    "tx_id",
    "block_number",
    "timestamp",
    "wallet",
    "exchange",
    "side",
    "amount",
    "price",
    "gas_price",
    "slippage_tolerance",
    "is_contract",
)

_TRUE = ("1", "true", "yes", "y", "contract")
_FALSE = ("0", "false", "no", "n", "wallet", "eoa")


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _require(record: Mapping[str, Any], field: str, index: int) -> Any:
    value = record.get(field)
    if _is_blank(value):
        raise MalformedFeedError("missing required field", record_index=index, field=field)
    return value.strip() if isinstance(value, str) else value


def _parse_int(value: Any, field: str, index: int) -> int:
    if isinstance(value, bool):
        raise MalformedFeedError(f"expected integer, got {value!r}", record_index=index, field=field)
    if isinstance(value, int):
        out = value
    elif isinstance(value, float) and value.is_integer():
        out = int(value)
    else:
        try:
            out = int(str(value).strip())
        except ValueError:
            raise MalformedFeedError(
                f"expected integer, got {value!r}", record_index=index, field=field
            ) from None
    if out < 0:
        raise MalformedFeedError(f"must be >= 0, got {out}", record_index=index, field=field)
    return out


def _parse_float(value: Any, field: str, index: int) -> float:
    if isinstance(value, bool):
        raise MalformedFeedError(f"expected number, got {value!r}", record_index=index, field=field)
    try:
        out = float(value)
    except (TypeError, ValueError):
        raise MalformedFeedError(f"expected number, got {value!r}", record_index=index, field=field) from None
    if math.isnan(out) or math.isinf(out):
        raise MalformedFeedError(f"must be finite, got {value!r}", record_index=index, field=field)
    if out < 0:
        raise MalformedFeedError(f"must not be negative, got {out!r}", record_index=index, field=field)
    return out


def _parse_bool(value: Any, field: str, index: int) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise MalformedFeedError(f"expected boolean, got {value!r}", record_index=index, field=field)


def _parse_pair(record: Mapping[str, Any], index: int) -> TokenPair:
    if not _is_blank(record.get("pair")):
        try:
            return TokenPair.parse(str(record["pair"]))
        except ValueError as e:
            raise MalformedFeedError(str(e), record_index=index, field="pair") from None
    base = _require(record, "base_token", index)
    quote = _require(record, "quote_token", index)
    return TokenPair(str(base), str(quote))


def _parse_side(value: Any, index: int) -> Side:
    try:
        return Side(str(value).strip().lower())
    except ValueError:
        raise MalformedFeedError(
            f"side must be 'buy' or 'sell', got {value!r}", record_index=index, field="side"
        ) from None


def parse_record(record: Mapping[str, Any], index: int, default_position: int) -> Transaction:
    """Validate one raw record and build a Transaction."""
    for field in REQUIRED_FIELDS:
        _require(record, field, index)

    position_raw = record.get("position")
    position = default_position if _is_blank(position_raw) else _parse_int(position_raw, "position", index)

    supply_raw = record.get("token_supply")
    token_supply = None if _is_blank(supply_raw) else _parse_float(supply_raw, "token_supply", index)
    pool_raw = record.get("pool")
    pool = None if _is_blank(pool_raw) else str(pool_raw).strip()

    return Transaction(
        tx_id=str(_require(record, "tx_id", index)),
        block_number=_parse_int(record["block_number"], "block_number", index),
        position=position,
        timestamp=_parse_int(record["timestamp"], "timestamp", index),
        wallet=str(_require(record, "wallet", index)),
        pair=_parse_pair(record, index),
        exchange=str(_require(record, "exchange", index)),
        side=_parse_side(record["side"], index),
        amount=_parse_float(record["amount"], "amount", index),
        price=_parse_float(record["price"], "price", index),
        gas_price=_parse_float(record["gas_price"], "gas_price", index),
        slippage_tolerance=_parse_float(record["slippage_tolerance"], "slippage_tolerance", index),
        is_contract=_parse_bool(record["is_contract"], "is_contract", index),
        token_supply=token_supply,
        pool=pool,
    )


def load_records(records: Iterable[Mapping[str, Any]]) -> list[Transaction]:
    """
    Build the ordered transaction sequence from in-memory records.

    Block numbers must be non-decreasing in input order. Within a block,
    position defaults to the record's order of appearance in that block.

    Returns:
        Transactions sorted by (block_number, position).

    Raises:
        MalformedFeedError: on any schema violation; no partial result is returned.
    """
    transactions: list[Transaction] = []
    seen_ids: set[str] = set()
    seen_positions: set[tuple[int, int]] = set()
    last_block: int | None = None
    in_block = 0

    for index, record in enumerate(records):
        if not isinstance(record, Mapping):
            raise MalformedFeedError(f"expected an object, got {type(record).__name__}", record_index=index)
        block_raw = _require(record, "block_number", index)
        block = _parse_int(block_raw, "block_number", index)
        if last_block is not None and block < last_block:
            raise MalformedFeedError(
                f"block numbers must be non-decreasing ({block} after {last_block})",
                record_index=index,
                field="block_number",
            )
        in_block = in_block + 1 if block == last_block else 0
        last_block = block

        tx = parse_record(record, index, default_position=in_block)
        if tx.tx_id in seen_ids:
            raise MalformedFeedError(f"duplicate tx_id {tx.tx_id!r}", record_index=index, field="tx_id")
        if (tx.block_number, tx.position) in seen_positions:
            raise MalformedFeedError(
                f"duplicate position {tx.position} in block {tx.block_number}",
                record_index=index,
                field="position",
            )
        seen_ids.add(tx.tx_id)
        seen_positions.add((tx.block_number, tx.position))
        transactions.append(tx)

    transactions.sort(key=lambda t: t.sort_key)
    return transactions


def _read_csv_records(path: Path) -> list[dict[str, Any]]:
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise MalformedFeedError(f"feed file {path} is empty") from None
    except pd.errors.ParserError as e:
        raise MalformedFeedError(f"cannot parse CSV {path}: {e}") from None
    except UnicodeDecodeError as e:
        raise MalformedFeedError(f"feed file {path} is not UTF-8: {e}") from None
    except OSError as e:
        raise MalformedFeedError(f"cannot read feed file {path}: {e}") from None
    df.columns = [str(c).strip() for c in df.columns]
    return df.to_dict(orient="records")


def _read_json_records(path: Path) -> list[Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise MalformedFeedError(f"invalid JSON in {path}: {e}") from None
    except UnicodeDecodeError as e:
        raise MalformedFeedError(f"feed file {path} is not UTF-8: {e}") from None
    except OSError as e:
        raise MalformedFeedError(f"cannot read feed file {path}: {e}") from None
    if isinstance(data, dict):
        data = data.get("transactions")
    if not isinstance(data, list):
        raise MalformedFeedError(f"{path}: expected a list of transactions or {{'transactions': [...]}}")
    return data


def load_feed(path: str | Path) -> list[Transaction]:
    """
    Load a feed fixture (.csv or .json) into ordered Transactions.

    Raises:
        MalformedFeedError: unreadable file, unsupported format, or schema violation.
    """
    p = Path(path)
    if not p.is_file():
        raise MalformedFeedError(f"feed file not found: {p}")
    suffix = p.suffix.lower()
    if suffix == ".csv":
        records = _read_csv_records(p)
    elif suffix == ".json":
        records = _read_json_records(p)
    else:
        raise MalformedFeedError(f"unsupported feed format {suffix!r} (use .csv or .json)")

    logger.info("feed_load_start", path=str(p), records=len(records))
    transactions = load_records(records)
    logger.info(
        "feed_load_done",
        path=str(p),
        transactions=len(transactions),
        blocks=len({t.block_number for t in transactions}),
    )
    return transactions


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    return str(value)


def transactions_to_records(transactions: Iterable[Transaction]) -> list[dict[str, Any]]:
    """Flatten Transactions into feed records (native types, FEED_COLUMNS keys)."""
    out: list[dict[str, Any]] = []
    for tx in transactions:
        out.append({
            "tx_id": tx.tx_id,
            "block_number": tx.block_number,
            "position": tx.position,
            "timestamp": tx.timestamp,
            "wallet": tx.wallet,
            "base_token": tx.pair.base,
            "quote_token": tx.pair.quote,
            "exchange": tx.exchange,
            "side": tx.side.value,
            "amount": tx.amount,
            "price": tx.price,
            "gas_price": tx.gas_price,
            "slippage_tolerance": tx.slippage_tolerance,
            "is_contract": tx.is_contract,
            "token_supply": tx.token_supply,
            "pool": tx.pool,
        })
    return out


def dump_feed(transactions: Iterable[Transaction], path: str | Path) -> Path:
    """Write transactions to .csv or .json in the loader's schema. Returns the path."""
    p = Path(path)
    records = transactions_to_records(transactions)
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = p.suffix.lower()
    if suffix == ".csv":
        with open(p, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=FEED_COLUMNS)
            writer.writeheader()
            for rec in records:
                writer.writerow({k: _format_value(v) for k, v in rec.items()})
    elif suffix == ".json":
        p.write_text(json.dumps({"transactions": records}, indent=2) + "\n", encoding="utf-8")
    else:
        raise ValueError(f"unsupported feed format {suffix!r} (use .csv or .json)")
    logger.info("feed_dump_done", path=str(p), transactions=len(records))
    return p
