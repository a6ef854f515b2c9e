"""
Constant-product pool replay for sandwich victims.

Given the pool reserves at the start of a block, replays the pool's swaps up
to the victim twice: once as it happened, once without the front-run. The
first replay must reproduce the victim's real output within
REALITY_TOLERANCE_PCT or the pool state is considered wrong and no loss is
reported; the second gives the output the victim would have had, and the
difference is the victim's loss in percent.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterable, Mapping

from toxicflow.core.exceptions import MalformedFeedError
from toxicflow.feed.models import Side, Transaction
from toxicflow.flow_logging import get_logger
from toxicflow.heuristics.base import Flag, HeuristicKind, sort_flags
from toxicflow.indexer.block_index import BlockWindowIndex

logger = get_logger(__name__)

REALITY_TOLERANCE_PCT = 1.0


@dataclass(frozen=True)
class SwapSimulation:
    received: float
    execution_price: float
    """Quote per base paid or received."""
    slippage_pct: float
    """Execution price vs spot price before the swap, in percent."""
    pool: "Pool"


@dataclass(frozen=True)
class Pool:
    """x*y=k pool of one base/quote pair; spot price is quote per base."""

    base_reserve: float
    quote_reserve: float

    @property
    def spot_price(self) -> float:
        return self.quote_reserve / self.base_reserve

    @staticmethod
    def amount_out(reserve_in: float, reserve_out: float, amount_in: float) -> float:
        return (reserve_out * amount_in) / (reserve_in + amount_in)

    def simulate_swap(self, tx: Transaction) -> SwapSimulation:
        """
        Apply one swap. A buy pays quote (amount * price) for base; a sell pays base for quote.
        """
        spot = self.spot_price
        if tx.side is Side.BUY:
            quote_in = tx.notional
            base_out = self.amount_out(self.quote_reserve, self.base_reserve, quote_in)
            execution = quote_in / base_out if base_out > 0 else float("inf")
            after = Pool(self.base_reserve - base_out, self.quote_reserve + quote_in)
            received = base_out
        else:
            base_in = tx.amount
            quote_out = self.amount_out(self.base_reserve, self.quote_reserve, base_in)
            execution = quote_out / base_in if base_in > 0 else 0.0
            after = Pool(self.base_reserve + base_in, self.quote_reserve - quote_out)
            received = quote_out
        slippage = abs(execution - spot) / spot * 100.0
        return SwapSimulation(received=received, execution_price=execution, slippage_pct=slippage, pool=after)


def _actual_output(tx: Transaction) -> float:
    return tx.amount if tx.side is Side.BUY else tx.notional


def _replay(pool: Pool, txs: Iterable[Transaction]) -> Pool:
    current = pool
    for tx in txs:
        current = current.simulate_swap(tx).pool
    return current


def simulate_victim_loss(
    pool: Pool,
    front: Transaction,
    victim: Transaction,
    block_txs: Iterable[Transaction],
) -> float | None:
    """
    Victim's output loss caused by the front-run, in percent.

    Returns None when replaying the real block does not reproduce the victim's
    actual output within REALITY_TOLERANCE_PCT.
    """
    before_victim = [
        t for t in block_txs if t.pool_id == victim.pool_id and t.position < victim.position
    ]
    actual = _actual_output(victim)
    if actual <= 0:
        return None

    real = _replay(pool, before_victim).simulate_swap(victim).received
    if abs(actual - real) / actual * 100.0 >= REALITY_TOLERANCE_PCT:
        return None

    without_front = [t for t in before_victim if t.tx_id != front.tx_id]
    counterfactual = _replay(pool, without_front).simulate_swap(victim).received
    return abs(actual - counterfactual) / actual * 100.0


def confirm_sandwiches(
    flags: Iterable[Flag],
    index: BlockWindowIndex,
    pools: Mapping[str, Pool],
) -> list[Flag]:
    """
    Attach simulated victim loss to sandwich flags whose victim pool is known.

    Adds evidence simulation_matches_reality and, when it does,
    simulated_victim_loss_pct. Other flags pass through unchanged.
    """
    out: list[Flag] = []
    confirmed = 0
    for flag in flags:
        if flag.kind is not HeuristicKind.SANDWICH:
            out.append(flag)
            continue
        front = index.get(flag.tx_ids[0])
        victim = index.get(flag.tx_ids[1])
        pool = pools.get(victim.pool_id)
        if pool is None:
            out.append(flag)
            continue
        loss = simulate_victim_loss(pool, front, victim, index.block(victim.block_number))
        evidence = dict(flag.evidence)
        evidence["simulation_matches_reality"] = loss is not None
        if loss is not None:
            evidence["simulated_victim_loss_pct"] = round(loss, 6)
            confirmed += 1
        out.append(replace(flag, evidence=evidence))
    logger.info("sandwich_simulation_done", confirmed=confirmed, pools=len(pools))
    return sort_flags(out)


def load_pools(path: str | Path) -> dict[str, Pool]:
    """
    Load starting pool reserves from JSON: {pool_id: {"base_reserve": x, "quote_reserve": y}}.

    Raises:
        MalformedFeedError: unreadable file or non-positive reserves.
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedFeedError(f"cannot read pool file {p}: {e}") from None
    if not isinstance(data, dict):
        raise MalformedFeedError(f"{p}: expected an object of pool_id -> reserves")
    pools: dict[str, Pool] = {}
    for i, (pool_id, reserves) in enumerate(sorted(data.items())):
        try:
            base = float(reserves["base_reserve"])
            quote = float(reserves["quote_reserve"])
        except (KeyError, TypeError, ValueError):
            raise MalformedFeedError("pool needs numeric base_reserve and quote_reserve", record_index=i, field=pool_id) from None
        if base <= 0 or quote <= 0:
            raise MalformedFeedError("pool reserves must be positive", record_index=i, field=pool_id)
        pools[str(pool_id)] = Pool(base, quote)
    return pools
