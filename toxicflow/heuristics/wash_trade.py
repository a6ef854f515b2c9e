"""
Wash trade detection.

Per wallet and pair, opposite-side swaps a few blocks apart at essentially
the same price carry no price risk: volume without a position. Swaps are
matched greedily in feed order, each swap used at most once.
"""

from __future__ import annotations

from toxicflow.config.settings import DetectionConfig
from toxicflow.feed.models import Transaction
from toxicflow.flow_logging import get_logger
from toxicflow.heuristics.base import Flag, HeuristicKind, clamp_confidence, sort_flags
from toxicflow.indexer.block_index import BlockWindowIndex

logger = get_logger(__name__)


def _price_delta(first: Transaction, second: Transaction, mode: str) -> float:
    """|p2 - p1| in quote units for "absolute", divided by p1 for "relative"."""
    if mode == "absolute":
        return abs(second.price - first.price)
    if first.price <= 0:
        return 0.0 if second.price <= 0 else float("inf")
    return abs(second.price - first.price) / first.price


def wash_confidence(delta: float, gap: int, config: DetectionConfig) -> float:
    """Half from price flatness, half from block proximity; 1.0 at zero delta and zero gap."""
    price_part = 1.0 - delta / config.wash_price_delta_threshold
    gap_part = 1.0 - gap / (config.wash_max_block_gap + 1)
    return clamp_confidence(0.5 * price_part + 0.5 * gap_part)


def _match_pair_legs(txs: tuple[Transaction, ...], config: DetectionConfig) -> list[tuple[Transaction, Transaction, float]]:
    used: set[str] = set()
    matches: list[tuple[Transaction, Transaction, float]] = []
    for i, first in enumerate(txs):
        if first.tx_id in used:
            continue
        for second in txs[i + 1:]:
            if second.block_number - first.block_number > config.wash_max_block_gap:
                break
            if second.tx_id in used or second.side is first.side:
                continue
            delta = _price_delta(first, second, config.wash_delta_mode)
            if delta >= config.wash_price_delta_threshold:
                continue
            used.add(first.tx_id)
            used.add(second.tx_id)
            matches.append((first, second, delta))
            break
    return matches


def detect_wash_trades(index: BlockWindowIndex, config: DetectionConfig) -> list[Flag]:
    """
    Flag buy/sell round trips by the same wallet with no meaningful price move.

    Returns:
        One flag per matched round trip (both transactions), sorted by (block, tx id).
    """
    flags: list[Flag] = []
    for wallet in index.wallets():
        for pair, txs in index.wallet_pairs(wallet).items():
            if len(txs) < 2:
                continue
            for first, second, delta in _match_pair_legs(txs, config):
                gap = second.block_number - first.block_number
                confidence = wash_confidence(delta, gap, config)
                flags.append(
                    Flag(
                        kind=HeuristicKind.WASH_TRADE,
                        tx_ids=(first.tx_id, second.tx_id),
                        wallets=(wallet,),
                        actors=(wallet,),
                        block_number=first.block_number,
                        pair=pair,
                        confidence=confidence,
                        evidence={
                            "first_side": first.side.value,
                            "second_side": second.side.value,
                            "block_gap": gap,
                            "wash_max_block_gap": config.wash_max_block_gap,
                            "price_delta": round(delta, 9),
                            "wash_price_delta_threshold": config.wash_price_delta_threshold,
                            "wash_delta_mode": config.wash_delta_mode,
                            "amount_ratio": round(second.amount / first.amount, 6) if first.amount > 0 else None,
                            "exchanges": sorted({first.exchange, second.exchange}),
                        },
                    )
                )
                logger.debug("wash_trade_detected", wallet=wallet, pair=str(pair), block_gap=gap)
    logger.info("wash_trade_scan_done", flags=len(flags))
    return sort_flags(flags)
