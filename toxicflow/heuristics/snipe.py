"""
Launch snipe detection.

A pair's launch is the first block it traded in. Buys in the first
snipe_window_blocks after launch are scored on three signals: share of total
supply acquired, contract origin, and how many other buys crowd around the
same blocks. Any one signal firing raises a flag; confidence is the weighted
mean of all three.
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right

from toxicflow.config.settings import DetectionConfig
from toxicflow.feed.models import Side, Transaction
from toxicflow.flow_logging import get_logger
from toxicflow.heuristics.base import Flag, HeuristicKind, clamp_confidence, sort_flags
from toxicflow.indexer.block_index import BlockWindowIndex

logger = get_logger(__name__)


def _cluster_count(buy: Transaction, buys: list[Transaction], blocks: list[int], width: int) -> int:
    """Other launch-window buys within width blocks of this buy."""
    lo = bisect_left(blocks, buy.block_number - width)
    hi = bisect_right(blocks, buy.block_number + width)
    return sum(1 for other in buys[lo:hi] if other.tx_id != buy.tx_id)


def detect_snipes(index: BlockWindowIndex, config: DetectionConfig) -> list[Flag]:
    """
    Flag buys made right after each pair's launch block.

    Flag condition: supply fraction > snipe_supply_threshold, OR contract
    origin, OR >= cluster_min_count other buys in the buy's sub-window.

    Returns:
        One flag per sniping buy, sorted by (block, tx id).
    """
    flags: list[Flag] = []
    for pair in index.pairs():
        launch = index.launch_block(pair)
        window_end = launch + config.snipe_window_blocks
        buys = [t for t in index.transactions_between(launch, window_end, pair=pair) if t.side is Side.BUY]
        if not buys:
            continue
        supply = index.pair_supply(pair)
        buy_blocks = [b.block_number for b in buys]

        for buy in buys:
            fraction = buy.amount / supply if supply else None
            supply_signal = min(1.0, fraction / config.snipe_supply_threshold) if fraction is not None else 0.0
            contract_signal = 1.0 if buy.is_contract else 0.0
            others = _cluster_count(buy, buys, buy_blocks, config.snipe_cluster_window_blocks)
            cluster_signal = min(1.0, others / config.cluster_min_count)

            over_supply = fraction is not None and fraction > config.snipe_supply_threshold
            clustered = others >= config.cluster_min_count
            if not (over_supply or buy.is_contract or clustered):
                continue

            confidence = (
                config.snipe_supply_weight * supply_signal
                + config.snipe_contract_weight * contract_signal
                + config.snipe_cluster_weight * cluster_signal
            ) / config.snipe_weight_total
            confidence = clamp_confidence(confidence)

            flags.append(
                Flag(
                    kind=HeuristicKind.SNIPE,
                    tx_ids=(buy.tx_id,),
                    wallets=(buy.wallet,),
                    actors=(buy.wallet,),
                    block_number=buy.block_number,
                    pair=pair,
                    confidence=confidence,
                    evidence={
                        "launch_block": launch,
                        "blocks_after_launch": buy.block_number - launch,
                        "snipe_window_blocks": config.snipe_window_blocks,
                        "supply_fraction": round(fraction, 9) if fraction is not None else None,
                        "snipe_supply_threshold": config.snipe_supply_threshold,
                        "contract_origin": buy.is_contract,
                        "cluster_buys": others,
                        "cluster_min_count": config.cluster_min_count,
                        "supply_signal": round(supply_signal, 6),
                        "contract_signal": contract_signal,
                        "cluster_signal": round(cluster_signal, 6),
                    },
                )
            )
            logger.debug(
                "snipe_detected",
                wallet=buy.wallet,
                pair=str(pair),
                block=buy.block_number,
                confidence=round(confidence, 4),
            )
    logger.info("snipe_scan_done", flags=len(flags))
    return sort_flags(flags)
