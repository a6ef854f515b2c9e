"""
Cross-exchange arbitrage detection.

For every pair, each block it traded in anchors a short window of
arb_window_blocks blocks. Within the window the mean execution price per
exchange is compared; when the spread between the cheapest and dearest
exchange exceeds arb_price_diff_threshold, every swap on those two exchanges
is flagged. A swap caught by several windows keeps its strongest flag.
"""

from __future__ import annotations

from collections import defaultdict

from toxicflow.config.settings import DetectionConfig
from toxicflow.feed.models import Transaction
from toxicflow.flow_logging import get_logger
from toxicflow.heuristics.base import Flag, HeuristicKind, clamp_confidence, sort_flags
from toxicflow.indexer.block_index import BlockWindowIndex

logger = get_logger(__name__)


def arbitrage_confidence(price_diff: float, threshold: float) -> float:
    """0.5 at the threshold, rising towards 1.0 as the spread grows (1 - 0.5 * threshold / diff)."""
    if price_diff <= 0:
        return 0.0
    return clamp_confidence(1.0 - 0.5 * threshold / price_diff)


def detect_arbitrage(index: BlockWindowIndex, config: DetectionConfig) -> list[Flag]:
    """
    Flag swaps on the cheap and dear side of a cross-exchange price spread.

    Returns:
        One flag per flagged transaction, sorted by (block, tx id).
    """
    best: dict[str, Flag] = {}
    threshold = config.arb_price_diff_threshold
    width = config.arb_window_blocks

    for pair in index.pairs():
        for anchor in index.pair_blocks(pair):
            window = index.transactions_between(anchor, anchor + width - 1, pair=pair)
            by_exchange: dict[str, list[Transaction]] = defaultdict(list)
            for tx in window:
                by_exchange[tx.exchange].append(tx)
            if len(by_exchange) < 2:
                continue

            mean_price = {
                ex: sum(t.price for t in txs) / len(txs) for ex, txs in by_exchange.items()
            }
            # Ties broken by exchange name so the choice is deterministic.
            cheap = min(sorted(mean_price), key=lambda ex: mean_price[ex])
            dear = max(sorted(mean_price), key=lambda ex: mean_price[ex])
            low, high = mean_price[cheap], mean_price[dear]
            if low <= 0:
                continue
            diff = (high - low) / low
            if diff <= threshold:
                continue

            base_confidence = arbitrage_confidence(diff, threshold)
            cheap_wallets = {t.wallet for t in by_exchange[cheap]}
            dear_wallets = {t.wallet for t in by_exchange[dear]}

            for ex in (cheap, dear):
                for tx in by_exchange[ex]:
                    both_sides = tx.wallet in cheap_wallets and tx.wallet in dear_wallets
                    confidence = clamp_confidence(
                        base_confidence + (config.arb_cross_exchange_bonus if both_sides else 0.0)
                    )
                    current = best.get(tx.tx_id)
                    if current is not None and current.confidence >= confidence:
                        continue
                    best[tx.tx_id] = Flag(
                        kind=HeuristicKind.ARBITRAGE,
                        tx_ids=(tx.tx_id,),
                        wallets=(tx.wallet,),
                        actors=(tx.wallet,),
                        block_number=tx.block_number,
                        pair=pair,
                        confidence=confidence,
                        evidence={
                            "window_start_block": anchor,
                            "window_end_block": anchor + width - 1,
                            "cheap_exchange": cheap,
                            "dear_exchange": dear,
                            "cheap_price": low,
                            "dear_price": high,
                            "price_diff": round(diff, 6),
                            "arb_price_diff_threshold": threshold,
                            "exchange": tx.exchange,
                            "traded_both_exchanges": both_sides,
                        },
                    )

    flags = sort_flags(best.values())
    logger.info("arbitrage_scan_done", flags=len(flags))
    return flags
