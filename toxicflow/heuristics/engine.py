"""
Heuristic engine: dispatch over the closed set of detectors.

Each detector is a pure function (index, config) -> list[Flag]. They share
nothing but the read-only index, so they may run in a thread pool; output is
merged and sorted, making serial and parallel runs identical.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable

from toxicflow.config.settings import DetectionConfig
from toxicflow.flow_logging import get_logger
from toxicflow.heuristics.arbitrage import detect_arbitrage
from toxicflow.heuristics.base import Flag, HeuristicKind, sort_flags
from toxicflow.heuristics.sandwich import detect_sandwiches
from toxicflow.heuristics.snipe import detect_snipes
from toxicflow.heuristics.wash_trade import detect_wash_trades
from toxicflow.indexer.block_index import BlockWindowIndex

logger = get_logger(__name__)

Heuristic = Callable[[BlockWindowIndex, DetectionConfig], list[Flag]]

HEURISTICS: dict[HeuristicKind, Heuristic] = {
    HeuristicKind.SANDWICH: detect_sandwiches,
    HeuristicKind.SNIPE: detect_snipes,
    HeuristicKind.ARBITRAGE: detect_arbitrage,
    HeuristicKind.WASH_TRADE: detect_wash_trades,
}


def run_heuristics(
    index: BlockWindowIndex,
    config: DetectionConfig,
    *,
    kinds: Iterable[HeuristicKind] | None = None,
    parallel: bool = False,
) -> list[Flag]:
    """
    Run the selected heuristics (all by default) and merge their flags.

    Args:
        index: Built block window index.
        config: Detection thresholds.
        kinds: Subset of heuristics to run; order does not affect the result.
        parallel: Run each heuristic in its own worker thread.

    Returns:
        All flags sorted by (block, tx id). A detector error propagates.
    """
    selected = sorted(set(kinds) if kinds is not None else set(HEURISTICS), key=lambda k: k.value)
    logger.info("heuristics_start", kinds=[k.value for k in selected], parallel=parallel)

    results: dict[HeuristicKind, list[Flag]] = {}
    if parallel and len(selected) > 1:
        with ThreadPoolExecutor(max_workers=len(selected), thread_name_prefix="heuristic") as pool:
            futures = {kind: pool.submit(HEURISTICS[kind], index, config) for kind in selected}
            for kind, future in futures.items():
                results[kind] = future.result()
    else:
        for kind in selected:
            results[kind] = HEURISTICS[kind](index, config)

    flags = sort_flags(f for kind in selected for f in results[kind])
    logger.info(
        "heuristics_done",
        flags=len(flags),
        by_kind={k.value: len(results[k]) for k in selected},
    )
    return flags
