"""
Detection pipeline: loader -> indexer -> heuristics -> aggregator.

Single entrypoint for the CLI and tests. Each stage fully consumes the
previous one; any error aborts the run and no partial report is produced.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping

from toxicflow import __version__
from toxicflow.aggregator.scorer import (
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    Verdict,
    aggregate,
    aggregate_by_transaction,
)
from toxicflow.config.env import use_parallel_heuristics
from toxicflow.config.settings import DetectionConfig
from toxicflow.feed.loader import load_feed
from toxicflow.feed.models import Transaction
from toxicflow.flow_logging import get_logger, run_context
from toxicflow.heuristics.base import Flag, HeuristicKind
from toxicflow.heuristics.engine import run_heuristics
from toxicflow.heuristics.simulation import Pool, confirm_sandwiches
from toxicflow.indexer.block_index import BlockWindowIndex

logger = get_logger(__name__)


@dataclass(frozen=True)
class DetectionReport:
    """Everything a run produced; deterministic for identical input and config."""

    config: DetectionConfig
    kinds: tuple[HeuristicKind, ...]
    transaction_count: int
    block_count: int
    pair_count: int
    wallet_count: int
    flags: tuple[Flag, ...]
    verdicts: tuple[Verdict, ...]
    by_transaction: bool = False

    def summary(self) -> dict[str, Any]:
        flag_counts = Counter(f.kind.value for f in self.flags)
        risk_counts = Counter(v.risk_level for v in self.verdicts)
        return {
            "transactions": self.transaction_count,
            "blocks": self.block_count,
            "pairs": self.pair_count,
            "wallets": self.wallet_count,
            "flags": len(self.flags),
            "flags_by_kind": {k.value: flag_counts.get(k.value, 0) for k in self.kinds},
            "verdicts": len(self.verdicts),
            "verdicts_by_risk": {
                level: risk_counts.get(level, 0) for level in (RISK_HIGH, RISK_MEDIUM, RISK_LOW)
            },
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": __version__,
            "verdict_subject": "transaction" if self.by_transaction else "wallet",
            "summary": self.summary(),
            "config": self.config.to_dict(),
            "verdicts": [v.to_dict() for v in self.verdicts],
            "flags": [f.to_dict() for f in self.flags],
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, sort_keys=True)


def run_detection(
    transactions: Iterable[Transaction],
    config: DetectionConfig | None = None,
    *,
    kinds: Iterable[HeuristicKind] | None = None,
    parallel: bool | None = None,
    by_transaction: bool = False,
    pools: Mapping[str, Pool] | None = None,
) -> DetectionReport:
    """
    Run the full detection over an already-loaded feed.

    Args:
        transactions: Ordered transactions (e.g. from load_feed).
        config: Thresholds; defaults if None.
        kinds: Heuristics to run; all if None.
        parallel: Thread-pool fan-out; TOXICFLOW_PARALLEL decides if None.
        by_transaction: Verdicts per transaction id instead of per wallet.
        pools: Starting pool reserves; when given, sandwich flags get simulated victim loss.

    Returns:
        DetectionReport with sorted flags and verdicts.
    """
    cfg = config or DetectionConfig()
    use_parallel = use_parallel_heuristics() if parallel is None else parallel
    selected = tuple(sorted(set(kinds) if kinds is not None else set(HeuristicKind), key=lambda k: k.value))

    index = BlockWindowIndex.build(transactions)
    logger.info("detection_start", transactions=len(index), kinds=[k.value for k in selected])

    flags = run_heuristics(index, cfg, kinds=selected, parallel=use_parallel)
    if pools:
        flags = confirm_sandwiches(flags, index, pools)
    verdicts = aggregate_by_transaction(flags, cfg) if by_transaction else aggregate(flags, cfg)

    report = DetectionReport(
        config=cfg,
        kinds=selected,
        transaction_count=len(index),
        block_count=len(index.blocks()),
        pair_count=len(index.pairs()),
        wallet_count=len(index.wallets()),
        flags=tuple(flags),
        verdicts=tuple(verdicts),
        by_transaction=by_transaction,
    )
    logger.info("detection_done", flags=len(flags), verdicts=len(verdicts))
    return report


def detect_feed(path: str | Path, config: DetectionConfig | None = None, **kwargs: Any) -> DetectionReport:
    """Load a feed file and run the detection on it; logs carry the feed path."""
    with run_context(feed=str(path)):
        return run_detection(load_feed(path), config, **kwargs)


def write_report(report: DetectionReport, path: str | Path) -> Path:
    """Write the report as sorted-key JSON. Returns the path."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(report.to_json() + "\n", encoding="utf-8")
    logger.info("report_written", path=str(p), verdicts=len(report.verdicts))
    return p
