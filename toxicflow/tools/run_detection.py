"""
Run toxic flow detection on a feed file and emit the JSON report.

Usage:
  python -m toxicflow.tools.run_detection data/feed.csv
  python -m toxicflow.tools.run_detection data/feed.json --config thresholds.json --output report.json
  python -m toxicflow.tools.run_detection data/feed.csv --kinds sandwich snipe --parallel
  python -m toxicflow.tools.run_detection data/feed.csv --pools pools.json --by-transaction

The feed defaults to TOXICFLOW_FEED_PATH and the output to TOXICFLOW_REPORT_PATH
(stdout when neither --output nor the env var is set). Thresholds start from
defaults, then --config, then TOXICFLOW_<FIELD> env overrides.

Exit codes: 0 success, 2 fatal input/config error.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from toxicflow.config.env import get_feed_path, get_report_path
from toxicflow.config.settings import DetectionConfig
from toxicflow.core.exceptions import ToxicFlowError
from toxicflow.flow_logging import configure_logging, get_logger
from toxicflow.heuristics.base import HeuristicKind
from toxicflow.heuristics.simulation import load_pools
from toxicflow.pipeline import detect_feed, write_report

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="toxicflow-detect",
        description="Flag sandwich, snipe, arbitrage and wash-trade activity in a transaction feed.",
    )
    parser.add_argument("feed", nargs="?", type=Path, help="Feed file (.csv or .json)")
    parser.add_argument("--config", type=Path, help="JSON file of detection thresholds")
    parser.add_argument("--output", "-o", type=Path, help="Write report JSON here (default: stdout)")
    parser.add_argument(
        "--kinds",
        nargs="+",
        choices=[k.value for k in HeuristicKind],
        help="Heuristics to run (default: all)",
    )
    parser.add_argument("--parallel", action="store_true", default=None, help="Run heuristics in parallel threads")
    parser.add_argument("--by-transaction", action="store_true", help="Verdicts per transaction instead of per wallet")
    parser.add_argument("--pools", type=Path, help="JSON of starting pool reserves for sandwich simulation")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Override TOXICFLOW_LOG_LEVEL")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        configure_logging(level=args.log_level)
    feed = args.feed or get_feed_path()
    if feed is None:
        logger.error("run_detection_no_feed", message="pass a feed path or set TOXICFLOW_FEED_PATH")
        return 2

    try:
        base = DetectionConfig.from_file(args.config) if args.config else None
        config = DetectionConfig.from_env(base)
        pools = load_pools(args.pools) if args.pools else None
        report = detect_feed(
            feed,
            config,
            kinds=[HeuristicKind(k) for k in args.kinds] if args.kinds else None,
            parallel=args.parallel,
            by_transaction=args.by_transaction,
            pools=pools,
        )
    except ToxicFlowError as e:
        logger.error("run_detection_failed", **e.to_dict())
        return 2

    output = args.output or get_report_path()
    if output is not None:
        write_report(report, output)
    else:
        sys.stdout.write(report.to_json() + "\n")
    summary = report.summary()
    logger.info("run_detection_done", flags=summary["flags"], verdicts=summary["verdicts"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
