#!/usr/bin/env python3
"""
Generate a synthetic transaction feed with labeled toxic wallets.

Writes the feed (.csv or .json) and, next to it, <name>.labels.csv listing
each injected wallet and its behavior (sandwich, snipe, arbitrage, wash_trade).

Usage:
  python -m toxicflow.tools.generate_feed data/feed.csv --seed 7 --blocks 60
"""

from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path

from toxicflow.feed.loader import dump_feed
from toxicflow.feed.simulator import generate_feed
from toxicflow.flow_logging import get_logger

logger = get_logger(__name__)


def labels_path_for(output: Path) -> Path:
    return output.with_name(f"{output.stem}.labels.csv")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a deterministic synthetic swap feed.")
    parser.add_argument("output", type=Path, help="Feed path (.csv or .json)")
    parser.add_argument("--seed", type=int, default=7)
    parser.add_argument("--blocks", type=int, default=60)
    parser.add_argument("--start-block", type=int, default=18_000_000)
    parser.add_argument("--noise-per-block", type=int, default=4)
    args = parser.parse_args(argv)

    if args.output.suffix.lower() not in (".csv", ".json"):
        parser.error("output must end in .csv or .json")
    if args.blocks < 20:
        parser.error("--blocks must be >= 20")

    feed = generate_feed(
        seed=args.seed,
        blocks=args.blocks,
        start_block=args.start_block,
        noise_per_block=args.noise_per_block,
    )
    dump_feed(feed.transactions, args.output)

    labels_path = labels_path_for(args.output)
    with open(labels_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["wallet", "label"])
        for wallet in sorted(feed.labels):
            writer.writerow([wallet, feed.labels[wallet]])

    print(f"Generated {len(feed.transactions)} transactions ({len(feed.labels)} labeled wallets)")
    print(f"Written to {args.output} and {labels_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
