"""
Heuristic engine package — independent, stateless toxic-flow detectors.

Each detector consumes the read-only block window index and a DetectionConfig
and returns explainable Flags with a confidence score and evidence.
"""

from toxicflow.heuristics.arbitrage import detect_arbitrage
from toxicflow.heuristics.base import Flag, HeuristicKind, sort_flags
from toxicflow.heuristics.engine import HEURISTICS, run_heuristics
from toxicflow.heuristics.sandwich import detect_sandwiches
from toxicflow.heuristics.simulation import Pool, confirm_sandwiches, load_pools, simulate_victim_loss
from toxicflow.heuristics.snipe import detect_snipes
from toxicflow.heuristics.wash_trade import detect_wash_trades

__all__ = [
    "Flag",
    "HeuristicKind",
    "sort_flags",
    "HEURISTICS",
    "run_heuristics",
    "detect_sandwiches",
    "detect_snipes",
    "detect_arbitrage",
    "detect_wash_trades",
    "Pool",
    "confirm_sandwiches",
    "load_pools",
    "simulate_victim_loss",
]
