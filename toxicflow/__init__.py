"""
Toxic Flow Detector — offline heuristics for adversarial DEX trading.

Loads a bounded transaction feed, indexes it by block, token pair and wallet,
runs sandwich / snipe / arbitrage / wash-trade heuristics, and aggregates
their flags into per-wallet toxicity verdicts. Modular architecture with clear
separation between feed, indexer, heuristics, and aggregator.
"""

__version__ = "0.1.0"
