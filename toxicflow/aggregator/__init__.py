"""
Aggregator package — merges heuristic flags into per-wallet toxicity verdicts.
"""

from toxicflow.aggregator.scorer import (
    RISK_HIGH,
    RISK_LOW,
    RISK_MEDIUM,
    Verdict,
    aggregate,
    aggregate_by_transaction,
    combine_confidences,
    score_to_risk_level,
)

__all__ = [
    "RISK_HIGH",
    "RISK_LOW",
    "RISK_MEDIUM",
    "Verdict",
    "aggregate",
    "aggregate_by_transaction",
    "combine_confidences",
    "score_to_risk_level",
]
