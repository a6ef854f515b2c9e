"""
Core utilities — exceptions and cross-cutting concerns.

Shared by the feed loader, indexer, heuristics, and aggregator.
"""

from toxicflow.core.exceptions import (
    ConfigValidationError,
    MalformedFeedError,
    ToxicFlowError,
    UnknownTokenError,
)

__all__ = [
    "ConfigValidationError",
    "MalformedFeedError",
    "ToxicFlowError",
    "UnknownTokenError",
]
