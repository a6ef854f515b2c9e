"""
Heuristic outputs: the closed set of heuristic kinds and the Flag record.

Every flag is tied to a heuristic kind and carries its evidence (thresholds
vs actual values) so downstream consumers can interpret and audit it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from toxicflow.feed.models import TokenPair


class HeuristicKind(str, Enum):
    SANDWICH = "sandwich"
    SNIPE = "snipe"
    ARBITRAGE = "arbitrage"
    WASH_TRADE = "wash_trade"


@dataclass(frozen=True)
class Flag:
    """
    Output of a single heuristic for one suspicious pattern.

    Transactions are referenced by id (non-owning). wallets lists everyone
    involved; actors is the subset suspected of the adversarial behavior
    (a sandwich victim is involved but is not an actor).
    """

    kind: HeuristicKind
    tx_ids: tuple[str, ...]
    wallets: tuple[str, ...]
    actors: tuple[str, ...]
    block_number: int
    pair: TokenPair
    confidence: float
    evidence: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    """Facts used for the decision; for auditing and explainability."""

    @property
    def sort_key(self) -> tuple[int, str, str, tuple[str, ...]]:
        return (self.block_number, self.tx_ids[0], self.kind.value, self.tx_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "tx_ids": list(self.tx_ids),
            "wallets": list(self.wallets),
            "actors": list(self.actors),
            "block_number": self.block_number,
            "pair": str(self.pair),
            "confidence": self.confidence,
            "evidence": dict(sorted(self.evidence.items())),
        }


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, value))


def sort_flags(flags: Iterable[Flag]) -> list[Flag]:
    """Stable output order: block number, then transaction id."""
    return sorted(flags, key=lambda f: f.sort_key)
