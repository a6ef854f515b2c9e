"""
Toxicity score computation: combine heuristic flags into verdicts.

Flags are grouped per actor wallet (or per transaction) and combined with a
probabilistic OR: score = 1 - prod(1 - confidence). Independent signals
compound, one weak flag never saturates the score, and a wallet with no
flags simply has no verdict.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Iterable

from toxicflow.config.settings import DetectionConfig
from toxicflow.flow_logging import get_logger
from toxicflow.heuristics.base import Flag, sort_flags

logger = get_logger(__name__)

RISK_HIGH = "HIGH"
RISK_MEDIUM = "MEDIUM"
RISK_LOW = "LOW"


def combine_confidences(confidences: Iterable[float]) -> float:
    """Probabilistic OR of independent confidences; 0.0 for none."""
    remaining = 1.0
    for c in confidences:
        remaining *= 1.0 - c
    return 1.0 - remaining


def score_to_risk_level(score: float, config: DetectionConfig) -> str:
    """score >= high_risk_threshold -> HIGH; >= medium_risk_threshold -> MEDIUM; else LOW."""
    if score >= config.high_risk_threshold:
        return RISK_HIGH
    if score >= config.medium_risk_threshold:
        return RISK_MEDIUM
    return RISK_LOW


@dataclass(frozen=True)
class Verdict:
    """
    Aggregated result for one wallet (or one transaction).

    Owns its contributing flags; read-only once created.
    """

    subject: str
    score: float
    flags: tuple[Flag, ...]
    risk_level: str

    @property
    def kinds(self) -> tuple[str, ...]:
        return tuple(sorted({f.kind.value for f in self.flags}))

    @property
    def flag_count(self) -> int:
        return len(self.flags)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject": self.subject,
            "score": self.score,
            "risk_level": self.risk_level,
            "kinds": list(self.kinds),
            "flag_count": self.flag_count,
            "flags": [f.to_dict() for f in self.flags],
        }


def _aggregate(
    flags: Iterable[Flag],
    config: DetectionConfig,
    subjects: Callable[[Flag], Iterable[str]],
) -> list[Verdict]:
    grouped: dict[str, list[Flag]] = defaultdict(list)
    for flag in flags:
        for subject in dict.fromkeys(subjects(flag)):
            grouped[subject].append(flag)

    verdicts = []
    for subject, subject_flags in grouped.items():
        ordered = tuple(sort_flags(subject_flags))
        score = combine_confidences(f.confidence for f in ordered)
        verdicts.append(
            Verdict(
                subject=subject,
                score=score,
                flags=ordered,
                risk_level=score_to_risk_level(score, config),
            )
        )
    verdicts.sort(key=lambda v: (-v.score, v.subject))
    return verdicts


def aggregate(flags: Iterable[Flag], config: DetectionConfig | None = None) -> list[Verdict]:
    """
    Combine flags into one verdict per actor wallet.

    Returns:
        Verdicts sorted by score descending, then wallet; empty for no flags.
    """
    cfg = config or DetectionConfig()
    verdicts = _aggregate(flags, cfg, lambda f: f.actors)
    logger.info(
        "aggregate_done",
        verdicts=len(verdicts),
        high=sum(1 for v in verdicts if v.risk_level == RISK_HIGH),
    )
    return verdicts


def aggregate_by_transaction(flags: Iterable[Flag], config: DetectionConfig | None = None) -> list[Verdict]:
    """Combine flags into one verdict per implicated transaction id."""
    cfg = config or DetectionConfig()
    verdicts = _aggregate(flags, cfg, lambda f: f.tx_ids)
    logger.info("aggregate_by_transaction_done", verdicts=len(verdicts))
    return verdicts
