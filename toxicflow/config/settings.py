"""
Detection thresholds: the single explicit configuration structure.

Every heuristic knob lives on DetectionConfig with a documented default.
Values are validated at construction; an out-of-range value raises
ConfigValidationError and is never silently clamped.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

from toxicflow.config.env import env_overrides
from toxicflow.core.exceptions import ConfigValidationError


@dataclass(frozen=True)
class DetectionConfig:
    """
    Named thresholds for all heuristics and the aggregator.

    Fractions (impact, price difference, supply share) are relative values,
    e.g. 0.005 = 0.5%. Block counts are inclusive widths in blocks.
    """

    # Sandwich: victim price impact (relative to front-run price) above this adds confidence.
    min_price_impact_threshold: float = 0.005
    sandwich_base_confidence: float = 0.5
    # Added at gas premium >= 100% over the victim (scaled linearly below).
    sandwich_gas_weight: float = 0.2
    # Added at impact >= 2x threshold (scaled linearly between threshold and 2x).
    sandwich_impact_weight: float = 0.2
    # Added per attacker leg sent from a contract.
    sandwich_contract_weight: float = 0.05
    # Added when the back-run returns more quote than the front-run spent.
    sandwich_profit_weight: float = 0.05
    # Added when the back-run pays less gas than the victim.
    sandwich_back_gas_weight: float = 0.1
    # Added when the front-run is 5-50% of the victim's value and the back-run 0.5x-2x the front-run.
    sandwich_size_weight: float = 0.15

    # Snipe: buys within [launch, launch + snipe_window_blocks].
    snipe_window_blocks: int = 5
    # Share of total supply acquired by one buy above which it is a snipe.
    snipe_supply_threshold: float = 0.01
    # Other launch-window buys needed around a buy to call it clustered.
    cluster_min_count: int = 3
    # Blocks either side of a buy that count as its cluster sub-window.
    snipe_cluster_window_blocks: int = 1
    snipe_supply_weight: float = 0.4
    snipe_contract_weight: float = 0.35
    snipe_cluster_weight: float = 0.25

    # Arbitrage: window of this many consecutive blocks (1 = same block).
    arb_window_blocks: int = 1
    # Relative price spread across exchanges, (max - min) / min.
    arb_price_diff_threshold: float = 0.03
    # Added when the same wallet traded on both sides of the spread.
    arb_cross_exchange_bonus: float = 0.1

    # Wash trade: opposite legs at most this many blocks apart.
    wash_max_block_gap: int = 3
    # Price move between legs below which there is no price risk. "relative"
    # compares |p2 - p1| / p1 (default, comparable across pairs); "absolute"
    # compares |p2 - p1| in quote units.
    wash_price_delta_threshold: float = 0.002
    wash_delta_mode: str = "relative"

    # Verdict risk bands on the combined score.
    high_risk_threshold: float = 0.8
    medium_risk_threshold: float = 0.5

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise ConfigValidationError on the first out-of-range value."""
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type in ("str", str):
                if not isinstance(value, str) or value not in _CHOICES[f.name]:
                    raise ConfigValidationError(f.name, value, f"must be one of {list(_CHOICES[f.name])}")
                continue
            expected = int if f.type in ("int", int) else float
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigValidationError(f.name, value, f"expected {expected.__name__}")
            if expected is int and not isinstance(value, int):
                raise ConfigValidationError(f.name, value, "expected int")
            if value != value:  # NaN
                raise ConfigValidationError(f.name, value, "must be a number")

        for name in _UNIT_INTERVAL:
            _check_range(name, getattr(self, name), 0.0, 1.0)
        for name in _POSITIVE_FRACTIONS:
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ConfigValidationError(name, value, "must be in (0, 1]")
        for name in _NON_NEGATIVE_INTS:
            if getattr(self, name) < 0:
                raise ConfigValidationError(name, getattr(self, name), "must be >= 0")
        for name in _POSITIVE_INTS:
            if getattr(self, name) < 1:
                raise ConfigValidationError(name, getattr(self, name), "must be >= 1")
        if self.wash_price_delta_threshold <= 0:
            raise ConfigValidationError("wash_price_delta_threshold", self.wash_price_delta_threshold, "must be > 0")
        if self.wash_delta_mode == "relative" and self.wash_price_delta_threshold > 1:
            raise ConfigValidationError(
                "wash_price_delta_threshold", self.wash_price_delta_threshold, "must be in (0, 1] for relative deltas"
            )

        weight_sum = self.snipe_supply_weight + self.snipe_contract_weight + self.snipe_cluster_weight
        if weight_sum <= 0:
            raise ConfigValidationError("snipe_supply_weight", self.snipe_supply_weight, "snipe weights must not all be 0")
        if self.medium_risk_threshold > self.high_risk_threshold:
            raise ConfigValidationError(
                "medium_risk_threshold",
                self.medium_risk_threshold,
                f"must be <= high_risk_threshold ({self.high_risk_threshold})",
            )

    @property
    def snipe_weight_total(self) -> float:
        return self.snipe_supply_weight + self.snipe_contract_weight + self.snipe_cluster_weight

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def replace(self, **changes: Any) -> "DetectionConfig":
        """Return a copy with the given thresholds changed (validated)."""
        return DetectionConfig.from_mapping({**self.to_dict(), **changes})

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DetectionConfig":
        """
        Build from a plain mapping (JSON object, env overrides).

        Unknown keys are rejected; string values are converted to the field type.
        """
        known = {f.name: f for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known:
                raise ConfigValidationError(key, raw, "unknown configuration field")
            if known[key].type in ("str", str):
                if not isinstance(raw, str):
                    raise ConfigValidationError(key, raw, "expected str")
                kwargs[key] = raw.strip().lower()
                continue
            expected = int if known[key].type in ("int", int) else float
            kwargs[key] = _coerce(key, raw, expected)
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: str | Path) -> "DetectionConfig":
        """Load thresholds from a JSON object file; missing fields keep their defaults."""
        p = Path(path)
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigValidationError(str(p), None, f"cannot read config file: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigValidationError(str(p), None, f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError(str(p), None, "config file must contain a JSON object")
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, base: "DetectionConfig | None" = None) -> "DetectionConfig":
        """Apply TOXICFLOW_<FIELD> overrides on top of base (or defaults)."""
        overrides = env_overrides(cls.field_names())
        start = base.to_dict() if base is not None else {}
        return cls.from_mapping({**start, **overrides})


_UNIT_INTERVAL = (
    "min_price_impact_threshold",
    "sandwich_base_confidence",
    "sandwich_gas_weight",
    "sandwich_impact_weight",
    "sandwich_contract_weight",
    "sandwich_profit_weight",
    "sandwich_back_gas_weight",
    "sandwich_size_weight",
    "snipe_supply_weight",
    "snipe_contract_weight",
    "snipe_cluster_weight",
    "arb_cross_exchange_bonus",
    "high_risk_threshold",
    "medium_risk_threshold",
)
_POSITIVE_FRACTIONS = (
    "snipe_supply_threshold",
    "arb_price_diff_threshold",
)
_NON_NEGATIVE_INTS = ("snipe_window_blocks", "snipe_cluster_window_blocks", "wash_max_block_gap")
_POSITIVE_INTS = ("cluster_min_count", "arb_window_blocks")
_CHOICES = {"wash_delta_mode": ("relative", "absolute")}


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ConfigValidationError(name, value, f"must be in [{low}, {high}]")


def _coerce(name: str, raw: Any, expected: type) -> Any:
    if isinstance(raw, bool):
        raise ConfigValidationError(name, raw, f"expected {expected.__name__}")
    if expected is int:
        if isinstance(raw, int):
            return raw
        if isinstance(raw, float) and raw.is_integer():
            return int(raw)
        if isinstance(raw, str):
            try:
                return int(raw.strip())
            except ValueError:
                pass
        raise ConfigValidationError(name, raw, "expected int")
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw.strip())
        except ValueError:
            pass
    raise ConfigValidationError(name, raw, "expected float")


def get_settings() -> DetectionConfig:
    """
    Return the current detection settings.

    Defaults with TOXICFLOW_<FIELD> environment overrides applied.
    """
    return DetectionConfig.from_env()
