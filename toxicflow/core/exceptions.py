"""
Application-level exceptions.

Every error here is fatal for a run: the detector is a pure batch computation
over static input, so nothing is retried and no partial report is emitted.
Each exception carries the failing record / field so the caller can report it.
"""

from __future__ import annotations

from typing import Any


class ToxicFlowError(Exception):
    """Base class for all toxic flow detector errors."""

    code = "toxicflow_error"

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self)}


class MalformedFeedError(ToxicFlowError):
    """Input feed violates the transaction schema (missing field, negative amount, ...)."""

    code = "malformed_feed"

    def __init__(self, reason: str, *, record_index: int | None = None, field: str | None = None) -> None:
        self.reason = reason
        self.record_index = record_index
        self.field = field
        where = []
        if record_index is not None:
            where.append(f"record {record_index}")
        if field is not None:
            where.append(f"field '{field}'")
        prefix = f"{', '.join(where)}: " if where else ""
        super().__init__(f"{prefix}{reason}")

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["record_index"] = self.record_index
        out["field"] = self.field
        return out


class UnknownTokenError(ToxicFlowError):
    """Indexer query references a token pair that never appeared in the feed."""

    code = "unknown_token"

    def __init__(self, pair: Any) -> None:
        self.pair = pair
        super().__init__(f"token pair {pair} was never observed in the feed")


class ConfigValidationError(ToxicFlowError):
    """A detection threshold is out of its valid range."""

    code = "config_validation"

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"config '{field}'={value!r}: {reason}")

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["field"] = self.field
        return out
