"""
Structured logging for detection runs.

Every record is one JSON object on stderr with event_type, level, logger and an
ISO timestamp, plus whatever context the caller passes (wallet, block, pair,
counts). stdout is left to the report so `run_detection > report.json` works.

Env:
  TOXICFLOW_LOG_LEVEL (falls back to LOG_LEVEL, default INFO)
  LOG_FORMAT: json (default) or console

Only stdlib and structlog are imported here; the rest of toxicflow imports this.
"""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, TextIO

import structlog


def _env_level() -> str:
    raw = os.getenv("TOXICFLOW_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO"
    return raw.strip().upper()


def _level_value(level: str | int) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(level.upper())
    return value if isinstance(value, int) else logging.INFO


# Current minimum level; read on every call so loggers bound before a
# reconfiguration still honour the new level.
_threshold = logging.INFO


def _filter_level(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    name = "ERROR" if method_name == "exception" else method_name.upper()
    if _level_value(name) < _threshold:
        raise structlog.DropEvent
    return event_dict


def _stamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog calls the first positional arg 'event'; the aggregated logs key on event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_logging(
    level: str | int | None = None,
    fmt: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """
    (Re)configure structlog for the process.

    Runs once on import with env defaults; the CLI calls it again when
    --log-level is given. Arguments left as None fall back to the env.
    The level applies to every logger at once; format and stream apply to
    loggers obtained after the call.
    """
    global _threshold
    _threshold = _level_value(level or _env_level())
    renderer_name = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()
    out = stream or sys.stderr

    processors: list[Any] = [
        _filter_level,
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        _stamp,
        _event_type,
    ]
    if renderer_name == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=out.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=False,
    )


if not structlog.is_configured():
    configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger; pass the event name first and context as keywords:

        logger = get_logger(__name__)
        logger.info("sandwich_detected", wallet=addr, block=1201, confidence=0.9)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(wallet: str) -> structlog.BoundLogger:
    """Logger with the wallet bound to every call."""
    return get_logger("toxicflow").bind(wallet=wallet)


@contextmanager
def run_context(**context: Any) -> Iterator[None]:
    """Bind context (e.g. feed path) to every log record emitted inside the block, from any module."""
    with structlog.contextvars.bound_contextvars(**context):
        yield
