"""
Environment variable loading for the toxic flow detector.

- TOXICFLOW_<FIELD>: override any DetectionConfig threshold (e.g. TOXICFLOW_ARB_WINDOW_BLOCKS=2)
- TOXICFLOW_PARALLEL: run heuristics in a thread pool (1/true/yes/on)
- TOXICFLOW_FEED_PATH: default feed for the run_detection tool
- TOXICFLOW_REPORT_PATH: default report output path
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is toxicflow/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

ENV_PREFIX = "TOXICFLOW_"

_TRUTHY = ("1", "true", "yes", "on")


def load_toxicflow_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides the process env."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def env_overrides(field_names: list[str] | tuple[str, ...]) -> dict[str, str]:
    """
    Return raw TOXICFLOW_<FIELD> values for the given field names.

    Values are returned as strings; the config layer owns type conversion and validation.
    """
    load_toxicflow_env()
    out: dict[str, str] = {}
    for name in field_names:
        raw = os.getenv(ENV_PREFIX + name.upper())
        if raw is not None and raw.strip() != "":
            out[name] = raw.strip()
    return out


def use_parallel_heuristics() -> bool:
    """Return True when TOXICFLOW_PARALLEL asks for thread-pool fan-out of heuristics."""
    load_toxicflow_env()
    return (os.getenv(ENV_PREFIX + "PARALLEL") or "").strip().lower() in _TRUTHY


def get_feed_path() -> Path | None:
    """Return TOXICFLOW_FEED_PATH if set."""
    load_toxicflow_env()
    raw = (os.getenv(ENV_PREFIX + "FEED_PATH") or "").strip()
    return Path(raw) if raw else None


def get_report_path() -> Path | None:
    """Return TOXICFLOW_REPORT_PATH if set."""
    load_toxicflow_env()
    raw = (os.getenv(ENV_PREFIX + "REPORT_PATH") or "").strip()
    return Path(raw) if raw else None
