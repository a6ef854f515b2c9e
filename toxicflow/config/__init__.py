"""
Configuration management for the toxic flow detector.

Loads and validates detection thresholds from defaults, JSON files and
environment variables. Exposes a single source of truth for every heuristic knob.
"""

from toxicflow.config.settings import DetectionConfig, get_settings  # noqa: F401

__all__ = ["DetectionConfig", "get_settings"]
