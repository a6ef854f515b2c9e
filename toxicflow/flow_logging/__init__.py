"""
Structured logging for the toxic flow detector. Use get_logger() in every module.
"""

from toxicflow.flow_logging.logger import bind_wallet, configure_logging, get_logger, run_context

__all__ = ["bind_wallet", "configure_logging", "get_logger", "run_context"]
