"""Logging and metrics for website deploy runs."""

from .logging import configure_logging, get_logger, run_id_ctx
from .metrics import metrics_text

__all__ = ["configure_logging", "get_logger", "metrics_text", "run_id_ctx"]
