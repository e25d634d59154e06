"""Utility functions."""

from .logging_utils import setup_logging
from .timestamps import from_epoch_ms, to_epoch_ms, utcnow

__all__ = ["setup_logging", "from_epoch_ms", "to_epoch_ms", "utcnow"]
