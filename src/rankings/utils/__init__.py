"""Utility helpers shared across rankings modules."""

from .helpers import chunked, fold_diacritics, normalize_whitespace, serialize_json, slugify
from .logging import configure_logging, get_logger, log_timing, logging_context

__all__ = [
    "configure_logging",
    "get_logger",
    "logging_context",
    "log_timing",
    "chunked",
    "fold_diacritics",
    "normalize_whitespace",
    "serialize_json",
    "slugify",
]
