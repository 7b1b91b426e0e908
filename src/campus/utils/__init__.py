"""Utility helpers shared across campus modules."""

from .helpers import (
    atomic_write,
    chunked,
    ensure_directory,
    fold_diacritics,
    normalize_name,
    ordered_union,
    slugify,
)
from .logging import configure_logging, get_logger, log_timing, logging_context
from .similarity import DEFAULT_LENGTH_RATIO_CUTOFF, string_similarity

__all__ = [
    "configure_logging",
    "get_logger",
    "logging_context",
    "log_timing",
    "normalize_name",
    "fold_diacritics",
    "slugify",
    "ensure_directory",
    "atomic_write",
    "chunked",
    "ordered_union",
    "string_similarity",
    "DEFAULT_LENGTH_RATIO_CUTOFF",
]
