"""Top-level package for the campus request aggregation service."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("campus")
except PackageNotFoundError:  # pragma: no cover - running from a source checkout
    __version__ = "0.1.0"

from .config.settings import Settings, get_settings
from .entities import CandidateEntity, CanonicalEntity, EntityKind, PendingSubmission

__all__ = [
    "__version__",
    "Settings",
    "get_settings",
    "EntityKind",
    "PendingSubmission",
    "CanonicalEntity",
    "CandidateEntity",
]
