"""Public submission API."""

from .service import DuplicateAtSubmitError, SubmissionError, SubmissionService, ValidationError

__all__ = [
    "SubmissionService",
    "SubmissionError",
    "ValidationError",
    "DuplicateAtSubmitError",
]
