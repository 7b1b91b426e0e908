"""Policy models for the public submission path."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SubmissionPolicy(BaseModel):
    """Synchronous checks applied before a request enters the pending collection."""

    max_display_name_length: int = Field(default=200, ge=1)
    check_pending_duplicates: bool = Field(
        default=True,
        description="Reject submissions whose name already waits in the pending collection.",
    )
    check_course_codes: bool = Field(
        default=True,
        description="Treat an equal course code within the same university as a duplicate.",
    )
