"""Core domain entities used throughout the request aggregation pipeline."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from campus.utils.helpers import normalize_name, ordered_union


class EntityKind(str, Enum):
    """Entity kinds users can propose additions for."""

    UNIVERSITY = "university"
    COURSE = "course"
    ORGANIZATION = "organization"
    PROFESSOR = "professor"


class ColorPair(BaseModel):
    """Brand colours shown for universities and organizations."""

    primary: str = Field(default="")
    secondary: str = Field(default="")

    @field_validator("primary", "secondary")
    @classmethod
    def _strip(cls, value: str | None) -> str:
        return (value or "").strip()


class _NamedRecord(BaseModel):
    """Shared fields for pending and canonical records."""

    model_config = ConfigDict(extra="ignore")

    kind: EntityKind
    display_name: str = Field(default="", description="Primary identity field")
    owner_scope_id: str | None = Field(
        default=None,
        description="Owning context (a university id) for scope-bound kinds.",
    )
    logo: str = Field(default="")
    image: str = Field(default="")
    description: str = Field(default="")
    colors: ColorPair | None = Field(default=None)
    code: str = Field(default="", description="Course code such as 'CS 101'")
    email: str = Field(default="")
    course_ids: List[str] = Field(default_factory=list)
    professors: List[str] = Field(
        default_factory=list,
        description="Free-text professor names attached to a course.",
    )

    @field_validator("display_name", "logo", "image", "description", "code", "email", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("owner_scope_id", mode="before")
    @classmethod
    def _blank_scope_is_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None

    @field_validator("course_ids", "professors", mode="before")
    @classmethod
    def _clean_lists(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return ordered_union(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def normalized_name(self) -> str:
        """Lowercase trimmed display name used for duplicate and grouping comparisons."""

        return normalize_name(self.display_name)

    def scope_key(self) -> str:
        return self.owner_scope_id or ""

    def to_document(self) -> Dict[str, Any]:
        """Return the storage payload (JSON-compatible, without ``id``)."""

        return self.model_dump(mode="json", exclude={"id"})


class PendingSubmission(_NamedRecord):
    """A user-proposed addition waiting in a pending collection."""

    id: str | None = Field(default=None, description="Assigned by storage on insert")
    submitted_by: str = Field(..., min_length=1)
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "PendingSubmission":
        return cls.model_validate(dict(record))


class CanonicalEntity(_NamedRecord):
    """The single authoritative record for a university, course, organization or professor."""

    id: str | None = Field(default=None)
    professor_ids: List[str] = Field(default_factory=list)
    members: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("professor_ids", "members", mode="before")
    @classmethod
    def _clean_id_lists(cls, value: Any) -> List[str]:
        if value is None:
            return []
        return ordered_union(value)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "CanonicalEntity":
        return cls.model_validate(dict(record))


class CandidateEntity(BaseModel):
    """Canonical record proposed for one similarity group, not yet committed."""

    entity: CanonicalEntity
    member_ids: List[str] = Field(default_factory=list)

    @property
    def kind(self) -> EntityKind:
        return self.entity.kind

    @property
    def display_name(self) -> str:
        return self.entity.display_name

    @property
    def normalized_name(self) -> str:
        return self.entity.normalized_name

    @property
    def owner_scope_id(self) -> str | None:
        return self.entity.owner_scope_id


__all__ = [
    "EntityKind",
    "ColorPair",
    "PendingSubmission",
    "CanonicalEntity",
    "CandidateEntity",
]
