"""Per-kind descriptors: collections, scoping, id policy and field election rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Tuple

from campus.config.policies import AggregationPolicy

from .core import EntityKind


class IdStrategy(str, Enum):
    """How canonical record ids are assigned."""

    SLUG = "slug"
    GENERATED = "generated"


@dataclass(frozen=True)
class ElectedField:
    """A single-valued field elected by most-frequent non-empty value.

    ``path`` is a dotted attribute path (``"colors.primary"``). ``default`` is
    used when no group member provides a value; ``None`` marks the field as
    required, in which case the whole group is unusable without it.
    """

    path: str
    default: str | None = ""

    @property
    def required(self) -> bool:
        return self.default is None


@dataclass(frozen=True)
class EntityKindDescriptor:
    """Static description of how one entity kind is stored and aggregated."""

    kind: EntityKind
    pending_collection: str
    canonical_collection: str
    scope_bound: bool
    id_strategy: IdStrategy
    elected_fields: Tuple[ElectedField, ...] = field(default_factory=tuple)
    accumulate_fields: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def required_fields(self) -> Tuple[str, ...]:
        return tuple(item.path for item in self.elected_fields if item.required)

    def scope_for(self, scope_id: str | None) -> str:
        """Return the comparison scope; scope-less kinds share one global scope."""

        if not self.scope_bound:
            return ""
        return scope_id or ""


def _color_fields(policy: AggregationPolicy, kind: EntityKind) -> Tuple[ElectedField, ...]:
    colors = policy.colors_for(kind.value)
    primary = colors.primary if colors else ""
    secondary = colors.secondary if colors else ""
    return (
        ElectedField("colors.primary", primary),
        ElectedField("colors.secondary", secondary),
    )


def build_descriptors(policy: AggregationPolicy | None = None) -> Dict[EntityKind, EntityKindDescriptor]:
    """Build the descriptor table, taking colour defaults from ``policy``."""

    policy = policy or AggregationPolicy()
    display = ElectedField("display_name", None)
    return {
        EntityKind.UNIVERSITY: EntityKindDescriptor(
            kind=EntityKind.UNIVERSITY,
            pending_collection="university_requests",
            canonical_collection="universities",
            scope_bound=False,
            id_strategy=IdStrategy.GENERATED,
            elected_fields=(
                display,
                ElectedField("logo"),
                ElectedField("image"),
                *_color_fields(policy, EntityKind.UNIVERSITY),
            ),
        ),
        EntityKind.COURSE: EntityKindDescriptor(
            kind=EntityKind.COURSE,
            pending_collection="course_requests",
            canonical_collection="courses",
            scope_bound=True,
            id_strategy=IdStrategy.GENERATED,
            elected_fields=(
                display,
                ElectedField("code", None),
                ElectedField("description"),
            ),
            accumulate_fields=("professors",),
        ),
        EntityKind.ORGANIZATION: EntityKindDescriptor(
            kind=EntityKind.ORGANIZATION,
            pending_collection="organization_requests",
            canonical_collection="organizations",
            scope_bound=True,
            id_strategy=IdStrategy.GENERATED,
            elected_fields=(
                display,
                ElectedField("logo"),
                ElectedField("description"),
                *_color_fields(policy, EntityKind.ORGANIZATION),
            ),
        ),
        EntityKind.PROFESSOR: EntityKindDescriptor(
            kind=EntityKind.PROFESSOR,
            pending_collection="professor_requests",
            canonical_collection="professors",
            scope_bound=True,
            id_strategy=IdStrategy.SLUG,
            elected_fields=(
                display,
                ElectedField("email"),
                ElectedField("image"),
            ),
            accumulate_fields=("course_ids",),
        ),
    }


DESCRIPTORS: Dict[EntityKind, EntityKindDescriptor] = build_descriptors()


def get_descriptor(kind: EntityKind | str) -> EntityKindDescriptor:
    return DESCRIPTORS[EntityKind(kind)]


__all__ = [
    "IdStrategy",
    "ElectedField",
    "EntityKindDescriptor",
    "build_descriptors",
    "get_descriptor",
    "DESCRIPTORS",
]
