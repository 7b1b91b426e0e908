"""Tests for canonical field election."""

from __future__ import annotations

from campus.config.policies import AggregationPolicy, ColorDefaults
from campus.entities import EntityKind, PendingSubmission, build_descriptors
from campus.pipeline.aggregation.grouping import SimilarityGroup
from campus.pipeline.aggregation.resolver import CanonicalResolver, most_common_non_empty


def make_submission(submission_id: str, kind: EntityKind, name: str, **fields) -> PendingSubmission:
    return PendingSubmission(
        id=submission_id,
        kind=kind,
        display_name=name,
        submitted_by=fields.pop("submitted_by", "user-1"),
        **fields,
    )


def resolver_for(kind: EntityKind, policy: AggregationPolicy | None = None) -> CanonicalResolver:
    return CanonicalResolver(build_descriptors(policy)[kind])


def test_most_common_non_empty_prefers_first_seen_on_ties() -> None:
    assert most_common_non_empty(["b", "a", "a", "b"]) == "b"
    assert most_common_non_empty(["", " x ", None, "y", "x"]) == "x"
    assert most_common_non_empty(["", None, "  "]) is None


def test_university_fields_elected_with_colour_defaults() -> None:
    group = SimilarityGroup(
        members=[
            make_submission("p1", EntityKind.UNIVERSITY, "UC San Diego", logo="logo-a"),
            make_submission("p2", EntityKind.UNIVERSITY, "UC San Diego", logo="logo-b"),
            make_submission("p3", EntityKind.UNIVERSITY, "uc san diego", logo="logo-b"),
        ]
    )
    candidate = resolver_for(EntityKind.UNIVERSITY).resolve(group)

    assert candidate is not None
    assert candidate.display_name == "UC San Diego"
    assert candidate.entity.logo == "logo-b"
    assert candidate.entity.colors is not None
    assert candidate.entity.colors.primary == "#182B49"
    assert candidate.entity.colors.secondary == "#C69214"
    assert candidate.owner_scope_id is None
    assert candidate.member_ids == ["p1", "p2", "p3"]


def test_colour_defaults_follow_policy() -> None:
    policy = AggregationPolicy(
        colors={"organization": ColorDefaults(primary="#000000", secondary="#ffffff")}
    )
    group = SimilarityGroup(
        members=[
            make_submission(
                "p1",
                EntityKind.ORGANIZATION,
                "Chess Club",
                owner_scope_id="U1",
                colors={"primary": "#123456"},
            )
        ]
    )
    candidate = resolver_for(EntityKind.ORGANIZATION, policy).resolve(group)
    assert candidate is not None
    assert candidate.entity.colors.primary == "#123456"
    assert candidate.entity.colors.secondary == "#ffffff"


def test_accumulate_fields_are_ordered_unions() -> None:
    group = SimilarityGroup(
        members=[
            make_submission(
                "p1", EntityKind.COURSE, "Data Structures", owner_scope_id="U1",
                code="CS 102", professors=["Ada Lovelace", "Alan Turing"],
            ),
            make_submission(
                "p2", EntityKind.COURSE, "Data Structure", owner_scope_id="U1",
                code="CS 102", professors=["Alan Turing", " Grace Hopper "],
            ),
        ]
    )
    candidate = resolver_for(EntityKind.COURSE).resolve(group)
    assert candidate is not None
    assert candidate.entity.professors == ["Ada Lovelace", "Alan Turing", "Grace Hopper"]
    assert candidate.entity.code == "CS 102"
    assert candidate.owner_scope_id == "U1"


def test_course_without_code_is_unusable() -> None:
    group = SimilarityGroup(
        members=[make_submission("p1", EntityKind.COURSE, "Poetry", owner_scope_id="U1")]
    )
    assert resolver_for(EntityKind.COURSE).resolve(group) is None


def test_group_without_name_is_unusable() -> None:
    group = SimilarityGroup(
        members=[make_submission("p1", EntityKind.UNIVERSITY, "   ")]
    )
    assert resolver_for(EntityKind.UNIVERSITY).resolve(group) is None


def test_scope_bound_group_without_scope_is_unusable() -> None:
    group = SimilarityGroup(
        members=[make_submission("p1", EntityKind.ORGANIZATION, "Chess Club")]
    )
    assert resolver_for(EntityKind.ORGANIZATION).resolve(group) is None


def test_professors_get_slug_ids() -> None:
    group = SimilarityGroup(
        members=[
            make_submission(
                "p1", EntityKind.PROFESSOR, "Ana Núñez", owner_scope_id="U1",
                email="ana@example.edu", course_ids=["c1"],
            ),
            make_submission(
                "p2", EntityKind.PROFESSOR, "Ana Nunez", owner_scope_id="U1", course_ids=["c2", "c1"],
            ),
        ]
    )
    candidate = resolver_for(EntityKind.PROFESSOR).resolve(group)
    assert candidate is not None
    assert candidate.entity.id == "U1-ana-nunez"
    assert candidate.entity.email == "ana@example.edu"
    assert candidate.entity.course_ids == ["c1", "c2"]
