"""Tests for exact duplicate suppression."""

from __future__ import annotations

import asyncio

from campus.entities import CandidateEntity, CanonicalEntity, EntityKind, get_descriptor
from campus.pipeline.aggregation.filter import DuplicateIndex, is_duplicate, load_index
from campus.storage import InMemoryDocumentStore


def canonical(kind: EntityKind, name: str, scope: str | None = None) -> CanonicalEntity:
    return CanonicalEntity(id=f"{kind.value}-{name}", kind=kind, display_name=name, owner_scope_id=scope)


def candidate(kind: EntityKind, name: str, scope: str | None = None) -> CandidateEntity:
    return CandidateEntity(
        entity=CanonicalEntity(kind=kind, display_name=name, owner_scope_id=scope),
        member_ids=["p1"],
    )


def test_scope_bound_duplicates_require_equal_scope() -> None:
    descriptor = get_descriptor(EntityKind.ORGANIZATION)
    existing = canonical(EntityKind.ORGANIZATION, "Chess Club", "U1")

    assert is_duplicate(candidate(EntityKind.ORGANIZATION, " chess club", "U1"), existing, descriptor)
    assert not is_duplicate(candidate(EntityKind.ORGANIZATION, "Chess Club", "U2"), existing, descriptor)


def test_universities_are_compared_globally() -> None:
    descriptor = get_descriptor(EntityKind.UNIVERSITY)
    existing = canonical(EntityKind.UNIVERSITY, "UC San Diego")
    assert is_duplicate(candidate(EntityKind.UNIVERSITY, "UC SAN DIEGO"), existing, descriptor)
    assert not is_duplicate(candidate(EntityKind.UNIVERSITY, "UC San Diego Extension"), existing, descriptor)


def test_near_matches_are_not_duplicates() -> None:
    descriptor = get_descriptor(EntityKind.COURSE)
    existing = canonical(EntityKind.COURSE, "Data Structures", "U1")
    assert not is_duplicate(candidate(EntityKind.COURSE, "Data Structure", "U1"), existing, descriptor)


def test_index_grows_as_candidates_are_added() -> None:
    descriptor = get_descriptor(EntityKind.COURSE)
    index = DuplicateIndex.from_entities(descriptor, [canonical(EntityKind.COURSE, "Algorithms", "U1")])

    assert candidate(EntityKind.COURSE, "algorithms", "U1") in index
    assert candidate(EntityKind.COURSE, "Algorithms", "U2") not in index

    fresh = candidate(EntityKind.COURSE, "Compilers", "U1")
    assert index.add(fresh) is True
    assert index.add(candidate(EntityKind.COURSE, "compilers ", "U1")) is False
    assert len(index) == 2


def test_load_index_reads_records_without_stored_kind() -> None:
    descriptor = get_descriptor(EntityKind.COURSE)
    store = InMemoryDocumentStore(
        {"courses": {"c1": {"display_name": "Compilers", "owner_scope_id": "U1", "code": "CS 160"}}}
    )

    index = asyncio.run(load_index(store, descriptor))

    assert len(index) == 1
    assert candidate(EntityKind.COURSE, "compilers", "U1") in index
    assert candidate(EntityKind.COURSE, "compilers", "U2") not in index


def test_is_duplicate_accepts_a_collection_or_an_index() -> None:
    descriptor = get_descriptor(EntityKind.ORGANIZATION)
    existing = [
        canonical(EntityKind.ORGANIZATION, "Chess Club", "U1"),
        canonical(EntityKind.ORGANIZATION, "Robotics", "U2"),
    ]
    index = DuplicateIndex.from_entities(descriptor, existing)

    for pool in (existing, index):
        assert is_duplicate(candidate(EntityKind.ORGANIZATION, "ROBOTICS", "U2"), pool, descriptor)
        assert not is_duplicate(candidate(EntityKind.ORGANIZATION, "Robotics", "U1"), pool, descriptor)
    assert not is_duplicate(candidate(EntityKind.ORGANIZATION, "Chess Club", "U1"), [], descriptor)


def test_index_reports_taken_professor_ids() -> None:
    descriptor = get_descriptor(EntityKind.PROFESSOR)
    index = DuplicateIndex.from_entities(
        descriptor,
        [CanonicalEntity(id="U1-ana-nunez", kind=EntityKind.PROFESSOR, display_name="Ana Núñez", owner_scope_id="U1")],
    )
    folded = CandidateEntity(
        entity=CanonicalEntity(
            id="U1-ana-nunez", kind=EntityKind.PROFESSOR, display_name="Ana Nunez", owner_scope_id="U1"
        ),
        member_ids=["p1"],
    )

    assert index.has_id("U1-ana-nunez")
    assert is_duplicate(folded, index, descriptor)
    assert index.add(folded) is False
