"""End-to-end tests for the aggregation processor."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from campus.config.policies import AggregationPolicy
from campus.entities import EntityKind, PendingSubmission
from campus.pipeline.aggregation.io import generate_run_metadata, write_metadata
from campus.pipeline.aggregation.processor import AggregationProcessor
from campus.storage import InMemoryDocumentStore

INTRO_NAMES = [
    "Intro to Computer Science",
    "intro to computer science ",
    "Intro to Computer Scence",
    "Intro to Computer Sciences",
]
DATA_NAMES = ["Data Structures", "Data Structure", "data structures"]


def pending_document(kind: EntityKind, name: str, **fields) -> dict:
    submission = PendingSubmission(
        kind=kind,
        display_name=name,
        submitted_by=fields.pop("submitted_by", "user-1"),
        **fields,
    )
    return submission.to_document()


def course_requests(count: int = 100) -> dict:
    """Interleave CS 101 and CS 102 variants 60/40."""

    documents = {}
    intro_seen = data_seen = 0
    for index in range(count):
        if index % 5 < 3:
            name = INTRO_NAMES[intro_seen % len(INTRO_NAMES)]
            professors = ["Ada Lovelace"] if intro_seen % 2 == 0 else ["Alan Turing"]
            intro_seen += 1
            document = pending_document(
                EntityKind.COURSE, name, owner_scope_id="U1", code="CS 101", professors=professors
            )
        else:
            name = DATA_NAMES[data_seen % len(DATA_NAMES)]
            data_seen += 1
            document = pending_document(EntityKind.COURSE, name, owner_scope_id="U1", code="CS 102")
        documents[f"p{index:03d}"] = document
    return documents


def test_hundred_course_submissions_collapse_into_two_courses() -> None:
    store = InMemoryDocumentStore({"course_requests": course_requests()})
    processor = AggregationProcessor(store)

    result = asyncio.run(processor.run(EntityKind.COURSE))

    assert result.pending == 100
    assert result.groups == 2
    assert len(result.deleted) == 100
    assert store.count("course_requests") == 0
    assert store.count("courses") == 2

    by_name = {entity.display_name: entity for entity in result.inserted}
    assert set(by_name) == {"Intro to Computer Science", "Data Structures"}
    intro = by_name["Intro to Computer Science"]
    assert intro.code == "CS 101"
    assert intro.owner_scope_id == "U1"
    assert intro.professors == ["Ada Lovelace", "Alan Turing"]
    assert result.chunks == 1
    assert result.stats["grouping"]["groups"] == 2
    assert result.stats["grouping"]["size_distribution"] == {"60": 1, "40": 1}


def test_rerun_over_empty_pending_collection_is_a_no_op() -> None:
    store = InMemoryDocumentStore({"course_requests": course_requests()})
    processor = AggregationProcessor(store)
    asyncio.run(processor.run(EntityKind.COURSE))
    commits = store.commit_count
    before = store.snapshot()

    result = asyncio.run(processor.run(EntityKind.COURSE))

    assert result.pending == 0
    assert result.inserted == []
    assert result.deleted == []
    assert store.commit_count == commits
    assert store.snapshot() == before


def test_groups_matching_existing_canonical_records_are_deleted_not_inserted() -> None:
    store = InMemoryDocumentStore(
        {
            "course_requests": course_requests(),
            "courses": {
                "existing": {
                    "kind": "course",
                    "display_name": "DATA STRUCTURES",
                    "owner_scope_id": "U1",
                    "code": "CS 102",
                }
            },
        }
    )
    result = asyncio.run(AggregationProcessor(store).run(EntityKind.COURSE))

    assert [entity.display_name for entity in result.inserted] == ["Intro to Computer Science"]
    assert result.duplicates == 1
    assert len(result.deleted) == 100
    assert store.count("courses") == 2


def test_same_name_in_other_scope_is_not_a_duplicate() -> None:
    store = InMemoryDocumentStore(
        {
            "organization_requests": {
                "p1": pending_document(EntityKind.ORGANIZATION, "Chess Club", owner_scope_id="U2"),
            },
            "organizations": {
                "o1": {"kind": "organization", "display_name": "Chess Club", "owner_scope_id": "U1"},
            },
        }
    )
    result = asyncio.run(AggregationProcessor(store).run(EntityKind.ORGANIZATION))
    assert len(result.inserted) == 1
    inserted = result.inserted[0]
    assert inserted.colors.primary == "#6366f1"
    assert store.count("organizations") == 2


def test_ambiguous_and_malformed_records_are_deleted_and_reported() -> None:
    store = InMemoryDocumentStore(
        {
            "course_requests": {
                "p1": pending_document(EntityKind.COURSE, "Poetry", owner_scope_id="U1"),
                "p2": {"display_name": "Rowing", "owner_scope_id": "U1"},
                "p3": pending_document(EntityKind.COURSE, "Compilers", owner_scope_id="U1", code="CS 160"),
            }
        }
    )
    result = asyncio.run(AggregationProcessor(store).run(EntityKind.COURSE))

    assert [entity.display_name for entity in result.inserted] == ["Compilers"]
    assert len(result.ambiguous) == 1
    assert result.ambiguous[0].member_ids == ["p1"]
    assert "code" in result.ambiguous[0].reason
    assert result.stats["input"]["invalid_records"] == 1
    assert sorted(result.deleted) == ["p1", "p2", "p3"]
    assert store.count("course_requests") == 0


def test_run_is_skipped_below_min_pending() -> None:
    store = InMemoryDocumentStore({"course_requests": course_requests(5)})
    result = asyncio.run(AggregationProcessor(store).run(EntityKind.COURSE, min_pending=100))

    assert result.skipped
    assert result.pending == 5
    assert store.count("course_requests") == 5
    assert store.commit_count == 0


def test_universities_group_globally() -> None:
    store = InMemoryDocumentStore(
        {
            "university_requests": {
                "p1": pending_document(EntityKind.UNIVERSITY, "UC San Diego"),
                "p2": pending_document(EntityKind.UNIVERSITY, "UC San Deigo"),
                "p3": pending_document(EntityKind.UNIVERSITY, "Stanford University"),
            }
        }
    )
    result = asyncio.run(AggregationProcessor(store).run("university"))
    assert sorted(entity.display_name for entity in result.inserted) == [
        "Stanford University",
        "UC San Diego",
    ]


def test_professor_run_uses_slug_ids_and_links_courses() -> None:
    store = InMemoryDocumentStore(
        {
            "professor_requests": {
                "p1": pending_document(EntityKind.PROFESSOR, "Ada Lovelace", owner_scope_id="U1"),
                "p2": pending_document(EntityKind.PROFESSOR, "ada lovelace", owner_scope_id="U1"),
            },
            "courses": {
                "c1": {"kind": "course", "display_name": "Compilers", "owner_scope_id": "U1",
                       "professors": ["Ada Lovelace"]},
            },
        }
    )
    result = asyncio.run(
        AggregationProcessor(store, AggregationPolicy(link_professors=True)).run(EntityKind.PROFESSOR)
    )

    assert [entity.id for entity in result.inserted] == ["U1-ada-lovelace"]
    assert result.linked_courses == 1
    snapshot = store.snapshot()
    assert snapshot["courses"]["c1"]["professor_ids"] == ["U1-ada-lovelace"]
    assert snapshot["professors"]["U1-ada-lovelace"]["course_ids"] == ["c1"]


def test_run_metadata_is_written_atomically(tmp_path: Path) -> None:
    store = InMemoryDocumentStore({"course_requests": course_requests(10)})
    result = asyncio.run(AggregationProcessor(store).run(EntityKind.COURSE))

    payload = generate_run_metadata(result, {"policy_version": "test"})
    destination = write_metadata(payload, tmp_path / "reports" / "run.json")

    written = json.loads(destination.read_text(encoding="utf-8"))
    assert written["summary"]["kind"] == "course"
    assert written["summary"]["inserted"] == 2
    assert written["config"] == {"policy_version": "test"}
    assert len(written["samples"]) == 2
    assert not list((tmp_path / "reports").glob("*.tmp"))


def test_professor_sharing_a_slug_with_an_existing_one_is_not_overwritten() -> None:
    existing = {
        "kind": "professor",
        "display_name": "Ana Núñez",
        "owner_scope_id": "U1",
        "email": "ana@u1.edu",
        "course_ids": ["c9"],
    }
    store = InMemoryDocumentStore(
        {
            "professor_requests": {
                "p1": pending_document(EntityKind.PROFESSOR, "Ana Nunez", owner_scope_id="U1"),
            },
            "professors": {"U1-ana-nunez": dict(existing)},
        }
    )

    result = asyncio.run(AggregationProcessor(store).run(EntityKind.PROFESSOR))

    assert result.inserted == []
    assert result.duplicates == 1
    assert result.deleted == ["p1"]
    document = store.snapshot()["professors"]["U1-ana-nunez"]
    assert document["display_name"] == "Ana Núñez"
    assert document["email"] == "ana@u1.edu"
    assert document["course_ids"] == ["c9"]
    assert store.count("professor_requests") == 0
