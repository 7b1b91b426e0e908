"""Aggregation processor orchestrating grouping, resolution, filtering and commit."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, List

from pydantic import ValidationError

from campus.config.policies import AggregationPolicy
from campus.entities.core import CandidateEntity, CanonicalEntity, EntityKind, PendingSubmission
from campus.entities.kinds import EntityKindDescriptor, build_descriptors
from campus.storage.base import DocumentStore
from campus.utils.logging import get_logger, logging_context

from .commit import BatchCommitOrchestrator
from .filter import is_duplicate, load_index
from .grouping import GroupingMetrics, SimilarityGroup, group_submissions
from .resolver import CanonicalResolver

_LOGGER = get_logger(module=__name__)


@dataclass
class GroupingAmbiguity:
    """A group that could not be turned into a canonical record."""

    member_ids: List[str]
    names: List[str]
    scope: str | None
    reason: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "member_ids": list(self.member_ids),
            "names": list(self.names),
            "scope": self.scope,
            "reason": self.reason,
        }


@dataclass
class AggregationResult:
    """Aggregate result of one aggregation run for a single kind."""

    kind: EntityKind
    pending: int = 0
    groups: int = 0
    inserted: List[CanonicalEntity] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    duplicates: int = 0
    ambiguous: List[GroupingAmbiguity] = field(default_factory=list)
    linked_courses: int = 0
    chunks: int = 0
    skipped: bool = False
    stats: Dict[str, object] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    def summary(self) -> Dict[str, object]:
        return {
            "kind": self.kind.value,
            "pending": self.pending,
            "groups": self.groups,
            "inserted": len(self.inserted),
            "deleted": len(self.deleted),
            "duplicates": self.duplicates,
            "ambiguous": len(self.ambiguous),
            "linked_courses": self.linked_courses,
            "chunks": self.chunks,
            "skipped": self.skipped,
            "elapsed_seconds": self.elapsed_seconds,
        }


class AggregationProcessor:
    """Coordinator for one aggregation run over a pending collection.

    The processor holds no per-run state, so a single instance can serve
    every kind. Exclusion between overlapping runs of the same kind is the
    job runner's concern.
    """

    def __init__(self, store: DocumentStore, policy: AggregationPolicy | None = None) -> None:
        self.store = store
        self.policy = policy or AggregationPolicy()
        self.descriptors = build_descriptors(self.policy)

    def descriptor_for(self, kind: EntityKind | str) -> EntityKindDescriptor:
        return self.descriptors[EntityKind(kind)]

    async def _load_pending(
        self, descriptor: EntityKindDescriptor, stats: Dict[str, object]
    ) -> tuple[List[PendingSubmission], List[str]]:
        records = await self.store.query(descriptor.pending_collection)
        submissions: List[PendingSubmission] = []
        invalid_ids: List[str] = []
        for record in records:
            record.setdefault("kind", descriptor.kind.value)
            try:
                submissions.append(PendingSubmission.from_record(record))
            except ValidationError as exc:
                invalid_ids.append(record["id"])
                _LOGGER.warning(
                    "Discarding malformed pending record",
                    kind=descriptor.kind.value,
                    record_id=record["id"],
                    errors=exc.error_count(),
                )
        stats["input"] = {"records": len(records), "invalid_records": len(invalid_ids)}
        return submissions, invalid_ids

    def _ambiguity(
        self, descriptor: EntityKindDescriptor, group: SimilarityGroup[PendingSubmission]
    ) -> GroupingAmbiguity:
        founder = group.founder
        missing = [
            path
            for path in descriptor.required_fields
            if not any(_has_value(member, path) for member in group.members)
        ]
        if missing:
            reason = f"missing required field(s): {', '.join(missing)}"
        else:
            reason = "missing owning scope"
        return GroupingAmbiguity(
            member_ids=[member.id for member in group.members if member.id],
            names=[member.display_name for member in group.members],
            scope=founder.owner_scope_id,
            reason=reason,
        )

    async def run(self, kind: EntityKind | str, min_pending: int | None = None) -> AggregationResult:
        """Aggregate the pending collection for ``kind``.

        When ``min_pending`` is given and fewer pending records exist, the run
        is skipped without writes. An empty pending collection is a no-op.
        """

        descriptor = self.descriptor_for(kind)
        start_time = perf_counter()
        result = AggregationResult(kind=descriptor.kind)
        stats: Dict[str, object] = {}

        with logging_context(stage="aggregate", kind=descriptor.kind.value):
            submissions, invalid_ids = await self._load_pending(descriptor, stats)
            result.pending = len(submissions) + len(invalid_ids)
            _LOGGER.info(
                "Aggregation run started",
                kind=descriptor.kind.value,
                pending=result.pending,
            )

            if min_pending is not None and result.pending < min_pending:
                result.skipped = True
                result.elapsed_seconds = perf_counter() - start_time
                result.stats = stats
                _LOGGER.info(
                    "Aggregation run skipped below threshold",
                    kind=descriptor.kind.value,
                    pending=result.pending,
                    min_pending=min_pending,
                )
                return result

            if result.pending == 0:
                result.elapsed_seconds = perf_counter() - start_time
                result.stats = stats
                _LOGGER.info("Aggregation run finished with nothing pending", kind=descriptor.kind.value)
                return result

            metrics = GroupingMetrics()
            groups = group_submissions(
                submissions,
                scope_key=lambda item: descriptor.scope_for(item.owner_scope_id),
                name_key=lambda item: item.normalized_name,
                threshold=self.policy.grouping_threshold,
                strategy=self.policy.grouping_strategy,
                length_ratio_cutoff=self.policy.length_ratio_cutoff,
                metrics=metrics,
            )
            result.groups = len(groups)

            resolver = CanonicalResolver(descriptor)
            index = await load_index(self.store, descriptor)
            candidates: List[CandidateEntity] = []
            consumed: List[str] = list(invalid_ids)

            for group in groups:
                consumed.extend(member.id for member in group.members if member.id)
                candidate = resolver.resolve(group)
                if candidate is None:
                    ambiguity = self._ambiguity(descriptor, group)
                    result.ambiguous.append(ambiguity)
                    _LOGGER.warning(
                        "GroupingAmbiguity: group has no usable canonical record",
                        kind=descriptor.kind.value,
                        members=len(ambiguity.member_ids),
                        reason=ambiguity.reason,
                        scope=ambiguity.scope,
                    )
                    continue
                if is_duplicate(candidate, index, descriptor):
                    result.duplicates += 1
                    continue
                candidates.append(candidate)

            orchestrator = BatchCommitOrchestrator(self.store, descriptor, self.policy)
            commit = await orchestrator.commit(candidates, consumed, index=index)
            result.inserted = commit.inserted
            result.deleted = commit.deleted
            result.duplicates += commit.duplicates
            result.linked_courses = commit.linked_courses
            result.chunks = commit.chunks

            stats["grouping"] = {
                "groups": metrics.groups,
                "singletons": metrics.singletons,
                "largest_group": metrics.largest_group,
                "comparisons": metrics.comparisons,
                "size_distribution": {str(size): count for size, count in metrics.size_distribution.items()},
                "strategy": self.policy.grouping_strategy.value,
            }
            stats["candidates"] = len(candidates)
            stats["ambiguous_groups"] = len(result.ambiguous)
            stats["duplicates"] = result.duplicates
            result.elapsed_seconds = perf_counter() - start_time
            stats["timing"] = {"elapsed_seconds": result.elapsed_seconds}
            result.stats = stats

            _LOGGER.info(
                "Aggregation run finished",
                kind=descriptor.kind.value,
                pending=result.pending,
                groups=result.groups,
                inserted=len(result.inserted),
                deleted=len(result.deleted),
                duplicates=result.duplicates,
                ambiguous=len(result.ambiguous),
                chunks=result.chunks,
                elapsed_seconds=result.elapsed_seconds,
            )
            return result


def _has_value(member: PendingSubmission, path: str) -> bool:
    current: Any = member
    for part in path.split("."):
        if current is None:
            return False
        current = getattr(current, part, None)
    return bool(str(current).strip()) if current is not None else False


__all__ = ["AggregationProcessor", "AggregationResult", "GroupingAmbiguity"]
