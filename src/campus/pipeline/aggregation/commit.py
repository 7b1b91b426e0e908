"""Chunked, strictly sequential commit of aggregation results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from campus.config.policies import AggregationPolicy
from campus.entities.core import CandidateEntity, CanonicalEntity, EntityKind
from campus.entities.kinds import EntityKindDescriptor, IdStrategy, get_descriptor
from campus.storage.base import ArrayUnion, BatchOperation, DocumentStore, StorageError
from campus.utils.helpers import chunked, normalize_name, ordered_union
from campus.utils.logging import get_logger

from .filter import DuplicateIndex, is_duplicate, load_index

_LOGGER = get_logger(module=__name__)


@dataclass
class CommitResult:
    """Outcome of :meth:`BatchCommitOrchestrator.commit`."""

    inserted: List[CanonicalEntity] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    chunks: int = 0
    linked_courses: int = 0
    duplicates: int = 0


class BatchCommitOrchestrator:
    """Write accepted candidates and delete consumed submissions in bounded batches.

    Operations are ordered inserts first, then deletes, and split into chunks
    no larger than the store's batch limit. Chunks commit one after another;
    the first failing chunk raises and later chunks are never attempted, so
    already committed chunks stay durable.
    """

    def __init__(
        self,
        store: DocumentStore,
        descriptor: EntityKindDescriptor,
        policy: AggregationPolicy | None = None,
    ) -> None:
        self.store = store
        self.descriptor = descriptor
        self.policy = policy or AggregationPolicy()

    @property
    def chunk_size(self) -> int:
        return max(1, min(self.policy.max_batch_size, self.store.max_batch_size))

    def _assign_id(self, candidate: CandidateEntity) -> CanonicalEntity:
        entity = candidate.entity.model_copy(deep=True)
        if self.descriptor.id_strategy is IdStrategy.GENERATED or not entity.id:
            entity.id = self.store.new_id(self.descriptor.canonical_collection)
        return entity

    async def _commit_operations(self, operations: Sequence[BatchOperation], *, stage: str) -> int:
        chunks = 0
        for chunk in chunked(operations, self.chunk_size):
            batch = self.store.batch()
            for operation in chunk:
                if operation.action == "set":
                    batch.set(operation.collection, operation.document_id, operation.fields)
                elif operation.action == "update":
                    batch.update(operation.collection, operation.document_id, operation.fields)
                else:
                    batch.delete(operation.collection, operation.document_id)
            try:
                await batch.commit()
            except StorageError as exc:
                _LOGGER.error(
                    "Batch commit failed",
                    kind=self.descriptor.kind.value,
                    stage=stage,
                    chunk=chunks + 1,
                    committed_chunks=chunks,
                    operations=len(chunk),
                    error=str(exc),
                )
                raise
            chunks += 1
            _LOGGER.debug(
                "Committed chunk",
                kind=self.descriptor.kind.value,
                stage=stage,
                chunk=chunks,
                operations=len(chunk),
            )
        return chunks

    async def _link_professors(self, professors: Sequence[CanonicalEntity]) -> tuple[int, int]:
        courses_collection = get_descriptor(EntityKind.COURSE).canonical_collection
        by_scope: Dict[str, List[dict]] = {}
        operations: List[BatchOperation] = []
        linked = 0

        for professor in professors:
            scope = professor.owner_scope_id or ""
            if scope not in by_scope:
                by_scope[scope] = await self.store.query(
                    courses_collection, {"owner_scope_id": scope}
                )
            name = professor.normalized_name
            course_ids = [
                course["id"]
                for course in by_scope[scope]
                if name in {normalize_name(value) for value in course.get("professors") or []}
            ]
            if not course_ids:
                continue
            for course_id in course_ids:
                operations.append(
                    BatchOperation(
                        "update",
                        courses_collection,
                        course_id,
                        {"professor_ids": ArrayUnion([professor.id])},
                    )
                )
            operations.append(
                BatchOperation(
                    "update",
                    self.descriptor.canonical_collection,
                    professor.id,
                    {"course_ids": ArrayUnion(course_ids)},
                )
            )
            linked += len(course_ids)

        if not operations:
            return 0, 0
        chunks = await self._commit_operations(operations, stage="link")
        return linked, chunks

    async def commit(
        self,
        candidates: Sequence[CandidateEntity],
        consumed_submission_ids: Sequence[str],
        *,
        index: DuplicateIndex | None = None,
    ) -> CommitResult:
        """Insert unique candidates and delete every consumed submission.

        Each candidate is re-checked against ``index`` (loaded from the
        canonical collection when omitted), which grows as candidates are
        accepted, so two candidates with equal keys never both insert. A
        candidate whose pre-assigned id is already taken is dropped as well,
        so an existing canonical document is never overwritten.
        """

        if index is None:
            index = await load_index(self.store, self.descriptor)

        result = CommitResult()
        operations: List[BatchOperation] = []
        for candidate in candidates:
            if is_duplicate(candidate, index, self.descriptor):
                result.duplicates += 1
                _LOGGER.debug(
                    "Dropping duplicate candidate at commit",
                    kind=self.descriptor.kind.value,
                    name=candidate.display_name,
                    scope=candidate.owner_scope_id,
                )
                continue
            index.add(candidate)
            entity = self._assign_id(candidate)
            operations.append(
                BatchOperation(
                    "set",
                    self.descriptor.canonical_collection,
                    entity.id,
                    entity.to_document(),
                )
            )
            result.inserted.append(entity)

        result.deleted = ordered_union(consumed_submission_ids)
        operations.extend(
            BatchOperation("delete", self.descriptor.pending_collection, submission_id)
            for submission_id in result.deleted
        )

        result.chunks = await self._commit_operations(operations, stage="commit")

        if (
            self.descriptor.kind is EntityKind.PROFESSOR
            and self.policy.link_professors
            and result.inserted
        ):
            linked, link_chunks = await self._link_professors(result.inserted)
            result.linked_courses = linked
            result.chunks += link_chunks

        _LOGGER.info(
            "Commit finished",
            kind=self.descriptor.kind.value,
            inserted=len(result.inserted),
            deleted=len(result.deleted),
            duplicates=result.duplicates,
            chunks=result.chunks,
            linked_courses=result.linked_courses,
        )
        return result


__all__ = ["BatchCommitOrchestrator", "CommitResult"]
