"""Public submission path: validate, reject exact duplicates, enqueue, trigger."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from pydantic import ValidationError as PydanticValidationError

from campus.config.policies import Policies
from campus.entities.core import CanonicalEntity, EntityKind, PendingSubmission
from campus.entities.kinds import EntityKindDescriptor, build_descriptors
from campus.orchestration.jobs import AggregationJob, AggregationJobRunner
from campus.pipeline.aggregation.resolver import professor_id
from campus.storage.base import DocumentStore, NotFoundError
from campus.utils.helpers import normalize_name
from campus.utils.logging import get_logger

_LOGGER = get_logger(module=__name__)


class SubmissionError(Exception):
    """Base class for errors raised synchronously to submitters."""


class ValidationError(SubmissionError, ValueError):
    """Raised when a submission payload is malformed."""


class DuplicateAtSubmitError(SubmissionError):
    """Raised when an equal record already exists in a canonical or pending collection."""

    def __init__(self, kind: EntityKind, name: str, collection: str, existing_id: str) -> None:
        super().__init__(f"{kind.value} '{name}' already exists in {collection} ({existing_id})")
        self.kind = kind
        self.name = name
        self.collection = collection
        self.existing_id = existing_id


class SubmissionService:
    """Accept user-proposed additions into the pending collections.

    After each accepted submission the pending collection is counted; once it
    reaches the kind's trigger threshold an aggregation job is handed to the
    runner. The submitter never waits for, or sees errors from, that job.
    """

    def __init__(
        self,
        store: DocumentStore,
        runner: AggregationJobRunner | None = None,
        *,
        policies: Policies | None = None,
    ) -> None:
        self.store = store
        self.runner = runner
        self.policies = policies or Policies()
        self.descriptors = build_descriptors(self.policies.aggregation)
        self.last_job: AggregationJob | None = None

    def _build(
        self,
        descriptor: EntityKindDescriptor,
        payload: Mapping[str, Any],
        submitted_by: str,
    ) -> PendingSubmission:
        data: Dict[str, Any] = {
            key: value for key, value in dict(payload).items() if key not in {"id", "kind"}
        }
        data["kind"] = descriptor.kind
        data["submitted_by"] = submitted_by
        if not descriptor.scope_bound:
            data["owner_scope_id"] = None
        try:
            submission = PendingSubmission.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError(str(exc)) from exc

        policy = self.policies.submission
        if not submission.display_name:
            raise ValidationError("display_name must not be empty")
        if len(submission.display_name) > policy.max_display_name_length:
            raise ValidationError(
                f"display_name exceeds {policy.max_display_name_length} characters"
            )
        if descriptor.scope_bound and not submission.owner_scope_id:
            raise ValidationError(f"{descriptor.kind.value} submissions require owner_scope_id")
        if descriptor.kind is EntityKind.COURSE and not submission.code:
            raise ValidationError("course submissions require a code")
        return submission

    async def _scoped_records(
        self, collection: str, descriptor: EntityKindDescriptor, scope: str | None
    ) -> List[Dict[str, Any]]:
        if descriptor.scope_bound:
            return await self.store.query(collection, {"owner_scope_id": scope})
        return await self.store.query(collection)

    async def _check_duplicates(
        self, descriptor: EntityKindDescriptor, submission: PendingSubmission
    ) -> None:
        collections = [descriptor.canonical_collection]
        if self.policies.submission.check_pending_duplicates:
            collections.append(descriptor.pending_collection)
        check_code = (
            descriptor.kind is EntityKind.COURSE and self.policies.submission.check_course_codes
        )
        code = normalize_name(submission.code)

        for collection in collections:
            records = await self._scoped_records(collection, descriptor, submission.owner_scope_id)
            for record in records:
                if normalize_name(record.get("display_name")) == submission.normalized_name:
                    raise DuplicateAtSubmitError(
                        descriptor.kind, submission.display_name, collection, record["id"]
                    )
                if check_code and code and normalize_name(record.get("code")) == code:
                    raise DuplicateAtSubmitError(
                        descriptor.kind, submission.code, collection, record["id"]
                    )

    async def submit(
        self,
        kind: EntityKind | str,
        payload: Mapping[str, Any],
        submitted_by: str,
    ) -> str:
        """Validate and enqueue one submission, returning its pending id."""

        descriptor = self.descriptors[EntityKind(kind)]
        submission = self._build(descriptor, payload, submitted_by)
        await self._check_duplicates(descriptor, submission)

        submission_id = await self.store.insert(
            descriptor.pending_collection, submission.to_document()
        )
        pending = len(await self.store.query(descriptor.pending_collection))
        threshold = self.policies.aggregation.trigger_threshold_for(descriptor.kind.value)
        _LOGGER.info(
            "Submission accepted",
            kind=descriptor.kind.value,
            submission_id=submission_id,
            pending=pending,
            threshold=threshold,
        )

        if pending >= threshold and self.runner is not None:
            self.last_job = self.runner.submit(descriptor.kind, min_pending=threshold)
        return submission_id

    async def get_or_create_professor(self, scope_id: str, name: str) -> CanonicalEntity:
        """Return the professor for ``name`` in ``scope_id``, creating it on first reference."""

        scope = (scope_id or "").strip()
        display_name = (name or "").strip()
        if not scope:
            raise ValidationError("professors require a university scope")
        if not display_name:
            raise ValidationError("professor name must not be empty")

        descriptor = self.descriptors[EntityKind.PROFESSOR]
        document_id = professor_id(scope, display_name)
        try:
            record = await self.store.get_by_id(descriptor.canonical_collection, document_id)
            return CanonicalEntity.from_record(record)
        except NotFoundError:
            pass

        entity = CanonicalEntity(
            id=document_id,
            kind=EntityKind.PROFESSOR,
            display_name=display_name,
            owner_scope_id=scope,
        )
        await self.store.insert_with_id(
            descriptor.canonical_collection, document_id, entity.to_document()
        )
        _LOGGER.info("Created professor on first reference", professor_id=document_id, scope=scope)
        return entity


__all__ = [
    "SubmissionService",
    "SubmissionError",
    "ValidationError",
    "DuplicateAtSubmitError",
]
