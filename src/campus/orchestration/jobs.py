"""Background aggregation jobs with a per-kind single-run guard."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List
from uuid import uuid4

from campus.entities.core import EntityKind
from campus.pipeline.aggregation.processor import AggregationProcessor, AggregationResult
from campus.utils.logging import get_logger, logging_context

_LOGGER = get_logger(module=__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def active(self) -> bool:
        return self in (JobStatus.PENDING, JobStatus.RUNNING)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AggregationJob:
    """One requested aggregation run and its outcome."""

    kind: EntityKind
    min_pending: int | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    status: JobStatus = JobStatus.PENDING
    result: AggregationResult | None = None
    error: BaseException | None = None
    created_at: datetime = field(default_factory=_now)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    retry_of: str | None = None
    task: asyncio.Task | None = field(default=None, repr=False, compare=False)

    @property
    def done(self) -> bool:
        return not self.status.active


class AggregationJobRunner:
    """Run aggregation in the background without blocking submitters.

    While a job for a kind is pending or running, further triggers for that
    kind return the in-flight job. Failures are logged and stored on the job;
    they are never raised to the caller that triggered the run.
    """

    def __init__(self, processor: AggregationProcessor) -> None:
        self.processor = processor
        self._active: Dict[EntityKind, AggregationJob] = {}
        self._history: Dict[str, AggregationJob] = {}

    def submit(
        self,
        kind: EntityKind | str,
        *,
        min_pending: int | None = None,
        retry_of: str | None = None,
    ) -> AggregationJob:
        """Schedule a run for ``kind`` on the running event loop."""

        entity_kind = EntityKind(kind)
        active = self._active.get(entity_kind)
        if active is not None and active.status.active:
            _LOGGER.debug(
                "Aggregation already in flight; coalescing trigger",
                kind=entity_kind.value,
                job_id=active.id,
            )
            return active

        job = AggregationJob(kind=entity_kind, min_pending=min_pending, retry_of=retry_of)
        self._active[entity_kind] = job
        self._history[job.id] = job
        job.task = asyncio.get_running_loop().create_task(self._execute(job))
        job.task.add_done_callback(lambda _task, job=job: self._settle(job))
        _LOGGER.info("Aggregation job scheduled", kind=entity_kind.value, job_id=job.id)
        return job

    async def _execute(self, job: AggregationJob) -> None:
        job.status = JobStatus.RUNNING
        job.started_at = _now()
        with logging_context(run_id=job.id):
            try:
                job.result = await self.processor.run(job.kind, min_pending=job.min_pending)
                job.status = JobStatus.SUCCEEDED
            except asyncio.CancelledError as exc:
                job.error = exc
                job.status = JobStatus.CANCELLED
                _LOGGER.warning("Aggregation job cancelled", kind=job.kind.value, job_id=job.id)
                raise
            except Exception as exc:  # recorded on the job instead of propagating
                job.error = exc
                job.status = JobStatus.FAILED
                _LOGGER.exception(
                    "Aggregation job failed",
                    kind=job.kind.value,
                    job_id=job.id,
                    error=str(exc),
                )
            finally:
                job.finished_at = _now()
                if self._active.get(job.kind) is job:
                    del self._active[job.kind]

    def _settle(self, job: AggregationJob) -> None:
        """Close out a job whose task ended without reaching ``_execute``'s handlers."""

        if job.status.active:
            job.status = JobStatus.CANCELLED
            job.finished_at = job.finished_at or _now()
        if self._active.get(job.kind) is job:
            del self._active[job.kind]

    async def wait(self, job: AggregationJob) -> AggregationJob:
        if job.task is not None:
            await asyncio.wait({job.task})
        return job

    async def wait_all(self) -> List[AggregationJob]:
        pending = [job for job in self._active.values() if job.task is not None]
        for job in pending:
            await self.wait(job)
        return pending

    def retry(self, job_id: str) -> AggregationJob:
        """Re-submit a failed or cancelled job; raises ``KeyError`` for unknown ids."""

        job = self._history[job_id]
        if job.status not in (JobStatus.FAILED, JobStatus.CANCELLED):
            raise ValueError(
                f"job {job_id} is {job.status.value}; only failed or cancelled jobs can be retried"
            )
        return self.submit(job.kind, min_pending=job.min_pending, retry_of=job.id)

    def get(self, job_id: str) -> AggregationJob:
        return self._history[job_id]

    def active_job(self, kind: EntityKind | str) -> AggregationJob | None:
        return self._active.get(EntityKind(kind))

    def jobs(self) -> List[AggregationJob]:
        return list(self._history.values())


__all__ = ["AggregationJob", "AggregationJobRunner", "JobStatus"]
