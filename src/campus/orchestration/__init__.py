"""Background execution of aggregation runs."""

from .jobs import AggregationJob, AggregationJobRunner, JobStatus

__all__ = ["AggregationJob", "AggregationJobRunner", "JobStatus"]
