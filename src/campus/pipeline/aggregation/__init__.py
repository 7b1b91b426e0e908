"""Aggregation pipeline entry points and public interfaces."""

from .commit import BatchCommitOrchestrator, CommitResult
from .filter import DuplicateIndex, is_duplicate, load_index
from .grouping import GroupingMetrics, SimilarityGroup, group_submissions
from .main import aggregate_pending, open_store
from .processor import AggregationProcessor, AggregationResult, GroupingAmbiguity
from .resolver import CanonicalResolver, most_common_non_empty, professor_id

__all__ = [
    "aggregate_pending",
    "open_store",
    "AggregationProcessor",
    "AggregationResult",
    "GroupingAmbiguity",
    "BatchCommitOrchestrator",
    "CommitResult",
    "DuplicateIndex",
    "is_duplicate",
    "load_index",
    "GroupingMetrics",
    "SimilarityGroup",
    "group_submissions",
    "CanonicalResolver",
    "most_common_non_empty",
    "professor_id",
]
