"""Single-pass similarity grouping of pending submissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, List, Sequence, TypeVar

from campus.config.policies import GroupingStrategy
from campus.utils.logging import get_logger
from campus.utils.similarity import DEFAULT_LENGTH_RATIO_CUTOFF, string_similarity

_LOGGER = get_logger(module=__name__)

T = TypeVar("T")

DEFAULT_GROUPING_THRESHOLD = 0.75


@dataclass
class SimilarityGroup(Generic[T]):
    """Submissions believed to describe the same entity.

    Members are connected through the scan order: with the founder strategy
    every member is similar to ``members[0]`` but not necessarily to each other.
    """

    members: List[T] = field(default_factory=list)

    @property
    def founder(self) -> T:
        return self.members[0]

    def __len__(self) -> int:
        return len(self.members)


@dataclass
class GroupingMetrics:
    """Aggregate statistics describing a grouping pass."""

    total_items: int = 0
    groups: int = 0
    singletons: int = 0
    largest_group: int = 0
    comparisons: int = 0
    scope_mismatches: int = 0
    size_distribution: Dict[int, int] = field(default_factory=dict)


def _names_match(
    first: str,
    second: str,
    threshold: float,
    length_ratio_cutoff: float,
) -> bool:
    if not first or not second:
        return False
    return string_similarity(first, second, length_ratio_cutoff=length_ratio_cutoff) >= threshold


def group_submissions(
    submissions: Sequence[T],
    scope_key: Callable[[T], str | None],
    name_key: Callable[[T], str],
    threshold: float = DEFAULT_GROUPING_THRESHOLD,
    *,
    strategy: GroupingStrategy = GroupingStrategy.FOUNDER,
    length_ratio_cutoff: float = DEFAULT_LENGTH_RATIO_CUTOFF,
    metrics: GroupingMetrics | None = None,
) -> List[SimilarityGroup[T]]:
    """Partition ``submissions`` into similarity groups.

    Each unconsumed item founds a group and pulls in every later unconsumed
    item with the same scope key whose name passes the comparison. With
    :attr:`GroupingStrategy.FOUNDER` only the founder's name is compared;
    :attr:`GroupingStrategy.ALL_MEMBERS` requires similarity to every member
    already in the group. Scope keys must match exactly, so similarity never
    crosses scopes. Every input lands in exactly one group.
    """

    if not 0.0 <= threshold <= 1.0:
        raise ValueError("threshold must be within [0, 1]")

    stats = metrics if metrics is not None else GroupingMetrics()
    stats.total_items = len(submissions)

    scopes = [scope_key(item) or "" for item in submissions]
    names = [name_key(item) or "" for item in submissions]
    consumed = [False] * len(submissions)
    groups: List[SimilarityGroup[T]] = []

    for i, founder in enumerate(submissions):
        if consumed[i]:
            continue
        consumed[i] = True
        group: SimilarityGroup[T] = SimilarityGroup(members=[founder])
        member_indexes = [i]

        for j in range(i + 1, len(submissions)):
            if consumed[j]:
                continue
            if scopes[i] != scopes[j]:
                stats.scope_mismatches += 1
                continue
            if strategy is GroupingStrategy.ALL_MEMBERS:
                compare_against = member_indexes
            else:
                compare_against = [i]
            stats.comparisons += len(compare_against)
            if all(
                _names_match(names[k], names[j], threshold, length_ratio_cutoff)
                for k in compare_against
            ):
                group.members.append(submissions[j])
                member_indexes.append(j)
                consumed[j] = True

        groups.append(group)

    stats.groups = len(groups)
    stats.singletons = sum(1 for group in groups if len(group) == 1)
    stats.largest_group = max((len(group) for group in groups), default=0)
    distribution: Dict[int, int] = {}
    for group in groups:
        distribution[len(group)] = distribution.get(len(group), 0) + 1
    stats.size_distribution = dict(sorted(distribution.items()))

    _LOGGER.debug(
        "Grouped submissions",
        items=stats.total_items,
        groups=stats.groups,
        singletons=stats.singletons,
        largest_group=stats.largest_group,
        strategy=strategy.value,
    )
    return groups


__all__ = [
    "SimilarityGroup",
    "GroupingMetrics",
    "group_submissions",
    "DEFAULT_GROUPING_THRESHOLD",
]
