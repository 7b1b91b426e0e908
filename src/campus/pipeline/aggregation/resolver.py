"""Elect one canonical record per similarity group."""

from __future__ import annotations

from collections import Counter
from typing import Any, Dict, Iterable, List, Sequence

from campus.entities.core import CandidateEntity, CanonicalEntity, PendingSubmission
from campus.entities.kinds import ElectedField, EntityKindDescriptor, IdStrategy
from campus.utils.helpers import ordered_union, slugify
from campus.utils.logging import get_logger

from .grouping import SimilarityGroup

_LOGGER = get_logger(module=__name__)


def most_common_non_empty(values: Iterable[Any]) -> str | None:
    """Return the most frequent non-empty stripped value, ties going to the first seen."""

    cleaned = [str(value).strip() for value in values if value is not None]
    cleaned = [value for value in cleaned if value]
    if not cleaned:
        return None
    counts = Counter(cleaned)
    best = max(counts.values())
    for value in cleaned:
        if counts[value] == best:
            return value
    return None  # pragma: no cover - unreachable


def _read_path(record: Any, path: str) -> Any:
    current = record
    for part in path.split("."):
        if current is None:
            return None
        current = getattr(current, part, None)
    return current


def _write_path(payload: Dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = payload
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def professor_id(scope_id: str, name: str) -> str:
    """Deterministic professor id: ``"<scope>-<slug of name>"``."""

    return f"{scope_id}-{slugify(name)}"


class CanonicalResolver:
    """Build :class:`CandidateEntity` instances from groups of pending submissions."""

    def __init__(self, descriptor: EntityKindDescriptor) -> None:
        self.descriptor = descriptor

    def _elect(self, members: Sequence[PendingSubmission], item: ElectedField) -> str | None:
        value = most_common_non_empty(_read_path(member, item.path) for member in members)
        if value is None:
            return item.default
        return value

    def _accumulate(self, members: Sequence[PendingSubmission], field_name: str) -> List[str]:
        return ordered_union(*(getattr(member, field_name, None) or [] for member in members))

    def _scope(self, members: Sequence[PendingSubmission]) -> str | None:
        return most_common_non_empty(member.owner_scope_id for member in members)

    def resolve(self, group: SimilarityGroup[PendingSubmission]) -> CandidateEntity | None:
        """Return the candidate for ``group`` or ``None`` when it is unusable.

        A group is unusable when a required field has no non-empty value
        among its members, or when a scope-bound kind has no scope.
        """

        members = list(group.members)
        if not members:
            return None

        payload: Dict[str, Any] = {"kind": self.descriptor.kind}
        for item in self.descriptor.elected_fields:
            value = self._elect(members, item)
            if value is None:
                _LOGGER.debug(
                    "Required field missing from group",
                    kind=self.descriptor.kind.value,
                    field=item.path,
                    members=len(members),
                )
                return None
            _write_path(payload, item.path, value)

        for field_name in self.descriptor.accumulate_fields:
            payload[field_name] = self._accumulate(members, field_name)

        scope = self._scope(members) if self.descriptor.scope_bound else None
        if self.descriptor.scope_bound and not scope:
            _LOGGER.debug(
                "Scope missing from group",
                kind=self.descriptor.kind.value,
                members=len(members),
            )
            return None
        payload["owner_scope_id"] = scope

        if self.descriptor.id_strategy is IdStrategy.SLUG:
            payload["id"] = professor_id(scope or "", payload["display_name"])

        entity = CanonicalEntity.model_validate(payload)
        member_ids = [member.id for member in members if member.id]
        return CandidateEntity(entity=entity, member_ids=member_ids)


__all__ = ["CanonicalResolver", "most_common_non_empty", "professor_id"]
