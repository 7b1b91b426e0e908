"""Duplicate suppression against already committed canonical records."""

from __future__ import annotations

from typing import Iterable, Set, Tuple, Union

from campus.entities.core import CandidateEntity, CanonicalEntity
from campus.entities.kinds import EntityKindDescriptor
from campus.storage.base import DocumentStore
from campus.utils.helpers import normalize_name

DuplicateKey = Tuple[str, str]


def duplicate_key(
    descriptor: EntityKindDescriptor, scope_id: str | None, name: str | None
) -> DuplicateKey:
    return (descriptor.scope_for(scope_id), normalize_name(name))


def _matches(
    candidate: CandidateEntity, existing: CanonicalEntity, descriptor: EntityKindDescriptor
) -> bool:
    if not candidate.normalized_name or candidate.normalized_name != existing.normalized_name:
        return False
    if not descriptor.scope_bound:
        return True
    return (candidate.owner_scope_id or "") == (existing.owner_scope_id or "")


def is_duplicate(
    candidate: CandidateEntity,
    existing: "ExistingEntities",
    descriptor: EntityKindDescriptor,
) -> bool:
    """Exact normalized-name match against ``existing``, scoped for scope-bound kinds.

    ``existing`` is a :class:`DuplicateIndex`, an iterable of canonical
    entities or a single entity. An index also reports a candidate whose
    pre-assigned id (a professor slug) is already taken.
    """

    if isinstance(existing, DuplicateIndex):
        return existing.contains(candidate)
    if isinstance(existing, CanonicalEntity):
        existing = (existing,)
    return any(_matches(candidate, entity, descriptor) for entity in existing)


class DuplicateIndex:
    """Growing ``(scope, normalized_name)`` keys and document ids seen during one run.

    Ids matter for kinds whose ids are derived from the name: ``"Ana Núñez"``
    and ``"Ana Nunez"`` differ by name but share a slug, and the second must
    not overwrite the first.
    """

    def __init__(self, descriptor: EntityKindDescriptor) -> None:
        self.descriptor = descriptor
        self._keys: Set[DuplicateKey] = set()
        self._ids: Set[str] = set()

    @classmethod
    def from_entities(
        cls, descriptor: EntityKindDescriptor, entities: Iterable[CanonicalEntity]
    ) -> "DuplicateIndex":
        index = cls(descriptor)
        for entity in entities:
            index.add_entity(entity)
        return index

    def key_for(self, candidate: CandidateEntity) -> DuplicateKey:
        return duplicate_key(self.descriptor, candidate.owner_scope_id, candidate.display_name)

    def add_entity(self, entity: CanonicalEntity) -> None:
        key = duplicate_key(self.descriptor, entity.owner_scope_id, entity.display_name)
        if key[1]:
            self._keys.add(key)
        if entity.id:
            self._ids.add(entity.id)

    def has_id(self, document_id: str | None) -> bool:
        return bool(document_id) and document_id in self._ids

    def contains(self, candidate: CandidateEntity) -> bool:
        return self.key_for(candidate) in self._keys or self.has_id(candidate.entity.id)

    def add(self, candidate: CandidateEntity) -> bool:
        """Record ``candidate``; return ``False`` if its key or id was already present."""

        if self.contains(candidate):
            return False
        self._keys.add(self.key_for(candidate))
        if candidate.entity.id:
            self._ids.add(candidate.entity.id)
        return True

    def __contains__(self, candidate: object) -> bool:
        return isinstance(candidate, CandidateEntity) and self.contains(candidate)

    def __len__(self) -> int:
        return len(self._keys)


ExistingEntities = Union[DuplicateIndex, CanonicalEntity, Iterable[CanonicalEntity]]


async def load_index(store: DocumentStore, descriptor: EntityKindDescriptor) -> DuplicateIndex:
    """Build a :class:`DuplicateIndex` from the live canonical collection."""

    records = await store.query(descriptor.canonical_collection)
    entities = []
    for record in records:
        record.setdefault("kind", descriptor.kind.value)
        entities.append(CanonicalEntity.from_record(record))
    return DuplicateIndex.from_entities(descriptor, entities)


__all__ = [
    "DuplicateIndex",
    "DuplicateKey",
    "ExistingEntities",
    "duplicate_key",
    "is_duplicate",
    "load_index",
]
