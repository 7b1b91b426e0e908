"""Abstract document-store collaborator consumed by the aggregation core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Protocol, Sequence, runtime_checkable


class StorageError(RuntimeError):
    """Raised for any I/O failure reported by the document store."""


class NotFoundError(StorageError):
    """Raised when a document id does not exist in a collection."""

    def __init__(self, collection: str, document_id: str) -> None:
        super().__init__(f"{collection}/{document_id} not found")
        self.collection = collection
        self.document_id = document_id


@dataclass(frozen=True)
class ArrayUnion:
    """Update marker appending values to an array field, skipping ones already present."""

    values: Sequence[Any]

    def apply(self, existing: Any) -> List[Any]:
        merged = list(existing or [])
        for value in self.values:
            if value not in merged:
                merged.append(value)
        return merged


def apply_partial(document: Dict[str, Any], partial: Mapping[str, Any]) -> Dict[str, Any]:
    """Return ``document`` with ``partial`` merged in, resolving :class:`ArrayUnion` values."""

    updated = dict(document)
    for key, value in partial.items():
        if isinstance(value, ArrayUnion):
            updated[key] = value.apply(updated.get(key))
        else:
            updated[key] = value
    return updated


@dataclass(frozen=True)
class BatchOperation:
    """One queued write inside an atomic batch."""

    action: Literal["set", "update", "delete"]
    collection: str
    document_id: str
    fields: Mapping[str, Any] = field(default_factory=dict)


class BatchHandle(Protocol):
    """Collects writes and applies them indivisibly on :meth:`commit`."""

    def set(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None: ...

    def update(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None: ...

    def delete(self, collection: str, document_id: str) -> None: ...

    def __len__(self) -> int: ...

    async def commit(self) -> None: ...


@runtime_checkable
class DocumentStore(Protocol):
    """Async operations the aggregation core needs from a document database.

    Filters are equality predicates on top-level fields. Records returned by
    :meth:`query` and :meth:`get_by_id` include their ``id``.
    """

    max_batch_size: int

    async def query(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> List[Dict[str, Any]]: ...

    async def get_by_id(self, collection: str, document_id: str) -> Dict[str, Any]: ...

    async def insert(self, collection: str, fields: Mapping[str, Any]) -> str: ...

    async def insert_with_id(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> None: ...

    async def update(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> None: ...

    async def delete(self, collection: str, document_id: str) -> None: ...

    def new_id(self, collection: str) -> str: ...

    def batch(self) -> BatchHandle: ...


__all__ = [
    "StorageError",
    "NotFoundError",
    "ArrayUnion",
    "apply_partial",
    "BatchOperation",
    "BatchHandle",
    "DocumentStore",
]
