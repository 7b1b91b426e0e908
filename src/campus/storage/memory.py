"""In-process document store with atomic batches."""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, List, Mapping
from uuid import uuid4

from campus.utils.logging import get_logger

from .base import BatchOperation, NotFoundError, StorageError, apply_partial

_LOGGER = get_logger(module=__name__)

# Matches the per-commit operation limit of the hosted document database.
DEFAULT_MAX_BATCH_SIZE = 500


class InMemoryBatch:
    """Queued writes applied all-or-nothing by :meth:`InMemoryDocumentStore.apply_batch`."""

    def __init__(self, store: "InMemoryDocumentStore") -> None:
        self._store = store
        self._operations: List[BatchOperation] = []
        self._committed = False

    def set(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        self._operations.append(BatchOperation("set", collection, document_id, dict(fields)))

    def update(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        self._operations.append(BatchOperation("update", collection, document_id, dict(fields)))

    def delete(self, collection: str, document_id: str) -> None:
        self._operations.append(BatchOperation("delete", collection, document_id))

    def __len__(self) -> int:
        return len(self._operations)

    @property
    def operations(self) -> List[BatchOperation]:
        return list(self._operations)

    async def commit(self) -> None:
        if self._committed:
            raise StorageError("batch already committed")
        await self._store.apply_batch(self._operations)
        self._committed = True


class InMemoryDocumentStore:
    """Dictionary-backed :class:`~campus.storage.base.DocumentStore`.

    Every call yields to the event loop once so concurrent pipeline runs
    interleave the way they would against a remote database.
    """

    def __init__(
        self,
        data: Mapping[str, Mapping[str, Mapping[str, Any]]] | None = None,
        *,
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
    ) -> None:
        if max_batch_size <= 0:
            raise ValueError("max_batch_size must be positive")
        self.max_batch_size = max_batch_size
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for collection, documents in (data or {}).items():
            self._collections[collection] = {
                doc_id: dict(fields) for doc_id, fields in documents.items()
            }
        self.commit_count = 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def query(
        self, collection: str, filters: Mapping[str, Any] | None = None
    ) -> List[Dict[str, Any]]:
        await asyncio.sleep(0)
        results: List[Dict[str, Any]] = []
        for doc_id, fields in self._collections.get(collection, {}).items():
            if filters and any(fields.get(key) != value for key, value in filters.items()):
                continue
            record = copy.deepcopy(fields)
            record["id"] = doc_id
            results.append(record)
        return results

    async def get_by_id(self, collection: str, document_id: str) -> Dict[str, Any]:
        await asyncio.sleep(0)
        fields = self._collections.get(collection, {}).get(document_id)
        if fields is None:
            raise NotFoundError(collection, document_id)
        record = copy.deepcopy(fields)
        record["id"] = document_id
        return record

    # ------------------------------------------------------------------
    # Single-document writes
    # ------------------------------------------------------------------
    def new_id(self, collection: str) -> str:
        return uuid4().hex[:20]

    async def insert(self, collection: str, fields: Mapping[str, Any]) -> str:
        document_id = self.new_id(collection)
        await self.insert_with_id(collection, document_id, fields)
        return document_id

    async def insert_with_id(
        self, collection: str, document_id: str, fields: Mapping[str, Any]
    ) -> None:
        await asyncio.sleep(0)
        payload = {key: value for key, value in copy.deepcopy(dict(fields)).items() if key != "id"}
        self._collections.setdefault(collection, {})[document_id] = payload
        self._persist()

    async def update(self, collection: str, document_id: str, fields: Mapping[str, Any]) -> None:
        await asyncio.sleep(0)
        documents = self._collections.get(collection, {})
        if document_id not in documents:
            raise NotFoundError(collection, document_id)
        documents[document_id] = apply_partial(documents[document_id], fields)
        self._persist()

    async def delete(self, collection: str, document_id: str) -> None:
        await asyncio.sleep(0)
        self._collections.get(collection, {}).pop(document_id, None)
        self._persist()

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------
    def batch(self) -> InMemoryBatch:
        return InMemoryBatch(self)

    async def apply_batch(self, operations: List[BatchOperation]) -> None:
        """Apply ``operations`` indivisibly; on any error nothing is written."""

        await asyncio.sleep(0)
        if len(operations) > self.max_batch_size:
            raise StorageError(
                f"batch of {len(operations)} operations exceeds limit of {self.max_batch_size}"
            )
        staged = {
            name: dict(documents)
            for name, documents in self._collections.items()
        }
        for operation in operations:
            documents = staged.setdefault(operation.collection, {})
            if operation.action == "set":
                payload = copy.deepcopy(dict(operation.fields))
                payload.pop("id", None)
                documents[operation.document_id] = payload
            elif operation.action == "update":
                if operation.document_id not in documents:
                    raise NotFoundError(operation.collection, operation.document_id)
                documents[operation.document_id] = apply_partial(
                    documents[operation.document_id], operation.fields
                )
            else:
                documents.pop(operation.document_id, None)
        self._collections = staged
        self.commit_count += 1
        _LOGGER.debug("Committed batch", operations=len(operations), commits=self.commit_count)
        self._persist()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    def count(self, collection: str) -> int:
        return len(self._collections.get(collection, {}))

    def snapshot(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        return copy.deepcopy(self._collections)

    def _persist(self) -> None:
        """Hook for durable subclasses; the in-memory store keeps nothing on disk."""


__all__ = ["InMemoryDocumentStore", "InMemoryBatch", "DEFAULT_MAX_BATCH_SIZE"]
