"""Storage collaborators for the campus request pipeline."""

from .base import (
    ArrayUnion,
    BatchHandle,
    BatchOperation,
    DocumentStore,
    NotFoundError,
    StorageError,
    apply_partial,
)
from .json_file import JsonFileDocumentStore
from .memory import DEFAULT_MAX_BATCH_SIZE, InMemoryBatch, InMemoryDocumentStore

__all__ = [
    "ArrayUnion",
    "BatchHandle",
    "BatchOperation",
    "DocumentStore",
    "NotFoundError",
    "StorageError",
    "apply_partial",
    "InMemoryDocumentStore",
    "InMemoryBatch",
    "JsonFileDocumentStore",
    "DEFAULT_MAX_BATCH_SIZE",
]
