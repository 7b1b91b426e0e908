"""Document store persisted to a single JSON file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TextIO

from campus.utils.helpers import atomic_write
from campus.utils.logging import get_logger

from .base import StorageError
from .memory import DEFAULT_MAX_BATCH_SIZE, InMemoryDocumentStore

_LOGGER = get_logger(module=__name__)


class JsonFileDocumentStore(InMemoryDocumentStore):
    """In-memory store that rewrites its JSON file after every mutation.

    Writes go through a temporary file and ``os.replace`` so a crash never
    leaves a half-written store behind. Batches remain atomic on disk because
    the file is replaced once per committed batch.
    """

    def __init__(self, path: Path | str, *, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE) -> None:
        self.path = Path(path).expanduser()
        data = {}
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
            except json.JSONDecodeError as exc:
                raise StorageError(f"Store file {self.path} is not valid JSON: {exc}") from exc
            if not isinstance(data, dict):
                raise StorageError(f"Store file {self.path} must contain a JSON object")
        super().__init__(data, max_batch_size=max_batch_size)
        _LOGGER.debug("Opened JSON store", path=str(self.path), collections=len(data))

    def _persist(self) -> None:
        def _writer(handle: TextIO) -> None:
            handle.write(json.dumps(self._collections, indent=2, sort_keys=True))
            handle.write("\n")

        try:
            atomic_write(self.path, _writer)
        except OSError as exc:
            raise StorageError(f"Failed to persist store to {self.path}: {exc}") from exc


__all__ = ["JsonFileDocumentStore"]
