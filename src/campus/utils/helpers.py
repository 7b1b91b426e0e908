"""General-purpose helpers for deterministic request processing."""

from __future__ import annotations

import itertools
import os
import re
import unicodedata
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Callable, Iterable, Iterator, List, TextIO, TypeVar

T = TypeVar("T")
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def normalize_name(name: str | None) -> str:
    """Return the comparison key used for names: lowercase and trimmed."""

    if not name:
        return ""
    return name.strip().lower()


def fold_diacritics(text: str) -> str:
    """Remove diacritics by decomposing unicode characters."""

    normalized = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch))


def slugify(text: str) -> str:
    """Build a lowercase ASCII slug (``"Dr. Ana Núñez"`` -> ``"dr-ana-nunez"``)."""

    folded = fold_diacritics(normalize_name(text))
    return _SLUG_PATTERN.sub("-", folded).strip("-")


def ensure_directory(path: Path | str) -> Path:
    """Ensure that a directory exists and return the resolved Path."""

    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target.resolve()


def atomic_write(
    destination: Path | str,
    writer: Callable[[TextIO], None],
    *,
    encoding: str = "utf-8",
) -> Path:
    """Write using a temporary file before atomically replacing the destination."""

    path = Path(destination).expanduser()
    ensure_directory(path.parent)

    tmp_path: Path | None = None
    tmp_handle = NamedTemporaryFile(
        mode="w",
        encoding=encoding,
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        tmp_path = Path(tmp_handle.name)
        try:
            writer(tmp_handle)
            tmp_handle.flush()
            os.fsync(tmp_handle.fileno())
        finally:
            tmp_handle.close()
        os.replace(tmp_path, path)
    except Exception:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink(missing_ok=True)
        raise
    return path


def chunked(iterable: Iterable[T], size: int) -> Iterable[List[T]]:
    """Yield chunks of a given size from the input iterable."""

    if size <= 0:
        raise ValueError("size must be positive")

    iterator: Iterator[T] = iter(iterable)
    while True:
        batch = list(itertools.islice(iterator, size))
        if not batch:
            break
        yield batch


def ordered_union(*sequences: Iterable[str]) -> List[str]:
    """Merge string sequences keeping first-appearance order and dropping blanks."""

    seen: set[str] = set()
    merged: List[str] = []
    for sequence in sequences:
        for raw in sequence:
            if raw is None:
                continue
            value = str(raw).strip()
            if not value or value in seen:
                continue
            seen.add(value)
            merged.append(value)
    return merged


__all__ = [
    "normalize_name",
    "fold_diacritics",
    "slugify",
    "ensure_directory",
    "atomic_write",
    "chunked",
    "ordered_union",
]
