"""Layering primitives shared by settings, policies and CLI overrides.

Configuration is assembled from plain mappings: YAML files, environment
variables with a ``__``-separated path (``CAMPUS_POLICY__AGGREGATION__MAX_BATCH_SIZE``)
and ``dotted.key=value`` overrides. Scalar values from the environment and the
command line are JSON-decoded when possible so ``7`` and ``false`` arrive typed.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Sequence

import yaml


def decode_scalar(raw: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return raw


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """Return ``base`` with ``override`` merged in; nested mappings merge key by key."""

    result = dict(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            result[key] = deep_merge(current, value)
        else:
            result[key] = value
    return result


def set_path(target: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    """Assign ``value`` at ``path``, creating intermediate mappings."""

    cursor = target
    for depth, part in enumerate(path[:-1], start=1):
        existing = cursor.get(part)
        if existing is None:
            existing = {}
            cursor[part] = existing
        elif not isinstance(existing, MutableMapping):
            raise ValueError(
                f"Cannot override '{'.'.join(path)}': '{'.'.join(path[:depth])}' is not a mapping"
            )
        cursor = existing
    cursor[path[-1]] = value


def read_yaml_mapping(path: Path, *, required: bool = False) -> Dict[str, Any]:
    """Load a YAML mapping; a missing optional file reads as empty."""

    if not path.exists():
        if required:
            raise FileNotFoundError(f"Configuration file not found: {path}")
        return {}
    with path.open("r", encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle)
    if loaded is None:
        return {}
    if not isinstance(loaded, Mapping):
        raise ValueError(f"Configuration file '{path}' must contain a mapping at the top level")
    return dict(loaded)


def apply_env_overrides(
    target: MutableMapping[str, Any],
    prefix: str,
    environ: Mapping[str, str] | None = None,
) -> MutableMapping[str, Any]:
    """Write every ``<prefix>A__B=value`` variable into ``target['a']['b']``."""

    source = os.environ if environ is None else environ
    for key in sorted(source):
        if not key.startswith(prefix):
            continue
        path = [segment.lower() for segment in key[len(prefix) :].split("__") if segment]
        if path:
            set_path(target, path, decode_scalar(source[key]))
    return target


__all__ = [
    "apply_env_overrides",
    "decode_scalar",
    "deep_merge",
    "read_yaml_mapping",
    "set_path",
]
