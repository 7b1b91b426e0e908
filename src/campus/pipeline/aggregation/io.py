"""Run metadata output for the aggregation pipeline."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO

from campus.utils.helpers import atomic_write

from .processor import AggregationResult


def generate_run_metadata(
    result: AggregationResult,
    config_used: dict,
    *,
    sample_size: int = 10,
) -> dict:
    """Create the metadata payload describing an aggregation run."""

    inserted_samples = [
        {
            "id": entity.id,
            "display_name": entity.display_name,
            "owner_scope_id": entity.owner_scope_id,
        }
        for entity in result.inserted[:sample_size]
    ]
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "summary": result.summary(),
        "stats": result.stats,
        "config": config_used,
        "ambiguous": [item.as_dict() for item in result.ambiguous],
        "samples": inserted_samples,
    }


def default_metadata_path(metadata_dir: Path, result: AggregationResult) -> Path:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return Path(metadata_dir) / f"aggregation-{result.kind.value}-{stamp}.json"


def write_metadata(payload: dict, destination: str | Path) -> Path:
    """Write the metadata payload to JSON atomically."""

    def _writer(handle: TextIO) -> None:
        handle.write(json.dumps(payload, indent=2, sort_keys=True, default=str) + "\n")

    return atomic_write(destination, _writer)


__all__ = [
    "generate_run_metadata",
    "default_metadata_path",
    "write_metadata",
]
