"""Entry points for the aggregation pipeline."""

from __future__ import annotations

from pathlib import Path

from campus.config.settings import Settings, get_settings
from campus.entities.core import EntityKind
from campus.storage.base import DocumentStore
from campus.storage.json_file import JsonFileDocumentStore
from campus.utils.logging import get_logger, log_timing

from .io import default_metadata_path, generate_run_metadata, write_metadata
from .processor import AggregationProcessor, AggregationResult

_LOGGER = get_logger(module=__name__)


def open_store(settings: Settings | None = None) -> JsonFileDocumentStore:
    """Open the JSON document store configured in ``settings``."""

    cfg = settings or get_settings()
    return JsonFileDocumentStore(
        cfg.resolved_store_path,
        max_batch_size=cfg.policies.aggregation.max_batch_size,
    )


def _config_snapshot(cfg: Settings) -> dict:
    policy = cfg.policies.aggregation.model_dump(mode="json")
    return {
        "policy_version": str(cfg.policies.policy_version),
        "grouping": {
            "threshold": policy.get("grouping_threshold"),
            "length_ratio_cutoff": policy.get("length_ratio_cutoff"),
            "strategy": policy.get("grouping_strategy"),
        },
        "commit": {
            "max_batch_size": policy.get("max_batch_size"),
            "link_professors": policy.get("link_professors"),
        },
        "colors": policy.get("colors", {}),
    }


async def aggregate_pending(
    kind: EntityKind | str,
    *,
    store: DocumentStore | None = None,
    settings: Settings | None = None,
    force: bool = False,
    metadata_path: str | Path | None = None,
    write_report: bool = False,
) -> AggregationResult:
    """Run the aggregation pipeline for one kind end-to-end.

    Without ``force`` the run is skipped while the pending collection is below
    the kind's trigger threshold. A metadata report is written when
    ``metadata_path`` is given or ``write_report`` is set.
    """

    cfg = settings or get_settings()
    policy = cfg.policies.aggregation
    entity_kind = EntityKind(kind)
    target_store = store if store is not None else open_store(cfg)
    processor = AggregationProcessor(target_store, policy)

    min_pending = None if force else policy.trigger_threshold_for(entity_kind.value)
    with log_timing(f"aggregate.{entity_kind.value}", logger_=_LOGGER):
        result = await processor.run(entity_kind, min_pending=min_pending)

    if metadata_path is None and not write_report:
        return result

    destination = Path(metadata_path) if metadata_path else default_metadata_path(
        cfg.paths.metadata_dir, result
    )
    payload = generate_run_metadata(result, _config_snapshot(cfg))
    try:
        written = write_metadata(payload, destination)
    except OSError as exc:
        _LOGGER.exception(
            "Failed to write aggregation metadata",
            destination=str(destination),
            error=str(exc),
        )
        raise
    result.stats["metadata_path"] = str(written)
    _LOGGER.info("Aggregation metadata written", kind=entity_kind.value, path=str(written))
    return result


__all__ = ["aggregate_pending", "open_store"]
