"""Loguru setup shared by the CLI, the job runner and the aggregation pipeline.

Records carry three structured extras: ``run_id`` (a job or CLI invocation),
``stage`` (``submit``, ``aggregate``, ``commit`` ...) and ``kind`` (the entity
kind being processed). Missing extras render as ``-``.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from time import perf_counter
from typing import TYPE_CHECKING, Any, Iterator

from loguru import logger

if TYPE_CHECKING:
    from ..config.settings import Settings

_DEFAULT_EXTRA = {"run_id": "-", "stage": "-", "kind": "-"}

_CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[run_id]}</cyan> | "
    "<magenta>{extra[stage]}/{extra[kind]}</magenta> | "
    "{message}"
)
_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[run_id]} | {extra[stage]}/{extra[kind]} | {name}:{line} | {message} | {extra}"
)


def configure_logging(
    settings: "Settings | None" = None,
    level: str = "INFO",
    *,
    serialize: bool = False,
) -> None:
    """Replace loguru sinks with a console sink and a rotating campus log file.

    ``serialize`` switches the file sink to JSON lines.
    """

    from ..config.settings import get_settings

    cfg = settings or get_settings()
    log_path = cfg.log_file
    log_path.parent.mkdir(parents=True, exist_ok=True)

    logger.remove()
    logger.configure(extra=dict(_DEFAULT_EXTRA))
    logger.add(
        sys.stderr,
        level=level,
        enqueue=True,
        backtrace=False,
        diagnose=False,
        format=_CONSOLE_FORMAT,
    )
    logger.add(
        log_path,
        level=level,
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        serialize=serialize,
        format=_FILE_FORMAT,
    )


def get_logger(**context: Any):
    """Return a logger bound to ``context`` (typically ``module=__name__``)."""

    return logger.bind(**context)


@contextmanager
def logging_context(**context: Any) -> Iterator[Any]:
    """Bind ``context`` to every record emitted inside the block, across awaits."""

    with logger.contextualize(**context):
        yield logger


@contextmanager
def log_timing(step: str, *, logger_=logger) -> Iterator[None]:
    start = perf_counter()
    try:
        yield
    finally:
        logger_.info("Step timing", step=step, seconds=round(perf_counter() - start, 6))


__all__ = ["configure_logging", "get_logger", "logging_context", "log_timing"]
