"""State, override parsing and rendering shared by the campus commands."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Dict, Iterable, Mapping, TypeVar
from uuid import uuid4

import typer
from rich.console import Console
from rich.json import JSON as RichJSON
from rich.panel import Panel

from campus.config.layering import decode_scalar, deep_merge, set_path
from campus.config.settings import Settings
from campus.pipeline.aggregation.main import open_store
from campus.storage.base import StorageError
from campus.storage.json_file import JsonFileDocumentStore
from campus.utils.logging import get_logger, logging_context

console = Console()
_LOGGER = get_logger(module=__name__)

T = TypeVar("T")


class CLIError(RuntimeError):
    """A failure reported to the user as a one-line message."""


@dataclass(slots=True)
class CLIState:
    """Resolved invocation context stored on ``typer.Context.obj``."""

    settings: Settings
    run_id: str
    verbose: bool = False
    overrides: Dict[str, Any] = field(default_factory=dict)

    @property
    def environment(self) -> str:
        return self.settings.environment


def parse_override(argument: str) -> Dict[str, Any]:
    """Turn ``policies.aggregation.trigger_threshold=20`` into a nested mapping."""

    dotted, sep, raw = argument.partition("=")
    if not sep:
        raise typer.BadParameter("Overrides must be expressed as dotted.key=value")
    path = [segment.strip() for segment in dotted.split(".") if segment.strip()]
    if not path:
        raise typer.BadParameter("Override keys must not be empty")
    override: Dict[str, Any] = {}
    set_path(override, path, decode_scalar(raw))
    return override


def merge_overrides(overrides: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    for override in overrides:
        merged = deep_merge(merged, override)
    return merged


def resolve_settings(environment: str | None, overrides: Mapping[str, Any]) -> Settings:
    payload = dict(overrides)
    if environment:
        payload["environment"] = environment
    try:
        return Settings(**payload)
    except ValueError as exc:
        raise CLIError(f"Invalid configuration: {exc}") from exc


def configure_state(
    ctx: typer.Context,
    *,
    environment: str | None,
    overrides: Iterable[Mapping[str, Any]],
    store: Path | None = None,
    run_id: str | None = None,
    verbose: bool = False,
) -> CLIState:
    """Resolve settings for this invocation and attach a :class:`CLIState` to ``ctx``."""

    merged = merge_overrides(overrides)
    if store is not None:
        merged["store_path"] = str(store)
    state = CLIState(
        settings=resolve_settings(environment, merged),
        run_id=run_id or f"cli-{uuid4().hex[:8]}",
        verbose=verbose,
        overrides=merged,
    )
    ctx.obj = state
    return state


def get_state(ctx: typer.Context) -> CLIState:
    if not isinstance(ctx.obj, CLIState):
        raise CLIError("CLI context is not initialised")
    return ctx.obj


def open_cli_store(state: CLIState) -> JsonFileDocumentStore:
    try:
        return open_store(state.settings)
    except StorageError as exc:
        raise CLIError(str(exc)) from exc


def run_async(awaitable: Awaitable[T], *, run_id: str | None = None) -> T:
    """Drive ``awaitable`` on a fresh event loop; storage failures become :class:`CLIError`."""

    async def _runner() -> T:
        with logging_context(run_id=run_id or "-"):
            return await awaitable

    try:
        return asyncio.run(_runner())
    except StorageError as exc:
        _LOGGER.error("Storage failure during CLI command", run_id=run_id, error=str(exc))
        raise CLIError(f"Storage failure: {exc}") from exc


def render_panel(title: str, content: Mapping[str, Any]) -> None:
    console.print(Panel(RichJSON.from_data(content, default=str), title=title, border_style="cyan"))


def resolve_path(path: str | Path, *, must_exist: bool = True) -> Path:
    target = Path(path).expanduser().resolve()
    if must_exist and not target.exists():
        raise CLIError(f"Path does not exist: {target}")
    return target
