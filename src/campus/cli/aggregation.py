"""Aggregation commands for the campus CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from campus.entities.core import EntityKind
from campus.entities.kinds import build_descriptors
from campus.pipeline.aggregation.main import aggregate_pending

from .common import CLIError, console, get_state, open_cli_store, render_panel, resolve_path, run_async

app = typer.Typer(
    add_completion=False,
    help="Run and inspect the request aggregation pipeline.",
    no_args_is_help=True,
)


def _parse_kind(kind: str) -> EntityKind:
    try:
        return EntityKind(kind.strip().lower())
    except ValueError as exc:
        choices = ", ".join(item.value for item in EntityKind)
        raise CLIError(f"Unknown kind '{kind}'. Expected one of: {choices}") from exc


def _run_command(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Entity kind to aggregate."),
    force: bool = typer.Option(
        False,
        "--force",
        help="Run even when the pending collection is below the trigger threshold.",
    ),
    report: Optional[Path] = typer.Option(
        None,
        "--report",
        help="Write run metadata JSON to this path.",
        show_default=False,
    ),
) -> None:
    state = get_state(ctx)
    entity_kind = _parse_kind(kind)
    store = open_cli_store(state)
    report_path = resolve_path(report, must_exist=False) if report else None

    with console.status(f"Aggregating pending {entity_kind.value} submissions..."):
        result = run_async(
            aggregate_pending(
                entity_kind,
                store=store,
                settings=state.settings,
                force=force,
                metadata_path=report_path,
            ),
            run_id=state.run_id,
        )

    if result.skipped:
        threshold = state.settings.policies.aggregation.trigger_threshold_for(entity_kind.value)
        console.print(
            f"[yellow]Skipped[/yellow]: {result.pending} pending {entity_kind.value} "
            f"submissions, threshold is {threshold}. Use --force to run anyway."
        )
        return

    render_panel(f"Aggregation ({entity_kind.value})", result.summary())
    if state.verbose and result.ambiguous:
        for item in result.ambiguous:
            console.print(f"[yellow]Ambiguous group[/yellow] {item.names} ({item.reason})")
    if report_path is not None:
        console.print(f"Metadata written to {report_path}")


def _status_command(ctx: typer.Context) -> None:
    state = get_state(ctx)
    store = open_cli_store(state)
    policy = state.settings.policies.aggregation
    table = Table(title="Aggregation status", box=None)
    table.add_column("Kind")
    table.add_column("Pending", justify="right")
    table.add_column("Threshold", justify="right")
    table.add_column("Canonical", justify="right")
    for kind, descriptor in build_descriptors(policy).items():
        table.add_row(
            kind.value,
            str(store.count(descriptor.pending_collection)),
            str(policy.trigger_threshold_for(kind.value)),
            str(store.count(descriptor.canonical_collection)),
        )
    console.print(table)


app.command("run")(_run_command)
app.command("status")(_status_command)
