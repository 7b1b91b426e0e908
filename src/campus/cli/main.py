"""Top-level ``campus`` command."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple, Type

import typer
from rich.table import Table

from campus.utils.logging import configure_logging

from . import aggregation, submissions
from .common import CLIError, configure_state, console, parse_override


class CampusTyper(typer.Typer):
    """Typer app that ends the process cleanly on known user-facing errors.

    ``exit_codes`` maps exception types to process exit codes; the first
    matching entry wins. Anything unmatched keeps Typer's traceback.
    """

    exit_codes: Tuple[Tuple[Type[BaseException], int], ...] = ((CLIError, 2),)

    def exit_code_for(self, exc: BaseException) -> int | None:
        for error_type, code in self.exit_codes:
            if isinstance(exc, error_type):
                return code
        return None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().__call__(*args, **kwargs)
        except Exception as exc:  # pragma: no cover - exercised by the installed script
            code = self.exit_code_for(exc)
            if code is None:
                raise
            console.print(f"[bold red]Error:[/bold red] {exc}")
            sys.exit(code)


app = CampusTyper(
    add_completion=False,
    help="Submit campus additions and run the request aggregation pipeline.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    environment: Optional[str] = typer.Option(
        None,
        "--environment",
        "-e",
        help="Configuration environment (development, testing, production).",
        show_default=False,
    ),
    override: List[str] = typer.Option(  # noqa: B008 - Typer callback signature
        [],
        "--override",
        "-o",
        metavar="KEY=VALUE",
        help="Setting or policy override, e.g. policies.aggregation.trigger_threshold=20.",
    ),
    store: Optional[Path] = typer.Option(
        None,
        "--store",
        help="JSON document store file; defaults to <data_dir>/store.json.",
        show_default=False,
    ),
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Identifier attached to every log record of this invocation.",
        show_default=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Debug logging and a summary of the resolved context.",
    ),
) -> None:
    """Resolve settings and the document store before any subcommand runs."""

    state = configure_state(
        ctx,
        environment=environment,
        overrides=[parse_override(item) for item in override],
        store=store,
        run_id=run_id,
        verbose=verbose,
    )
    settings = state.settings
    configure_logging(
        settings,
        level="DEBUG" if verbose else settings.log_level,
        serialize=settings.json_logs,
    )
    if not verbose:
        return

    table = Table(title="CLI Context", show_header=False, box=None)
    table.add_row("Environment", state.environment)
    table.add_row("Run ID", state.run_id)
    table.add_row("Store", str(settings.resolved_store_path))
    table.add_row("Policy version", settings.policy_version)
    table.add_row("Log file", str(settings.log_file))
    console.print(table)


app.add_typer(submissions.app, name="submit", help="File pending additions")
app.add_typer(aggregation.app, name="aggregate", help="Run or inspect aggregation")
