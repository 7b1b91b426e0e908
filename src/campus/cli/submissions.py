"""Submission commands for the campus CLI."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import typer

from campus.entities.core import EntityKind
from campus.orchestration.jobs import AggregationJobRunner, JobStatus
from campus.pipeline.aggregation.processor import AggregationProcessor
from campus.submissions import SubmissionError, SubmissionService

from .common import CLIError, CLIState, console, get_state, open_cli_store, render_panel, run_async

app = typer.Typer(
    add_completion=False,
    help="Propose new universities, courses, organizations and professors.",
    no_args_is_help=True,
)


def _colors(primary: Optional[str], secondary: Optional[str]) -> Dict[str, str] | None:
    if not primary and not secondary:
        return None
    return {"primary": primary or "", "secondary": secondary or ""}


def _submit(state: CLIState, kind: EntityKind, payload: Dict[str, Any], submitted_by: str) -> None:
    store = open_cli_store(state)
    policies = state.settings.policies
    runner = AggregationJobRunner(AggregationProcessor(store, policies.aggregation))
    service = SubmissionService(store, runner, policies=policies)

    async def _flow():
        submission_id = await service.submit(kind, payload, submitted_by)
        job = service.last_job
        if job is not None:
            await runner.wait(job)
        return submission_id, job

    try:
        submission_id, job = run_async(_flow(), run_id=state.run_id)
    except SubmissionError as exc:
        raise CLIError(str(exc)) from exc

    console.print(f"[green]Submitted {kind.value}[/green] {payload.get('display_name')!r} -> {submission_id}")
    if job is None:
        return
    if job.status is JobStatus.FAILED:
        console.print(f"[bold red]Aggregation job {job.id} failed:[/bold red] {job.error}")
        return
    if job.result is not None:
        render_panel(f"Aggregation ({kind.value})", job.result.summary())


def _university_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="University display name."),
    submitted_by: str = typer.Option(..., "--by", help="Submitting user id."),
    logo: Optional[str] = typer.Option(None, "--logo", help="Logo URL."),
    image: Optional[str] = typer.Option(None, "--image", help="Cover image URL."),
    primary: Optional[str] = typer.Option(None, "--primary-color", help="Primary brand colour."),
    secondary: Optional[str] = typer.Option(None, "--secondary-color", help="Secondary brand colour."),
) -> None:
    state = get_state(ctx)
    payload = {
        "display_name": name,
        "logo": logo,
        "image": image,
        "colors": _colors(primary, secondary),
    }
    _submit(state, EntityKind.UNIVERSITY, payload, submitted_by)


def _course_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Course display name."),
    university: str = typer.Option(..., "--university", "-u", help="Owning university id."),
    code: str = typer.Option(..., "--code", help="Course code, e.g. 'CS 101'."),
    submitted_by: str = typer.Option(..., "--by", help="Submitting user id."),
    description: Optional[str] = typer.Option(None, "--description", help="Short description."),
    professor: List[str] = typer.Option(  # noqa: B008 - Typer signature
        [],
        "--professor",
        "-p",
        help="Professor teaching the course (repeatable).",
    ),
) -> None:
    state = get_state(ctx)
    payload = {
        "display_name": name,
        "owner_scope_id": university,
        "code": code,
        "description": description,
        "professors": professor,
    }
    _submit(state, EntityKind.COURSE, payload, submitted_by)


def _organization_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Organization display name."),
    university: str = typer.Option(..., "--university", "-u", help="Owning university id."),
    submitted_by: str = typer.Option(..., "--by", help="Submitting user id."),
    logo: Optional[str] = typer.Option(None, "--logo", help="Logo URL."),
    description: Optional[str] = typer.Option(None, "--description", help="Short description."),
    primary: Optional[str] = typer.Option(None, "--primary-color", help="Primary brand colour."),
    secondary: Optional[str] = typer.Option(None, "--secondary-color", help="Secondary brand colour."),
) -> None:
    state = get_state(ctx)
    payload = {
        "display_name": name,
        "owner_scope_id": university,
        "logo": logo,
        "description": description,
        "colors": _colors(primary, secondary),
    }
    _submit(state, EntityKind.ORGANIZATION, payload, submitted_by)


def _professor_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Professor display name."),
    university: str = typer.Option(..., "--university", "-u", help="Owning university id."),
    submitted_by: str = typer.Option(..., "--by", help="Submitting user id."),
    email: Optional[str] = typer.Option(None, "--email", help="Contact email."),
    image: Optional[str] = typer.Option(None, "--image", help="Portrait URL."),
    course_id: List[str] = typer.Option(  # noqa: B008 - Typer signature
        [],
        "--course-id",
        help="Canonical course id taught by the professor (repeatable).",
    ),
) -> None:
    state = get_state(ctx)
    payload = {
        "display_name": name,
        "owner_scope_id": university,
        "email": email,
        "image": image,
        "course_ids": course_id,
    }
    _submit(state, EntityKind.PROFESSOR, payload, submitted_by)


app.command("university")(_university_command)
app.command("course")(_course_command)
app.command("organization")(_organization_command)
app.command("professor")(_professor_command)
