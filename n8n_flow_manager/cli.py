"""Command line interface for :mod:`n8n_flow_manager`.

``n8n-flow run "export all workflows"`` interprets one instruction,
``task-types`` lists what can be asked and ``validate`` checks the
environment before anything touches n8n.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, List, Optional

import typer

from .config import Settings
from .core.responses import Response
from .environment import validate_environment
from .errors import ConfigurationError
from .orchestrator.engine import FlowManagerEngine
from .utils.logging import configure_logging

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

app = typer.Typer(add_completion=False, help="Manage n8n workflows with plain instructions")


def build_engine(settings: Settings | None = None) -> FlowManagerEngine:
    return FlowManagerEngine(settings or Settings.load())


def _parse_context(pairs: List[str]) -> dict[str, Any]:
    context: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--context")
        lowered = value.lower()
        context[key] = True if lowered == "true" else False if lowered == "false" else value
    return context


async def _run(instruction: str, context: dict[str, Any]) -> Response:
    async with build_engine() as engine:
        return await engine.execute_instruction(instruction, context)


def _print_response(response: Response) -> None:
    typer.echo(response.message)
    for suggestion in response.suggestions:
        typer.echo(f"  - {suggestion}")
    if response.next_steps:
        typer.echo("Next steps:")
        for step in response.next_steps:
            typer.echo(f"  * {step}")


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override N8N_LOG_LEVEL for this invocation"
    ),
) -> None:
    try:
        settings = Settings.load()
    except ConfigurationError as exc:
        typer.echo(f"ERROR {exc.message}", err=True)
        raise typer.Exit(code=1)
    level = (log_level or settings.log_level).upper()
    if level not in LOG_LEVELS:
        raise typer.BadParameter(f"expected one of {', '.join(LOG_LEVELS)}", param_hint="--log-level")
    configure_logging(level)


@app.command()
def run(
    instruction: str = typer.Argument(..., help="What to do, in plain words"),
    confirm: bool = typer.Option(False, "--confirm", help="Confirm destructive actions"),
    context: Optional[List[str]] = typer.Option(
        None, "--context", "-c", help="Extra context as KEY=VALUE (repeatable)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the full response as JSON"),
) -> None:
    """Interpret and execute one instruction."""
    ctx = _parse_context(context or [])
    if confirm:
        ctx["confirmed"] = True
    response = asyncio.run(_run(instruction, ctx))
    if as_json:
        typer.echo(response.model_dump_json(indent=2))
    else:
        _print_response(response)
    if not response.success:
        raise typer.Exit(code=1)


@app.command("task-types")
def task_types() -> None:
    """List the task types instructions are classified into."""
    for row in build_engine().get_available_task_types():
        examples = ", ".join(f"'{p}'" for p in row["example_phrases"])
        typer.echo(f"{row['type']}: {row['description']} (e.g. {examples})")


@app.command()
def validate(as_json: bool = typer.Option(False, "--json")) -> None:
    """Check configuration and directories."""
    report = validate_environment(Settings.load())
    if as_json:
        typer.echo(
            json.dumps(
                {
                    "valid": report.valid,
                    "errors": [vars(e) for e in report.errors],
                    "warnings": [vars(w) for w in report.warnings],
                },
                indent=2,
            )
        )
    else:
        for issue in report.errors:
            typer.echo(f"ERROR {issue.message}. {issue.solution}")
        for issue in report.warnings:
            typer.echo(f"WARNING {issue.message}. {issue.solution}")
        typer.echo("Environment OK" if report.valid else "Environment has errors")
    if not report.valid:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
