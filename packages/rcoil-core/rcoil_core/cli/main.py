"""
rcoil CLI Main Entry Point

Usage:
    rcoil run <plan.yaml> [--config rcoil.yaml] [--out trace.jsonl] [--debug] [--json]
    rcoil plan <plan.yaml>
    rcoil version
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import click

from .. import __version__
from ..errors import ConfigurationError
from ..orchestrator import Coil, ExecutionContext, ExecutionDirector, RequestGroup, load_coil
from ..services import (
    configure_logging,
    get_director_settings,
    get_logging_settings,
    get_transport_config,
)
from ..trace import record_run


# ============================================================================
# TREE PRINTING
# ============================================================================

def format_coil(coil: Coil, color: bool = True) -> List[str]:
    """Render the execution plan as text lines, one table per request group."""
    lines = [click.style("rcoil execution plan", bold=True) if color else "rcoil execution plan"]
    for group in coil.groups:
        _format_group(group, 1, lines, color)
    return lines


def _format_group(group: RequestGroup, level: int, lines: List[str], color: bool) -> None:
    spacer = "    " * level
    title = f"{spacer}↪ Request Group: {group.id}"
    lines.append(click.style(title, fg="blue", bold=True) if color else title)

    rows = [(r.name, r.kind.value, r.get_url()) for r in group.requests]
    if rows:
        widths = [max(len(row[i]) for row in rows) for i in range(3)]
        border = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
        lines.append(spacer + border)
        for row in rows:
            cells = " | ".join(cell.ljust(w) for cell, w in zip(row, widths))
            lines.append(f"{spacer}| {cells} |")
        lines.append(spacer + border)

    for child in group.children:
        _format_group(child, level + 1, lines, color)


def format_results(coil: Coil, context: ExecutionContext) -> List[str]:
    """One status line per request, in tree order."""
    lines = []
    for group in coil.iter_groups():
        for request in group.requests:
            response = context.response_data(group.id, request.name)
            if response is None:
                status = "not run"
            elif response.is_canceled:
                status = "canceled"
            elif response.error:
                status = f"error: {response.error}"
            elif response.status_code is not None:
                status = f"{response.status_code} {response.status_message or ''}".strip()
            else:
                status = "ok"
            lines.append(f"{group.id}/{request.name}: {status}")
    return lines


# ============================================================================
# COMMANDS
# ============================================================================

@click.group()
@click.version_option(version=__version__, prog_name="rcoil")
def cli():
    """rcoil - run trees of HTTP and function calls."""
    pass


@cli.command("plan")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--no-color", is_flag=True, help="Disable colored output")
def plan_cmd(plan_file: str, no_color: bool):
    """
    Print the execution tree of a plan.

    PLAN_FILE: Path to the YAML plan
    """
    try:
        coil = load_coil(Path(plan_file))
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    for line in format_coil(coil, color=not no_color):
        click.echo(line)
    click.echo(f"\n{coil.request_groups_count()} request groups")


@cli.command("run")
@click.argument("plan_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "-c", "config_file", default=None, type=click.Path(exists=True, dir_okay=False),
              help="Path to rcoil.yaml (default: RCOIL_CONFIG_PATH or ./rcoil.yaml)")
@click.option("--out", "-o", default=None, help="Write a JSONL trace of the run")
@click.option("--debug", "-d", is_flag=True, help="Log debug output and request timings")
@click.option("--json", "as_json", is_flag=True, help="Print every request/response record as JSON")
def run_cmd(plan_file: str, config_file: Optional[str], out: Optional[str], debug: bool, as_json: bool):
    """
    Run a plan and report each request's outcome.

    PLAN_FILE: Path to the YAML plan

    Examples:
        rcoil run plans/users.yaml
        rcoil run plans/users.yaml --out traces/users.jsonl --debug
    """
    log_settings = get_logging_settings(config_file)
    director_settings = get_director_settings(config_file)
    debug = debug or bool(director_settings.get("debug", False))

    configure_logging(
        level=logging.DEBUG if debug else log_settings.get("level", "INFO"),
        color=bool(log_settings.get("color", True)),
    )

    try:
        coil = load_coil(Path(plan_file))
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    director = ExecutionDirector(
        coil,
        debug=debug,
        transport_config=get_transport_config(config_file),
    )

    if out:
        result = asyncio.run(record_run(director, out, plan=plan_file))
        context = result["context"]
        click.echo(f"Trace saved to: {result['trace_path']}", err=True)
        click.echo(f"Run ID: {result['run_id']}", err=True)
        click.echo(f"Status: {result['status']}", err=True)
        if result["error"]:
            click.echo(f"Error: {result['error']}", err=True)
            sys.exit(1)
    else:
        context = asyncio.run(director.run())

    if as_json:
        click.echo(json.dumps(context.to_dict(), indent=2, default=str))
    else:
        for line in format_results(coil, context):
            click.echo(line)


@cli.command("version")
def version_cmd():
    """Show the rcoil version."""
    click.echo(f"rcoil {__version__}")


def main():
    cli()


if __name__ == "__main__":
    main()
