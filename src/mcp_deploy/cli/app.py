"""
Root Typer application for the ``mcp`` CLI.

Usage::

    mcp add github          # fetch src/github/ and add its compose service
    mcp remove github       # stop tracking it
    mcp update              # fetch the latest source for every server
    mcp start [github]      # docker-compose up -d
    mcp stop [github]       # docker-compose stop
    mcp list [--json]       # show managed servers

Progress goes to stdout; warnings and errors go to stderr. Exit code 0
means success or nothing to do, 1 means the command failed.
"""

from __future__ import annotations

import json

import typer
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import SettingsError

from mcp_deploy.cli.utils import (
    command_errors,
    console,
    err_console,
    make_deployment,
    print_servers,
    render_error,
    render_result,
)
from mcp_deploy.core.errors import ConfigError
from mcp_deploy.core.logging import LOG_FORMATS, configure_logging
from mcp_deploy.core.settings import DeploySettings

app = typer.Typer(
    name="mcp",
    help="CLI tool to manage MCP server deployments.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from mcp_deploy import __version__

        typer.echo(f"mcp-deploy {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    log_format: str | None = typer.Option(
        None, "--log-format", help="Log format: console or json."
    ),
) -> None:
    """Manage MCP servers fetched from the upstream servers repository."""
    if log_format is not None and log_format not in LOG_FORMATS:
        err_console.print(f"[red]Invalid --log-format {log_format!r}; use console or json.[/red]")
        raise typer.Exit(code=1)

    try:
        settings = DeploySettings()
    except (PydanticValidationError, SettingsError) as exc:
        configure_logging(fmt=log_format or "console")
        render_error("Invalid MCP_* configuration:", ConfigError(str(exc), cause=exc))
        raise typer.Exit(code=1) from exc

    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        fmt=log_format or settings.log_format,
    )
    ctx.obj = settings


# ── add / remove ─────────────────────────────────────────────────────────


@app.command()
def add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Server directory name under src/ in the upstream repo."),
) -> None:
    """Download and configure an MCP server."""
    console.print(f"Attempting to add server: {name}...", markup=False, highlight=False)
    with command_errors(f"Error adding server '{name}':"):
        result = make_deployment(ctx).add(name)
    render_result(result)


@app.command()
def remove(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Managed server to remove."),
) -> None:
    """Remove an MCP server configuration."""
    console.print(f"Attempting to remove server: {name}...", markup=False, highlight=False)
    with command_errors(f"Error removing server '{name}':"):
        result = make_deployment(ctx).remove(name)
    render_result(result)


# ── update ───────────────────────────────────────────────────────────────


@app.command()
def update(ctx: typer.Context) -> None:
    """Update source code for all managed MCP servers."""
    console.print("Attempting to update all managed servers...")
    with command_errors("Error updating servers:"):
        result = make_deployment(ctx).update()
    render_result(result)


# ── start / stop ─────────────────────────────────────────────────────────


@app.command()
def start(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Server to start; all managed servers if omitted."),
) -> None:
    """Start one or all managed MCP servers with Docker Compose."""
    if name is None:
        console.print("Attempting to start all managed servers...")
        headline = "Error starting servers:"
    else:
        console.print(f"Attempting to start server: {name}...", markup=False, highlight=False)
        headline = f"Error starting server '{name}':"
    with command_errors(headline):
        result = make_deployment(ctx).start(name)
    render_result(result)


@app.command()
def stop(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Server to stop; all managed servers if omitted."),
) -> None:
    """Stop one or all managed MCP servers with Docker Compose."""
    if name is None:
        console.print("Attempting to stop all managed servers...")
        headline = "Error stopping servers:"
    else:
        console.print(f"Attempting to stop server: {name}...", markup=False, highlight=False)
        headline = f"Error stopping server '{name}':"
    with command_errors(headline):
        result = make_deployment(ctx).stop(name)
    render_result(result)


# ── list ─────────────────────────────────────────────────────────────────


@app.command("list")
def list_servers(
    ctx: typer.Context,
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List managed servers and their compose / source status."""
    with command_errors("Error listing servers:"):
        rows = make_deployment(ctx).list_servers()

    if json_out:
        typer.echo(json.dumps([row.model_dump() for row in rows], indent=2))
        return
    print_servers(rows)
