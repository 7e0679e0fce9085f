"""
Output rendering and error handling shared by the CLI commands.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from rich.table import Table

from mcp_deploy.core.errors import CommandError, McpDeployError
from mcp_deploy.core.logging import get_logger
from mcp_deploy.core.settings import DeploySettings
from mcp_deploy.deploy.results import CommandResult, ServerInfo
from mcp_deploy.deploy.workflow import ServerDeployment

logger = get_logger(__name__)

# Long paths and command lines stay on one line.
console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)


# ── Deployment helper ────────────────────────────────────────────────────


def get_settings(ctx: typer.Context) -> DeploySettings:
    """Settings resolved by the root callback (``ctx.obj``)."""
    return ctx.obj


def make_deployment(ctx: typer.Context) -> ServerDeployment:
    """Create a ``ServerDeployment`` that reports progress on stdout."""
    return ServerDeployment(get_settings(ctx), on_progress=print_progress)


# ── Output helpers ───────────────────────────────────────────────────────


def print_progress(message: str) -> None:
    console.print(message, markup=False, highlight=False)


def print_warning(message: str) -> None:
    err_console.print("[yellow]Warning:[/yellow] ", end="")
    err_console.print(message, markup=False, highlight=False)


def render_result(result: CommandResult) -> None:
    """Print warnings to stderr, then the message and notes to stdout."""
    for warning in result.warnings:
        print_warning(warning)
    if result.message:
        prefix = "[green]✓[/green] " if result.changed else ""
        console.print(prefix, end="")
        console.print(result.message, markup=False, highlight=False)
    for note in result.notes:
        console.print(note, markup=False, highlight=False, style="dim")


def render_error(headline: str, exc: McpDeployError) -> None:
    """Print a domain error, including captured tool output, to stderr."""
    err_console.print("[bold red]✗[/bold red] ", end="")
    err_console.print(headline, markup=False, highlight=False, style="bold red")
    err_console.print(exc.message, markup=False, highlight=False)
    if isinstance(exc, CommandError) and exc.output:
        err_console.print(exc.output, markup=False, highlight=False)
    logger.debug("cli.error", **exc.to_dict())


@contextmanager
def command_errors(headline: str) -> Iterator[None]:
    """Turn an ``McpDeployError`` into an error report and exit code 1."""
    try:
        yield
    except McpDeployError as exc:
        render_error(headline, exc)
        raise typer.Exit(code=1) from exc


def print_servers(rows: list[ServerInfo]) -> None:
    """Render ``mcp list`` rows as a Rich table."""
    if not rows:
        console.print("[dim]No servers are currently managed.[/dim]")
        return

    table = Table(title="MCP Servers")
    table.add_column("Server", style="bold cyan")
    table.add_column("Managed")
    table.add_column("Compose")
    table.add_column("Source")
    table.add_column("Build context")

    for row in rows:
        table.add_row(
            row.name,
            "yes" if row.managed else "[yellow]no (orphaned)[/yellow]",
            "[green]yes[/green]" if row.in_manifest else "[red]missing[/red]",
            "[green]yes[/green]" if row.source_present else "[dim]not fetched[/dim]",
            row.build_context or "-",
        )

    console.print(table)
