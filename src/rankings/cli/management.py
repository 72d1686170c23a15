"""Store management commands for the rankings CLI."""

from __future__ import annotations

import typer
from rich.table import Table

from rankings.config.settings import ConfigurationError
from rankings.orchestration import truncate_from_settings

from .common import CLIError, console, get_state, render_panel

app = typer.Typer(
    add_completion=False,
    help="Inspect configuration and manage stored rankings data.",
    no_args_is_help=True,
)


def _truncate_command(
    ctx: typer.Context,
    *,
    force: bool = typer.Option(
        False,
        "--force",
        help="Confirm deletion of every table row and stored asset (or set TRUNCATE_FORCE=1).",
    ),
) -> None:
    state = get_state(ctx)
    try:
        report = truncate_from_settings(state.settings, force=force)
    except ConfigurationError as exc:
        raise CLIError(str(exc)) from exc

    table = Table(title="Truncation", box=None)
    table.add_column("Target")
    table.add_column("Result", justify="right")
    for name in report.tables_cleared:
        table.add_row(f"table {name}", "cleared")
    for prefix, removed in report.objects_removed.items():
        status = "failed" if prefix in report.failed_prefixes else "ok"
        table.add_row(f"prefix {prefix}/", f"{removed} removed ({status})")
    console.print(table)


def _config_command(ctx: typer.Context) -> None:
    state = get_state(ctx)
    render_panel("Resolved Settings", state.settings.model_dump(mode="json"))


app.command("truncate")(_truncate_command)
app.command("config", help="Print resolved settings with secrets masked.")(_config_command)
