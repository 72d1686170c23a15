"""Offline helpers that do not touch the store."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rankings.orchestration import export_snapshot

from .common import CLIError, console, get_state

app = typer.Typer(
    add_completion=False,
    help="Auxiliary tooling for inspecting ranking pages.",
    no_args_is_help=True,
)

_KINDS = {
    "high-schools": "high_schools",
    "circuit-teams": "circuit_teams",
    "players": "players",
}


def _snapshot_command(
    ctx: typer.Context,
    *,
    kind: str = typer.Option(..., "--kind", "-k", help="high-schools, circuit-teams or players."),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        help="Destination directory; defaults to the configured data directory.",
        show_default=False,
    ),
) -> None:
    state = get_state(ctx)
    stage = _KINDS.get(kind.strip().lower())
    if stage is None:
        raise CLIError(f"--kind must be one of: {', '.join(sorted(_KINDS))}")
    with console.status(f"Snapshotting {kind}..."):
        written = export_snapshot(state.settings, stage, output_dir=output_dir)
    for path in written:
        console.print(f"[green]Wrote[/green] {path}")


app.command("snapshot", help="Fetch and parse ranking pages into JSON files.")(_snapshot_command)
