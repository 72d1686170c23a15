"""Ingestion commands for the rankings CLI."""

from __future__ import annotations

import typer

from rankings.config.settings import ConfigurationError
from rankings.orchestration import IngestionOrchestrator

from .common import CLIError, console, get_state, render_summary

app = typer.Typer(
    add_completion=False,
    help="Scrape ranking pages and reconcile them into the store.",
    no_args_is_help=True,
)


def _build_orchestrator(ctx: typer.Context) -> IngestionOrchestrator:
    state = get_state(ctx)
    try:
        return IngestionOrchestrator.from_settings(state.settings, run_id=state.run_id)
    except ConfigurationError as exc:
        raise CLIError(str(exc)) from exc


def _all_command(
    ctx: typer.Context,
    *,
    skip_hs: bool = typer.Option(False, "--skip-hs", help="Skip the high school stage."),
    skip_circuit: bool = typer.Option(False, "--skip-circuit", help="Skip the circuit team stage."),
    skip_players: bool = typer.Option(False, "--skip-players", help="Skip the player stage."),
) -> None:
    orchestrator = _build_orchestrator(ctx)
    with console.status(f"Running ingestion {orchestrator.run_id}..."):
        result = orchestrator.run(
            skip_high_schools=skip_hs,
            skip_circuit_teams=skip_circuit,
            skip_players=skip_players,
        )
    for summary in result.summaries.values():
        render_summary(summary)
    if result.skipped:
        console.print(f"[yellow]Skipped stages:[/yellow] {', '.join(result.skipped)}")
    console.print(f"[green]Ingestion complete[/green] ({result.run_id})")


def _stage_command(stage: str):
    def command(ctx: typer.Context) -> None:
        orchestrator = _build_orchestrator(ctx)
        with console.status(f"Ingesting {stage.replace('_', ' ')}..."):
            summary = orchestrator.run_stage(stage)
        render_summary(summary)

    command.__doc__ = f"Ingest only the {stage.replace('_', ' ')} pages."
    return command


app.command("all", help="Run high schools, circuit teams and players in order.")(_all_command)
app.command("high-schools")(_stage_command("high_schools"))
app.command("circuit-teams")(_stage_command("circuit_teams"))
app.command("players")(_stage_command("players"))
