"""Primary Typer application wiring the rankings CLI."""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional

import typer
from rich.table import Table

from rankings.config.settings import ConfigurationError
from rankings.orchestration.truncate import TruncationRefused

from . import ingest, management, utilities
from .common import CLIError, configure_state, console, parse_override


class RankingsTyper(typer.Typer):
    """Typer subclass that supports registering exception handlers."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._exception_handlers: list[tuple[type[BaseException], Callable[[BaseException], Any]]] = []

    def exception_handler(
        self, exception_type: type[BaseException]
    ) -> Callable[[Callable[[BaseException], Any]], Callable[[BaseException], Any]]:
        def decorator(handler: Callable[[BaseException], Any]) -> Callable[[BaseException], Any]:
            self._exception_handlers.append((exception_type, handler))
            return handler

        return decorator

    def _resolve_handler(self, exception: BaseException) -> Callable[[BaseException], Any] | None:
        for registered_type, handler in self._exception_handlers:
            if isinstance(exception, registered_type):
                return handler
        return None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        try:
            return super().__call__(*args, **kwargs)
        except BaseException as exc:
            handler = self._resolve_handler(exc)
            if handler is None:
                raise
            result = handler(exc)
            if isinstance(result, BaseException):
                raise result
            return result


app = RankingsTyper(
    add_completion=False,
    help="""
    Scrape ranking pages, reconcile them into the rankings store, and manage
    stored data from a unified command-line interface.
    """.strip(),
    no_args_is_help=True,
)


@app.exception_handler(CLIError)
def handle_cli_error(exception: CLIError) -> typer.Exit:
    """Render ``CLIError`` messages without stack traces."""

    console.print(f"[bold red]Error:[/bold red] {exception}")
    return typer.Exit(code=2)


@app.exception_handler(ConfigurationError)
def handle_configuration_error(exception: ConfigurationError) -> typer.Exit:
    console.print(f"[bold red]Configuration error:[/bold red] {exception}")
    return typer.Exit(code=2)


@app.exception_handler(TruncationRefused)
def handle_truncation_refused(exception: TruncationRefused) -> typer.Exit:
    console.print(f"[bold yellow]{exception}[/bold yellow]")
    return typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    environment: Optional[str] = typer.Option(
        None,
        "--environment",
        "-e",
        help="Active configuration environment (development, testing, production).",
        show_default=False,
    ),
    override: List[str] = typer.Option(  # noqa: B008 - Typer callback signature
        [],
        "--override",
        "-o",
        metavar="KEY=VALUE",
        help="Configuration override in dotted.key=value notation (repeatable).",
    ),
    run_id: Optional[str] = typer.Option(
        None,
        "--run-id",
        help="Explicit run identifier; defaults to a generated value.",
        show_default=False,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Emit debug logging and print the CLI context.",
    ),
) -> None:
    """Configure shared CLI state prior to executing subcommands."""

    overrides = [parse_override(item) for item in override]
    configure_state(ctx, environment=environment, overrides=overrides, run_id=run_id, verbose=verbose)

    if verbose:
        state = ctx.obj
        table = Table(title="CLI Context", show_header=False, box=None)
        table.add_row("Environment", state.environment)
        table.add_row("Run ID", state.run_id)
        table.add_row("Bucket", state.settings.bucket)
        console.print(table)


app.add_typer(ingest.app, name="ingest", help="Ingestion commands")
app.add_typer(management.app, name="manage", help="Store management commands")
app.add_typer(utilities.app, name="utilities", help="Auxiliary tooling")


def run(argv: Iterable[str] | None = None) -> int:
    """Execute the CLI and return its exit code instead of exiting."""

    args = list(argv) if argv is not None else None
    try:
        return app(prog_name="rankings", args=args, standalone_mode=False) or 0
    except typer.Exit as exc:
        return exc.exit_code


def entrypoint() -> None:
    raise SystemExit(run())
