"""Command-line interface for listedit."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import DEFAULT_CONFIG_FILENAME, Config, ConfigError, load_config, write_default_config
from .executor import Executor, shared_staging_area
from .ids import IdentityExhaustedError
from .models import LineResult, LineStatus
from .session import EditSession, SessionError

app = typer.Typer(help="Edit directory listings as text and apply the changes")
console = Console()

LISTING_EXTENSION = ".listing"
SCRIPT_EXTENSION = ".script"


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(config: Path | None, log_level: str | None) -> Config:
    config_obj = load_config(config)
    _configure_logging(log_level.upper() if log_level else config_obj.settings.log_level)
    return config_obj


def _handle_error(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        console.print("[red]Permission denied.[/red] Re-run the command with sufficient privileges.")
        raise typer.Exit(code=1)
    if isinstance(exc, ConfigError):
        message = str(exc)
        console.print(f"[red]{message}[/red]")
        if "does not exist" in message:
            console.print("[yellow]Use 'listedit init --config <path>' to create a configuration file.[/yellow]")
        raise typer.Exit(code=1)
    if isinstance(exc, (SessionError, IdentityExhaustedError)):
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)
    raise exc


def _format_script(lines: Iterable[str]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Command", overflow="fold")

    for number, line in enumerate(lines, start=1):
        table.add_row(str(number), line)

    console.print(table)


def _format_results(results: Iterable[LineResult]) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Command", overflow="fold")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")

    status_styles = {
        LineStatus.DONE: "green",
        LineStatus.ERROR: "red",
        LineStatus.SKIPPED: "yellow",
        LineStatus.NOT_ATTEMPTED: "dim",
    }

    for result in results:
        style = status_styles.get(result.status, "white")
        table.add_row(
            str(result.index + 1),
            result.line,
            f"[{style}]{result.status.value}[/{style}]",
            result.details or "",
        )

    console.print(table)


def _edit_text(lines: list[str], extension: str) -> list[str] | None:
    edited = typer.edit("\n".join(lines) + "\n", extension=extension)
    if edited is None:
        return None
    return edited.splitlines()


def _report(results: list[LineResult]) -> None:
    _format_results(results)
    if any(result.status is LineStatus.ERROR for result in results):
        console.print("[red]Execution stopped at the first failing line. Earlier lines were not undone.[/red]")
        raise typer.Exit(code=1)


@app.command()
def edit(
    directories: list[Path] = typer.Argument(
        ...,
        help="Directories whose listings to edit, one edit per directory",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to listedit.toml"),
    review: bool = typer.Option(
        False,
        "--review/--no-review",
        help="Open the generated script in the editor before running it",
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the script without running it"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Run the script without asking"),
    open_created: bool = typer.Option(
        False,
        "--open-created",
        help="Open newly created files in the editor afterwards",
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override the configured log level"),
) -> None:
    """Edit directory listings in $EDITOR and apply the resulting operations."""

    try:
        config_obj = _load(config, log_level)
        session = EditSession(config_obj.settings)

        for directory in directories:
            edited = _edit_text(session.open_directory(directory), LISTING_EXTENSION)
            if edited is None:
                console.print(f"[yellow]No changes to '{directory}'.[/yellow]")
                continue
            session.update_lines(directory, edited)

        script = session.script()
        if not script:
            console.print("[green]Nothing to do.[/green]")
            return

        if review:
            reviewed = _edit_text(script, SCRIPT_EXTENSION)
            if reviewed is not None:
                script = reviewed

        _format_script(script)
        if dry_run:
            return
        if not yes and not typer.confirm("Run these operations?"):
            console.print("[yellow]Aborted; nothing was changed.[/yellow]")
            raise typer.Exit(code=1)

        results = session.commit(script)
        if open_created:
            for path in EditSession.created_files(results):
                typer.edit(filename=str(path))
        _report(results)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def run(
    script: Path = typer.Argument(..., help="Script file to execute", exists=True, dir_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to listedit.toml"),
    log_level: str | None = typer.Option(None, "--log-level", help="Override the configured log level"),
) -> None:
    """Execute a saved script, one command per line."""

    try:
        settings = _load(config, log_level).settings
        executor = Executor(shared_staging_area(settings.staging_root, prefix=settings.staging_prefix))
        _report(list(executor.execute(script.read_text().splitlines())))
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def show(
    directory: Path = typer.Argument(..., help="Directory to list", exists=True, file_okay=False),
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to listedit.toml"),
) -> None:
    """Print the listing of a directory with fresh identities."""

    try:
        session = EditSession(_load(config, None).settings)
        for line in session.open_directory(directory):
            console.print(line, markup=False, highlight=False, soft_wrap=True)
    except Exception as exc:  # noqa: BLE001
        _handle_error(exc)


@app.command()
def init(
    config: Path = typer.Option(
        Path(DEFAULT_CONFIG_FILENAME),
        "--config",
        "-c",
        help="Path to write the configuration file",
        dir_okay=False,
        writable=True,
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing config if present"),
) -> None:
    """Create a starter listedit configuration file."""

    if config.exists() and not force:
        console.print(f"[red]Configuration '{config}' already exists. Use --force to overwrite.[/red]")
        raise typer.Exit(code=1)

    write_default_config(config)
    console.print(f"[green]Created '{config}'.[/green]")


def run_app() -> None:
    """Entry point used for console_script bindings."""

    app()
