"""Seed command for scriptsearch CLI."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)
from rich.table import Table

from scriptsearch.cli.utils.components import open_repository
from scriptsearch.cli.utils.error_handler import handle_cli_error
from scriptsearch.config import ScriptSearchSettings, get_logger, get_settings
from scriptsearch.embeddings.generator import EmbeddingConfig, EmbeddingGenerator
from scriptsearch.seeding.models import SeedingOutcome
from scriptsearch.seeding.seeder import DatabaseSeeder

logger = get_logger(__name__)
console = Console()

MAX_FAILURES_SHOWN = 5


async def _run_seed(
    settings: ScriptSearchSettings,
    config: EmbeddingConfig,
    directory: Path,
    force: bool,
    batch_size: int,
) -> SeedingOutcome:
    with open_repository(settings) as repository:
        async with EmbeddingGenerator(config) as generator:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Seeding scripts...", total=None)

                def update_progress(current: int, total: int) -> None:
                    progress.update(task, completed=current, total=total)

                seeder = DatabaseSeeder(
                    repository=repository,
                    embedder=generator,
                    on_progress=update_progress,
                    batch_size=batch_size,
                    extensions=settings.script_extensions,
                )
                if force:
                    console.print("[yellow]Dropping existing scripts table[/yellow]")
                    seeder.reset_schema()
                return await seeder.seed_scripts(directory)


def seed_command(
    directory: Annotated[
        Path | None,
        typer.Option(
            "--directory",
            "-d",
            help="Directory to scan for scripts (default: scripts_directory)",
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Drop and recreate the scripts table before seeding",
        ),
    ] = False,
    batch_size: Annotated[
        int | None,
        typer.Option(
            "--batch-size",
            "-b",
            min=1,
            help="Number of scripts embedded per provider request",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show error details"),
    ] = False,
) -> None:
    """Index scripts into the search database.

    Each script's header comment is embedded and stored keyed by its path, so
    running the command again refreshes rows instead of duplicating them.
    Files that fail are listed in the summary; they do not change the exit
    code.

    Examples:
        scriptsearch seed
        scriptsearch seed --directory ./scripts/audio --force
    """
    try:
        settings = get_settings()
        # Fail on missing credentials before touching the store
        config = EmbeddingConfig.from_settings(settings)
        root = directory or settings.scripts_directory

        outcome = asyncio.run(
            _run_seed(
                settings,
                config,
                root,
                force,
                batch_size or settings.seed_batch_size,
            )
        )
        display_outcome(outcome)

    except typer.Exit:
        raise
    except Exception as e:
        handle_cli_error(e, verbose=verbose)


def display_outcome(outcome: SeedingOutcome) -> None:
    """Print the run summary and the first few failures."""
    if outcome.failed:
        console.print("\n[yellow]Seeding finished with failures[/yellow]")
    else:
        console.print("\n[green]Seeding complete![/green]")

    table = Table(title="Seeding Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="bold")

    table.add_row("Processed", str(outcome.processed))
    table.add_row("Inserted", str(outcome.inserted))
    table.add_row("Updated", str(outcome.updated))
    table.add_row("Failed", str(outcome.failed))
    table.add_row("Categories", str(len(outcome.categories)))
    table.add_row("Total tokens", str(outcome.total_tokens))
    table.add_row("Time", f"{outcome.duration_seconds:.2f}s")
    console.print(table)

    if outcome.categories:
        breakdown = ", ".join(
            f"{name}: {count}" for name, count in sorted(outcome.categories.items())
        )
        console.print(f"[dim]By category:[/dim] {escape(breakdown)}")

    if outcome.failures:
        console.print(f"\n[red]Errors encountered: {len(outcome.failures)}[/red]")
        for i, failure in enumerate(outcome.failures[:MAX_FAILURES_SHOWN], 1):
            console.print(f"  {i}. {escape(failure.path)}: {escape(failure.error)}")
        if len(outcome.failures) > MAX_FAILURES_SHOWN:
            console.print(
                f"  ... and {len(outcome.failures) - MAX_FAILURES_SHOWN} more"
            )
