"""Read-only store summaries: stats and categories commands."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scriptsearch.cli.utils.components import open_repository
from scriptsearch.cli.utils.error_handler import handle_cli_error
from scriptsearch.config import get_logger, get_settings

logger = get_logger(__name__)
console = Console()


def stats_command(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show error details"),
    ] = False,
) -> None:
    """Show statistics about the indexed scripts."""
    try:
        settings = get_settings()
        with open_repository(settings) as repository:
            stats = repository.stats()

        console.print(f"[dim]Database: {escape(str(settings.database_path))}[/dim]")

        table = Table(title="Script Database")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", justify="right", style="bold")
        table.add_row("Total scripts", str(stats.total_scripts))
        table.add_row("Categories", str(stats.total_categories))
        table.add_row("Average tokens", f"{stats.avg_tokens:.1f}")
        table.add_row("Total tokens", str(stats.total_tokens))
        console.print(table)

        if stats.categories:
            breakdown = Table(title="By Category")
            breakdown.add_column("Category", style="cyan")
            breakdown.add_column("Scripts", justify="right")
            for name, count in stats.categories.items():
                breakdown.add_row(escape(name), str(count))
            console.print(breakdown)

    except typer.Exit:
        raise
    except Exception as e:
        handle_cli_error(e, verbose=verbose)


def categories_command(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show error details"),
    ] = False,
) -> None:
    """List the categories present in the database."""
    try:
        settings = get_settings()
        with open_repository(settings) as repository:
            categories = repository.list_categories()
            counts = {name: repository.count(category=name) for name in categories}

        if not categories:
            console.print("[yellow]No scripts indexed yet.[/yellow]")
            console.print("[dim]Run 'scriptsearch seed' to index scripts[/dim]")
            return

        for name in categories:
            console.print(f"  [cyan]{escape(name)}[/cyan] ({counts[name]})")

    except typer.Exit:
        raise
    except Exception as e:
        handle_cli_error(e, verbose=verbose)
