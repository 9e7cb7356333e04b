"""Error reporting for CLI commands."""

from __future__ import annotations

import traceback
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from scriptsearch.config import get_logger
from scriptsearch.exceptions import ProviderError, ScriptSearchError

logger = get_logger(__name__)
console = Console()


def _summarize(error: BaseException) -> tuple[str, str | None, dict[str, Any]]:
    """Reduce an exception to the message, hint and details shown to the user."""
    if isinstance(error, ProviderError):
        message = error.message
        if error.attempts and error.attempts > 1:
            message = f"{message} (after {error.attempts} attempts)"
        return message, error.hint, dict(error.details or {})
    if isinstance(error, ScriptSearchError):
        return error.message, error.hint, dict(error.details or {})
    if isinstance(error, FileNotFoundError):
        return (
            f"File not found: {error}",
            "Check that the file path is correct",
            {"filename": getattr(error, "filename", None)},
        )
    return f"Unexpected error: {error}", None, {}


def handle_cli_error(
    error: BaseException, verbose: bool = False, exit_code: int = 1
) -> None:
    """Print a failed command's error and exit.

    Known errors print their message and hint; ``verbose`` adds their details,
    or the traceback for anything unexpected.

    Args:
        error: The exception that ended the command
        verbose: Whether to show details or a traceback
        exit_code: Exit code to use when exiting

    Raises:
        typer.Exit: Always, with ``exit_code``
    """
    if isinstance(error, KeyboardInterrupt):
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        logger.info("Command interrupted", exit_code=exit_code)
        raise typer.Exit(exit_code)

    known = isinstance(error, (ScriptSearchError, FileNotFoundError))  # noqa: UP038
    message, hint, details = _summarize(error)

    console.print(f"[red]✗ {escape(message)}[/red]")
    if hint:
        console.print(f"[yellow]→ {escape(hint)}[/yellow]")

    if verbose and known and details:
        console.print("\n[dim]Details:[/dim]")
        for key, value in details.items():
            console.print(f"  [dim]{escape(str(key))}:[/dim] {escape(str(value))}")
    elif verbose and not known:
        console.print("\n[dim]Full traceback:[/dim]")
        console.print(escape(traceback.format_exc()))
    elif not known:
        console.print("[dim]Run with --verbose for full error details[/dim]")

    logger.error(
        "Command failed",
        error_type=type(error).__name__,
        message=message,
        details=details or None,
        exit_code=exit_code,
        exc_info=not known,
    )
    raise typer.Exit(exit_code)
