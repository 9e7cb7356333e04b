"""Main CLI entry point."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console

from scriptsearch import __version__
from scriptsearch.cli.commands import (
    categories_command,
    search_command,
    seed_command,
    stats_command,
)
from scriptsearch.cli.utils.error_handler import handle_cli_error
from scriptsearch.config import (
    configure_logging,
    get_logger,
    get_settings_for_cli,
    set_settings,
)

logger = get_logger(__name__)
console = Console()

app = typer.Typer(
    name="scriptsearch",
    help="Find system scripts by describing what they do",
    pretty_exceptions_enable=False,
    add_completion=False,
    rich_markup_mode="rich",
)

app.command(name="seed")(seed_command)
app.command(name="search")(search_command)
app.command(name="stats")(stats_command)
app.command(name="categories")(categories_command)


@app.command()
def version() -> None:
    """Show scriptsearch version."""
    console.print(f"scriptsearch v{__version__}")


@app.callback()
def main_callback(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (YAML, TOML, or JSON)",
            envvar="SCRIPTSEARCH_CONFIG",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose logging (INFO level)"),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option(
            "--debug", help="Enable debug logging", envvar="SCRIPTSEARCH_DEBUG"
        ),
    ] = False,
) -> None:
    """Configure global options."""
    overrides: dict[str, Any] = {}
    if debug:
        overrides = {"log_level": "DEBUG", "debug": True}
    elif verbose:
        overrides = {"log_level": "INFO"}

    if config is None and not overrides:
        return

    try:
        settings = get_settings_for_cli(config_file=config, cli_overrides=overrides)
    except Exception as e:
        handle_cli_error(e, verbose=debug or verbose)
        return

    set_settings(settings)
    configure_logging(settings)
    if config is not None:
        logger.debug("Loaded configuration file", path=str(config))
    logger.debug("Logging reconfigured", log_level=settings.log_level)


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
