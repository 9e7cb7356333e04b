"""CLI commands for scriptsearch."""

from scriptsearch.cli.commands.search import search_command
from scriptsearch.cli.commands.seed import seed_command
from scriptsearch.cli.commands.stats import categories_command, stats_command

__all__ = [
    "categories_command",
    "search_command",
    "seed_command",
    "stats_command",
]
