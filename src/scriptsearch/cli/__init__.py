"""Command-line interface for scriptsearch."""

from scriptsearch.cli.main import app, main

__all__ = ["app", "main"]
