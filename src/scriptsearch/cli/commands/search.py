"""Search command for scriptsearch CLI."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from scriptsearch.cli.utils.components import open_repository
from scriptsearch.cli.utils.error_handler import handle_cli_error
from scriptsearch.config import ScriptSearchSettings, get_logger, get_settings
from scriptsearch.embeddings.generator import EmbeddingConfig, EmbeddingGenerator
from scriptsearch.search.formatter import ResultFormatter
from scriptsearch.search.models import SearchResult
from scriptsearch.search.vector import VectorSearch

logger = get_logger(__name__)
console = Console()


async def _run_search(
    settings: ScriptSearchSettings,
    config: EmbeddingConfig,
    query: str,
    top_n: int,
    category: str | None,
    min_similarity: float | None,
) -> list[SearchResult]:
    with open_repository(settings) as repository:
        async with EmbeddingGenerator(config) as generator:
            search = VectorSearch(embedder=generator, repository=repository)
            return await search.search(
                query,
                top_n=top_n,
                category=category,
                min_similarity=min_similarity,
            )


def search_command(
    query: Annotated[
        str,
        typer.Argument(help="Describe what the script should do"),
    ],
    category: Annotated[
        str | None,
        typer.Option(
            "--category",
            "-c",
            help="Only search scripts in this category (audio, system, dev, other)",
        ),
    ] = None,
    limit: Annotated[
        int | None,
        typer.Option(
            "--limit",
            "-l",
            help="Maximum number of results (default: search_default_limit)",
        ),
    ] = None,
    min_similarity: Annotated[
        float | None,
        typer.Option(
            "--min-similarity",
            "-m",
            min=-1.0,
            max=1.0,
            help="Hide results scoring below this similarity",
        ),
    ] = None,
    brief: Annotated[
        bool,
        typer.Option("--brief", "-b", help="Show one line per result"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show error details"),
    ] = False,
) -> None:
    """Find scripts by describing what they do.

    Examples:
        scriptsearch search "fix crackling microphone"

        scriptsearch search "restart the gpu driver" --category system --limit 3

        scriptsearch search "screen recording" --min-similarity 0.5
    """
    try:
        settings = get_settings()
        config = EmbeddingConfig.from_settings(settings)
        top_n = limit if limit is not None else settings.search_default_limit

        results = asyncio.run(
            _run_search(settings, config, query, top_n, category, min_similarity)
        )

        formatter = ResultFormatter(console)
        if brief:
            console.print(formatter.format_brief(results), markup=False)
        else:
            formatter.format_results(results, query)

    except typer.Exit:
        raise
    except Exception as e:
        handle_cli_error(e, verbose=verbose)
