"""Result formatter for search output."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from scriptsearch.search.models import SearchResult

NO_RESULTS = "No results found."


def score_label(similarity: float) -> str:
    """Render a similarity as ``[0.87]``."""
    return f"[{similarity:.2f}]"


class ResultFormatter:
    """Format search results for display."""

    def __init__(self, console: Console | None = None):
        """Initialize formatter.

        Args:
            console: Rich console for output
        """
        self.console = console or Console()

    def format_results(self, results: list[SearchResult], query: str) -> None:
        """Display ranked results as panels.

        Args:
            results: Ranked search results
            query: The query that produced them
        """
        if not results:
            self.console.print(f"[yellow]{NO_RESULTS}[/yellow]", style="bold")
            return

        self.console.print(
            f"[bold]Search:[/bold] {escape(query)}\n"
            f"[dim]Found {len(results)} result(s)[/dim]\n"
        )
        for index, result in enumerate(results, 1):
            self._display_result(result, index)

    def _display_result(self, result: SearchResult, index: int) -> None:
        script = result.script
        title = (
            f"[bold]{index}.[/bold] "
            f"[green]{escape(score_label(result.similarity))}[/green] "
            f"[cyan]{escape(script.name)}[/cyan]"
        )

        lines = [f"[dim]Category:[/dim] {escape(script.category)}"]
        if script.description:
            lines.append("")
            lines.append(escape(script.description))
        if script.usage:
            lines.append("")
            lines.append("[bold]Usage:[/bold]")
            lines.append(escape(script.usage))
        lines.append("")
        lines.append(f"[dim]{escape(script.path)}[/dim]")

        panel = Panel(
            "\n".join(lines),
            title=title,
            title_align="left",
            border_style="blue" if index == 1 else "dim",
            padding=(0, 1),
        )
        self.console.print(panel)

    def format_brief(self, results: list[SearchResult]) -> str:
        """Format results as one plain line each.

        Args:
            results: Ranked search results

        Returns:
            Text such as ``[0.87] fix-audio (audio)`` per line
        """
        if not results:
            return NO_RESULTS
        return "\n".join(
            f"{score_label(r.similarity)} {r.script.name} ({r.script.category})"
            for r in results
        )
