"""Metadata extraction from script headers.

Reads the leading documentation of a script (a JSDoc block, a Python module
docstring or a ``#`` comment block) and derives the description, usage,
dependencies and tags that get embedded and stored.
"""

from __future__ import annotations

import ast
import re
from pathlib import Path

from scriptsearch.config import get_logger
from scriptsearch.seeding.models import ScriptMetadata

logger = get_logger(__name__)

# Checked in this order against the directories of a script's path
CATEGORIES = ("audio", "system", "dev")
DEFAULT_CATEGORY = "other"

TAG_KEYWORDS = (
    "audio",
    "video",
    "gpu",
    "nvidia",
    "amd",
    "drivers",
    "configuration",
    "config",
    "setup",
    "install",
    "pulseaudio",
    "pipewire",
    "alsa",
    "davinci",
    "obs",
    "system",
    "network",
    "disk",
    "diagnostic",
    "monitor",
    "service",
    "docker",
    "deployment",
    "build",
    "test",
    "database",
    "api",
)

JSDOC_PATTERN = re.compile(r"/\*\*\s*\n(.*?)\*/", re.DOTALL)
DESCRIPTION_LINE_PATTERN = re.compile(
    r"^\s*(?://|#)\s*Description:\s*(.+)$", re.IGNORECASE | re.MULTILINE
)
USAGE_MARKER_PATTERN = re.compile(r"^usage:\s*(.*)$", re.IGNORECASE)

JS_IMPORT_PATTERN = re.compile(
    r"""import\s+(?:[\w*{}\s,]+\s+from\s+)?["']([^"']+)["']"""
)
PY_IMPORT_PATTERN = re.compile(
    r"^\s*(?:from\s+([\w.]+)\s+import\b|import\s+([\w.]+(?:\s*,\s*[\w.]+)*))",
    re.MULTILINE,
)
SHELL_SOURCE_PATTERN = re.compile(r"^\s*(?:source|\.)\s+([^\s;#]+)", re.MULTILINE)


def _jsdoc_lines(content: str) -> list[str] | None:
    match = JSDOC_PATTERN.search(content)
    if not match:
        return None
    lines = []
    for raw in match.group(1).splitlines():
        line = raw.strip()
        if line.startswith("*"):
            line = line[1:]
            if line.startswith(" "):
                line = line[1:]
        lines.append(line.rstrip())
    return lines


def _docstring_lines(content: str) -> list[str] | None:
    try:
        module = ast.parse(content)
    except SyntaxError:
        return None
    docstring = ast.get_docstring(module)
    return docstring.splitlines() if docstring else None


def _comment_block_lines(content: str) -> list[str] | None:
    lines: list[str] = []
    started = False
    for index, raw in enumerate(content.splitlines()):
        line = raw.strip()
        if index == 0 and line.startswith("#!"):
            continue
        if not line and not started:
            continue
        if not line.startswith("#") or line.startswith("#!"):
            break
        started = True
        text = line.lstrip("#")
        if text.startswith(" "):
            text = text[1:]
        if "-*-" in text or text.startswith("shellcheck "):
            continue
        lines.append(text.rstrip())
    return lines or None


def split_usage(lines: list[str]) -> tuple[str, str]:
    """Split header lines into description text and usage text.

    Everything before a ``Usage:`` marker is description (joined with
    spaces); everything after it is usage (joined with newlines).
    """
    description: list[str] = []
    usage: list[str] = []
    in_usage = False
    for line in lines:
        stripped = line.strip()
        marker = USAGE_MARKER_PATTERN.match(stripped)
        if marker:
            in_usage = True
            if marker.group(1):
                usage.append(marker.group(1))
            continue
        if not stripped:
            continue
        if in_usage:
            usage.append(stripped)
        else:
            description.append(stripped)
    return " ".join(description).strip(), "\n".join(usage).strip()


class ScriptAnalyzer:
    """Derives :class:`ScriptMetadata` from a script file."""

    def header_lines(self, content: str, suffix: str) -> list[str]:
        """Return the documentation header of a script, best source first."""
        if suffix == ".py":
            sources = (_docstring_lines, _comment_block_lines)
        elif suffix in {".sh", ".bash"}:
            sources = (_comment_block_lines,)
        else:
            sources = (_jsdoc_lines, _comment_block_lines)
        for source in sources:
            lines = source(content)
            if lines:
                return lines
        return []

    def extract_description(self, content: str, suffix: str = ".ts") -> str:
        """Extract the description from the script header."""
        description, _ = split_usage(self.header_lines(content, suffix))
        if description:
            return description
        match = DESCRIPTION_LINE_PATTERN.search(content)
        return match.group(1).strip() if match else ""

    def extract_usage(self, content: str, suffix: str = ".ts") -> str:
        """Extract usage instructions following a ``Usage:`` marker."""
        _, usage = split_usage(self.header_lines(content, suffix))
        return usage

    def extract_dependencies(self, content: str, suffix: str = ".ts") -> list[str]:
        """List imported modules or sourced files, first occurrence first."""
        found: list[str] = []
        if suffix == ".py":
            for match in PY_IMPORT_PATTERN.finditer(content):
                if match.group(1):
                    found.append(match.group(1))
                else:
                    found.extend(name.strip() for name in match.group(2).split(","))
        elif suffix in {".sh", ".bash"}:
            found.extend(SHELL_SOURCE_PATTERN.findall(content))
        else:
            found.extend(JS_IMPORT_PATTERN.findall(content))
        return list(dict.fromkeys(found))

    def generate_tags(self, content: str) -> list[str]:
        """Return the known keywords that occur in the content, sorted."""
        lowered = content.lower()
        return sorted(keyword for keyword in TAG_KEYWORDS if keyword in lowered)

    def infer_category(self, path: Path, root: Path | None = None) -> str:
        """Pick a category from the directories above the script.

        Args:
            path: Script path
            root: Seeding root; only it and the directories below it are
                considered

        Returns:
            ``audio``, ``system``, ``dev`` or ``other``
        """
        parent = path.parent
        # The root's own name counts, so seeding ./scripts/audio yields "audio"
        if root is not None and parent.is_relative_to(root.parent):
            parent = parent.relative_to(root.parent)
        directories = {part.lower() for part in parent.parts}
        for category in CATEGORIES:
            if category in directories:
                return category
        return DEFAULT_CATEGORY

    def analyze(self, path: str | Path, root: str | Path | None = None) -> ScriptMetadata:
        """Read a script and derive its metadata.

        Args:
            path: Script file to analyze
            root: Directory the script was discovered under

        Returns:
            Metadata for the script

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not UTF-8 text
        """
        script_path = Path(path).resolve()
        content = script_path.read_text(encoding="utf-8")
        suffix = script_path.suffix.lower()
        root_path = Path(root).resolve() if root is not None else None

        metadata = ScriptMetadata(
            name=script_path.stem,
            path=str(script_path),
            category=self.infer_category(script_path, root_path),
            description=self.extract_description(content, suffix),
            usage=self.extract_usage(content, suffix),
            tags=self.generate_tags(content),
            dependencies=self.extract_dependencies(content, suffix),
        )
        logger.debug(
            "Analyzed script",
            path=metadata.path,
            category=metadata.category,
            tags=len(metadata.tags),
        )
        return metadata
