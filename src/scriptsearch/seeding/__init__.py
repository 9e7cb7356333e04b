"""Bulk (re)population of the script store."""

from scriptsearch.seeding.analyzer import ScriptAnalyzer
from scriptsearch.seeding.models import ScriptMetadata, SeedingFailure, SeedingOutcome
from scriptsearch.seeding.seeder import DatabaseSeeder

__all__ = [
    "DatabaseSeeder",
    "ScriptAnalyzer",
    "ScriptMetadata",
    "SeedingFailure",
    "SeedingOutcome",
]
