"""Pytest configuration and fixtures."""

from collections.abc import Callable

import pytest

from scriptsearch.config import ScriptSearchSettings, clear_settings_cache, set_settings
from scriptsearch.database import DatabaseConnection, ScriptRecord, ScriptRepository

# Import shared fixtures to make them available globally
from tests.cli_fixtures import clean_runner, cli_invoke  # noqa: F401
from tests.embedding_test_utils import fake_embedder, recorded_sleeps  # noqa: F401

PROVIDER_ENV_VARS = (
    "OPENAI_API_KEY",
    "EMBEDDING_MODEL",
    "EMBEDDING_DIMENSIONS",
    "SCRIPTSEARCH_OPENAI_API_KEY",
    "SCRIPTSEARCH_EMBEDDING_MODEL",
    "SCRIPTSEARCH_EMBEDDING_DIMENSIONS",
    "SCRIPTSEARCH_CONFIG",
    "SCRIPTSEARCH_DEBUG",
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")


@pytest.fixture(autouse=True)
def cleanup_settings():
    """Reset the settings singleton after each test."""
    yield
    clear_settings_cache()


@pytest.fixture(autouse=True)
def isolated_test_environment(tmp_path, monkeypatch):
    """Run every test against a temporary database and a known provider setup.

    Real credentials from the developer's shell never reach a test.
    """
    for var in PROVIDER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)

    db_path = tmp_path / "test_scriptsearch.db"
    monkeypatch.setenv("SCRIPTSEARCH_DATABASE_PATH", str(db_path))

    settings = ScriptSearchSettings(
        database_path=db_path,
        openai_api_key="sk-test",
        embedding_dimensions=3,
        scripts_directory=tmp_path / "scripts",
    )
    set_settings(settings)

    yield


@pytest.fixture
def db_connection(tmp_path):
    """A connection to a fresh SQLite file."""
    connection = DatabaseConnection(tmp_path / "repository.db")
    yield connection
    connection.close()


@pytest.fixture
def repository(db_connection) -> ScriptRepository:
    """A repository with its schema created."""
    repo = ScriptRepository(db_connection)
    repo.initialize_schema()
    return repo


@pytest.fixture
def make_record() -> Callable[..., ScriptRecord]:
    """Factory for records with sensible defaults."""

    def _make(name: str = "fix-audio", **overrides) -> ScriptRecord:
        fields = {
            "name": name,
            "path": f"/opt/scripts/audio/{name}.ts",
            "category": "audio",
            "description": f"Description of {name}",
            "usage": f"deno run {name}.ts",
            "tags": ["audio", "pipewire"],
            "dependencies": ["../lib/common.ts"],
            "embedding_text": f"Description of {name}",
            "embedding": [1.0, 0.0, 0.0],
            "tokens": 7,
        }
        fields.update(overrides)
        return ScriptRecord(**fields)

    return _make
