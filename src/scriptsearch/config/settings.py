"""scriptsearch configuration settings."""

from __future__ import annotations

import json
import os
import tomllib
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from scriptsearch.exceptions import ConfigurationError

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_API_URL = "https://api.openai.com/v1"


class ScriptSearchSettings(BaseSettings):
    """scriptsearch configuration settings.

    Settings are loaded with the following precedence (highest to lowest):
    1. CLI arguments (when provided via command flags)
       Example: scriptsearch seed --directory ./scripts/audio

    2. Config file values (YAML, TOML, or JSON)
       Example: scriptsearch --config scriptsearch.yaml seed

    3. Environment variables (prefixed with SCRIPTSEARCH_)
       Example: export SCRIPTSEARCH_DATABASE_PATH=/data/scripts.db
       The provider key and model also honour OPENAI_API_KEY,
       EMBEDDING_MODEL and EMBEDDING_DIMENSIONS.

    4. .env file (in current directory)

    5. Default values (defined in field declarations below)
    """

    model_config = SettingsConfigDict(
        env_prefix="SCRIPTSEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Embedding provider settings
    openai_api_key: str | None = Field(
        default=None,
        description="API key for the embedding provider",
        validation_alias=AliasChoices(
            "openai_api_key", "SCRIPTSEARCH_OPENAI_API_KEY", "OPENAI_API_KEY"
        ),
    )
    embedding_api_url: str = Field(
        default=DEFAULT_EMBEDDING_API_URL,
        description="Base URL of the OpenAI-compatible embeddings API",
    )
    embedding_model: str = Field(
        default=DEFAULT_EMBEDDING_MODEL,
        description="Embedding model identifier",
        validation_alias=AliasChoices(
            "embedding_model", "SCRIPTSEARCH_EMBEDDING_MODEL", "EMBEDDING_MODEL"
        ),
    )
    embedding_dimensions: int | None = Field(
        default=1536,
        description="Dimensions for embedding vectors (unset = model default)",
        gt=0,
        validation_alias=AliasChoices(
            "embedding_dimensions",
            "SCRIPTSEARCH_EMBEDDING_DIMENSIONS",
            "EMBEDDING_DIMENSIONS",
        ),
    )
    embedding_timeout: float = Field(
        default=30.0,
        description="HTTP timeout in seconds for one embedding request",
        gt=0,
    )
    embedding_max_attempts: int = Field(
        default=3,
        description="Total attempts per embedding request, including the first",
        ge=1,
    )
    embedding_retry_base_delay: float = Field(
        default=1.0,
        description="Initial backoff delay in seconds; doubles on each retry",
        ge=0.0,
    )

    # Database settings
    database_path: Path = Field(
        default_factory=lambda: Path.cwd() / "scriptsearch.db",
        description="Path to the SQLite database file",
    )
    database_timeout: float = Field(
        default=30.0,
        description="SQLite connection timeout in seconds",
        ge=0.1,
    )

    # Seeding settings
    scripts_directory: Path = Field(
        default_factory=lambda: Path("./scripts"),
        description="Default directory scanned by 'scriptsearch seed'",
    )
    script_extensions: list[str] = Field(
        default_factory=lambda: [".ts", ".py", ".sh"],
        description="File suffixes treated as scripts during discovery",
    )
    seed_batch_size: int = Field(
        default=16,
        description="Number of embedding texts submitted per provider request",
        ge=1,
    )

    # Search settings
    search_default_limit: int = Field(
        default=10,
        description="Default number of search results",
        ge=1,
    )

    # Debug settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Logging settings
    log_level: str = Field(
        default="WARNING",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        pattern="^(?i)(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    log_format: str = Field(
        default="console",
        description="Log output format (console, json, structured)",
        pattern="^(?i)(console|json|structured)$",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional log file path",
    )

    @field_validator("database_path", "log_file", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path | None:
        """Expand environment variables and ~ in path settings."""
        if v is None:
            return None
        if isinstance(v, str):
            return Path(os.path.expandvars(v)).expanduser().resolve()
        if isinstance(v, Path):
            return v.resolve()
        if isinstance(v, (dict, list, set, tuple)):  # noqa: UP038
            raise ValueError(
                f"Path fields cannot accept {type(v).__name__} types. "
                f"Expected str or Path, got: {v!r}"
            )
        return Path(str(v)).resolve()

    @field_validator("script_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v: Any) -> Any:
        """Accept a comma separated string and ensure a leading dot."""
        if isinstance(v, str):
            v = [part for part in v.split(",") if part.strip()]
        if isinstance(v, (list, tuple)):  # noqa: UP038
            return [
                ext if ext.startswith(".") else f".{ext}"
                for ext in (str(item).strip().lower() for item in v)
            ]
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Normalize log level to uppercase for case-insensitive handling."""
        if isinstance(v, str):
            return v.upper()
        raise ValueError(f"log_level must be a string, got {type(v).__name__}")

    @field_validator("log_format", mode="before")
    @classmethod
    def normalize_log_format(cls, v: Any) -> str:
        """Normalize log format to lowercase for case-insensitive handling."""
        if isinstance(v, str):
            return v.lower()
        raise ValueError(f"log_format must be a string, got {type(v).__name__}")

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def blank_key_is_unset(cls, v: Any) -> Any:
        """Treat an empty or whitespace-only key as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def require_embedding_credentials(self) -> None:
        """Fail fast when a setting needed to reach the provider is missing.

        Raises:
            ConfigurationError: If the API key or model is not configured
        """
        missing = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if not self.embedding_model or not self.embedding_model.strip():
            missing.append("EMBEDDING_MODEL")
        if missing:
            raise ConfigurationError(
                message=(
                    "Missing required configuration: " + ", ".join(missing)
                ),
                hint=(
                    "Set the variables in the environment or in a .env file, "
                    "e.g. OPENAI_API_KEY=sk-..."
                ),
                details={"missing": missing},
            )

    @classmethod
    def from_file(cls, config_path: Path | str) -> ScriptSearchSettings:
        """Load settings from a configuration file.

        Args:
            config_path: Path to configuration file (YAML, TOML, or JSON).

        Returns:
            Settings loaded from the file.

        Raises:
            ConfigurationError: If file format is not supported.
            FileNotFoundError: If config file doesn't exist.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        suffix = config_path.suffix.lower()

        if suffix in {".yml", ".yaml"}:
            with config_path.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with config_path.open("rb") as f:
                data = tomllib.load(f)
        elif suffix == ".json":
            with config_path.open(encoding="utf-8") as f:
                data = json.load(f)
        else:
            raise ConfigurationError(
                message=f"Unsupported configuration file format: {suffix}",
                hint="Use one of the supported formats: .yml, .yaml, .toml, or .json",
                details={
                    "file": str(config_path),
                    "supported_formats": [".yml", ".yaml", ".toml", ".json"],
                },
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                message="Configuration file must contain a mapping",
                details={"file": str(config_path), "type": type(data).__name__},
            )

        return cls(**data)

    @classmethod
    def from_multiple_sources(
        cls,
        config_files: list[Path | str] | None = None,
        cli_args: dict[str, Any] | None = None,
    ) -> ScriptSearchSettings:
        """Load settings with proper precedence from multiple sources.

        Precedence (highest to lowest): CLI arguments, config files (last file
        wins), environment variables, .env file, default values.

        Args:
            config_files: List of config files to load.
            cli_args: Dictionary of CLI arguments; None values are ignored.

        Returns:
            Merged settings from all sources.
        """
        data: dict[str, Any] = {}

        for config_file in config_files or []:
            file_settings = cls.from_file(config_file)
            data.update(file_settings.model_dump(exclude_unset=True))

        settings = cls(**data)

        if cli_args:
            cli_data = {k: v for k, v in cli_args.items() if v is not None}
            if cli_data:
                updated_data = settings.model_dump()
                updated_data.update(cli_data)
                settings = cls(**updated_data)

        return settings


# Global settings instance
_settings: ScriptSearchSettings | None = None


def get_settings() -> ScriptSearchSettings:
    """Get the global settings instance, loading it on first use."""
    global _settings
    if _settings is None:
        _settings = ScriptSearchSettings()
    return _settings


def set_settings(settings: ScriptSearchSettings) -> None:
    """Set the global settings instance.

    Args:
        settings: Settings instance to use globally.
    """
    global _settings
    _settings = settings


def clear_settings_cache() -> None:
    """Force get_settings() to re-read the environment on its next call."""
    global _settings
    _settings = None


def get_settings_for_cli(
    config_file: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> ScriptSearchSettings:
    """Get settings for CLI commands with consistent precedence.

    Args:
        config_file: Optional specific config file to load.
        cli_overrides: CLI argument overrides; None values are ignored.

    Returns:
        ScriptSearchSettings instance with all sources merged.

    Raises:
        FileNotFoundError: If config_file is specified but doesn't exist.
    """
    if config_file:
        return ScriptSearchSettings.from_multiple_sources(
            config_files=[config_file],
            cli_args=cli_overrides,
        )

    settings = get_settings()
    if cli_overrides:
        filtered = {k: v for k, v in cli_overrides.items() if v is not None}
        if filtered:
            data = settings.model_dump()
            data.update(filtered)
            settings = ScriptSearchSettings(**data)
    return settings
