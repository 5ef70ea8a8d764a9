"""Configuration management for ReelShelf."""

import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_OMDB_URL = "https://www.omdbapi.com/"
DEFAULT_TMDB_URL = "https://api.themoviedb.org/3"
DEFAULT_TMDB_IMAGE_URL = "https://image.tmdb.org/t/p/w500"


class ProviderConfig(BaseModel):
    """Settings shared by the metadata provider clients."""

    base_url: str = Field(..., description="Provider base URL")
    api_key: str = Field(default="", description="Provider API key (empty = not configured)")
    timeout_seconds: float = Field(default=10.0, description="HTTP timeout")
    retry_attempts: int = Field(default=3, description="Attempts on transport failure")

    @field_validator("api_key", mode="before")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> str:
        """Treat a missing key as an empty one."""
        return (v or "").strip()

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate at least one attempt is made."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v

    @property
    def is_configured(self) -> bool:
        """Whether both an endpoint and a credential are available."""
        return bool(self.api_key) and bool(self.base_url)


class OMDBConfig(ProviderConfig):
    """Title/id lookup provider configuration."""

    base_url: str = Field(default=DEFAULT_OMDB_URL, description="OMDB endpoint")


class TMDBConfig(ProviderConfig):
    """Search and popularity provider configuration."""

    base_url: str = Field(default=DEFAULT_TMDB_URL, description="TMDB API root")
    image_base_url: str = Field(
        default=DEFAULT_TMDB_IMAGE_URL, description="Prefix for poster paths"
    )


class StorageConfig(BaseModel):
    """Library database configuration."""

    database_path: str = Field(
        default="~/.reelshelf/library.db", description="Library SQLite database"
    )

    @property
    def path(self) -> Path:
        return Path(self.database_path).expanduser()


class AssetsConfig(BaseModel):
    """Poster cache configuration."""

    cache_path: str = Field(
        default="~/.reelshelf/assets.db", description="Durable poster cache database"
    )
    max_entries: int = Field(default=100, description="Memory tier entry limit")
    max_bytes: int = Field(default=50 * 1024 * 1024, description="Memory tier byte budget")
    timeout_seconds: float = Field(default=15.0, description="Poster download timeout")

    @field_validator("max_entries", "max_bytes")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate memory tier bounds."""
        if v < 1:
            raise ValueError("Memory tier bounds must be positive")
        return v

    @property
    def path(self) -> Path:
        return Path(self.cache_path).expanduser()


class APIConfig(BaseModel):
    """API server configuration."""

    host: str = Field(default="127.0.0.1", description="API host")
    port: int = Field(default=9494, description="API port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    format: str = Field(default="text", description="Log format (json or text)")
    level: str = Field(default="info", description="Log level")
    output: str = Field(default="~/.reelshelf/reelshelf.log", description="Log output path")

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        if v.lower() not in ("debug", "info", "warning", "error", "critical"):
            raise ValueError("Invalid log level")
        return v.lower()


class Config(BaseModel):
    """Main configuration model."""

    omdb: OMDBConfig = Field(default_factory=OMDBConfig, description="Lookup provider")
    tmdb: TMDBConfig = Field(default_factory=TMDBConfig, description="Search provider")
    storage: StorageConfig = Field(default_factory=StorageConfig, description="Library storage")
    assets: AssetsConfig = Field(default_factory=AssetsConfig, description="Poster cache")
    api: APIConfig = Field(default_factory=APIConfig, description="API configuration")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging configuration")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path) as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        # Substitute environment variables
        raw_config = cls._substitute_env_vars(raw_config)

        return cls(**raw_config)

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """Recursively replace ${VAR_NAME} with os.environ['VAR_NAME']."""
        if isinstance(obj, dict):
            return {key: Config._substitute_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [Config._substitute_env_vars(item) for item in obj]
        elif isinstance(obj, str):

            def replace_var(match):
                var_name = match.group(1)
                value = os.environ.get(var_name)
                if value is None:
                    raise ValueError(
                        f"Environment variable '{var_name}' not found "
                        f"(referenced in configuration)"
                    )
                return value

            return re.sub(r"\$\{([^}]+)\}", replace_var, obj)
        else:
            return obj


def load_config(path: Optional[str | Path] = None) -> Config:
    """Load configuration from file or use defaults.

    Args:
        path: Optional path to configuration file. If None, uses defaults.

    Returns:
        Config instance
    """
    if path is None:
        return Config()

    return Config.from_yaml(path)
