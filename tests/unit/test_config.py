"""Unit tests for configuration loading and logging setup."""

import logging

import pytest
from pydantic import ValidationError

from reelshelf.config import (
    DEFAULT_OMDB_URL,
    DEFAULT_TMDB_IMAGE_URL,
    Config,
    LoggingConfig,
    OMDBConfig,
    load_config,
)
from reelshelf.utils.logger import get_logger, setup_logging


class TestConfig:
    """Test Config model."""

    def test_defaults(self):
        config = load_config()

        assert config.omdb.base_url == DEFAULT_OMDB_URL
        assert config.tmdb.image_base_url == DEFAULT_TMDB_IMAGE_URL
        assert config.omdb.is_configured is False
        assert config.api.port == 9494
        assert config.storage.path.name == "library.db"
        assert "~" not in str(config.assets.path)

    def test_from_yaml_with_env_substitution(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OMDB_KEY", "secret-key")
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            """
omdb:
  api_key: ${OMDB_KEY}
  retry_attempts: 2
tmdb:
  api_key: tmdb-key
storage:
  database_path: /data/library.db
logging:
  format: json
  level: DEBUG
"""
        )

        config = Config.from_yaml(config_file)

        assert config.omdb.api_key == "secret-key"
        assert config.omdb.is_configured
        assert config.omdb.retry_attempts == 2
        assert config.tmdb.is_configured
        assert str(config.storage.path) == "/data/library.db"
        assert config.logging.level == "debug"

    def test_missing_env_var(self, tmp_path, monkeypatch):
        monkeypatch.delenv("REELSHELF_MISSING", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text("omdb:\n  api_key: ${REELSHELF_MISSING}\n")

        with pytest.raises(ValueError, match="REELSHELF_MISSING"):
            Config.from_yaml(config_file)

    def test_empty_file_gives_defaults(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")

        assert Config.from_yaml(config_file) == Config()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_api_key_whitespace_is_not_configured(self):
        assert OMDBConfig(api_key="   ").is_configured is False

    def test_retry_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            OMDBConfig(retry_attempts=0)

    @pytest.mark.parametrize("field,value", [("format", "xml"), ("level", "loud")])
    def test_invalid_logging(self, field, value):
        with pytest.raises(ValidationError):
            LoggingConfig(**{field: value})


class TestLogging:
    """Test logging setup."""

    def test_setup_logging_writes_file(self, tmp_path):
        log_file = tmp_path / "logs" / "reelshelf.log"

        setup_logging(LoggingConfig(output=str(log_file), format="json"), console=False)
        get_logger("reelshelf.test").info("Stored movie", record_id="abc")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert '"record_id": "abc"' in log_file.read_text()
