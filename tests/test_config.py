"""Tests for configuration loading and validation."""

import logging
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
import yaml

from zelo.config.loader import ConfigError, load_config, save_config
from zelo.config.schema import LoggingConfig, ZeloConfig
from zelo.logging_setup import configure_logging


def test_default_config():
    """Test that default config has expected values."""
    config = ZeloConfig()

    assert config.provider.name == "deepgram"
    assert config.provider.capacity == 1
    assert config.provider.deepgram.model == "nova-2"
    assert config.provider.deepgram.api_key_env == "DEEPGRAM_API_KEY"
    assert config.provider.reconnect.max_attempts == 3
    assert config.provider.reconnect.initial_delay == 1.0

    assert config.storage.backend == "json"
    assert config.transcription.default_language == "pt-BR"
    assert config.transcription.persist_threshold == 10

    assert config.server.port == 8080
    assert config.server.public_host == "localhost"


def test_load_config_nonexistent_returns_defaults():
    """Test that loading a nonexistent config returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config = load_config(Path(tmpdir) / "nonexistent.yaml", environ={})

        assert config.server.port == 8080
        assert config.storage.backend == "json"


def test_load_config_empty_file_returns_defaults():
    """Test that an empty config file returns defaults."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "empty.yaml"
        config_path.write_text("")

        config = load_config(config_path, environ={})
        assert config.transcription.persist_threshold == 10


def test_load_config_partial_override():
    """Test that partial config overrides only specified values."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "partial.yaml"
        config_path.write_text(
            yaml.safe_dump(
                {
                    "storage": {"backend": "sqlite", "sqlite_path": "/tmp/zelo-test.db"},
                    "transcription": {"persist_threshold": 5},
                }
            )
        )

        config = load_config(config_path, environ={})

        assert config.storage.backend == "sqlite"
        assert config.storage.sqlite_path == "/tmp/zelo-test.db"
        assert config.transcription.persist_threshold == 5
        assert config.transcription.default_language == "pt-BR"


def test_load_config_invalid_yaml():
    """Test that malformed YAML raises ConfigError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "bad.yaml"
        config_path.write_text("server: [unclosed")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(config_path, environ={})


def test_load_config_non_mapping_root():
    """Test that a list at the root is rejected."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "list.yaml"
        config_path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(config_path, environ={})


def test_load_config_validation_error():
    """Test that out-of-range values raise ConfigError."""
    with TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "invalid.yaml"
        config_path.write_text(yaml.safe_dump({"provider": {"reconnect": {"max_attempts": 0}}}))

        with pytest.raises(ConfigError, match="validation failed"):
            load_config(config_path, environ={})


def test_env_overrides_applied(tmp_path):
    """Test HOST/PORT style overrides from the environment."""
    config = load_config(
        tmp_path / "missing.yaml",
        environ={"HOST": "127.0.0.1", "PORT": "9001", "ZELO_STORAGE_DIR": "/data/sessions"},
    )

    assert config.server.host == "127.0.0.1"
    assert config.server.port == 9001
    assert config.storage.directory == "/data/sessions"


def test_postgres_backend_from_env(tmp_path):
    config = load_config(
        tmp_path / "missing.yaml",
        environ={
            "ZELO_STORAGE_BACKEND": "postgres",
            "ZELO_POSTGRES_DSN": "postgresql+psycopg://zelo@db/zelo",
        },
    )

    assert config.storage.backend == "postgres"
    assert config.storage.postgres_dsn == "postgresql+psycopg://zelo@db/zelo"


def test_prefixed_env_override_wins(tmp_path):
    """Test ZELO_PORT takes precedence over PORT."""
    config = load_config(tmp_path / "missing.yaml", environ={"ZELO_PORT": "7000", "PORT": "9001"})
    assert config.server.port == 7000


def test_save_and_load_roundtrip(tmp_path):
    """Test saving and reloading a config."""
    config = ZeloConfig()
    config.server.port = 9999
    config.storage.backend = "sqlite"

    path = tmp_path / "nested" / "zelo.yaml"
    save_config(config, path)

    loaded = load_config(path, environ={})
    assert loaded.server.port == 9999
    assert loaded.storage.backend == "sqlite"


def test_configure_logging_is_idempotent():
    """Test repeated setup keeps a single stderr handler."""
    logger = configure_logging(LoggingConfig(level="DEBUG"))
    configure_logging(LoggingConfig(level="WARNING"))

    named = [h for h in logger.handlers if h.get_name() == "zelo-stderr"]
    try:
        assert len(named) == 1
        assert logger.level == logging.WARNING
    finally:
        for handler in named:
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
