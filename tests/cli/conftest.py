"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest

from zelo.config.loader import save_config
from zelo.config.schema import StorageConfig, ZeloConfig
from zelo.session.models import Session


@pytest.fixture
def tmp_config_path(tmp_path: Path) -> Path:
    """Provide a temporary config file path."""
    return tmp_path / "zelo.yaml"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host environment overrides out of CLI runs."""
    for var in (
        "ZELO_STORAGE_BACKEND",
        "ZELO_STORAGE_DIR",
        "ZELO_POSTGRES_DSN",
        "ZELO_PORT",
        "PORT",
    ):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(params=["json", "sqlite", "postgres"])
def cli_config(request, tmp_path: Path, tmp_config_path: Path) -> ZeloConfig:
    """Write a config whose store lives under the test's temp dir."""
    config = ZeloConfig(
        storage=StorageConfig(
            backend=request.param,
            directory=str(tmp_path / "sessions"),
            sqlite_path=str(tmp_path / "zelo.db"),
            postgres_dsn=f"sqlite:///{tmp_path / 'pg.db'}",
        )
    )
    save_config(config, tmp_config_path)
    return config


@pytest.fixture
def stored_session(cli_config, make_segment) -> Session:
    """A stopped session with one interim and two final segments, saved to the store."""
    from zelo.session import create_session_store

    session = Session(language="en-US", provider="deepgram")
    session.add_segment(make_segment("Hello world.", start=0.0, end=1.5))
    session.add_segment(make_segment("and", is_final=False, start=1.5, end=1.8))
    session.add_segment(make_segment("Goodbye.", start=2.0, end=3.25))
    session.stop()
    create_session_store(cli_config.storage).save(session)
    return session
