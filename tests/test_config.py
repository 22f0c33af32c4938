"""Tests for Settings: env prefix, unprefixed path aliases, validation."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from mission.config import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("DB_PATH", "WORKSPACE_PATH", "MEMORY_PATH", "MC_COORDINATOR_AGENT", "MC_ALERT_WINDOW_SECONDS"):
        monkeypatch.delenv(var, raising=False)


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.busy_timeout_ms == 5000
    assert settings.coordinator_agent == "Jarvis"
    assert settings.mention_window_seconds == 300
    assert settings.alert_window_seconds == 86400
    assert settings.offline_threshold_seconds == 3600
    assert settings.db_path.name == "mission-control.db"


def test_unprefixed_path_aliases(monkeypatch, tmp_path):
    monkeypatch.setenv("DB_PATH", str(tmp_path / "mc.db"))
    monkeypatch.setenv("WORKSPACE_PATH", str(tmp_path / "ws"))
    monkeypatch.setenv("MEMORY_PATH", str(tmp_path / "mem"))

    settings = Settings(_env_file=None)
    assert settings.db_path == tmp_path / "mc.db"
    assert settings.db_url == f"sqlite+aiosqlite:///{tmp_path / 'mc.db'}"
    assert settings.summaries_path == tmp_path / "mem"


def test_prefixed_settings(monkeypatch):
    monkeypatch.setenv("MC_COORDINATOR_AGENT", "Fury")
    monkeypatch.setenv("MC_ALERT_WINDOW_SECONDS", "7200")
    settings = Settings(_env_file=None)
    assert settings.coordinator_agent == "Fury"
    assert settings.alert_window_seconds == 7200


def test_summaries_path_fallback():
    settings = Settings(_env_file=None, workspace_path=Path("/srv/mc"))
    assert settings.summaries_path == Path("/srv/mc/shared/memory")


def test_agent_dir_lowercases():
    settings = Settings(_env_file=None, workspace_path=Path("/srv/mc"))
    assert settings.agent_dir("Shuri") == Path("/srv/mc/agents/shuri")


@pytest.mark.parametrize("field", ["mention_window_seconds", "alert_window_seconds", "busy_timeout_ms"])
def test_non_positive_rejected(field):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})
