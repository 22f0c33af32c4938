"""Settings via pydantic-settings with MC_ env prefix.

Store and workspace locations use validation_alias to read the same
unprefixed env vars (DB_PATH, WORKSPACE_PATH, MEMORY_PATH) that the cron
deployment exports, so one environment drives every scheduled script.
"""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_WORKSPACE = Path.home() / ".openclaw" / "workspace" / "mission-control"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MC_", env_file=".env", extra="ignore", populate_by_name=True
    )

    # Store + workspace: unprefixed aliases match the cron environment
    db_path: Path = Field(_DEFAULT_WORKSPACE / "mission-control.db", validation_alias="DB_PATH")
    workspace_path: Path = Field(_DEFAULT_WORKSPACE, validation_alias="WORKSPACE_PATH")
    memory_path: Path | None = Field(None, validation_alias="MEMORY_PATH")

    busy_timeout_ms: int = 5000
    log_level: str = "info"

    # Notification daemon
    coordinator_agent: str = "Jarvis"
    mention_window_seconds: int = 300
    activity_window_seconds: int = 300
    alert_window_seconds: int = 86400
    offline_threshold_seconds: int = 3600
    mention_preview_chars: int = 200

    # Daily standup
    report_list_limit: int = 10
    standup_timezone: str | None = None  # IANA name; None = process local zone

    @model_validator(mode="after")
    def _validate_windows(self) -> "Settings":
        for name in (
            "busy_timeout_ms",
            "mention_window_seconds",
            "activity_window_seconds",
            "alert_window_seconds",
            "offline_threshold_seconds",
            "mention_preview_chars",
            "report_list_limit",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        return self

    @property
    def db_url(self) -> str:
        return f"sqlite+aiosqlite:///{self.db_path}"

    @property
    def summaries_path(self) -> Path:
        """Directory for daily standup markdown files."""
        if self.memory_path is not None:
            return self.memory_path
        return self.workspace_path / "shared" / "memory"

    def agent_dir(self, agent_name: str) -> Path:
        return self.workspace_path / "agents" / agent_name.lower()
