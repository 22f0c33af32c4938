"""Test fixtures using a fresh file-backed SQLite store per test."""

from datetime import UTC, datetime

import pytest
import pytest_asyncio

from mission.board import Board, TaskInput
from mission.config import Settings
from mission.storage.database import Database
from mission.storage.seed import init_schema, seed_roster

# Fixed clock for tests that pass now= explicitly
NOW = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing every path into tmp_path; .env is ignored."""
    return Settings(
        _env_file=None,
        db_path=tmp_path / "mission-control.db",
        workspace_path=tmp_path / "workspace",
        memory_path=tmp_path / "memory",
        standup_timezone="UTC",
    )


@pytest_asyncio.fixture
async def db(settings):
    """Initialized store with the ten-agent roster."""
    database = Database(settings)
    await init_schema(database.engine)
    await seed_roster(database.engine)
    await database.connect()
    yield database
    await database.disconnect()


@pytest.fixture
def board(db) -> Board:
    return Board(db)


@pytest.fixture
def make_task(board):
    """Create a task with sensible defaults; keyword overrides go to TaskInput."""

    async def _make(title: str = "Task", now: datetime = NOW, **fields):
        fields.setdefault("created_by", "Jarvis")
        return await board.tasks.create(TaskInput(title=title, **fields), now=now)

    return _make
