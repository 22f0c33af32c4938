"""Tests for database infrastructure: pragmas, schema, roster seed, foreign keys."""

import time

import pytest
from sqlalchemy import delete, func, select, text

from mission.board.board import Board
from mission.handlers.heartbeat import HeartbeatProcessor
from mission.storage.database import Database
from mission.storage.models import Agent, Task
from mission.storage.seed import ROSTER, init_schema, seed_roster


async def test_connection(db):
    async with db.engine.connect() as conn:
        result = await conn.execute(text("SELECT 1"))
        assert result.scalar() == 1


async def test_all_tables_exist(db):
    expected = {
        "agents",
        "tasks",
        "messages",
        "notifications",
        "subscriptions",
        "activities",
        "heartbeat_logs",
        "daily_summaries",
    }
    async with db.engine.connect() as conn:
        result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'table'"))
        tables = {row[0] for row in result}
    assert expected <= tables


class TestPragmas:
    async def test_wal_mode(self, db):
        async with db.session() as session:
            assert (await session.scalar(text("PRAGMA journal_mode"))).lower() == "wal"

    async def test_foreign_keys_enabled(self, db):
        async with db.session() as session:
            assert await session.scalar(text("PRAGMA foreign_keys")) == 1

    async def test_busy_timeout(self, db, settings):
        async with db.session(write=True) as session:
            assert await session.scalar(text("PRAGMA busy_timeout")) == settings.busy_timeout_ms


class TestConnect:
    async def test_missing_schema_raises(self, tmp_path, settings):
        empty = settings.model_copy(update={"db_path": tmp_path / "empty.db"})
        database = Database(empty)
        try:
            with pytest.raises(RuntimeError, match="init-db"):
                await database.connect()
        finally:
            await database.disconnect()

    async def test_context_manager_connects_and_disposes(self, db, settings):
        async with Database(settings) as database:
            async with database.session() as session:
                assert await session.scalar(select(func.count(Agent.id))) == len(ROSTER)


class TestSeed:
    async def test_roster_seeded(self, db):
        async with db.session() as session:
            names = set((await session.scalars(select(Agent.name))).all())
        assert names == {name for name, *_ in ROSTER}

    async def test_reseed_is_noop(self, db):
        async with db.session(write=True) as session:
            await session.execute(text("UPDATE agents SET status = 'working' WHERE name = 'Shuri'"))
            await session.commit()

        await init_schema(db.engine)
        assert await seed_roster(db.engine) == 0

        async with db.session() as session:
            status = await session.scalar(select(Agent.status).where(Agent.name == "Shuri"))
        assert status == "working"

    async def test_name_unique_case_insensitive(self, db):
        with pytest.raises(Exception):
            async with db.session(write=True) as session:
                session.add(Agent(name="shuri", session_key="agent:dup:main", role="engineer"))
                await session.commit()


class TestForeignKeys:
    async def test_deleting_agent_unassigns_tasks(self, board, make_task):
        task = await make_task("Build it", assigned_agent="Shuri")

        async with board.db.session(write=True) as session:
            await session.execute(delete(Agent).where(Agent.name == "Shuri"))
            await session.commit()

        reloaded = await board.tasks.get(task.id)
        assert reloaded is not None
        assert reloaded.assigned_agent is None

    async def test_invalid_status_rejected(self, db):
        with pytest.raises(Exception):
            async with db.session(write=True) as session:
                session.add(Task(title="x", created_by="Jarvis", status="done"))
                await session.commit()


class TestLocking:
    async def test_writer_gives_up_after_busy_timeout(self, db, settings):
        short = settings.model_copy(update={"busy_timeout_ms": 300})
        holder = Database(settings)
        contender = Database(short)
        try:
            async with holder.session(write=True) as session:
                await session.execute(text("UPDATE agents SET status = 'working' WHERE name = 'Fury'"))

                started = time.monotonic()
                result = await HeartbeatProcessor(Board(contender), short).run("Shuri")
                elapsed = time.monotonic() - started

                assert result.success is False
                assert "locked" in result.message
                assert 0.25 <= elapsed < 5

                # Readers are not blocked by the held write lock
                async with db.session() as reader:
                    assert await reader.scalar(select(func.count(Agent.id))) == 10
        finally:
            await contender.disconnect()
            await holder.disconnect()

        async with db.session() as session:
            agent = await session.scalar(select(Agent).where(Agent.name == "Shuri"))
        assert agent.last_heartbeat is None
