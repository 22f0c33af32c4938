"""Tests for HeartbeatProcessor — work pickup, liveness, logs, WORKING.md."""

from datetime import timedelta
from unittest.mock import AsyncMock, patch

from sqlalchemy import text

from mission.board import NotificationInput
from mission.handlers.heartbeat import HeartbeatProcessor

from tests.conftest import NOW


async def _notify(board, target: str, title: str, now=NOW):
    return await board.notifications.create(
        NotificationInput(target_agent=target, type="mention", title=title, message=f"{title} body"),
        now=now,
    )


class TestHeartbeat:
    async def test_end_to_end(self, board, settings, make_task):
        t1, t2, t3 = NOW - timedelta(hours=3), NOW - timedelta(hours=2), NOW - timedelta(hours=1)
        await make_task("Tidy logs", now=t1, priority="low", assigned_agent="Shuri")
        await make_task("Fix login", now=t2, priority="high", assigned_agent="Shuri",
                        description="Users cannot sign in")
        await make_task("Fix signup", now=t3, priority="high", assigned_agent="Shuri")
        await _notify(board, "Shuri", "Please look at login")

        result = await HeartbeatProcessor(board, settings).run("Shuri", now=NOW)

        assert result.success is True
        assert result.heartbeat_ok is False
        assert result.tasks_checked == 3
        assert result.notifications_processed == 1
        assert [t.title for t in result.tasks] == ["Fix login", "Fix signup", "Tidy logs"]
        assert all(n.is_read for n in result.notifications)

        agent = await board.agents.get_by_name("Shuri")
        assert agent.status == "working"
        assert agent.last_heartbeat == NOW
        assert await board.notifications.unread_for_agent("Shuri") == []

        logs = await board.heartbeat_logs.recent("Shuri")
        assert len(logs) == 1
        assert (logs[0].status, logs[0].tasks_checked, logs[0].notifications_processed) == ("success", 3, 1)

        working = (settings.workspace_path / "agents" / "shuri" / "WORKING.md").read_text(encoding="utf-8")
        assert working.startswith("# WORKING - Shuri")
        assert "- **Current Status**: Working" in working
        assert "1. **[HIGH]** Fix login" in working
        assert "   - Users cannot sign in" in working
        assert "1. **[mention]** Please look at login" in working

    async def test_nothing_to_do(self, board, settings):
        result = await HeartbeatProcessor(board, settings).run("Fury", now=NOW)

        assert result.success is True
        assert result.heartbeat_ok is True
        assert (result.tasks_checked, result.notifications_processed) == (0, 0)
        agent = await board.agents.get_by_name("Fury")
        assert agent.status == "idle"
        assert agent.last_heartbeat == NOW

        working = (settings.workspace_path / "agents" / "fury" / "WORKING.md").read_text(encoding="utf-8")
        assert "- **Current Status**: Idle" in working
        assert "## Current Tasks" not in working

    async def test_case_insensitive_name(self, board, settings, make_task):
        await make_task("Something", assigned_agent="Shuri")
        result = await HeartbeatProcessor(board, settings).run("SHURI", now=NOW)
        assert result.success is True
        assert result.agent_name == "Shuri"
        assert result.tasks_checked == 1

    async def test_lowercase_targets_picked_up(self, board, settings):
        notification = await _notify(board, "shuri", "lowercase target")
        assert notification.target_agent == "Shuri"
        # Rows written outside the managers keep whatever spelling they were given
        async with board.db.session(write=True) as session:
            await session.execute(
                text(
                    "INSERT INTO tasks (title, status, priority, assigned_agent, created_by, created_at, updated_at) "
                    "VALUES ('Raw row', 'pending', 'high', 'shuri', 'Jarvis', :ts, :ts)"
                ),
                {"ts": "2026-03-10 14:00:00.000000"},
            )
            await session.commit()

        result = await HeartbeatProcessor(board, settings).run("Shuri", now=NOW)

        assert result.success is True
        assert result.tasks_checked == 1
        assert result.notifications_processed == 1
        assert result.heartbeat_ok is False
        assert [t.title for t in result.tasks] == ["Raw row"]
        assert await board.notifications.unread_for_agent("Shuri") == []

    async def test_only_own_notifications_marked_read(self, board, settings):
        await _notify(board, "Shuri", "mine")
        await _notify(board, "Fury", "theirs")

        await HeartbeatProcessor(board, settings).run("Shuri", now=NOW)

        assert await board.notifications.unread_for_agent("Shuri") == []
        assert [n.title for n in await board.notifications.unread_for_agent("Fury")] == ["theirs"]

    async def test_second_run_sees_only_new_notifications(self, board, settings):
        processor = HeartbeatProcessor(board, settings)
        await _notify(board, "Shuri", "first")
        await processor.run("Shuri", now=NOW)

        await _notify(board, "Shuri", "second", now=NOW + timedelta(minutes=5))
        result = await processor.run("Shuri", now=NOW + timedelta(minutes=15))

        assert [n.title for n in result.notifications] == ["second"]

    async def test_completed_tasks_not_picked_up(self, board, settings, make_task):
        await make_task("Done already", status="completed", assigned_agent="Shuri")
        result = await HeartbeatProcessor(board, settings).run("Shuri", now=NOW)
        assert result.heartbeat_ok is True


class TestHeartbeatFailures:
    async def test_unknown_agent(self, board, settings):
        result = await HeartbeatProcessor(board, settings).run("Nobody", now=NOW)

        assert result.success is False
        assert 'Agent "Nobody" not found in database' in result.message
        # Error row cannot reference a missing agent; the failure is swallowed
        assert await board.heartbeat_logs.recent("Nobody") == []
        assert not (settings.workspace_path / "agents" / "nobody").exists()

    async def test_store_failure_rolls_back_and_logs_error(self, board, settings, make_task):
        await make_task("Something", assigned_agent="Shuri")
        await _notify(board, "Shuri", "unread")

        with patch.object(
            board.agents, "record_heartbeat", AsyncMock(side_effect=RuntimeError("disk I/O error"))
        ):
            result = await HeartbeatProcessor(board, settings).run("Shuri", now=NOW)

        assert result.success is False
        assert result.message == "disk I/O error"
        assert result.agent_name == "Shuri"

        # Mark-read was part of the rolled back transaction
        assert len(await board.notifications.unread_for_agent("Shuri")) == 1
        agent = await board.agents.get_by_name("Shuri")
        assert agent.last_heartbeat is None

        logs = await board.heartbeat_logs.recent("Shuri")
        assert [(log.status, log.error_message) for log in logs] == [("error", "disk I/O error")]
        assert (logs[0].tasks_checked, logs[0].notifications_processed) == (1, 1)

    async def test_document_write_failure_reported(self, board, settings):
        with patch("mission.handlers.heartbeat.write_document", side_effect=OSError("read-only")):
            result = await HeartbeatProcessor(board, settings).run("Shuri", now=NOW)

        assert result.success is False
        assert "read-only" in result.message
        # Store work was already committed
        agent = await board.agents.get_by_name("Shuri")
        assert agent.last_heartbeat == NOW
