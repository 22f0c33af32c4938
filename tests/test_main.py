"""Tests for the mission CLI and its async entry points."""

from unittest.mock import AsyncMock, patch

import pytest

from mission.board.schemas import DaemonResult, HeartbeatResult, StandupResult
from mission.main import daily_aggregate, heartbeat, init_db, main, notification_daemon


class TestEntryPoints:
    async def test_init_db_is_idempotent(self, settings):
        assert await init_db(settings) == 10
        assert await init_db(settings) == 0

    async def test_heartbeat(self, settings):
        await init_db(settings)
        result = await heartbeat("shuri", settings)
        assert result.success is True
        assert result.agent_name == "Shuri"
        assert result.heartbeat_ok is True
        assert (settings.workspace_path / "agents" / "shuri" / "WORKING.md").exists()

    async def test_heartbeat_without_schema(self, settings):
        result = await heartbeat("Shuri", settings)
        assert result.success is False
        assert "init-db" in result.message

    async def test_notification_daemon(self, settings):
        await init_db(settings)
        first = await notification_daemon(settings)
        second = await notification_daemon(settings)
        # Nobody has sent a heartbeat yet: one offline alert, then deduped
        assert (first.success, first.alerts) == (True, 1)
        assert (second.success, second.notifications_created) == (True, 0)

    async def test_daily_aggregate(self, settings):
        await init_db(settings)
        result = await daily_aggregate(settings)
        assert result.success is True
        assert result.summary_path.exists()


class TestCli:
    @pytest.mark.parametrize(
        ("argv", "target", "result", "code"),
        [
            (["heartbeat", "Shuri"], "heartbeat", HeartbeatResult(agent_name="Shuri", success=True), 0),
            (["heartbeat", "Nobody"], "heartbeat", HeartbeatResult(agent_name="Nobody", success=False), 1),
            (["notify"], "notification_daemon", DaemonResult(success=True), 0),
            (["notify"], "notification_daemon", DaemonResult(success=False, message="locked"), 1),
            (["standup"], "daily_aggregate", StandupResult(success=True), 0),
            (["standup"], "daily_aggregate", StandupResult(success=False), 1),
        ],
    )
    def test_exit_codes(self, argv, target, result, code):
        with patch(f"mission.main.{target}", AsyncMock(return_value=result)) as job:
            with pytest.raises(SystemExit) as exc:
                main(argv)
        assert exc.value.code == code
        job.assert_awaited_once()

    def test_heartbeat_passes_agent(self):
        job = AsyncMock(return_value=HeartbeatResult(agent_name="Wong", success=True))
        with patch("mission.main.heartbeat", job), pytest.raises(SystemExit):
            main(["heartbeat", "Wong"])
        assert job.await_args.args[0] == "Wong"

    def test_init_db(self):
        with patch("mission.main.init_db", AsyncMock(return_value=10)) as job:
            with pytest.raises(SystemExit) as exc:
                main(["init-db"])
        assert exc.value.code == 0
        job.assert_awaited_once()

    def test_requires_subcommand(self):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 2
