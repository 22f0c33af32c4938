"""Tests for mission.utils and mission.reports helpers."""

from datetime import UTC, datetime

from mission.board.schemas import NotificationDetail, TaskDetail
from mission.reports import render_working_file
from mission.utils import extract_mentions, iso, plural, truncate

TS = datetime(2026, 3, 10, 15, 0, tzinfo=UTC)


class TestExtractMentions:
    def test_order_and_duplicates(self):
        assert extract_mentions("@Jarvis please review @NotAnAgent and @Jarvis") == [
            "Jarvis",
            "NotAnAgent",
            "Jarvis",
        ]

    def test_token_stops_at_non_word(self):
        assert extract_mentions("ping @Shuri, @fury! (@Wong)") == ["Shuri", "fury", "Wong"]

    def test_none(self):
        assert extract_mentions("email me at nowhere") == []
        assert extract_mentions("a lone @ sign") == []


class TestTruncate:
    def test_short_unchanged(self):
        assert truncate("hello", 200) == "hello"

    def test_exact_limit_unchanged(self):
        assert truncate("x" * 200, 200) == "x" * 200

    def test_long_cut_with_marker(self):
        assert truncate("x" * 201, 200) == "x" * 200 + "..."


def test_iso():
    assert iso(None) == "Never"
    assert iso(TS) == "2026-03-10T15:00:00+00:00"


def test_plural():
    assert plural(1, "action") == "1 action"
    assert plural(0, "action") == "0 actions"
    assert plural(3, "action") == "3 actions"


class TestWorkingFile:
    def _task(self, **fields) -> TaskDetail:
        base = dict(
            id=1,
            title="Fix login",
            description=None,
            status="pending",
            priority="high",
            assigned_agent="Shuri",
            created_by="Jarvis",
            due_date=None,
            completed_at=None,
            metadata=None,
            created_at=TS,
            updated_at=TS,
        )
        base.update(fields)
        return TaskDetail(**base)

    def test_sections(self):
        notification = NotificationDetail(
            id=1,
            target_agent="Shuri",
            type="alert",
            title="⚠️ Overdue Task Alert",
            message="Task is late",
            entity_type="task",
            entity_id="1",
            is_read=False,
            created_at=TS,
        )
        text = render_working_file("Shuri", [self._task(due_date=TS)], [notification], TS)

        assert text.startswith("# WORKING - Shuri\n\n> Last updated: 2026-03-10T15:00:00+00:00")
        assert "- **Pending Tasks**: 1" in text
        assert "- **Unread Notifications**: 1" in text
        assert "   - Due: 2026-03-10T15:00:00+00:00" in text
        assert "1. **[alert]** ⚠️ Overdue Task Alert" in text
        assert text.rstrip().endswith("*Updated automatically on every heartbeat.*")

    def test_idle(self):
        text = render_working_file("Fury", [], [], TS)
        assert "- **Current Status**: Idle" in text
        assert "## Current Tasks" not in text
        assert "## Recent Notifications" not in text
