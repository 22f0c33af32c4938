"""Daily Standup — once-a-day summary of the shared board.

Aggregates over the half-open local calendar day [00:00, 00:00 + 24h):
  - tasks completed today (by completed_at, whenever they were created)
  - tasks created today
  - activities today -> active agents and per-agent action counts
  - unfinished high/critical tasks right now (snapshot, not a daily delta)

Writes <memory_path>/<YYYY-MM-DD>.md and upserts the daily_summaries row
for that date, so re-running on the same day replaces rather than adds.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from mission.board.board import Board
from mission.board.schemas import StandupResult
from mission.config import Settings
from mission.reports import render_standup, write_document
from mission.storage.models import utcnow

logger = logging.getLogger(__name__)


class DailyStandup:
    def __init__(self, board: Board, settings: Settings) -> None:
        self._board = board
        self._settings = settings

    def day_window(self, now: datetime) -> tuple[str, datetime, datetime]:
        """(YYYY-MM-DD, start, end) of now's calendar day, start/end in UTC."""
        tz = ZoneInfo(self._settings.standup_timezone) if self._settings.standup_timezone else None
        local = now.astimezone(tz)
        start_local = local.replace(hour=0, minute=0, second=0, microsecond=0)
        start = start_local.astimezone(UTC)
        return start_local.date().isoformat(), start, start + timedelta(hours=24)

    async def run(self, now: datetime | None = None) -> StandupResult:
        now = now or utcnow()
        date, start, end = self.day_window(now)
        logger.info("Daily standup for %s", date)

        try:
            async with self._board.db.session(write=True) as session:
                agents = await self._board.agents.list(session)
                completed = await self._board.tasks.completed_between(start, end, session)
                created = await self._board.tasks.created_between(start, end, session)
                activities = await self._board.activities.between(start, end, session)
                high_priority = await self._board.tasks.high_priority_open(session)

                per_actor = Counter(a.agent_name.lower() for a in activities)
                active = [a for a in agents if a.name.lower() in per_actor]
                activity_counts = {a.name: per_actor[a.name.lower()] for a in active}

                markdown = render_standup(
                    date,
                    now,
                    completed,
                    created,
                    active,
                    activity_counts,
                    high_priority,
                    limit=self._settings.report_list_limit,
                )
                metadata = {
                    "active_agents": [{"name": a.name, "role": a.role, "emoji": a.emoji} for a in active],
                    "agent_activity_counts": activity_counts,
                    "completed_tasks_count": len(completed),
                    "created_tasks_count": len(created),
                    "pending_high_priority_count": len(high_priority),
                }
                await self._board.summaries.upsert(
                    date,
                    markdown,
                    tasks_completed=len(completed),
                    tasks_created=len(created),
                    active_agents=len(active),
                    metadata=metadata,
                    now=now,
                    session=session,
                )
                await session.commit()

            path = write_document(self._settings.summaries_path / f"{date}.md", markdown)
            logger.info("Saved standup to %s", path)
        except Exception as exc:
            logger.exception("Daily standup failed")
            return StandupResult(success=False, date=date, message=str(exc))

        message = (
            f"Daily standup generated: {len(completed)} completed, "
            f"{len(created)} created, {len(active)} active agents"
        )
        logger.info("%s", message)
        return StandupResult(
            success=True,
            date=date,
            tasks_completed=len(completed),
            tasks_created=len(created),
            active_agents=len(active),
            pending_high_priority=len(high_priority),
            summary_path=path,
            message=message,
        )
