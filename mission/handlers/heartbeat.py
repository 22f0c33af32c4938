"""Heartbeat Processor — one scheduled work-pickup pass for one agent.

Invoked by the external scheduler once per agent per cycle:
1. Resolve the agent (case-insensitive)
2. Load its open tasks, most urgent then oldest first
3. Load its unread notifications in arrival order
4. Mark exactly those notifications read
5. Set status working/idle and stamp last_heartbeat
6. Append a heartbeat_logs row
7. Overwrite the agent's WORKING.md

Steps 1-6 run in one BEGIN IMMEDIATE transaction, so a notification that
arrives after the read in step 3 stays unread for the next cycle. Failures
never propagate: they are recorded best-effort and reported in the result.
"""

from __future__ import annotations

import logging
from datetime import datetime

from mission.board.agents import AgentNotFound
from mission.board.board import Board
from mission.board.schemas import HeartbeatResult
from mission.config import Settings
from mission.reports import render_working_file, write_document
from mission.storage.models import utcnow
from mission.utils import iso

logger = logging.getLogger(__name__)


class HeartbeatProcessor:
    """Runs heartbeats against the shared board."""

    def __init__(self, board: Board, settings: Settings) -> None:
        self._board = board
        self._settings = settings

    async def run(self, agent_name: str, now: datetime | None = None) -> HeartbeatResult:
        now = now or utcnow()
        resolved_name = agent_name
        tasks_checked = 0
        notifications_processed = 0

        try:
            async with self._board.db.session(write=True) as session:
                agent = await self._board.agents.require(agent_name, session)
                resolved_name = agent.name
                logger.info(
                    "%s Heartbeat for %s (%s), status=%s, last heartbeat=%s",
                    agent.emoji, agent.name, agent.role, agent.status, iso(agent.last_heartbeat),
                )

                tasks = await self._board.tasks.open_for_agent(agent.name, session)
                tasks_checked = len(tasks)

                notifications = await self._board.notifications.unread_for_agent(agent.name, session)
                notifications_processed = len(notifications)
                await self._board.notifications.mark_read([n.id for n in notifications], session)

                status = "working" if tasks else "idle"
                await self._board.agents.record_heartbeat(agent.name, status, now, session)
                await self._board.heartbeat_logs.record(
                    agent.name,
                    "success",
                    tasks_checked,
                    notifications_processed,
                    now=now,
                    session=session,
                )
                await session.commit()

            for i, task in enumerate(tasks, 1):
                logger.debug("  %d. [%s] %s", i, task.priority.upper(), task.title)

            path = self._settings.agent_dir(agent.name) / "WORKING.md"
            write_document(path, render_working_file(agent.name, tasks, notifications, now))

        except AgentNotFound as exc:
            logger.error("Heartbeat failed: %s", exc)
            await self._record_failure(resolved_name, tasks_checked, notifications_processed, str(exc), now)
            return HeartbeatResult(agent_name=resolved_name, success=False, message=str(exc))
        except Exception as exc:
            logger.exception("Heartbeat for %s failed", resolved_name)
            await self._record_failure(resolved_name, tasks_checked, notifications_processed, str(exc), now)
            return HeartbeatResult(
                agent_name=resolved_name,
                success=False,
                tasks_checked=tasks_checked,
                notifications_processed=notifications_processed,
                message=str(exc),
            )

        heartbeat_ok = tasks_checked == 0 and notifications_processed == 0
        if heartbeat_ok:
            logger.info("HEARTBEAT_OK: %s has no work to do", agent.name)
        else:
            logger.info(
                "Heartbeat complete for %s: %d tasks checked, %d notifications processed",
                agent.name, tasks_checked, notifications_processed,
            )

        return HeartbeatResult(
            agent_name=agent.name,
            success=True,
            heartbeat_ok=heartbeat_ok,
            tasks_checked=tasks_checked,
            notifications_processed=notifications_processed,
            message=f"{tasks_checked} tasks checked, {notifications_processed} notifications processed",
            tasks=tasks,
            notifications=[n.model_copy(update={"is_read": True}) for n in notifications],
        )

    async def _record_failure(
        self,
        agent_name: str,
        tasks_checked: int,
        notifications_processed: int,
        error: str,
        now: datetime,
    ) -> None:
        """Best-effort error row; a failure here must not mask the original."""
        try:
            await self._board.heartbeat_logs.record(
                agent_name,
                "error",
                tasks_checked,
                notifications_processed,
                error_message=error,
                now=now,
            )
        except Exception:
            logger.debug("Could not record heartbeat failure for %s", agent_name, exc_info=True)
