"""Notification Daemon — fans recent activity out into notifications.

Runs on a short fixed interval with no persisted cursor. Each pass rescans
a trailing window and skips anything an existing notification already
covers, so any number of overlapping or repeated runs converge on the same
set of rows:

1. Mentions: @name tokens in recent messages
2. Subscriptions: recent activity on subscribed entities
3. System alerts: overdue tasks, and offline agents (to the coordinator)

Each pass commits in its own BEGIN IMMEDIATE transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.board import Board
from mission.board.schemas import DaemonResult, NotificationInput
from mission.config import Settings
from mission.storage.models import utcnow
from mission.utils import extract_mentions, truncate

logger = logging.getLogger(__name__)

OFFLINE_CHECK_ENTITY = ("system_check", "offline_agents")


@dataclass(frozen=True)
class DedupWindows:
    """Time spans the daemon uses to decide what to rescan and what is a duplicate.

    mention/activity: trailing scan windows. A row older than the window at
    the moment of a run is never looked at again, so a run skipped for
    longer than the window can miss it.
    alert: rolling window inside which an overdue or offline alert is not
    repeated.
    offline_threshold: heartbeat age after which an agent counts as offline.
    """

    mention: timedelta = timedelta(minutes=5)
    activity: timedelta = timedelta(minutes=5)
    alert: timedelta = timedelta(hours=24)
    offline_threshold: timedelta = timedelta(hours=1)

    @classmethod
    def from_settings(cls, settings: Settings) -> DedupWindows:
        return cls(
            mention=timedelta(seconds=settings.mention_window_seconds),
            activity=timedelta(seconds=settings.activity_window_seconds),
            alert=timedelta(seconds=settings.alert_window_seconds),
            offline_threshold=timedelta(seconds=settings.offline_threshold_seconds),
        )


class NotificationDaemon:
    """Creates mention, subscription, alert and system notifications."""

    def __init__(self, board: Board, settings: Settings, windows: DedupWindows | None = None) -> None:
        self._board = board
        self._settings = settings
        self.windows = windows or DedupWindows.from_settings(settings)

    async def run(self, now: datetime | None = None) -> DaemonResult:
        """Run all three passes. Never raises; failures land in the result."""
        now = now or utcnow()
        result = DaemonResult(success=True)
        logger.info("Notification daemon started at %s", now.isoformat())

        try:
            result.mentions = await self.process_mentions(now)
            result.subscriptions = await self.process_subscriptions(now)
            result.alerts = await self.process_system_alerts(now)
        except Exception as exc:
            logger.exception("Notification daemon failed")
            result.success = False
            result.message = str(exc)

        result.notifications_created = result.mentions + result.subscriptions + result.alerts
        if result.success:
            result.message = f"{result.notifications_created} notifications created"
            logger.info("Notification daemon complete: %s", result.message)
        return result

    # ------------------------------------------------------------------
    # Mentions
    # ------------------------------------------------------------------

    async def process_mentions(self, now: datetime) -> int:
        cutoff = now - self.windows.mention
        created = 0

        async with self._board.db.session(write=True) as session:
            roster = {a.name.lower(): a.name for a in await self._board.agents.list(session)}
            messages = await self._board.messages.since(cutoff, session)
            logger.info("Mentions: %d recent message(s)", len(messages))

            for message in messages:
                for token in extract_mentions(message.content):
                    target = roster.get(token.lower())
                    if target is None:
                        logger.debug("Message %d: @%s is not an agent", message.id, token)
                        continue
                    if await self._board.notifications.exists(
                        target, "message", str(message.id), session=session
                    ):
                        continue

                    await self._board.notifications.create(
                        NotificationInput(
                            target_agent=target,
                            type="mention",
                            title=f"You were mentioned by {message.agent_name}",
                            message=truncate(message.content, self._settings.mention_preview_chars),
                            entity_type="message",
                            entity_id=str(message.id),
                        ),
                        now=now,
                        session=session,
                    )
                    created += 1
                    logger.info("Message %d: notified @%s", message.id, target)

            await session.commit()

        logger.info("Created %d mention notification(s)", created)
        return created

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def process_subscriptions(self, now: datetime) -> int:
        cutoff = now - self.windows.activity
        created = 0

        async with self._board.db.session(write=True) as session:
            activities = await self._board.activities.since(cutoff, session)
            logger.info("Subscriptions: %d recent activities", len(activities))

            for activity in activities:
                subscribers = await self._board.subscriptions.subscribers(
                    activity.entity_type, activity.entity_id, session
                )
                for subscriber in subscribers:
                    # No self-notification
                    if subscriber.lower() == activity.agent_name.lower():
                        continue
                    # One notification per entity per subscriber, not per event
                    if await self._board.notifications.exists(
                        subscriber, activity.entity_type, activity.entity_id, session=session
                    ):
                        continue

                    await self._board.notifications.create(
                        NotificationInput(
                            target_agent=subscriber,
                            type="subscription",
                            title=f"Activity update: {activity.action_type}",
                            message=(
                                f"{activity.agent_name} performed {activity.action_type} "
                                f"on {activity.entity_type}:{activity.entity_id}"
                            ),
                            entity_type=activity.entity_type,
                            entity_id=activity.entity_id,
                        ),
                        now=now,
                        session=session,
                    )
                    created += 1
                    logger.info("Activity %d: notified %s", activity.id, subscriber)

            await session.commit()

        logger.info("Created %d subscription notification(s)", created)
        return created

    # ------------------------------------------------------------------
    # System alerts
    # ------------------------------------------------------------------

    async def process_system_alerts(self, now: datetime) -> int:
        async with self._board.db.session(write=True) as session:
            created = await self._alert_overdue_tasks(now, session)
            created += await self._alert_offline_agents(now, session)
            await session.commit()

        logger.info("Created %d system alert notification(s)", created)
        return created

    async def _alert_overdue_tasks(self, now: datetime, session: AsyncSession) -> int:
        alert_cutoff = now - self.windows.alert
        overdue = await self._board.tasks.overdue(now, session)
        logger.info("Alerts: %d overdue task(s)", len(overdue))

        created = 0
        for task in overdue:
            if await self._board.notifications.exists(
                task.assigned_agent, "task", str(task.id), type="alert", since=alert_cutoff, session=session
            ):
                continue
            await self._board.notifications.create(
                NotificationInput(
                    target_agent=task.assigned_agent,
                    type="alert",
                    title="⚠️ Overdue Task Alert",
                    message=f'Task "{task.title}" was due on {task.due_date.isoformat()}',
                    entity_type="task",
                    entity_id=str(task.id),
                ),
                now=now,
                session=session,
            )
            created += 1
            logger.info("Alerted %s about overdue task %d", task.assigned_agent, task.id)
        return created

    async def _alert_offline_agents(self, now: datetime, session: AsyncSession) -> int:
        offline = await self._board.agents.offline(now, self.windows.offline_threshold, session)
        logger.info("Alerts: %d offline agent(s)", len(offline))
        if not offline:
            return 0

        coordinator = await self._board.agents.get_by_name(self._settings.coordinator_agent, session)
        if coordinator is None:
            logger.warning("Coordinator %r is not on the roster; offline alert skipped",
                           self._settings.coordinator_agent)
            return 0

        # Computed here, independently of the overdue-task window
        alert_cutoff = now - self.windows.alert
        entity_type, entity_id = OFFLINE_CHECK_ENTITY
        if await self._board.notifications.exists(
            coordinator.name, entity_type, entity_id, type="system", since=alert_cutoff, session=session
        ):
            return 0

        names = ", ".join(a.name for a in offline)
        hours = self.windows.offline_threshold.total_seconds() / 3600
        await self._board.notifications.create(
            NotificationInput(
                target_agent=coordinator.name,
                type="system",
                title="🔴 Offline Agents Detected",
                message=f"The following agents haven't sent a heartbeat in over {hours:g} hour(s): {names}",
                entity_type=entity_type,
                entity_id=entity_id,
            ),
            now=now,
            session=session,
        )
        logger.info("Notified %s about %d offline agent(s)", coordinator.name, len(offline))
        return 1
