"""Notification storage — creation, read-marking, and the dedup predicate.

exists() is the single existence check every daemon pass uses to stay
idempotent. It matches on (target_agent, entity_type, entity_id), and
optionally narrows by notification type and a created-after cutoff.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.agents import AgentManager
from mission.board.schemas import NotificationDetail, NotificationInput, NotificationType
from mission.storage.database import Database
from mission.storage.models import Notification, utcnow

logger = logging.getLogger(__name__)


class NotificationManager:
    """Manages rows in the notifications table."""

    def __init__(self, db: Database, agents: AgentManager) -> None:
        self.db = db
        self._agents = agents

    async def create(
        self,
        input: NotificationInput,
        now: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> NotificationDetail:
        """Store a notification for the roster spelling of target_agent.

        Raises AgentNotFound if the target is not on the roster.
        """
        if session is None:
            async with self.db.session(write=True) as session:
                result = await self._create(input, now or utcnow(), session)
                await session.commit()
                return result
        return await self._create(input, now or utcnow(), session)

    async def _create(self, input: NotificationInput, now: datetime, session: AsyncSession) -> NotificationDetail:
        target = await self._agents.require(input.target_agent, session)
        notification = Notification(
            target_agent=target.name,
            type=input.type,
            title=input.title,
            message=input.message,
            entity_type=input.entity_type,
            entity_id=input.entity_id,
            is_read=False,
            created_at=now,
        )
        session.add(notification)
        # Flush so a following exists() in the same pass sees this row
        await session.flush()
        logger.debug("Created %s notification %d for %s", input.type, notification.id, target.name)
        return self._to_detail(notification)

    async def exists(
        self,
        target_agent: str,
        entity_type: str | None,
        entity_id: str | None,
        type: NotificationType | None = None,
        since: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> bool:
        """True if a matching notification was already created."""
        q = (
            select(Notification.id)
            .where(Notification.target_agent == target_agent)
            .where(Notification.entity_type == entity_type)
            .where(Notification.entity_id == entity_id)
            .limit(1)
        )
        if type is not None:
            q = q.where(Notification.type == type)
        if since is not None:
            q = q.where(Notification.created_at > since)
        if session is None:
            async with self.db.session() as session:
                return (await session.scalar(q)) is not None
        return (await session.scalar(q)) is not None

    async def unread_for_agent(self, agent_name: str, session: AsyncSession | None = None) -> list[NotificationDetail]:
        """Unread notifications in arrival order (oldest first)."""
        q = (
            select(Notification)
            .where(Notification.target_agent == agent_name)
            .where(Notification.is_read.is_(False))
            .order_by(Notification.created_at, Notification.id)
        )
        return await self._fetch(q, session)

    async def list_for_agent(
        self, agent_name: str, unread_only: bool = False, limit: int | None = None
    ) -> list[NotificationDetail]:
        """Notifications for an agent, newest first."""
        q = (
            select(Notification)
            .where(Notification.target_agent == agent_name)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
        )
        if unread_only:
            q = q.where(Notification.is_read.is_(False))
        if limit:
            q = q.limit(limit)
        return await self._fetch(q)

    async def mark_read(self, notification_ids: list[int], session: AsyncSession | None = None) -> int:
        """Mark exactly these notifications read in one statement."""
        if not notification_ids:
            return 0
        stmt = (
            update(Notification)
            .where(Notification.id.in_(notification_ids))
            .where(Notification.is_read.is_(False))
            .values(is_read=True)
        )
        if session is None:
            async with self.db.session(write=True) as session:
                result = await session.execute(stmt)
                await session.commit()
                return result.rowcount
        result = await session.execute(stmt)
        return result.rowcount

    async def mark_all_read(self, agent_name: str) -> int:
        async with self.db.session(write=True) as session:
            result = await session.execute(
                update(Notification)
                .where(Notification.target_agent == agent_name)
                .where(Notification.is_read.is_(False))
                .values(is_read=True)
            )
            await session.commit()
            return result.rowcount

    async def _fetch(self, q, session: AsyncSession | None = None) -> list[NotificationDetail]:
        if session is None:
            async with self.db.session() as session:
                result = await session.execute(q)
                return [self._to_detail(n) for n in result.scalars().all()]
        result = await session.execute(q)
        return [self._to_detail(n) for n in result.scalars().all()]

    def _to_detail(self, notification: Notification) -> NotificationDetail:
        return NotificationDetail(
            id=notification.id,
            target_agent=notification.target_agent,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            entity_type=notification.entity_type,
            entity_id=notification.entity_id,
            is_read=bool(notification.is_read),
            created_at=notification.created_at,
        )
