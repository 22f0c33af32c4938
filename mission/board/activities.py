"""Append-only activity feed. Rows are never updated or deleted."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.schemas import ActivityDetail
from mission.storage.database import Database
from mission.storage.models import Activity, utcnow


class ActivityManager:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def record(
        self,
        agent_name: str,
        action_type: str,
        entity_type: str,
        entity_id: str,
        description: str | None = None,
        metadata: dict | None = None,
        now: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> ActivityDetail:
        activity = Activity(
            agent_name=agent_name,
            action_type=action_type,
            entity_type=entity_type,
            entity_id=str(entity_id),
            description=description,
            metadata_=metadata,
            created_at=now or utcnow(),
        )
        if session is None:
            async with self.db.session(write=True) as session:
                session.add(activity)
                await session.commit()
        else:
            session.add(activity)
            await session.flush()
        return self._to_detail(activity)

    async def since(self, cutoff: datetime, session: AsyncSession | None = None) -> list[ActivityDetail]:
        """Activities strictly newer than cutoff, oldest first."""
        q = select(Activity).where(Activity.created_at > cutoff).order_by(Activity.created_at, Activity.id)
        return await self._fetch(q, session)

    async def between(
        self, start: datetime, end: datetime, session: AsyncSession | None = None
    ) -> list[ActivityDetail]:
        """Activities in [start, end), newest first."""
        q = (
            select(Activity)
            .where(Activity.created_at >= start)
            .where(Activity.created_at < end)
            .order_by(Activity.created_at.desc(), Activity.id.desc())
        )
        return await self._fetch(q, session)

    async def _fetch(self, q, session: AsyncSession | None) -> list[ActivityDetail]:
        if session is None:
            async with self.db.session() as session:
                result = await session.execute(q)
                return [self._to_detail(a) for a in result.scalars().all()]
        result = await session.execute(q)
        return [self._to_detail(a) for a in result.scalars().all()]

    def _to_detail(self, activity: Activity) -> ActivityDetail:
        return ActivityDetail(
            id=activity.id,
            agent_name=activity.agent_name,
            action_type=activity.action_type,
            entity_type=activity.entity_type,
            entity_id=activity.entity_id,
            description=activity.description,
            metadata=activity.metadata_,
            created_at=activity.created_at,
        )
