"""Append-only per-invocation heartbeat records."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.schemas import HeartbeatLogDetail, HeartbeatStatus
from mission.storage.database import Database
from mission.storage.models import HeartbeatLog, utcnow


class HeartbeatLogManager:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def record(
        self,
        agent_name: str,
        status: HeartbeatStatus,
        tasks_checked: int = 0,
        notifications_processed: int = 0,
        error_message: str | None = None,
        now: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> HeartbeatLogDetail:
        log = HeartbeatLog(
            agent_name=agent_name,
            status=status,
            tasks_checked=tasks_checked,
            notifications_processed=notifications_processed,
            error_message=error_message,
            timestamp=now or utcnow(),
        )
        if session is None:
            async with self.db.session(write=True) as session:
                session.add(log)
                await session.commit()
        else:
            session.add(log)
            await session.flush()
        return self._to_detail(log)

    async def recent(self, agent_name: str, limit: int = 20) -> list[HeartbeatLogDetail]:
        """Most recent heartbeat records for an agent, newest first."""
        async with self.db.session() as session:
            result = await session.scalars(
                select(HeartbeatLog)
                .where(HeartbeatLog.agent_name == agent_name)
                .order_by(HeartbeatLog.timestamp.desc(), HeartbeatLog.id.desc())
                .limit(limit)
            )
            return [self._to_detail(log) for log in result.all()]

    def _to_detail(self, log: HeartbeatLog) -> HeartbeatLogDetail:
        return HeartbeatLogDetail(
            id=log.id,
            agent_name=log.agent_name,
            status=log.status,
            tasks_checked=log.tasks_checked,
            notifications_processed=log.notifications_processed,
            error_message=log.error_message,
            timestamp=log.timestamp,
        )
