"""Daily standup summaries, one row per calendar date."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.schemas import DailySummaryDetail
from mission.storage.database import Database
from mission.storage.models import DailySummary, utcnow

logger = logging.getLogger(__name__)


class SummaryManager:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def upsert(
        self,
        date: str,
        summary_text: str,
        tasks_completed: int,
        tasks_created: int,
        active_agents: int,
        metadata: dict | None = None,
        now: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> None:
        """Insert the row for date, or replace every field of the existing one."""
        values = {
            "summary_text": summary_text,
            "tasks_completed": tasks_completed,
            "tasks_created": tasks_created,
            "active_agents": active_agents,
            "metadata": metadata,
            "created_at": now or utcnow(),
        }
        stmt = sqlite_insert(DailySummary.__table__).values(date=date, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["date"],
            set_={key: stmt.excluded[key] for key in values},
        )
        if session is None:
            async with self.db.session(write=True) as session:
                await session.execute(stmt)
                await session.commit()
        else:
            await session.execute(stmt)
        logger.debug("Upserted daily summary for %s", date)

    async def get(self, date: str) -> DailySummaryDetail | None:
        async with self.db.session() as session:
            row = await session.scalar(select(DailySummary).where(DailySummary.date == date))
        if row is None:
            return None
        return DailySummaryDetail(
            id=row.id,
            date=row.date,
            summary_text=row.summary_text,
            tasks_completed=row.tasks_completed,
            tasks_created=row.tasks_created,
            active_agents=row.active_agents,
            metadata=row.metadata_,
            created_at=row.created_at,
        )
