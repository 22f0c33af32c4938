"""Agent roster access — lookup, liveness updates, and status statistics.

Agent names are unique case-insensitively; every lookup goes through
LOWER(name) so callers may pass 'shuri', 'Shuri' or 'SHURI'.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.schemas import AgentDetail, AgentStats, AgentStatus
from mission.storage.database import Database
from mission.storage.models import Agent, utcnow

logger = logging.getLogger(__name__)


class AgentNotFound(ValueError):
    """Raised when a name does not resolve to a roster agent."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Agent "{name}" not found in database')
        self.name = name


class AgentManager:
    """Reads and liveness writes for the agents table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get_by_name(self, name: str, session: AsyncSession | None = None) -> AgentDetail | None:
        """Case-insensitive lookup. Returns None if absent."""
        if session is None:
            async with self.db.session() as session:
                return await self._get_by_name(name, session)
        return await self._get_by_name(name, session)

    async def _get_by_name(self, name: str, session: AsyncSession) -> AgentDetail | None:
        agent = await session.scalar(select(Agent).where(func.lower(Agent.name) == name.lower()))
        return self._to_detail(agent) if agent is not None else None

    async def require(self, name: str, session: AsyncSession | None = None) -> AgentDetail:
        """Like get_by_name but raises AgentNotFound."""
        agent = await self.get_by_name(name, session)
        if agent is None:
            raise AgentNotFound(name)
        return agent

    async def list(self, session: AsyncSession | None = None) -> list[AgentDetail]:
        """All agents ordered by name."""
        if session is None:
            async with self.db.session() as session:
                return await self._list(session)
        return await self._list(session)

    async def _list(self, session: AsyncSession) -> list[AgentDetail]:
        result = await session.execute(select(Agent).order_by(Agent.name))
        return [self._to_detail(a) for a in result.scalars().all()]

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    async def update_status(self, name: str, status: AgentStatus, session: AsyncSession | None = None) -> bool:
        """Set status only. Returns False if no such agent."""
        if session is None:
            async with self.db.session(write=True) as session:
                changed = await self._update(name, session, status=status, updated_at=utcnow())
                await session.commit()
                return changed
        return await self._update(name, session, status=status, updated_at=utcnow())

    async def record_heartbeat(
        self,
        name: str,
        status: AgentStatus,
        now: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> bool:
        """Set status and stamp last_heartbeat."""
        now = now or utcnow()
        if session is None:
            async with self.db.session(write=True) as session:
                changed = await self._update(name, session, status=status, last_heartbeat=now, updated_at=now)
                await session.commit()
                return changed
        return await self._update(name, session, status=status, last_heartbeat=now, updated_at=now)

    async def _update(self, name: str, session: AsyncSession, **values) -> bool:
        result = await session.execute(
            update(Agent).where(func.lower(Agent.name) == name.lower()).values(**values)
        )
        return result.rowcount > 0

    async def offline(
        self,
        now: datetime,
        threshold: timedelta,
        session: AsyncSession | None = None,
    ) -> list[AgentDetail]:
        """Agents whose last heartbeat is older than threshold, or missing."""
        if session is None:
            async with self.db.session() as session:
                return await self._offline(now, threshold, session)
        return await self._offline(now, threshold, session)

    async def _offline(self, now: datetime, threshold: timedelta, session: AsyncSession) -> list[AgentDetail]:
        cutoff = now - threshold
        result = await session.execute(
            select(Agent)
            .where(or_(Agent.last_heartbeat.is_(None), Agent.last_heartbeat < cutoff))
            .order_by(Agent.name)
        )
        return [self._to_detail(a) for a in result.scalars().all()]

    async def stats(self, now: datetime | None = None, threshold: timedelta = timedelta(hours=1)) -> AgentStats:
        """Roster counts. Online = working + recently-seen idle agents."""
        now = now or utcnow()
        agents = await self.list()
        cutoff = now - threshold
        stats = AgentStats(total=len(agents))
        for agent in agents:
            seen = agent.last_heartbeat is not None and agent.last_heartbeat >= cutoff
            if agent.status == "working":
                stats.working += 1
            elif agent.status == "idle" and seen:
                stats.idle += 1
            if not seen:
                stats.offline += 1
        stats.online = stats.working + stats.idle
        return stats

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_detail(self, agent: Agent) -> AgentDetail:
        return AgentDetail(
            id=agent.id,
            name=agent.name,
            session_key=agent.session_key,
            role=agent.role,
            emoji=agent.emoji,
            status=agent.status,
            last_heartbeat=agent.last_heartbeat,
            created_at=agent.created_at,
            updated_at=agent.updated_at,
        )
