"""Thread messages. Immutable once posted; mentions are re-derived from content."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.activities import ActivityManager
from mission.board.agents import AgentManager
from mission.board.schemas import MessageDetail
from mission.storage.database import Database
from mission.storage.models import Message, utcnow
from mission.utils import extract_mentions

logger = logging.getLogger(__name__)


class MessageManager:
    def __init__(self, db: Database, agents: AgentManager, activities: ActivityManager) -> None:
        self.db = db
        self._agents = agents
        self._activities = activities

    async def post(
        self,
        thread_id: str,
        agent_name: str,
        content: str,
        reply_to: int | None = None,
        now: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> MessageDetail:
        """Store a message and record a message_sent activity on its thread."""
        if session is None:
            async with self.db.session(write=True) as session:
                result = await self._post(thread_id, agent_name, content, reply_to, now or utcnow(), session)
                await session.commit()
                return result
        return await self._post(thread_id, agent_name, content, reply_to, now or utcnow(), session)

    async def _post(
        self,
        thread_id: str,
        agent_name: str,
        content: str,
        reply_to: int | None,
        now: datetime,
        session: AsyncSession,
    ) -> MessageDetail:
        author = await self._agents.require(agent_name, session)
        message = Message(
            thread_id=thread_id,
            agent_name=author.name,
            content=content,
            mentions=[f"@{token}" for token in extract_mentions(content)],
            reply_to=reply_to,
            created_at=now,
        )
        session.add(message)
        await session.flush()

        await self._activities.record(
            author.name,
            "message_sent",
            "thread",
            thread_id,
            description=f"Message {message.id} in thread {thread_id}",
            now=now,
            session=session,
        )
        return self._to_detail(message)

    async def since(self, cutoff: datetime, session: AsyncSession | None = None) -> list[MessageDetail]:
        """Messages strictly newer than cutoff, oldest first."""
        q = select(Message).where(Message.created_at > cutoff).order_by(Message.created_at, Message.id)
        return await self._fetch(q, session)

    async def thread(self, thread_id: str) -> list[MessageDetail]:
        q = select(Message).where(Message.thread_id == thread_id).order_by(Message.created_at, Message.id)
        return await self._fetch(q)

    async def _fetch(self, q, session: AsyncSession | None = None) -> list[MessageDetail]:
        if session is None:
            async with self.db.session() as session:
                result = await session.execute(q)
                return [self._to_detail(m) for m in result.scalars().all()]
        result = await session.execute(q)
        return [self._to_detail(m) for m in result.scalars().all()]

    def _to_detail(self, message: Message) -> MessageDetail:
        return MessageDetail(
            id=message.id,
            thread_id=message.thread_id,
            agent_name=message.agent_name,
            content=message.content,
            mentions=message.mentions or [],
            reply_to=message.reply_to,
            created_at=message.created_at,
        )
