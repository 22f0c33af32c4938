"""Subscriptions: 'notify me about activity on this entity'."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.agents import AgentManager
from mission.board.schemas import SubscriptionDetail
from mission.storage.database import Database
from mission.storage.models import Subscription, utcnow

logger = logging.getLogger(__name__)


class SubscriptionManager:
    def __init__(self, db: Database, agents: AgentManager) -> None:
        self.db = db
        self._agents = agents

    async def subscribe(self, agent_name: str, target_type: str, target_id: str) -> SubscriptionDetail:
        """Idempotent: subscribing twice returns the existing row."""
        async with self.db.session(write=True) as session:
            agent = await self._agents.require(agent_name, session)
            await session.execute(
                sqlite_insert(Subscription)
                .values(
                    agent_name=agent.name,
                    target_type=target_type,
                    target_id=str(target_id),
                    created_at=utcnow(),
                )
                .on_conflict_do_nothing(index_elements=["agent_name", "target_type", "target_id"])
            )
            sub = await session.scalar(
                select(Subscription)
                .where(Subscription.agent_name == agent.name)
                .where(Subscription.target_type == target_type)
                .where(Subscription.target_id == str(target_id))
            )
            await session.commit()
        logger.debug("%s subscribed to %s:%s", agent.name, target_type, target_id)
        return self._to_detail(sub)

    async def unsubscribe(self, agent_name: str, target_type: str, target_id: str) -> bool:
        async with self.db.session(write=True) as session:
            agent = await self._agents.require(agent_name, session)
            result = await session.execute(
                delete(Subscription)
                .where(Subscription.agent_name == agent.name)
                .where(Subscription.target_type == target_type)
                .where(Subscription.target_id == str(target_id))
            )
            await session.commit()
            return result.rowcount > 0

    async def subscribers(
        self, target_type: str, target_id: str, session: AsyncSession | None = None
    ) -> list[str]:
        """Agent names subscribed to an entity."""
        q = (
            select(Subscription.agent_name)
            .where(Subscription.target_type == target_type)
            .where(Subscription.target_id == str(target_id))
            .order_by(Subscription.id)
        )
        if session is None:
            async with self.db.session() as session:
                return list((await session.scalars(q)).all())
        return list((await session.scalars(q)).all())

    async def for_agent(self, agent_name: str) -> list[SubscriptionDetail]:
        async with self.db.session() as session:
            result = await session.scalars(
                select(Subscription)
                .where(Subscription.agent_name == agent_name)
                .order_by(Subscription.created_at, Subscription.id)
            )
            return [self._to_detail(s) for s in result.all()]

    def _to_detail(self, sub: Subscription) -> SubscriptionDetail:
        return SubscriptionDetail(
            id=sub.id,
            agent_name=sub.agent_name,
            target_type=sub.target_type,
            target_id=sub.target_id,
            created_at=sub.created_at,
        )
