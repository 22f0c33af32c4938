"""Task management — CRUD, the agent work queue, and report queries.

Priority is stored as text, so ordering uses an explicit rank
(critical > high > medium > low) rather than lexical order.

completed_at is sticky: it is stamped on the first transition into
'completed' and never cleared or moved by later edits, including a
reopen-then-complete cycle.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mission.board.activities import ActivityManager
from mission.board.agents import AgentManager
from mission.board.schemas import (
    OPEN_TASK_STATUSES,
    PRIORITY_RANK,
    TERMINAL_TASK_STATUSES,
    TaskDetail,
    TaskFilters,
    TaskInput,
    TaskStats,
    TaskUpdate,
)
from mission.storage.database import Database
from mission.storage.models import Task, utcnow

logger = logging.getLogger(__name__)

PRIORITY_ORDER = case(PRIORITY_RANK, value=Task.priority, else_=0)

# Most urgent first, then oldest first; id breaks exact timestamp ties
WORK_QUEUE_ORDER = (PRIORITY_ORDER.desc(), Task.created_at.asc(), Task.id.asc())


class TaskManager:
    """Manages rows in the tasks table."""

    def __init__(self, db: Database, agents: AgentManager, activities: ActivityManager) -> None:
        self.db = db
        self._agents = agents
        self._activities = activities

    # ------------------------------------------------------------------
    # create()
    # ------------------------------------------------------------------

    async def create(
        self,
        input: TaskInput,
        now: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> TaskDetail:
        """Create a task and record a task_created activity for its creator."""
        if session is None:
            async with self.db.session(write=True) as session:
                result = await self._create(input, now or utcnow(), session)
                await session.commit()
                return result
        return await self._create(input, now or utcnow(), session)

    async def _create(self, input: TaskInput, now: datetime, session: AsyncSession) -> TaskDetail:
        assignee = await self._resolve_assignee(input.assigned_agent, session)
        task = Task(
            title=input.title,
            description=input.description,
            status=input.status,
            priority=input.priority,
            assigned_agent=assignee,
            created_by=input.created_by,
            due_date=input.due_date,
            completed_at=now if input.status == "completed" else None,
            metadata_=input.metadata,
            created_at=now,
            updated_at=now,
        )
        session.add(task)
        await session.flush()

        await self._activities.record(
            input.created_by,
            "task_created",
            "task",
            str(task.id),
            description=f"Created task: {task.title}",
            now=now,
            session=session,
        )
        logger.info("Created task %d [%s]: %s", task.id, task.priority, task.title[:80])
        return self._to_detail(task)

    # ------------------------------------------------------------------
    # update()
    # ------------------------------------------------------------------

    async def update(
        self,
        task_id: int,
        changes: TaskUpdate,
        actor: str = "system",
        now: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> TaskDetail | None:
        """Apply the explicitly-set fields of changes. Returns None if missing."""
        if session is None:
            async with self.db.session(write=True) as session:
                result = await self._update(task_id, changes, actor, now or utcnow(), session)
                await session.commit()
                return result
        return await self._update(task_id, changes, actor, now or utcnow(), session)

    async def _update(
        self,
        task_id: int,
        changes: TaskUpdate,
        actor: str,
        now: datetime,
        session: AsyncSession,
    ) -> TaskDetail | None:
        task = await session.get(Task, task_id)
        if task is None:
            return None

        fields = changes.model_dump(exclude_unset=True)
        if not fields:
            return self._to_detail(task)

        if "assigned_agent" in fields:
            fields["assigned_agent"] = await self._resolve_assignee(fields["assigned_agent"], session)
        if "metadata" in fields:
            fields["metadata_"] = fields.pop("metadata")

        for key, value in fields.items():
            setattr(task, key, value)

        if fields.get("status") == "completed" and task.completed_at is None:
            task.completed_at = now
        task.updated_at = now
        await session.flush()

        await self._activities.record(
            actor,
            "task_updated",
            "task",
            str(task.id),
            description=f"Updated task: {task.title}",
            now=now,
            session=session,
        )
        return self._to_detail(task)

    async def delete(self, task_id: int) -> bool:
        async with self.db.session(write=True) as session:
            result = await session.execute(delete(Task).where(Task.id == task_id))
            await session.commit()
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, task_id: int, session: AsyncSession | None = None) -> TaskDetail | None:
        if session is None:
            async with self.db.session() as session:
                task = await session.get(Task, task_id)
        else:
            task = await session.get(Task, task_id)
        return self._to_detail(task) if task is not None else None

    async def list(self, filters: TaskFilters | None = None, limit: int | None = None) -> list[TaskDetail]:
        """List tasks newest first, optionally filtered."""
        q = select(Task).order_by(Task.created_at.desc(), Task.id.desc())
        if filters is not None:
            if filters.status:
                q = q.where(Task.status == filters.status)
            if filters.assigned_agent:
                q = q.where(func.lower(Task.assigned_agent) == filters.assigned_agent.lower())
            if filters.priority:
                q = q.where(Task.priority == filters.priority)
            if filters.created_by:
                q = q.where(Task.created_by == filters.created_by)
        if limit:
            q = q.limit(limit)
        return await self._fetch(q)

    async def open_for_agent(self, agent_name: str, session: AsyncSession | None = None) -> list[TaskDetail]:
        """Pending and in-progress work for an agent, most urgent then oldest first."""
        q = (
            select(Task)
            .where(Task.assigned_agent == agent_name)
            .where(Task.status.in_(OPEN_TASK_STATUSES))
            .order_by(*WORK_QUEUE_ORDER)
        )
        return await self._fetch(q, session)

    async def overdue(self, now: datetime, session: AsyncSession | None = None) -> list[TaskDetail]:
        """Assigned, unfinished tasks whose due date has passed."""
        q = (
            select(Task)
            .where(Task.due_date < now)
            .where(Task.status.not_in(TERMINAL_TASK_STATUSES))
            .where(Task.assigned_agent.is_not(None))
            .order_by(Task.due_date, Task.id)
        )
        return await self._fetch(q, session)

    async def completed_between(
        self, start: datetime, end: datetime, session: AsyncSession | None = None
    ) -> list[TaskDetail]:
        """Tasks whose completed_at is in [start, end), latest first."""
        q = (
            select(Task)
            .where(Task.completed_at >= start)
            .where(Task.completed_at < end)
            .order_by(Task.completed_at.desc(), Task.id.desc())
        )
        return await self._fetch(q, session)

    async def created_between(
        self, start: datetime, end: datetime, session: AsyncSession | None = None
    ) -> list[TaskDetail]:
        """Tasks whose created_at is in [start, end), newest first."""
        q = (
            select(Task)
            .where(Task.created_at >= start)
            .where(Task.created_at < end)
            .order_by(Task.created_at.desc(), Task.id.desc())
        )
        return await self._fetch(q, session)

    async def high_priority_open(self, session: AsyncSession | None = None) -> list[TaskDetail]:
        """Point-in-time snapshot of unfinished high/critical tasks."""
        q = (
            select(Task)
            .where(Task.priority.in_(("high", "critical")))
            .where(Task.status.not_in(TERMINAL_TASK_STATUSES))
            .order_by(*WORK_QUEUE_ORDER)
        )
        return await self._fetch(q, session)

    async def stats(self) -> TaskStats:
        async with self.db.session() as session:
            row = (
                await session.execute(
                    select(
                        func.count(Task.id),
                        func.sum(case((Task.status == "pending", 1), else_=0)),
                        func.sum(case((Task.status == "in_progress", 1), else_=0)),
                        func.sum(case((Task.status == "completed", 1), else_=0)),
                        func.sum(case((Task.status == "blocked", 1), else_=0)),
                        func.sum(case((Task.priority == "critical", 1), else_=0)),
                        func.sum(case((Task.priority == "high", 1), else_=0)),
                    )
                )
            ).one()
        total, pending, in_progress, completed, blocked, critical, high = (v or 0 for v in row)
        return TaskStats(
            total=total,
            pending=pending,
            in_progress=in_progress,
            completed=completed,
            blocked=blocked,
            critical=critical,
            high=high,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch(self, q, session: AsyncSession | None = None) -> list[TaskDetail]:
        if session is None:
            async with self.db.session() as session:
                result = await session.execute(q)
                return [self._to_detail(t) for t in result.scalars().all()]
        result = await session.execute(q)
        return [self._to_detail(t) for t in result.scalars().all()]

    async def _resolve_assignee(self, name: str | None, session: AsyncSession) -> str | None:
        """Canonicalize an assignee to the roster spelling; raises AgentNotFound."""
        if name is None:
            return None
        agent = await self._agents.require(name, session)
        return agent.name

    def _to_detail(self, task: Task) -> TaskDetail:
        return TaskDetail(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            assigned_agent=task.assigned_agent,
            created_by=task.created_by,
            due_date=task.due_date,
            completed_at=task.completed_at,
            metadata=task.metadata_,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )
