"""Schema bootstrap and roster provisioning.

Creates every table and index idempotently, then inserts the fixed roster
of ten agents with INSERT ... ON CONFLICT DO NOTHING so re-running never
touches existing agent status or heartbeat state.
"""

from __future__ import annotations

import logging

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncEngine

from mission.storage.models import Agent, Base

logger = logging.getLogger(__name__)

# (name, session_key, role, emoji)
ROSTER: list[tuple[str, str, str, str]] = [
    ("Jarvis", "agent:orchestrator:main", "orchestrator", "🤖"),
    ("Shuri", "agent:engineer:main", "engineer", "🔬"),
    ("Fury", "agent:director:main", "director", "🎯"),
    ("Vision", "agent:analyst:main", "analyst", "📊"),
    ("Loki", "agent:creative:main", "creative", "🎭"),
    ("Quill", "agent:researcher:main", "researcher", "🔍"),
    ("Wanda", "agent:optimizer:main", "optimizer", "⚡"),
    ("Pepper", "agent:manager:main", "manager", "💼"),
    ("Friday", "agent:assistant:main", "assistant", "📅"),
    ("Wong", "agent:librarian:main", "librarian", "📚"),
]


async def init_schema(engine: AsyncEngine) -> None:
    """Create all tables and indexes that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema ready")


async def seed_roster(engine: AsyncEngine, roster: list[tuple[str, str, str, str]] | None = None) -> int:
    """Insert roster agents that are missing. Returns number inserted."""
    rows = [
        {"name": name, "session_key": key, "role": role, "emoji": emoji, "status": "idle"}
        for name, key, role, emoji in (roster if roster is not None else ROSTER)
    ]
    if not rows:
        return 0
    stmt = sqlite_insert(Agent.__table__).values(rows).on_conflict_do_nothing()
    async with engine.begin() as conn:
        result = await conn.execute(stmt)
    inserted = max(result.rowcount or 0, 0)
    logger.info("Roster seeded: %d new agent(s)", inserted)
    return inserted
