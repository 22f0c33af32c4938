"""Async database engine and session management for the shared SQLite store.

Every invocation builds its own Database, works, and disposes it: NullPool
means no DBAPI connection outlives the session that opened it.

Each new connection is configured for multi-writer safety:
  - journal_mode=WAL so readers and the single writer never block each other
  - busy_timeout so a blocked writer retries for a bounded time
  - foreign_keys=ON so ON DELETE SET NULL / CASCADE are enforced

pysqlite's implicit BEGIN is disabled and SQLAlchemy's begin event emits the
transaction start itself: plain BEGIN for read sessions, BEGIN IMMEDIATE for
write sessions so the write lock is taken up front instead of on upgrade.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from mission.config import Settings

_REQUIRED_TABLES = {
    "agents",
    "tasks",
    "messages",
    "notifications",
    "subscriptions",
    "activities",
    "heartbeat_logs",
    "daily_summaries",
}

_WRITE_FLAG = "mission_begin_immediate"


def _install_sqlite_hooks(engine: AsyncEngine, busy_timeout_ms: int) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        # Hand transaction control to the begin hook below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        if conn.info.get(_WRITE_FLAG):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


class Database:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.engine = create_async_engine(
            settings.db_url,
            poolclass=NullPool,
            connect_args={"timeout": settings.busy_timeout_ms / 1000},
            echo=settings.log_level == "debug",
        )
        _install_sqlite_hooks(self.engine, settings.busy_timeout_ms)

    async def connect(self) -> None:
        """Verify the store file is reachable and the schema is present."""
        async with self.engine.connect() as conn:
            result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'table'"))
            tables = {row[0] for row in result}
        missing = _REQUIRED_TABLES - tables
        if missing:
            raise RuntimeError(f"Missing database tables: {sorted(missing)} (run `mission init-db`)")

    async def disconnect(self) -> None:
        """Dispose of the engine; no connection survives the invocation."""
        await self.engine.dispose()

    @asynccontextmanager
    async def session(self, write: bool = False) -> AsyncIterator[AsyncSession]:
        """Yield a session on its own connection.

        write=True makes every transaction on this session start with
        BEGIN IMMEDIATE. Callers commit explicitly; anything uncommitted is
        rolled back when the block exits.
        """
        async with self.engine.connect() as conn:
            conn.sync_connection.info[_WRITE_FLAG] = write
            async with AsyncSession(bind=conn, expire_on_commit=False) as session:
                yield session

    async def __aenter__(self) -> "Database":
        await self.connect()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.disconnect()
