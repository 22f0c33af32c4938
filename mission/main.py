"""Mission Control entry point.

Every subcommand is one short-lived invocation:
  Settings -> Database (verify schema) -> Board -> handler -> dispose

  mission heartbeat <agent>   one work-pickup pass for one agent
  mission notify              one notification daemon pass
  mission standup             daily summary for today
  mission init-db             create schema and seed the roster
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from mission.board import Board
from mission.board.schemas import DaemonResult, HeartbeatResult, StandupResult
from mission.config import Settings
from mission.handlers.daily_standup import DailyStandup
from mission.handlers.heartbeat import HeartbeatProcessor
from mission.handlers.notification_daemon import NotificationDaemon
from mission.storage.database import Database
from mission.storage.seed import init_schema, seed_roster

logger = logging.getLogger(__name__)


async def init_db(settings: Settings | None = None) -> int:
    """Create tables and insert missing roster agents. Returns agents inserted."""
    settings = settings or Settings()
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    database = Database(settings)
    try:
        await init_schema(database.engine)
        return await seed_roster(database.engine)
    finally:
        await database.disconnect()


async def heartbeat(agent: str, settings: Settings | None = None) -> HeartbeatResult:
    settings = settings or Settings()
    try:
        async with Database(settings) as database:
            return await HeartbeatProcessor(Board(database), settings).run(agent)
    except Exception as exc:
        logger.exception("Heartbeat for %s could not start", agent)
        return HeartbeatResult(agent_name=agent, success=False, message=str(exc))


async def notification_daemon(settings: Settings | None = None) -> DaemonResult:
    settings = settings or Settings()
    try:
        async with Database(settings) as database:
            return await NotificationDaemon(Board(database), settings).run()
    except Exception as exc:
        logger.exception("Notification daemon could not start")
        return DaemonResult(success=False, message=str(exc))


async def daily_aggregate(settings: Settings | None = None) -> StandupResult:
    settings = settings or Settings()
    try:
        async with Database(settings) as database:
            return await DailyStandup(Board(database), settings).run()
    except Exception as exc:
        logger.exception("Daily standup could not start")
        return StandupResult(success=False, message=str(exc))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mission", description="Mission Control coordination jobs")
    commands = parser.add_subparsers(dest="command", required=True)

    hb = commands.add_parser("heartbeat", help="Run one heartbeat for an agent")
    hb.add_argument("agent", help="Agent name (case-insensitive)")

    commands.add_parser("notify", help="Run one notification daemon pass")
    commands.add_parser("standup", help="Generate today's standup summary")
    commands.add_parser("init-db", help="Create the schema and seed the agent roster")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point — parse args, configure logging, run one job, exit 0/1."""
    args = build_parser().parse_args(argv)
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    logger.info("Database: %s", settings.db_path)

    if args.command == "init-db":
        inserted = asyncio.run(init_db(settings))
        logger.info("Database initialized at %s (%d agent(s) added)", settings.db_path, inserted)
        sys.exit(0)

    if args.command == "heartbeat":
        result = asyncio.run(heartbeat(args.agent, settings))
    elif args.command == "notify":
        result = asyncio.run(notification_daemon(settings))
    else:
        result = asyncio.run(daily_aggregate(settings))

    if not result.success:
        logger.error("%s failed: %s", args.command, result.message)
    sys.exit(0 if result.success else 1)


if __name__ == "__main__":
    main()
