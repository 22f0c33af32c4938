"""Main Board class — the store access layer for the coordination engine.

Composes one manager per table. Managers accept an optional session so a
handler can run several of them inside one transaction; without one each
call opens, commits, and closes its own.
"""

from __future__ import annotations

from mission.board.activities import ActivityManager
from mission.board.agents import AgentManager
from mission.board.heartbeat_logs import HeartbeatLogManager
from mission.board.messages import MessageManager
from mission.board.notifications import NotificationManager
from mission.board.subscriptions import SubscriptionManager
from mission.board.summaries import SummaryManager
from mission.board.tasks import TaskManager
from mission.storage.database import Database


class Board:
    """Shared coordination state: agents, tasks, messages, notifications."""

    def __init__(self, database: Database) -> None:
        self.db = database

        self.agents = AgentManager(database)
        self.activities = ActivityManager(database)
        self.tasks = TaskManager(database, self.agents, self.activities)
        self.messages = MessageManager(database, self.agents, self.activities)
        self.notifications = NotificationManager(database, self.agents)
        self.subscriptions = SubscriptionManager(database, self.agents)
        self.heartbeat_logs = HeartbeatLogManager(database)
        self.summaries = SummaryManager(database)
