"""Board module — store access layer for Mission Control.

Public API: Board class, AgentNotFound + all schema types from schemas.py.
"""

from mission.board.agents import AgentNotFound
from mission.board.board import Board
from mission.board.schemas import (
    ActivityDetail,
    AgentDetail,
    AgentStats,
    AgentStatus,
    DaemonResult,
    DailySummaryDetail,
    HeartbeatLogDetail,
    HeartbeatResult,
    MessageDetail,
    NotificationDetail,
    NotificationInput,
    NotificationType,
    StandupResult,
    SubscriptionDetail,
    TaskDetail,
    TaskFilters,
    TaskInput,
    TaskPriority,
    TaskStats,
    TaskStatus,
    TaskUpdate,
)

__all__ = [
    "Board",
    "AgentNotFound",
    # Type aliases
    "AgentStatus",
    "NotificationType",
    "TaskPriority",
    "TaskStatus",
    # Agents
    "AgentDetail",
    "AgentStats",
    # Tasks
    "TaskDetail",
    "TaskFilters",
    "TaskInput",
    "TaskStats",
    "TaskUpdate",
    # Messages, activities, subscriptions
    "ActivityDetail",
    "MessageDetail",
    "SubscriptionDetail",
    # Notifications
    "NotificationDetail",
    "NotificationInput",
    # Logs + summaries
    "DailySummaryDetail",
    "HeartbeatLogDetail",
    # Operation results
    "DaemonResult",
    "HeartbeatResult",
    "StandupResult",
]
