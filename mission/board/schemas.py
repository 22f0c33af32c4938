"""Pydantic DTOs for all Board inputs and outputs.

These models define the public contract of the store access layer and of
the three scheduled operations (heartbeat, notification daemon, standup).
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

AgentStatus = Literal["idle", "working", "offline", "error"]
TaskStatus = Literal["pending", "in_progress", "completed", "blocked", "cancelled"]
TaskPriority = Literal["low", "medium", "high", "critical"]
NotificationType = Literal["mention", "subscription", "alert", "system"]
HeartbeatStatus = Literal["success", "error"]

# Statuses an agent still has to act on
OPEN_TASK_STATUSES: tuple[str, ...] = ("pending", "in_progress")
# Statuses that never come back on their own
TERMINAL_TASK_STATUSES: tuple[str, ...] = ("completed", "cancelled")
PRIORITY_RANK: dict[str, int] = {"low": 1, "medium": 2, "high": 3, "critical": 4}


# --- Agents ---


class AgentDetail(BaseModel):
    id: int
    name: str
    session_key: str
    role: str
    emoji: str
    status: AgentStatus
    last_heartbeat: datetime | None
    created_at: datetime
    updated_at: datetime


class AgentStats(BaseModel):
    total: int = 0
    online: int = 0
    working: int = 0
    idle: int = 0
    offline: int = 0


# --- Tasks ---


class TaskInput(BaseModel):
    """Input for creating a task."""

    title: str = Field(min_length=1)
    description: str | None = None
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    assigned_agent: str | None = None
    created_by: str
    due_date: datetime | None = None
    metadata: dict | None = None


class TaskUpdate(BaseModel):
    """Partial update; only fields explicitly set are applied."""

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_agent: str | None = None
    due_date: datetime | None = None
    metadata: dict | None = None


class TaskFilters(BaseModel):
    status: TaskStatus | None = None
    assigned_agent: str | None = None
    priority: TaskPriority | None = None
    created_by: str | None = None


class TaskDetail(BaseModel):
    id: int
    title: str
    description: str | None
    status: TaskStatus
    priority: TaskPriority
    assigned_agent: str | None
    created_by: str
    due_date: datetime | None
    completed_at: datetime | None
    metadata: dict | None
    created_at: datetime
    updated_at: datetime


class TaskStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    blocked: int = 0
    critical: int = 0
    high: int = 0


# --- Messages, subscriptions, activities ---


class MessageDetail(BaseModel):
    id: int
    thread_id: str
    agent_name: str
    content: str
    mentions: list[str]
    reply_to: int | None
    created_at: datetime


class SubscriptionDetail(BaseModel):
    id: int
    agent_name: str
    target_type: str
    target_id: str
    created_at: datetime


class ActivityDetail(BaseModel):
    id: int
    agent_name: str
    action_type: str
    entity_type: str
    entity_id: str
    description: str | None
    metadata: dict | None
    created_at: datetime


# --- Notifications ---


class NotificationInput(BaseModel):
    target_agent: str
    type: NotificationType
    title: str
    message: str | None = None
    entity_type: str | None = None
    entity_id: str | None = None


class NotificationDetail(BaseModel):
    id: int
    target_agent: str
    type: NotificationType
    title: str
    message: str | None
    entity_type: str | None
    entity_id: str | None
    is_read: bool
    created_at: datetime


# --- Heartbeat logs + summaries ---


class HeartbeatLogDetail(BaseModel):
    id: int
    agent_name: str
    status: HeartbeatStatus
    tasks_checked: int
    notifications_processed: int
    error_message: str | None
    timestamp: datetime


class DailySummaryDetail(BaseModel):
    id: int
    date: str
    summary_text: str
    tasks_completed: int
    tasks_created: int
    active_agents: int
    metadata: dict | None
    created_at: datetime


# --- Operation results ---


class HeartbeatResult(BaseModel):
    """Outcome of one heartbeat invocation.

    heartbeat_ok is an observability hint only: True when there was
    nothing to do (no open tasks, no unread notifications).
    """

    agent_name: str
    success: bool
    heartbeat_ok: bool = False
    tasks_checked: int = 0
    notifications_processed: int = 0
    message: str = ""
    tasks: list[TaskDetail] = []
    notifications: list[NotificationDetail] = []


class DaemonResult(BaseModel):
    success: bool
    notifications_created: int = 0
    mentions: int = 0
    subscriptions: int = 0
    alerts: int = 0
    message: str = ""


class StandupResult(BaseModel):
    success: bool
    date: str | None = None
    tasks_completed: int = 0
    tasks_created: int = 0
    active_agents: int = 0
    pending_high_priority: int = 0
    summary_path: Path | None = None
    message: str = ""
