"""Markdown rendering for the per-agent WORKING.md and the daily standup.

Both are pure functions of already-loaded DTOs; writing files is the
caller's job.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from mission.board.schemas import AgentDetail, NotificationDetail, TaskDetail
from mission.utils import plural


def render_working_file(
    agent_name: str,
    tasks: list[TaskDetail],
    notifications: list[NotificationDetail],
    now: datetime,
) -> str:
    lines = [
        f"# WORKING - {agent_name}",
        "",
        f"> Last updated: {now.isoformat()}",
        "",
        "## Status",
        "",
        f"- **Current Status**: {'Working' if tasks else 'Idle'}",
        f"- **Pending Tasks**: {len(tasks)}",
        f"- **Unread Notifications**: {len(notifications)}",
        "",
    ]

    if tasks:
        lines += ["## Current Tasks", ""]
        for i, task in enumerate(tasks, 1):
            lines.append(f"{i}. **[{task.priority.upper()}]** {task.title}")
            if task.description:
                lines.append(f"   - {task.description}")
            if task.due_date:
                lines.append(f"   - Due: {task.due_date.isoformat()}")
            lines.append("")

    if notifications:
        lines += ["## Recent Notifications", ""]
        for i, notif in enumerate(notifications, 1):
            lines.append(f"{i}. **[{notif.type}]** {notif.title}")
            if notif.message:
                lines.append(f"   - {notif.message}")
            lines.append("")

    lines += [
        "## Recent Activity",
        "",
        "*Updated automatically on every heartbeat.*",
    ]
    return "\n".join(lines) + "\n"


def write_document(path: Path, content: str) -> Path:
    """Overwrite path with content, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def render_standup(
    date: str,
    now: datetime,
    completed: list[TaskDetail],
    created: list[TaskDetail],
    active_agents: list[AgentDetail],
    activity_counts: dict[str, int],
    high_priority: list[TaskDetail],
    limit: int = 10,
) -> str:
    lines = [
        "📋 **Mission Control Daily Standup**",
        f"📅 {date}",
        "",
        "## 📊 Today's Stats",
        "",
        f"- ✅ Tasks Completed: {len(completed)}",
        f"- 🆕 Tasks Created: {len(created)}",
        f"- 🤖 Active Agents: {len(active_agents)}",
        "",
    ]

    if completed:
        lines += ["## ✅ Tasks Completed", ""]
        for i, task in enumerate(completed, 1):
            who = f"[{task.assigned_agent}] " if task.assigned_agent else ""
            lines.append(f"{i}. {who}{task.title}")
        lines.append("")

    if created:
        lines += ["## 🆕 New Tasks", ""]
        for task in created[:limit]:
            who = f" ({task.assigned_agent})" if task.assigned_agent else ""
            lines.append(f"- [{task.priority.upper()}] {task.title}{who}")
        if len(created) > limit:
            lines.append(f"- ... and {len(created) - limit} more")
        lines.append("")

    if active_agents:
        lines += ["## 🤖 Agent Activity", ""]
        for agent in active_agents:
            count = activity_counts.get(agent.name, 0)
            lines.append(f"- {agent.emoji} **{agent.name}**: {plural(count, 'action')}")
        lines.append("")

    if high_priority:
        lines += ["## ⚠️ High Priority Tasks", ""]
        for i, task in enumerate(high_priority[:limit], 1):
            who = f" ({task.assigned_agent})" if task.assigned_agent else ""
            lines.append(f"{i}. [{task.priority.upper()}] {task.title}{who}")
        if len(high_priority) > limit:
            lines.append(f"... and {len(high_priority) - limit} more")
        lines.append("")

    lines += [
        "---",
        f"*Generated by Mission Control at {now.isoformat()}*",
    ]
    return "\n".join(lines) + "\n"
