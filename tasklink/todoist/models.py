"""Data classes for Todoist tasks and new-task drafts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

DEFAULT_TASK_URL_BASE = "https://app.todoist.com/app/task"


@dataclass(frozen=True)
class RemoteTask:
    """Immutable snapshot of an active Todoist task.

    Attributes:
        id: Todoist task id (always a string, ``""`` when the API omitted it).
        content: Task title.
        description: Task description (plain text / markdown).
        url: Browser link derived from ``id``.
    """

    id: str
    content: str = ""
    description: str = ""
    url: str = ""

    @classmethod
    def from_api(cls, payload: Optional[Dict[str, Any]], url_base: str = DEFAULT_TASK_URL_BASE) -> "RemoteTask":
        payload = payload or {}
        raw_id = payload.get("id")
        task_id = str(raw_id) if raw_id else ""
        return cls(
            id=task_id,
            content=str(payload.get("content") or ""),
            description=str(payload.get("description") or ""),
            url=f"{url_base.rstrip('/')}/{quote(task_id, safe='')}" if task_id else "",
        )

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "RemoteTask":
        """Rebuild a summary that crossed the channel as a plain dict."""
        return cls(
            id=str(payload.get("id") or ""),
            content=str(payload.get("content") or ""),
            description=str(payload.get("description") or ""),
            url=str(payload.get("url") or ""),
        )

    @property
    def searchable_text(self) -> str:
        return f"{self.content}\n{self.description}"

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "content": self.content,
            "description": self.description,
            "url": self.url,
        }


@dataclass(frozen=True)
class TaskDraft:
    """Title/body for a task that does not exist yet.

    Attributes:
        title: Task content, bounded to the configured max title length.
        body: Task description with labelled issue fields.
        prefilled_url: Todoist "add task" URL carrying both values.
    """

    title: str
    body: str
    prefilled_url: str
