"""Todoist integration: REST client, cached task store and draft builder."""

from .client import AsyncTodoistClient
from .models import RemoteTask, TaskDraft

__all__ = ["AsyncTodoistClient", "RemoteTask", "TaskDraft"]
