"""Process-wide cache of active remote tasks, keyed by credential."""

from typing import List, Optional

from tasklink.todoist.models import RemoteTask
from .base import Clock, TimedCache


class RemoteTaskCache(TimedCache[List[RemoteTask]]):
    """Holds the task list for exactly one credential.

    A lookup with a different credential is a miss, so switching tokens never
    serves the previous account's tasks.
    """

    def __init__(self, ttl_seconds: float = 90, clock: Optional[Clock] = None):
        super().__init__("remote_tasks", ttl_seconds, clock)

    @property
    def credential(self) -> str:
        return self._entry.key if self._entry else ""
