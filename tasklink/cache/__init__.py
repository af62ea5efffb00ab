"""Short-lived TTL caches.

- RemoteTaskCache: active Todoist tasks for the current credential (service side)
- MatchCache / SettingsCache: client-side answers from the channel
"""

from .base import CacheEntry, TimedCache
from .client import MatchCache, MatchSnapshot, SettingsCache, compute_signature, unique_issue_ids
from .remote import RemoteTaskCache

__all__ = [
    "CacheEntry",
    "TimedCache",
    "RemoteTaskCache",
    "MatchCache",
    "MatchSnapshot",
    "SettingsCache",
    "compute_signature",
    "unique_issue_ids",
]
