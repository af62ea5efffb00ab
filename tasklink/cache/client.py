"""Client-side caches layered over the cross-context channel."""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from tasklink.todoist.models import RemoteTask
from .base import Clock, TimedCache


def unique_issue_ids(issue_ids: Iterable[object]) -> List[str]:
    """Trim, drop empties and non-strings, de-duplicate and sort."""
    cleaned = {i.strip() for i in issue_ids if isinstance(i, str) and i.strip()}
    return sorted(cleaned)


def compute_signature(
    issue_ids: Iterable[str], hints: Optional[Mapping[str, str]] = None, excerpt_length: int = 120
) -> str:
    """Deterministic cache key for a match request.

    Built from the sorted unique ids plus a bounded excerpt of each title hint,
    so any change to the id set or to a hint within the excerpt changes it.
    """
    ids = unique_issue_ids(issue_ids)
    hints = hints or {}
    hint_part = "|".join(f"{issue_id}:{(hints.get(issue_id) or '')[:excerpt_length]}" for issue_id in ids)
    return f"{'|'.join(ids)}::{hint_part}"


@dataclass
class MatchSnapshot:
    configured: bool
    matches: Dict[str, List[RemoteTask]] = field(default_factory=dict)


class MatchCache(TimedCache[MatchSnapshot]):
    """Last match answer, reusable while the request signature is unchanged."""

    def __init__(self, ttl_seconds: float = 20, clock: Optional[Clock] = None):
        super().__init__("client_matches", ttl_seconds, clock)


class SettingsCache(TimedCache[bool]):
    """Last known ``configured`` flag.

    Unlike the match cache, a stale value is still the best available answer
    when the settings round trip fails, so ``configured`` never expires; only
    ``fresh()`` honours the TTL.
    """

    KEY = "settings"

    def __init__(self, ttl_seconds: float = 30, clock: Optional[Clock] = None):
        super().__init__("client_settings", ttl_seconds, clock)

    def fresh(self) -> Optional[bool]:
        return self.lookup(self.KEY)

    def update(self, configured: bool, fetched_at: Optional[float] = None) -> None:
        self.store(self.KEY, bool(configured), fetched_at)

    @property
    def configured(self) -> bool:
        return bool(self._entry.data) if self._entry else False
