"""Match result type and its wire representation."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from tasklink.todoist.models import RemoteTask

# issue id -> up to N tasks judged to represent that issue
MatchResult = Dict[str, List[RemoteTask]]


def matches_to_payload(result: Mapping[str, List[RemoteTask]]) -> Dict[str, List[Dict[str, str]]]:
    """Serialize for the channel (plain dicts only)."""
    return {issue_id: [task.to_dict() for task in tasks] for issue_id, tasks in result.items()}


def matches_from_payload(payload: Any) -> MatchResult:
    """Parse a channel ``matches`` object, ignoring malformed entries."""
    if not isinstance(payload, dict):
        return {}
    result: MatchResult = {}
    for issue_id, tasks in payload.items():
        if not isinstance(tasks, list):
            result[str(issue_id)] = []
            continue
        result[str(issue_id)] = [RemoteTask.from_dict(t) for t in tasks if isinstance(t, dict)]
    return result


def matches_for(result: Mapping[str, List[RemoteTask]], issue_id: str) -> List[RemoteTask]:
    """Matches for one id; absent keys read as no matches."""
    tasks = result.get(issue_id) if issue_id else None
    return list(tasks) if isinstance(tasks, list) else []
