"""Presentation view models.

The scheduler never touches a DOM. At the end of a pass it builds a
``PageView`` (detail control for the current issue plus badges for list
entries) and hands it to a ``Presenter``. Everything here is pure.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from tasklink.page import IssueRecord, IssueRef
from tasklink.todoist.models import RemoteTask, TaskDraft
from tasklink.utils.logger import log_info

LABEL_ADD = "Add to Todoist"
LABEL_ADDED = "Added to Todoist"
LABEL_OPEN_EXISTING = "Open existing task"
BADGE_TOOLTIP = "Open matching task in Todoist"

STATUS_UNCONFIGURED = "Todoist token missing. Open extension options to enable duplicate checks."
STATUS_NO_MATCH = "No matching Todoist task found yet."
STATUS_CREATING = "Creating task in Todoist..."
STATUS_CREATE_FALLBACK = "Could not set description through API. Opening Todoist draft page."


class StatusLevel(Enum):
    """Visual state of the status line."""

    WARNING = "warning"
    GOOD = "good"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class DetailView:
    """The add/added control rendered next to the current issue."""

    issue_id: str
    button_label: str
    button_enabled: bool
    button_tooltip: str
    status_text: str
    status_level: StatusLevel
    draft: TaskDraft
    configured: bool
    open_existing_url: Optional[str] = None
    open_existing_label: str = ""


@dataclass(frozen=True)
class Badge:
    """Match counter shown beside an issue link on a list page."""

    issue_id: str
    label: str
    url: str
    tooltip: str = BADGE_TOOLTIP


@dataclass(frozen=True)
class PageView:
    """Everything one pass wants shown; ``detail`` is None off detail pages."""

    configured: bool
    detail: Optional[DetailView] = None
    badges: Tuple[Badge, ...] = field(default_factory=tuple)


def status_for(configured: bool, match_count: int) -> Tuple[str, StatusLevel]:
    if not configured:
        return STATUS_UNCONFIGURED, StatusLevel.WARNING
    if match_count == 1:
        return "Already in Todoist (1 matching task).", StatusLevel.GOOD
    if match_count > 1:
        return f"Already in Todoist ({match_count} matching tasks).", StatusLevel.GOOD
    return STATUS_NO_MATCH, StatusLevel.NEUTRAL


def build_detail_view(
    issue: IssueRecord,
    draft: TaskDraft,
    configured: bool,
    matches: Sequence[RemoteTask],
    max_title_length: int = 120,
) -> DetailView:
    """Detail control for ``issue`` given its matches.

    The button is disabled once any match exists; creation is only offered
    when nothing in Todoist covers the issue yet.
    """
    has_matches = len(matches) > 0
    status_text, status_level = status_for(configured, len(matches))

    open_url = matches[0].url if has_matches and matches[0].url else None
    return DetailView(
        issue_id=issue.issue_id,
        button_label=LABEL_ADDED if has_matches else LABEL_ADD,
        button_enabled=not has_matches,
        button_tooltip=f"Task title ({len(draft.title)}/{max_title_length} chars): {draft.title}",
        status_text=status_text,
        status_level=status_level,
        draft=draft,
        configured=configured,
        open_existing_url=open_url,
        open_existing_label=LABEL_OPEN_EXISTING if open_url else "",
    )


def creating_view(view: PageView) -> PageView:
    """``view`` with its detail control locked while a create round trip runs."""
    if view.detail is None:
        return view
    detail = replace(
        view.detail,
        button_enabled=False,
        status_text=STATUS_CREATING,
        status_level=StatusLevel.NEUTRAL,
    )
    return replace(view, detail=detail)


def build_badges(
    entries: Iterable[IssueRef], configured: bool, matches: Mapping[str, Sequence[RemoteTask]]
) -> Tuple[Badge, ...]:
    """One badge per list entry with at least one match; none when unconfigured."""
    if not configured:
        return ()
    badges: List[Badge] = []
    for entry in entries:
        found = matches.get(entry.issue_id) or []
        if not found:
            continue
        badges.append(Badge(issue_id=entry.issue_id, label=f"Todoist {len(found)}", url=found[0].url))
    return tuple(badges)


class Presenter(Protocol):
    """Implemented by the DOM layer."""

    def apply(self, view: PageView) -> None:
        ...

    def clear(self) -> None:
        ...


class LoggingPresenter:
    """Presenter that logs each view and keeps the last one (CLI / tests)."""

    def __init__(self):
        self.current: Optional[PageView] = None
        self.applied: List[PageView] = []
        self.clear_count = 0

    def apply(self, view: PageView) -> None:
        self.current = view
        self.applied.append(view)
        if view.detail is not None:
            log_info(
                view.detail.status_text,
                issue_id=view.detail.issue_id,
                button=view.detail.button_label,
                open_existing=view.detail.open_existing_url,
            )
        for badge in view.badges:
            log_info("List badge", issue_id=badge.issue_id, label=badge.label)

    def clear(self) -> None:
        self.current = None
        self.clear_count += 1
