"""Page-side collaborator boundary.

The DOM extraction heuristics live outside tasklink; they hand the scheduler a
``PageSnapshot`` through a ``PageContextProvider``. This module holds those
shapes plus the URL-level helpers that do not need a DOM.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Protocol, Tuple
from urllib.parse import unquote, urljoin, urlsplit

_RE_ISSUE_PATH = re.compile(r"/(?:exceptions?|issues?)/([^/?#]+)", re.IGNORECASE)
_RE_EXCEPTION_PATH = re.compile(r"/exceptions?/", re.IGNORECASE)
_RE_LIST_SECTION = re.compile(r"/(?:exceptions?|issues?)(?:/|$)")
_RE_LIST_DETAIL = re.compile(r"/(?:exceptions?|issues?)/[^/]+")


@dataclass(frozen=True)
class IssueRef:
    """An issue id plus an optional title hint, as found on the page."""

    issue_id: str
    title_hint: str = ""


@dataclass(frozen=True)
class IssueReference:
    """Result of parsing a Nightwatch issue URL."""

    issue_id: str
    type: str
    url: str
    pathname: str


@dataclass(frozen=True)
class IssueRecord:
    """Everything the page collaborator could extract for the current issue."""

    issue_id: str
    type: str = "issue"
    url: str = ""
    title: str = ""
    route: str = ""
    request_url: str = ""
    environment: str = ""
    first_seen: str = ""
    last_seen: str = ""
    severity: str = ""
    occurrences: str = ""
    method: str = ""
    stack_snippet: str = ""

    @property
    def effective_title(self) -> str:
        return self.title or f"Issue {self.issue_id}"

    def as_ref(self) -> IssueRef:
        return IssueRef(issue_id=self.issue_id, title_hint=self.effective_title)


@dataclass(frozen=True)
class PageSnapshot:
    """What one reconciliation pass sees of the page."""

    in_monitored_context: bool = True
    current_issue: Optional[IssueRecord] = None
    list_entries: Tuple[IssueRef, ...] = field(default_factory=tuple)

    def issue_refs(self) -> List[IssueRef]:
        """Current issue first, then list siblings, as match-request inputs."""
        refs: List[IssueRef] = []
        if self.current_issue is not None and self.current_issue.issue_id:
            refs.append(self.current_issue.as_ref())
        refs.extend(self.list_entries)
        return refs


class PageContextProvider(Protocol):
    """Implemented by the DOM layer."""

    def current_url(self) -> str:
        ...

    def snapshot(self) -> PageSnapshot:
        ...


def parse_issue_reference(value: str, origin: str = "") -> Optional[IssueReference]:
    """Extract the issue id and kind from an issue or exception URL.

    Relative hrefs are resolved against ``origin``. Returns None when the path
    has no ``/exception(s)/<id>`` or ``/issue(s)/<id>`` segment.
    """
    if not value:
        return None
    url = urljoin(origin, value) if origin else value
    try:
        parts = urlsplit(url)
    except ValueError:
        return None

    match = _RE_ISSUE_PATH.search(parts.path)
    if not match:
        return None

    issue_id = unquote(match.group(1) or "").strip()
    if not issue_id:
        return None

    kind = "exception" if _RE_EXCEPTION_PATH.search(parts.path) else "issue"
    return IssueReference(issue_id=issue_id, type=kind, url=url, pathname=parts.path)


def is_issue_list_path(path: str) -> bool:
    """True for ``/issues`` style list pages, False for detail pages."""
    lowered = (path or "").lower()
    if not _RE_LIST_SECTION.search(lowered):
        return False
    return not _RE_LIST_DETAIL.search(lowered)


def is_monitored_context(hostname: str = "", path: str = "", title: str = "", application_name: str = "", signal: str = "nightwatch") -> bool:
    """Whether the page belongs to the monitored app at all."""
    haystack = f"{hostname} {path} {title}".lower()
    if signal in haystack:
        return True
    return signal in (application_name or "").lower()


def collect_list_issues(links: Iterable[Tuple[str, str]], origin: str = "") -> List[IssueRef]:
    """Turn ``(href, text)`` pairs from a list page into unique ``IssueRef``s.

    The first link for an id wins; a later link only fills in a missing title.
    """
    by_id: dict = {}
    for href, text in links:
        ref = parse_issue_reference(href, origin)
        if ref is None:
            continue
        title_hint = " ".join((text or "").split())
        existing = by_id.get(ref.issue_id)
        if existing is None:
            by_id[ref.issue_id] = IssueRef(issue_id=ref.issue_id, title_hint=title_hint)
        elif not existing.title_hint and title_hint:
            by_id[ref.issue_id] = replace(existing, title_hint=title_hint)
    return list(by_id.values())


class StaticPageContext:
    """A fixed page; used by the CLI and tests."""

    def __init__(self, url: str = "", snapshot: Optional[PageSnapshot] = None):
        self.url = url
        self._snapshot = snapshot or PageSnapshot()

    def current_url(self) -> str:
        return self.url

    def snapshot(self) -> PageSnapshot:
        return self._snapshot

    def navigate(self, url: str, snapshot: Optional[PageSnapshot] = None) -> None:
        self.url = url
        if snapshot is not None:
            self._snapshot = snapshot

    @classmethod
    def for_issue_url(cls, url: str, title: str = "", environment: str = "") -> "StaticPageContext":
        ref = parse_issue_reference(url)
        parts = urlsplit(url)
        issue = None
        if ref is not None:
            issue = IssueRecord(
                issue_id=ref.issue_id,
                type=ref.type,
                url=ref.url,
                title=title,
                environment=environment,
            )
        # an explicit issue URL is trusted even on a custom domain
        snapshot = PageSnapshot(
            in_monitored_context=issue is not None or is_monitored_context(parts.hostname or "", parts.path, title),
            current_issue=issue,
        )
        return cls(url=url, snapshot=snapshot)
