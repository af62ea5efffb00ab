"""Todoist task draft builder: pure formatting, no side effects.

The :class:`TaskDraftBuilder` receives a config at construction time and
exposes deterministic formatting methods that depend only on their inputs.
Its output closes the loop with the matcher: the ``[NW:<id>]`` title marker
and the ``Nightwatch Key`` body line are both identifier encodings that
``tasklink.dedup`` recognizes, so a task created from a draft is found as a
match on the next evaluation.
"""

from __future__ import annotations

from typing import List, Optional

import httpx

from tasklink.page import IssueRecord
from tasklink.todoist.models import TaskDraft
from tasklink.todoist.utils import ELLIPSIS, normalize_whitespace, truncate_text
from tasklink.utils.logger import log_warning

SOURCE_LABEL = "Laravel Nightwatch"


class TaskDraftBuilder:
    """Builds Todoist task drafts.  Pure functions, no side effects.

    Parameters
    ----------
    config:
        Application configuration object (``tasklink.config.Config``).
    """

    def __init__(self, config) -> None:
        self.config = config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, issue: IssueRecord) -> TaskDraft:
        """Assemble title, body and the prefilled "add task" URL."""
        title = self.build_title(issue)
        body = self.build_body(issue)
        return TaskDraft(title=title, body=body, prefilled_url=self.build_prefilled_url(title, body))

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def marker(issue_id: str) -> str:
        return f"[NW:{issue_id}]" if issue_id else "[NW:unknown]"

    def build_title(self, issue: IssueRecord) -> str:
        """``<prefix> [NW:<id>] <Kind>: <title> (<env>)`` bounded to max length.

        Prefix and marker form a fixed head; only the suffix after it is ever
        shortened, so the marker survives truncation intact.
        """
        max_length = self.config.max_title_length
        head = normalize_whitespace(f"{self.config.task_prefix} {self.marker(issue.issue_id)}")

        kind = "Exception" if issue.type == "exception" else "Issue"
        suffix_parts = [f"{kind}: {issue.effective_title}"]
        if issue.environment:
            suffix_parts.append(f"({issue.environment})")
        suffix = normalize_whitespace(" ".join(suffix_parts))

        full = f"{head} {suffix}"
        if len(full) <= max_length:
            return full

        budget = max_length - len(head) - 1
        if budget <= len(ELLIPSIS):
            # head alone already fills the budget; never cut into the marker
            if len(head) > max_length:
                log_warning(
                    "Task title exceeds max length to keep its issue marker intact",
                    issue_id=issue.issue_id[:40],
                    length=len(head),
                    max_length=max_length,
                )
            return head
        return f"{head} {truncate_text(suffix, budget)}"

    def build_body(self, issue: IssueRecord) -> str:
        """Labelled fields in fixed order, empty optional fields omitted."""
        optional = [
            ("Environment", issue.environment),
            ("Severity", issue.severity),
            ("Method", issue.method),
            ("Route", issue.route),
            ("Request URL", issue.request_url),
            ("First seen", issue.first_seen),
            ("Last seen", issue.last_seen),
            ("Occurrences", issue.occurrences),
        ]

        lines: List[str] = [
            f"Nightwatch Key: issue:{issue.issue_id}",
            f"Source: {SOURCE_LABEL}",
            f"Issue Type: {issue.type}",
            f"Issue ID: {issue.issue_id}",
            f"Title: {issue.effective_title}",
        ]
        lines.extend(f"{label}: {value}" for label, value in optional if value)
        if issue.url:
            lines.append(f"Nightwatch Page: {issue.url}")

        snippet = self.bound_snippet(issue.stack_snippet)
        if snippet:
            lines.extend(["", "Stack snippet:", snippet])

        return "\n".join(lines)

    def bound_snippet(self, snippet: Optional[str]) -> str:
        if not snippet:
            return ""
        snippet = snippet.replace("\r", "").strip()
        return snippet[: self.config.max_snippet_length]

    def build_prefilled_url(self, title: str, body: str) -> str:
        url = httpx.URL(self.config.todoist_add_url, params={"content": title, "description": body})
        return str(url)


def build_draft(issue: IssueRecord, config=None) -> TaskDraft:
    """Convenience wrapper around ``TaskDraftBuilder(config).build``."""
    if config is None:
        from tasklink.config import get_config

        config = get_config()
    return TaskDraftBuilder(config).build(issue)
