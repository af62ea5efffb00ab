"""Individual match predicates.

Each predicate answers one question: "does this task text say it belongs to
this issue?". ``IssueMatcher`` ORs the identifier predicates in order and falls
back to ``TitleProbeMatch`` when none of them fire. Identifiers are always
passed through ``re.escape`` and matched case-insensitively.
"""

from __future__ import annotations

import abc
import re
from typing import List, Optional

from tasklink.todoist.utils import build_title_probe, normalize_for_match

# ---------------------------------------------------------------------------
# Base protocol
# ---------------------------------------------------------------------------


class IssuePredicate(abc.ABC):
    """Abstract base for identifier predicates."""

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Short machine-readable name for debug logs."""

    @abc.abstractmethod
    def pattern(self, escaped_id: str) -> str:
        """Regex fragment for an already-escaped issue id."""

    def compile(self, issue_id: str) -> re.Pattern:
        return re.compile(self.pattern(re.escape(issue_id)), re.IGNORECASE)

    def matches(self, issue_id: str, text: str) -> bool:
        return bool(self.compile(issue_id).search(text or ""))


# ---------------------------------------------------------------------------
# Identifier encodings
# ---------------------------------------------------------------------------


class BracketMarker(IssuePredicate):
    """``[NW:<id>]`` as placed at the front of every drafted task title."""

    @property
    def name(self) -> str:
        return "bracket_marker"

    def pattern(self, escaped_id: str) -> str:
        return rf"\[nw:{escaped_id}\]"


class NightwatchKeyLine(IssuePredicate):
    """``Nightwatch Key: issue:<id>``, the first line of a drafted body."""

    @property
    def name(self) -> str:
        return "nightwatch_key_line"

    def pattern(self, escaped_id: str) -> str:
        return rf"nightwatch\s+key\s*:\s*issue:{escaped_id}(?![a-z0-9_-])"


class IssueIdLine(IssuePredicate):
    """``Issue ID: <id>`` labelled line."""

    @property
    def name(self) -> str:
        return "issue_id_line"

    def pattern(self, escaped_id: str) -> str:
        return rf"issue\s+id\s*:\s*{escaped_id}(?![a-z0-9_-])"


class HashToken(IssuePredicate):
    """Bare ``#<id>`` ending at a word boundary (``#42`` but not ``#422``)."""

    @property
    def name(self) -> str:
        return "hash_token"

    def pattern(self, escaped_id: str) -> str:
        return rf"#{escaped_id}(?:\b|$)"


class UrlPathSegment(IssuePredicate):
    """``/exception(s)/<id>`` or ``/issue(s)/<id>`` inside a pasted page URL."""

    @property
    def name(self) -> str:
        return "url_path_segment"

    def pattern(self, escaped_id: str) -> str:
        return rf"/(?:exceptions?|issues?)/{escaped_id}(?:[/?#]|\b|$)"


def build_default_predicates() -> List[IssuePredicate]:
    """Identifier predicates in evaluation order."""
    return [
        BracketMarker(),
        NightwatchKeyLine(),
        IssueIdLine(),
        HashToken(),
        UrlPathSegment(),
    ]


class IdentifierMatcher:
    """All identifier predicates for one issue id, compiled once."""

    def __init__(self, issue_id: str, predicates: Optional[List[IssuePredicate]] = None):
        predicates = predicates if predicates is not None else build_default_predicates()
        self.issue_id = issue_id
        self._compiled = [(p.name, p.compile(issue_id)) for p in predicates]

    def first_match(self, text: str) -> Optional[str]:
        """Name of the first predicate that fires, or None."""
        for name, compiled in self._compiled:
            if compiled.search(text):
                return name
        return None


# ---------------------------------------------------------------------------
# Fallback: product signal + title probe
# ---------------------------------------------------------------------------


class TitleProbeMatch:
    """Best-effort match for older tasks that lost the identifier.

    Fires when the task mentions the product name and its normalized text
    contains the issue's title probe as a contiguous phrase.
    """

    name = "title_probe"

    def __init__(self, title: str, product_signal: str = "nightwatch", min_length: int = 12, max_words: int = 8):
        self.probe = build_title_probe(title, min_length=min_length, max_words=max_words)
        self._signal = re.compile(re.escape(product_signal), re.IGNORECASE)

    def __bool__(self) -> bool:
        return bool(self.probe)

    def matches(self, text: str, normalized_text: Optional[str] = None) -> bool:
        if not self.probe or not self._signal.search(text):
            return False
        if normalized_text is None:
            normalized_text = normalize_for_match(text)
        return self.probe in normalized_text
