"""Issue matcher: map Nightwatch issue ids to the Todoist tasks that cover them.

A plain scan of issues × tasks; no index is built because task counts are
small and freshness matters more than lookup cost.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from tasklink.dedup.result import MatchResult
from tasklink.dedup.strategies import (
    IdentifierMatcher,
    IssuePredicate,
    TitleProbeMatch,
    build_default_predicates,
)
from tasklink.todoist.models import RemoteTask
from tasklink.todoist.utils import normalize_for_match
from tasklink.utils.logger import log_debug, log_match_detection


class _SearchableTask:
    __slots__ = ("task", "text", "normalized")

    def __init__(self, task: RemoteTask):
        self.task = task
        self.text = task.searchable_text
        self.normalized = normalize_for_match(self.text)


def unique_in_order(issue_ids: Iterable[object]) -> List[str]:
    """Stringify and de-duplicate ids, keeping first-seen order and case."""
    seen = set()
    ordered: List[str] = []
    for raw in issue_ids:
        issue_id = str(raw)
        if issue_id not in seen:
            seen.add(issue_id)
            ordered.append(issue_id)
    return ordered


class IssueMatcher:
    """Pure matcher; holds only tuning knobs, never task state.

    Args:
        predicates: Identifier predicates to OR together. Defaults to
            ``build_default_predicates()``.
        max_matches: Hits kept per issue id.
        product_signal: Token required for title-probe matches.

    Usage::

        matcher = IssueMatcher()
        result = matcher.match(tasks, ["42"], {"42": "Undefined index: user"})
        result["42"]  # -> list of RemoteTask, possibly empty
    """

    def __init__(
        self,
        predicates: Optional[List[IssuePredicate]] = None,
        max_matches: int = 5,
        product_signal: str = "nightwatch",
        probe_min_length: int = 12,
        probe_max_words: int = 8,
    ):
        self.predicates = predicates if predicates is not None else build_default_predicates()
        self.max_matches = max_matches
        self.product_signal = product_signal
        self.probe_min_length = probe_min_length
        self.probe_max_words = probe_max_words

    @classmethod
    def from_config(cls, config) -> "IssueMatcher":
        return cls(
            max_matches=config.max_matches_per_issue,
            product_signal=config.product_signal,
            probe_min_length=config.title_probe_min_length,
            probe_max_words=config.title_probe_max_words,
        )

    def match(
        self,
        tasks: Sequence[RemoteTask],
        issue_ids: Iterable[object],
        hints: Optional[Mapping[str, str]] = None,
    ) -> MatchResult:
        """Return up to ``max_matches`` tasks per requested issue id.

        Every requested id appears in the result; hits keep input task order.
        """
        hints = hints or {}
        searchable = [_SearchableTask(task) for task in tasks]
        result: MatchResult = {}

        for issue_id in unique_in_order(issue_ids):
            identifier = IdentifierMatcher(issue_id, self.predicates)
            title_probe = TitleProbeMatch(
                hints.get(issue_id) or "",
                product_signal=self.product_signal,
                min_length=self.probe_min_length,
                max_words=self.probe_max_words,
            )
            hits: List[RemoteTask] = []

            for entry in searchable:
                matched_by = identifier.first_match(entry.text)
                if matched_by is None and title_probe and title_probe.matches(entry.text, entry.normalized):
                    matched_by = title_probe.name

                if matched_by is not None:
                    log_debug("Task matched issue", issue_id=issue_id, task_id=entry.task.id, matched_by=matched_by)
                    hits.append(entry.task)

                if len(hits) >= self.max_matches:
                    break

            result[issue_id] = hits
            log_match_detection(issue_id, len(hits))

        return result


def match_issues(
    tasks: Sequence[RemoteTask],
    issue_ids: Iterable[object],
    hints: Optional[Mapping[str, str]] = None,
) -> Dict[str, List[RemoteTask]]:
    """Module-level shortcut using default predicates and limits."""
    return IssueMatcher().match(tasks, issue_ids, hints)
