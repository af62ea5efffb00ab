"""Duplicate detection: which Todoist tasks already cover a Nightwatch issue.

Identifier predicates are OR-combined and evaluated cheapest first; a
title-probe heuristic backs them up for older tasks.
"""

from tasklink.dedup.detector import IssueMatcher, match_issues
from tasklink.dedup.result import MatchResult

__all__ = ["IssueMatcher", "MatchResult", "match_issues"]
