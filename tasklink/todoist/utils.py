"""Utilities for text normalization used by matching and drafting."""
from __future__ import annotations
import re

_RE_WS = re.compile(r"\s+")
_RE_NON_ALNUM = re.compile(r"[^a-z0-9]+")

ELLIPSIS = "..."


def normalize_whitespace(text: str) -> str:
    if not text:
        return ""
    return _RE_WS.sub(" ", text).strip()


def normalize_for_match(text: str) -> str:
    """Lowercase and collapse every non-alphanumeric run to a single space."""
    if not text:
        return ""
    t = text.lower()
    t = _RE_NON_ALNUM.sub(" ", t)
    t = _RE_WS.sub(" ", t).strip()
    return t


def build_title_probe(title: str, min_length: int = 12, max_words: int = 8) -> str:
    """Return a normalized phrase strong enough to identify an issue title.

    Titles shorter than ``min_length`` normalized characters are rejected (empty
    string). Otherwise words of three or more characters are kept and the first
    ``max_words`` are joined by single spaces.
    """
    normalized = normalize_for_match(title)
    if not normalized or len(normalized) < min_length:
        return ""
    words = [w for w in normalized.split(" ") if len(w) > 2]
    return " ".join(words[:max_words])


def truncate_text(text: str, max_length: int) -> str:
    """Collapse whitespace and cut to ``max_length`` characters, ending with an ellipsis."""
    normalized = normalize_whitespace(text)
    if len(normalized) <= max_length:
        return normalized
    if max_length <= len(ELLIPSIS):
        return normalized[:max_length]
    return normalized[: max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS
