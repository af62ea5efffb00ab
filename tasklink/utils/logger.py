"""Redacting log helpers for tasklink.

Every helper takes a message plus keyword context; the context is serialized to
JSON and scrubbed of Todoist tokens, authorization headers and URL query
strings before it reaches a handler.
"""
import json
import logging
import re
from typing import Any, Dict, Optional

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger('tasklink')

_REDACTIONS = (
    (re.compile(r'(Authorization["\']?\s*[:=]\s*["\']?)(Bearer\s+)?[^\s"\',}]+', re.IGNORECASE), r'\1<token>'),
    (re.compile(r'Bearer\s+[^\s"\',}]+'), 'Bearer <token>'),
    (re.compile(r'\b[0-9a-f]{40}\b', re.IGNORECASE), '<token>'),
    (re.compile(r'((?:token|api_key|apikey)["\']?\s*[:=]\s*["\']?)[^\s"\',}&]+', re.IGNORECASE), r'\1<token>'),
    # prefilled draft URLs carry the whole issue body in the query
    (re.compile(r'(https?://[^\s"?]+)\?[^\s"]*'), r'\1?<query>'),
    (re.compile(r'[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}'), '<email>'),
)


def configure_logging(level: str = "INFO", fmt: Optional[str] = None) -> None:
    """Apply the configured level (and optionally format) to the tasklink logger."""
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if fmt:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(logging.Formatter(fmt, datefmt='%Y-%m-%d %H:%M:%S'))


def sanitize_text(text: str) -> str:
    """Redact credentials, query strings and email addresses from ``text``."""
    if not text:
        return text
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


def safe_json(obj: Any, max_length: int = 1000) -> str:
    """Serialize ``obj`` compactly, redacted and bounded to ``max_length``."""
    try:
        json_str = json.dumps(obj, ensure_ascii=False, default=str, sort_keys=True)
    except (TypeError, ValueError):
        return "<unable to serialize>"

    sanitized = sanitize_text(json_str)
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "... [truncated]"
    return sanitized


def _emit(level: int, message: str, context: Dict[str, Any]) -> None:
    if not logger.isEnabledFor(level):
        return
    if context:
        logger.log(level, f"{message} | Context: {safe_json(context)}")
    else:
        logger.log(level, message)


def log_info(message: str, **kwargs) -> None:
    _emit(logging.INFO, message, kwargs)


def log_warning(message: str, **kwargs) -> None:
    _emit(logging.WARNING, message, kwargs)


def log_error(message: str, **kwargs) -> None:
    _emit(logging.ERROR, message, kwargs)


def log_debug(message: str, **kwargs) -> None:
    _emit(logging.DEBUG, message, kwargs)


def log_api_response(operation: str, status_code: int, response_data: Optional[Dict] = None) -> None:
    """Log a Todoist API round trip.

    Successful calls log at DEBUG since a paginated fetch makes several; any
    non-2xx status logs at WARNING with a bounded preview of the body.
    """
    context: Dict[str, Any] = {"status_code": status_code}
    if response_data:
        context["response_preview"] = safe_json(response_data, max_length=300)
    level = logging.DEBUG if 200 <= status_code < 300 else logging.WARNING
    _emit(level, f"API {operation}", context)


def log_task_operation(operation: str, task_id: Optional[str] = None, **kwargs) -> None:
    context: Dict[str, Any] = {"operation": operation}
    if task_id:
        context["task_id"] = task_id
    context.update(kwargs)
    log_info(f"Task operation: {operation}", **context)


def log_match_detection(issue_id: str, match_count: int, **kwargs) -> None:
    """Existing tasks at INFO, misses at DEBUG."""
    if match_count:
        log_info("Existing task found", issue_id=issue_id, match_count=match_count, **kwargs)
    else:
        log_debug("No existing task", issue_id=issue_id, **kwargs)


def log_scheduler_progress(stage: str, **kwargs) -> None:
    log_debug(f"Reconciliation: {stage}", **kwargs)
