"""Persisted credential store.

Holds the Todoist token in a small JSON file. A change of token is the
invalidation trigger for every cache, so listeners are notified whenever the
stored value actually changes.
"""
from __future__ import annotations

import json
import pathlib
from typing import Callable, List, Optional

from tasklink.config import get_config
from tasklink.utils.logger import log_error, log_info

TOKEN_KEY = "todoistApiToken"

Listener = Callable[[str], None]


class CredentialStore:
    """File-backed token storage with change notification."""

    def __init__(self, path: Optional[pathlib.Path] = None, default_token: Optional[str] = None):
        config = get_config()
        self.path = pathlib.Path(path) if path is not None else pathlib.Path(config.settings_file)
        self._default_token = (config.todoist_api_token if default_token is None else default_token).strip()
        self._listeners: List[Listener] = []

    def _load(self) -> Optional[dict]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
                return data if isinstance(data, dict) else {}
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            log_error("Failed to read credential store", path=str(self.path), error=str(e))
            return {}

    def _save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def get_token(self) -> str:
        """Stored token, or the environment seed when nothing was saved yet."""
        data = self._load()
        if data is None:
            return self._default_token
        return str(data.get(TOKEN_KEY) or "").strip()

    def is_configured(self) -> bool:
        return bool(self.get_token())

    def set_token(self, token: str) -> bool:
        """Save a token (trimmed; empty removes it). Returns True if it changed."""
        new_token = (token or "").strip()
        old_token = self.get_token()

        data = self._load() or {}
        data[TOKEN_KEY] = new_token
        self._save(data)

        if new_token == old_token:
            return False

        log_info("Todoist token updated", configured=bool(new_token))
        for listener in list(self._listeners):
            listener(new_token)
        return True

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
