"""Background service: answers channel messages from the page side.

Message types:

- ``getSettings``    -> ``{ok, configured}``
- ``findMatches``    -> ``{ok, configured, matches}``
- ``testCredential`` -> ``{ok, configured, error?}``
- ``createTask``     -> ``{ok, configured, task?, error?}``

``handle()`` never raises: any failure becomes ``{ok: False, error}``.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from tasklink.config import get_config
from tasklink.dedup.detector import IssueMatcher
from tasklink.dedup.result import matches_to_payload
from tasklink.errors import ConfigurationMissing
from tasklink.settings_store import CredentialStore
from tasklink.todoist.store import RemoteTaskStore
from tasklink.utils.logger import log_debug, log_error, log_info

Response = Dict[str, Any]

MSG_GET_SETTINGS = "getSettings"
MSG_FIND_MATCHES = "findMatches"
MSG_TEST_CREDENTIAL = "testCredential"
MSG_CREATE_TASK = "createTask"


def hints_from_message(issue_hints: Any) -> Dict[str, str]:
    """``{id: {"title": str}}`` -> ``{id: title}``; malformed entries are skipped."""
    if not isinstance(issue_hints, Mapping):
        return {}
    hints: Dict[str, str] = {}
    for issue_id, hint in issue_hints.items():
        if isinstance(hint, Mapping) and isinstance(hint.get("title"), str):
            hints[str(issue_id)] = hint["title"]
    return hints


class TaskLinkService:
    """Owns the remote store and answers the four channel message types."""

    def __init__(
        self,
        credentials: CredentialStore,
        store: Optional[RemoteTaskStore] = None,
        matcher: Optional[IssueMatcher] = None,
        config=None,
    ):
        self.config = config or get_config()
        self.credentials = credentials
        self.store = store or RemoteTaskStore(config=self.config)
        self.matcher = matcher or IssueMatcher.from_config(self.config)
        self._unsubscribe = credentials.subscribe(self._on_credential_change)
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[Response]]] = {
            MSG_GET_SETTINGS: self.handle_get_settings,
            MSG_FIND_MATCHES: self.handle_find_matches,
            MSG_TEST_CREDENTIAL: self.handle_test_credential,
            MSG_CREATE_TASK: self.handle_create_task,
        }

    def close(self) -> None:
        self._unsubscribe()

    def _on_credential_change(self, _token: str) -> None:
        self.store.invalidate()

    def _settings(self):
        token = self.credentials.get_token()
        return token, bool(token)

    async def handle(self, message: Any) -> Response:
        """Dispatch a message; exceptions are converted to ``ok: False``."""
        if not isinstance(message, Mapping) or not isinstance(message.get("type"), str):
            return {"ok": False, "error": "Malformed message."}

        handler = self._handlers.get(message["type"])
        if handler is None:
            return {"ok": False, "error": f"Unsupported message type: {message['type']}"}

        try:
            return await handler(dict(message))
        except ConfigurationMissing as e:
            return {"ok": False, "configured": False, "error": e.message}
        except Exception as e:
            log_error("Channel request failed", type=message["type"], error=str(e))
            return {"ok": False, "error": str(e)}

    async def handle_get_settings(self, message: Dict[str, Any]) -> Response:
        _, configured = self._settings()
        return {"ok": True, "configured": configured}

    async def handle_find_matches(self, message: Dict[str, Any]) -> Response:
        token, configured = self._settings()
        if not configured:
            return {"ok": True, "configured": False, "matches": {}}

        raw_ids = message.get("issueIds")
        issue_ids: List[str] = (
            [i for i in raw_ids if isinstance(i, str) and i.strip()]
            if isinstance(raw_ids, list)
            else []
        )
        if not issue_ids:
            return {"ok": True, "configured": True, "matches": {}}

        tasks = await self.store.fetch_active_tasks(token)
        result = self.matcher.match(tasks, issue_ids, hints_from_message(message.get("issueHints")))
        log_debug("Matches computed", issue_count=len(result), task_count=len(tasks))
        return {"ok": True, "configured": True, "matches": matches_to_payload(result)}

    async def handle_test_credential(self, message: Dict[str, Any]) -> Response:
        token, configured = self._settings()
        if not configured:
            raise ConfigurationMissing()

        await self.store.verify_credential(token)
        log_info("Todoist token verified")
        return {"ok": True, "configured": True}

    async def handle_create_task(self, message: Dict[str, Any]) -> Response:
        token, configured = self._settings()
        if not configured:
            raise ConfigurationMissing()

        content = message.get("content")
        content = content.strip() if isinstance(content, str) else ""
        description = message.get("description")
        description = description if isinstance(description, str) else ""

        if not content:
            return {"ok": False, "configured": True, "error": "Task content is required."}

        task = await self.store.create_task(token, content, description)
        return {"ok": True, "configured": True, "task": task.to_dict()}
