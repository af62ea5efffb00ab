"""Async HTTP client for the Todoist REST API using httpx.

Covers the three calls tasklink needs: paginated task listing, task creation
and a cheap authenticated probe used to validate a token.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional, Tuple

import httpx

from tasklink.config import get_config
from tasklink.errors import (
    ConfigurationMissing,
    DeprecatedEndpointError,
    RemoteCreateError,
    RemoteFetchError,
)
from tasklink.utils.logger import log_api_response, log_debug, log_error

MAX_ERROR_DETAIL_LENGTH = 300


def extract_list_results(payload: Any) -> Tuple[List[Dict[str, Any]], Optional[str]]:
    """Normalize a list response into ``(results, next_cursor)``.

    Todoist answers either ``{"results": [...], "next_cursor": "..."}`` or a bare
    array. Anything else is treated as an empty, final page.
    """
    if isinstance(payload, list):
        return payload, None
    if isinstance(payload, dict) and isinstance(payload.get("results"), list):
        cursor = payload.get("next_cursor")
        return payload["results"], cursor if isinstance(cursor, str) and cursor else None
    return [], None


class AsyncTodoistClient:
    """Async Todoist API client with connection pooling."""

    def __init__(self, token: str, config=None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize async client.

        Args:
            token: Todoist API token sent as a bearer credential
            config: Optional config override (defaults to the global config)
            transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        """
        self.config = config or get_config()
        self.token = (token or "").strip()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Context manager entry - creates HTTP client."""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(float(self.config.todoist_timeout)),
            limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - closes HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _headers(self, *, json_body: bool = False) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {self.token}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.config.todoist_api_base}{path}"

    def is_configured(self) -> bool:
        return bool(self.token)

    def _require_ready(self) -> httpx.AsyncClient:
        if not self.is_configured():
            raise ConfigurationMissing()
        if not self._client:
            raise RuntimeError("AsyncTodoistClient not initialized - use 'async with' context")
        return self._client

    async def get(self, path: str, query: Optional[Dict[str, Any]] = None) -> Any:
        """GET a Todoist endpoint and return the decoded JSON body.

        Raises:
            DeprecatedEndpointError: on HTTP 410
            RemoteFetchError: on any other transport or non-2xx failure
        """
        client = self._require_ready()
        params = {
            key: str(value)
            for key, value in (query or {}).items()
            if value is not None and value != ""
        }

        try:
            resp = await client.get(self._url(path), headers=self._headers(), params=params)
        except httpx.HTTPError as e:
            log_error("Todoist request failed", path=path, error=str(e))
            raise RemoteFetchError(f"Todoist API request failed. {e}") from e

        if resp.status_code == 410:
            log_error("Todoist endpoint deprecated", path=path, status_code=410)
            raise DeprecatedEndpointError(
                "Todoist API request failed (410). The endpoint is deprecated. "
                "Verify TODOIST_API_BASE points at /api/v1.",
                status_code=410,
            )

        if not resp.is_success:
            details = resp.text[:MAX_ERROR_DETAIL_LENGTH]
            log_error("Todoist request rejected", path=path, status_code=resp.status_code, response=details)
            raise RemoteFetchError(
                f"Todoist API request failed ({resp.status_code}). {details}".strip(),
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteFetchError(f"Todoist API returned invalid JSON for {path}") from e

        log_api_response(f"Todoist GET {path}", resp.status_code)
        return data

    async def fetch_page(
        self, path: str, *, limit: int, cursor: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """Fetch a single page from a cursor-paginated list endpoint.

        Returns:
            Tuple of (items, next cursor or None)
        """
        payload = await self.get(path, {"limit": limit, "cursor": cursor})
        return extract_list_results(payload)

    async def fetch_paginated(self, path: str, *, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
        """Collect every page of a list endpoint, bounded by ``max_pages``.

        Items are returned in arrival order. Any page failure propagates and
        discards the pages already collected.
        """
        max_pages = self.config.todoist_max_pages if max_pages is None else max_pages
        limit = self.config.todoist_page_size

        collected: List[Dict[str, Any]] = []
        cursor: Optional[str] = None

        for page in range(1, max_pages + 1):
            items, cursor = await self.fetch_page(path, limit=limit, cursor=cursor)
            collected.extend(items)

            if not cursor:
                break

            if page >= max_pages:
                log_debug("Pagination cap reached", path=path, pages=page, items=len(collected))

        return collected

    async def create_task(self, content: str, description: str = "") -> Dict[str, Any]:
        """Create a Todoist task.

        Raises:
            RemoteCreateError: on any transport or non-2xx failure
        """
        client = self._require_ready()

        try:
            resp = await client.post(
                self._url("/tasks"),
                headers=self._headers(json_body=True),
                json={"content": content, "description": description},
            )
        except httpx.HTTPError as e:
            log_error("Failed to create Todoist task", error=str(e))
            raise RemoteCreateError(f"Todoist API create failed. {e}") from e

        if not resp.is_success:
            details = resp.text[:MAX_ERROR_DETAIL_LENGTH]
            log_error("Failed to create Todoist task", status_code=resp.status_code, response=details)
            raise RemoteCreateError(
                f"Todoist API create failed ({resp.status_code}). {details}".strip(),
                status_code=resp.status_code,
            )

        try:
            response_data = resp.json()
        except ValueError as e:
            raise RemoteCreateError("Todoist API returned invalid JSON for the created task") from e

        log_api_response("Todoist task creation", resp.status_code, response_data)
        return response_data if isinstance(response_data, dict) else {}

    async def verify_token(self) -> None:
        """Make the cheapest authenticated call; raises on failure."""
        await self.get("/projects", {"limit": 1})
