"""Remote task store: cached, paginated access to active Todoist tasks.

The store owns the single ``RemoteTaskCache``. Concurrent callers asking for
the same credential share one in-flight fetch, so at most one paginated fetch
happens per TTL window per credential. ``invalidate()`` bumps an epoch; a fetch
that started before the bump still answers its callers but does not write its
(possibly stale) result back.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, List, Optional, Tuple

from tasklink.cache.base import Clock
from tasklink.cache.remote import RemoteTaskCache
from tasklink.config import get_config
from tasklink.todoist.client import AsyncTodoistClient
from tasklink.todoist.models import RemoteTask
from tasklink.utils.logger import log_debug, log_info, log_task_operation

ClientFactory = Callable[[str], AsyncTodoistClient]


class RemoteTaskStore:
    """Fetches, caches and creates Todoist tasks for one active credential."""

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        config=None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or get_config()
        self._client_factory: ClientFactory = client_factory or (
            lambda token: AsyncTodoistClient(token, config=self.config)
        )
        self.clock: Clock = clock or time.monotonic
        self.cache = RemoteTaskCache(ttl_seconds=self.config.task_cache_ttl_seconds, clock=self.clock)
        self._epoch = 0
        self._inflight: Dict[Tuple[str, int], asyncio.Future] = {}
        self.fetch_count = 0

    async def fetch_active_tasks(self, credential: str) -> List[RemoteTask]:
        """Return the active tasks for ``credential``, from cache when fresh.

        Raises:
            RemoteFetchError: when any page fails; the cache keeps its previous value
        """
        cached = self.cache.lookup(credential)
        if cached is not None:
            log_debug("Remote task cache hit", task_count=len(cached))
            return cached

        key = (credential, self._epoch)
        pending = self._inflight.get(key)
        if pending is None:
            pending = asyncio.ensure_future(self._refresh(credential))
            self._inflight[key] = pending
            pending.add_done_callback(lambda task: self._forget(key, task))
        else:
            log_debug("Joining in-flight remote task fetch")

        # a cancelled caller never cancels the fetch other callers share
        return await asyncio.shield(pending)

    def _forget(self, key: Tuple[str, int], task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled() and task.exception() is not None:
            log_debug("In-flight remote task fetch failed", error=str(task.exception()))

    async def _refresh(self, credential: str) -> List[RemoteTask]:
        epoch = self._epoch
        started_at = self.clock()
        self.fetch_count += 1

        async with self._client_factory(credential) as client:
            raw_tasks = await client.fetch_paginated("/tasks", max_pages=self.config.todoist_max_pages)

        tasks = [
            RemoteTask.from_api(raw, url_base=self.config.todoist_task_url_base)
            for raw in raw_tasks
            if isinstance(raw, dict)
        ]

        if epoch == self._epoch:
            self.cache.store(credential, tasks, fetched_at=started_at)
        else:
            log_debug("Cache invalidated during fetch; result not cached")

        log_info("Active Todoist tasks loaded", task_count=len(tasks))
        return tasks

    def invalidate(self) -> None:
        """Drop the cached task list unconditionally."""
        self._epoch += 1
        self.cache.invalidate()
        log_debug("Remote task cache invalidated", epoch=self._epoch)

    async def create_task(self, credential: str, content: str, description: str = "") -> RemoteTask:
        """Create a task and invalidate the cache so the next match re-fetches.

        Raises:
            RemoteCreateError: when the create call fails (cache untouched)
        """
        async with self._client_factory(credential) as client:
            created = await client.create_task(content, description)

        task = RemoteTask.from_api(created, url_base=self.config.todoist_task_url_base)
        self.invalidate()
        log_task_operation("created", task_id=task.id, content=content)
        return task

    async def verify_credential(self, credential: str) -> None:
        """Raise ``RemoteFetchError`` if the credential cannot make an authenticated call."""
        async with self._client_factory(credential) as client:
            await client.verify_token()
