"""Reconciliation scheduler: decides when the page is re-evaluated.

Page signals (DOM mutations, URL changes, focus, visibility, task creation)
become ``trigger()`` calls. The first trigger from IDLE schedules a pass after
a short quiet period; further triggers while SCHEDULED are absorbed without
extending it. Each pass takes a ``PassToken`` from the session's
``GenerationCounter`` and re-checks it after every suspension point, so only
the most recently started pass can reach the presenter.

Round-trip failures never escape a pass: settings fall back to the last known
value and matches fall back to empty.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from tasklink.cache.base import Clock
from tasklink.cache.client import MatchCache, MatchSnapshot, SettingsCache, compute_signature, unique_issue_ids
from tasklink.channel import Channel
from tasklink.config import get_config
from tasklink.dedup.result import MatchResult, matches_for, matches_from_payload
from tasklink.errors import ChannelError
from tasklink.page import IssueRecord, IssueRef, PageContextProvider, PageSnapshot
from tasklink.presenter import (
    STATUS_CREATE_FALLBACK,
    PageView,
    Presenter,
    build_badges,
    build_detail_view,
    creating_view,
)
from tasklink.todoist.models import RemoteTask, TaskDraft
from tasklink.todoist.payload import TaskDraftBuilder
from tasklink.utils.logger import log_debug, log_error, log_info, log_scheduler_progress, log_warning


class SchedulerState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


@dataclass(frozen=True)
class PassToken:
    """Generation captured by one pass."""

    generation: int
    counter: "GenerationCounter" = field(repr=False, compare=False)

    def is_current(self) -> bool:
        return self.counter.value == self.generation


class GenerationCounter:
    """Monotonic pass counter; issuing a token supersedes every earlier one."""

    def __init__(self):
        self.value = 0

    def next_token(self) -> PassToken:
        self.value += 1
        return PassToken(self.value, self)


class ClientSession:
    """Client-side state for one page: both caches plus the generation counter.

    ``invalidate()`` clears both caches; the generation is never reset.
    """

    def __init__(self, config=None, clock: Optional[Clock] = None):
        config = config or get_config()
        self.clock: Clock = clock or time.monotonic
        self.matches = MatchCache(ttl_seconds=config.match_cache_ttl_seconds, clock=self.clock)
        self.settings = SettingsCache(ttl_seconds=config.settings_cache_ttl_seconds, clock=self.clock)
        self.generations = GenerationCounter()
        self.epoch = 0

    def invalidate(self) -> None:
        self.epoch += 1
        self.matches.invalidate()
        self.settings.invalidate()


@dataclass(frozen=True)
class CreationOutcome:
    """Result of a one-click create: the URL to open and whether a task now exists."""

    url: str
    created: bool
    draft: TaskDraft
    task: Optional[RemoteTask] = None
    error: Optional[str] = None


class ReconciliationScheduler:
    """Drives debounced, cancellable reconciliation passes for one page."""

    def __init__(
        self,
        channel: Channel,
        page: PageContextProvider,
        presenter: Presenter,
        config=None,
        session: Optional[ClientSession] = None,
        draft_builder: Optional[TaskDraftBuilder] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config or get_config()
        self.channel = channel
        self.page = page
        self.presenter = presenter
        self.session = session or ClientSession(self.config, clock=clock)
        self.draft_builder = draft_builder or TaskDraftBuilder(self.config)

        self._scheduled: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._active_passes = 0
        self._last_url: Optional[str] = None

        self.last_view: Optional[PageView] = None
        self.pass_count = 0
        self.applied_count = 0

    # ------------------------------------------------------------------
    # State and triggers
    # ------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        if self._scheduled is not None and not self._scheduled.done():
            return SchedulerState.SCHEDULED
        if self._active_passes:
            return SchedulerState.RUNNING
        return SchedulerState.IDLE

    @property
    def debounce_seconds(self) -> float:
        return self.config.render_debounce_ms / 1000.0

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def trigger(self, reason: str, force_refresh: bool = False) -> bool:
        """Request a pass. Returns False when absorbed by a pending schedule."""
        if force_refresh:
            self.invalidate_caches()

        if self.state is SchedulerState.SCHEDULED:
            log_debug("Trigger absorbed by pending pass", reason=reason)
            return False

        log_scheduler_progress("scheduled", reason=reason)
        self._scheduled = self._spawn(self._debounced())
        return True

    async def _debounced(self) -> None:
        try:
            await asyncio.sleep(self.debounce_seconds)
        finally:
            self._scheduled = None
        await self.run_pass()

    def invalidate_caches(self) -> None:
        self.session.invalidate()
        log_debug("Client caches invalidated")

    def on_dom_mutation(self) -> bool:
        return self.trigger("mutation")

    def on_url_change(self, url: str) -> bool:
        return self.trigger("url_change")

    def on_focus(self) -> bool:
        return self.trigger("focus", force_refresh=True)

    def on_visibility_change(self, visible: bool) -> bool:
        if not visible:
            return False
        return self.trigger("visible", force_refresh=True)

    def on_credential_change(self, _token: Any = None) -> bool:
        return self.trigger("credential_change", force_refresh=True)

    def on_task_created(self) -> None:
        """Refresh now and again once Todoist has settled."""
        self.trigger("task_created", force_refresh=True)
        self._spawn(self._delayed_refresh())

    async def _delayed_refresh(self) -> None:
        await asyncio.sleep(self.config.post_create_refresh_ms / 1000.0)
        self.trigger("task_created_followup", force_refresh=True)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    async def run_pass(self) -> bool:
        """Run one pass. Returns True if it applied presentation."""
        token = self.session.generations.next_token()
        self.pass_count += 1
        self._active_passes += 1
        try:
            return await self._run(token)
        except Exception as e:
            log_error("Reconciliation pass failed", generation=token.generation, error=str(e))
            return False
        finally:
            self._active_passes -= 1

    async def _run(self, token: PassToken) -> bool:
        if not self.page.snapshot().in_monitored_context:
            self.presenter.clear()
            self.last_view = None
            log_scheduler_progress("cleared", generation=token.generation)
            return False

        settings_configured = await self._resolve_settings()
        if not token.is_current():
            log_scheduler_progress("superseded after settings", generation=token.generation)
            return False

        snapshot = self.page.snapshot()
        issue_ids, hints = self._match_request(snapshot)
        configured, matches = await self._resolve_matches(issue_ids, hints)
        if not token.is_current():
            log_scheduler_progress("superseded after matches", generation=token.generation)
            return False

        view = self._build_view(snapshot, settings_configured or configured, matches)
        self.presenter.apply(view)
        self.last_view = view
        self.applied_count += 1
        log_scheduler_progress("applied", generation=token.generation, issues=len(issue_ids))
        return True

    @staticmethod
    def _match_request(snapshot: PageSnapshot) -> Tuple[List[str], Dict[str, str]]:
        refs: List[IssueRef] = snapshot.issue_refs()
        issue_ids = [ref.issue_id for ref in refs]
        hints = {ref.issue_id: ref.title_hint for ref in refs if ref.title_hint}
        return issue_ids, hints

    async def _resolve_settings(self) -> bool:
        settings = self.session.settings
        cached = settings.fresh()
        if cached is not None:
            return cached

        epoch = self.session.epoch
        started_at = self.session.clock()
        try:
            response = await self.channel.request({"type": "getSettings"})
        except ChannelError as e:
            log_warning("Settings request failed; using last known value", error=str(e))
            return settings.configured

        if not response.get("ok"):
            log_warning("Settings request rejected; using last known value", error=response.get("error"))
            return settings.configured

        configured = bool(response.get("configured"))
        if epoch == self.session.epoch:
            settings.update(configured, fetched_at=started_at)
        return configured

    async def _resolve_matches(self, issue_ids: List[str], hints: Dict[str, str]) -> Tuple[bool, MatchResult]:
        ids = unique_issue_ids(issue_ids)
        if not ids:
            return self.session.settings.configured, {}

        signature = compute_signature(ids, hints, self.config.hint_signature_length)
        cached = self.session.matches.lookup(signature)
        if cached is not None:
            log_debug("Client match cache hit", issue_count=len(ids))
            return cached.configured, cached.matches

        epoch = self.session.epoch
        started_at = self.session.clock()
        message = {
            "type": "findMatches",
            "issueIds": ids,
            "issueHints": {issue_id: {"title": hint} for issue_id, hint in hints.items()},
        }
        try:
            response = await self.channel.request(message)
        except ChannelError as e:
            log_warning("Match request failed; showing no matches", error=str(e))
            return self.session.settings.configured, {}

        if not response.get("ok"):
            log_warning("Match request rejected; showing no matches", error=response.get("error"))
            return self.session.settings.configured, {}

        configured = bool(response.get("configured"))
        matches = matches_from_payload(response.get("matches"))
        if epoch == self.session.epoch:
            self.session.matches.store(signature, MatchSnapshot(configured, matches), fetched_at=started_at)
            self.session.settings.update(configured, fetched_at=started_at)
        return configured, matches

    def _build_view(self, snapshot: PageSnapshot, configured: bool, matches: MatchResult) -> PageView:
        detail = None
        issue = snapshot.current_issue
        if issue is not None and issue.issue_id:
            draft = self.draft_builder.build(issue)
            detail = build_detail_view(
                issue,
                draft,
                configured,
                matches_for(matches, issue.issue_id),
                max_title_length=self.config.max_title_length,
            )
        badges = build_badges(snapshot.list_entries, configured, matches)
        return PageView(configured=configured, detail=detail, badges=badges)

    # ------------------------------------------------------------------
    # One-click creation
    # ------------------------------------------------------------------

    async def create_task_for(self, issue: Optional[IssueRecord] = None) -> CreationOutcome:
        """Create a task for ``issue`` (default: the current issue).

        Unconfigured, or when the create round trip fails, the outcome carries
        the prefilled draft URL instead of a task URL.
        """
        if issue is None:
            issue = self.page.snapshot().current_issue
        if issue is None:
            raise ValueError("No current issue to create a task for")

        draft = self.draft_builder.build(issue)
        configured = self.last_view.configured if self.last_view is not None else self.session.settings.configured

        if not configured:
            outcome = CreationOutcome(url=draft.prefilled_url, created=False, draft=draft)
        else:
            if self.last_view is not None and self.last_view.detail is not None:
                if self.last_view.detail.issue_id == issue.issue_id:
                    self.presenter.apply(creating_view(self.last_view))
            outcome = await self._create_remote(draft)

        self.on_task_created()
        return outcome

    async def _create_remote(self, draft: TaskDraft) -> CreationOutcome:
        message = {"type": "createTask", "content": draft.title, "description": draft.body}
        try:
            response = await self.channel.request(message)
        except ChannelError as e:
            response = {"ok": False, "error": str(e)}

        task = response.get("task") if response.get("ok") else None
        if isinstance(task, dict) and task.get("url"):
            created = RemoteTask.from_dict(task)
            log_info("Task created from draft", task_id=created.id)
            return CreationOutcome(url=created.url, created=True, draft=draft, task=created)

        error = response.get("error") or "Create request returned no task"
        log_warning(STATUS_CREATE_FALLBACK, error=error)
        return CreationOutcome(url=draft.prefilled_url, created=False, draft=draft, error=error)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Begin URL polling and run an initial pass immediately."""
        self._last_url = self.page.current_url()
        self._poll_task = self._spawn(self._poll_url())
        self._spawn(self.run_pass())

    async def _poll_url(self) -> None:
        interval = self.config.url_poll_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            url = self.page.current_url()
            if url != self._last_url:
                self._last_url = url
                self.on_url_change(url)

    async def wait_idle(self) -> None:
        """Wait until no pass is scheduled or running (URL polling excluded)."""
        while True:
            pending = [t for t in self._tasks if t is not self._poll_task]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def stop(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._scheduled = None
        self._poll_task = None
