"""Pytest configuration and fixtures for tasklink tests."""

import json
import pytest
from typing import Any, Callable, Dict, List, Optional

import httpx

# Add the project root to the Python path
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tasklink.config import Config
from tasklink.page import IssueRecord
from tasklink.todoist.models import RemoteTask


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingPresenter:
    """Presenter double that records every call in order."""

    def __init__(self):
        self.views = []
        self.calls: List[str] = []

    def apply(self, view) -> None:
        self.views.append(view)
        self.calls.append("apply")

    def clear(self) -> None:
        self.calls.append("clear")

    @property
    def last(self):
        return self.views[-1] if self.views else None


class TodoistApiStub:
    """Scripted Todoist API for ``httpx.MockTransport``.

    ``pages`` is a list of task lists; page N answers with a cursor to page
    N+1 unless it is the last one (or ``endless`` is set).
    """

    def __init__(
        self,
        pages: Optional[List[List[Dict[str, Any]]]] = None,
        endless: bool = False,
        bare_array: bool = False,
    ):
        self.pages = pages if pages is not None else [[]]
        self.endless = endless
        self.bare_array = bare_array
        self.requests: List[httpx.Request] = []
        self.created: List[Dict[str, Any]] = []
        self.fail_with: Optional[int] = None
        self.fail_on_page: Optional[int] = None
        self.create_status = 200

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if self.fail_with is not None:
            return httpx.Response(self.fail_with, text="upstream says no")

        if request.method == "GET" and path.endswith("/tasks"):
            cursor = request.url.params.get("cursor")
            index = int(cursor) if cursor else 0
            if self.fail_on_page is not None and index == self.fail_on_page:
                return httpx.Response(500, text="page failed")
            results = self.pages[index % len(self.pages)]
            if self.bare_array:
                return httpx.Response(200, json=results)
            has_next = self.endless or index + 1 < len(self.pages)
            return httpx.Response(200, json={"results": results, "next_cursor": str(index + 1) if has_next else None})

        if request.method == "POST" and path.endswith("/tasks"):
            if self.create_status != 200:
                return httpx.Response(self.create_status, text="create rejected")
            body = json.loads(request.content)
            task = {"id": f"new-{len(self.created) + 1}", "content": body["content"], "description": body["description"]}
            self.created.append(task)
            self.pages[0] = self.pages[0] + [task]
            return httpx.Response(200, json=task)

        if request.method == "GET" and path.endswith("/projects"):
            return httpx.Response(200, json={"results": [], "next_cursor": None})

        return httpx.Response(404, text="not found")

    @property
    def task_list_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "GET" and r.url.path.endswith("/tasks")]


@pytest.fixture
def make_config() -> Callable[..., Config]:
    """Factory for a real Config isolated from the developer's environment."""

    def _make(**overrides) -> Config:
        values = {
            "todoist_api_token": "",
            "settings_file": ".tasklink-test/settings.json",
            "render_debounce_ms": 10,
            "url_poll_interval_ms": 50,
            "post_create_refresh_ms": 20,
            "channel_timeout_seconds": 1.0,
        }
        values.update(overrides)
        return Config(_env_file=None, **values)

    return _make


@pytest.fixture
def test_config(make_config) -> Config:
    return make_config()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def make_todoist_api():
    """Factory for scripted Todoist APIs: ``make_todoist_api(pages=..., endless=...)``."""
    return TodoistApiStub


@pytest.fixture
def todoist_api() -> TodoistApiStub:
    return TodoistApiStub()


@pytest.fixture
def sample_tasks() -> List[RemoteTask]:
    """A realistic mix of linked and unrelated tasks."""
    return [
        RemoteTask(id="101", content="[Nightwatch] [NW:42] Exception: Undefined index user (production)", url="https://app.todoist.com/app/task/101"),
        RemoteTask(id="102", content="Follow up on #42 with the payments team", url="https://app.todoist.com/app/task/102"),
        RemoteTask(id="103", content="Investigate ticket 422 slowness", description="See #422", url="https://app.todoist.com/app/task/103"),
        RemoteTask(id="104", content="Buy milk", url="https://app.todoist.com/app/task/104"),
        RemoteTask(
            id="105",
            content="Check Nightwatch report",
            description="Payment gateway timeout while charging customer card",
            url="https://app.todoist.com/app/task/105",
        ),
    ]


@pytest.fixture
def sample_issue() -> IssueRecord:
    return IssueRecord(
        issue_id="42",
        type="exception",
        url="https://nightwatch.laravel.com/acme/app/exceptions/42",
        title="Undefined index: user",
        environment="production",
        route="/checkout",
        method="POST",
        occurrences="17",
        stack_snippet="ErrorException: Undefined index: user\n  at app/Http/Controllers/CheckoutController.php:88",
    )
