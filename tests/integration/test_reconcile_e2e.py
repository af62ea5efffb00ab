"""End-to-end reconciliation through every layer.

Page snapshot -> scheduler -> local channel -> service -> remote store ->
Todoist client, with only the HTTP transport replaced by a scripted API.
"""

import asyncio

import httpx
import pytest

from tasklink.channel import LocalChannel
from tasklink.dedup import IssueMatcher
from tasklink.page import StaticPageContext
from tasklink.presenter import LABEL_ADD, LABEL_ADDED, STATUS_NO_MATCH, STATUS_UNCONFIGURED, LoggingPresenter
from tasklink.scheduler import ClientSession, ReconciliationScheduler
from tasklink.service import TaskLinkService
from tasklink.settings_store import CredentialStore
from tasklink.todoist.client import AsyncTodoistClient
from tasklink.todoist.store import RemoteTaskStore

pytestmark = pytest.mark.integration

ISSUE_URL = "https://nightwatch.laravel.com/acme/shop/exceptions/42"


@pytest.fixture
def stack(tmp_path, test_config, fake_clock, recording_presenter, make_todoist_api):
    def _build(token: str = "token", pages=None):
        api = make_todoist_api(pages=pages)
        credentials = CredentialStore(tmp_path / "settings.json", default_token="")
        if token:
            credentials.set_token(token)
        store = RemoteTaskStore(
            client_factory=lambda t: AsyncTodoistClient(t, config=test_config, transport=api.transport()),
            config=test_config,
            clock=fake_clock,
        )
        service = TaskLinkService(
            credentials, store=store, matcher=IssueMatcher.from_config(test_config), config=test_config
        )
        page = StaticPageContext.for_issue_url(ISSUE_URL, title="Undefined index: user", environment="production")
        scheduler = ReconciliationScheduler(
            LocalChannel(service.handle, timeout=test_config.channel_timeout_seconds),
            page,
            recording_presenter,
            test_config,
            session=ClientSession(test_config, clock=fake_clock),
        )
        return api, credentials, service, scheduler

    return _build


class TestReconcileLoop:
    @pytest.mark.asyncio
    async def test_create_then_detected_as_duplicate(self, stack, recording_presenter):
        api, _, service, scheduler = stack(pages=[[{"id": "9", "content": "Buy milk"}]])

        assert await scheduler.run_pass() is True
        detail = recording_presenter.last.detail
        assert detail.button_label == LABEL_ADD
        assert detail.status_text == STATUS_NO_MATCH

        outcome = await scheduler.create_task_for()
        assert outcome.created is True
        assert outcome.url == "https://app.todoist.com/app/task/new-1"
        assert api.created[0]["content"].startswith("[Nightwatch] [NW:42] Exception: Undefined index: user")
        assert "Nightwatch Key: issue:42" in api.created[0]["description"]

        await scheduler.wait_idle()

        detail = recording_presenter.last.detail
        assert detail.button_label == LABEL_ADDED
        assert detail.button_enabled is False
        assert detail.open_existing_url == "https://app.todoist.com/app/task/new-1"
        assert detail.status_text == "Already in Todoist (1 matching task)."
        service.close()

    @pytest.mark.asyncio
    async def test_existing_marker_found_on_first_pass(self, stack, recording_presenter):
        _, _, service, scheduler = stack(pages=[[{"id": "5", "content": "Fix checkout [NW:42]"}]])

        await scheduler.run_pass()

        assert recording_presenter.last.detail.open_existing_url == "https://app.todoist.com/app/task/5"
        service.close()

    @pytest.mark.asyncio
    async def test_remote_list_fetched_once_per_window(self, stack):
        api, _, service, scheduler = stack()

        await scheduler.run_pass()
        scheduler.invalidate_caches()
        await scheduler.run_pass()

        # client caches were cleared, the background store still serves its copy
        assert len(api.task_list_requests) == 1
        service.close()


class TestSharedService:
    @pytest.mark.asyncio
    async def test_timed_out_page_does_not_break_joined_page(self, tmp_path, test_config, make_todoist_api):
        api = make_todoist_api(pages=[[{"id": "5", "content": "[NW:42] Boom"}]])

        async def slow_handler(request):
            if request.method == "GET" and request.url.path.endswith("/tasks"):
                await asyncio.sleep(0.3)
            return api.handle(request)

        credentials = CredentialStore(tmp_path / "settings.json", default_token="token")
        store = RemoteTaskStore(
            client_factory=lambda t: AsyncTodoistClient(
                t, config=test_config, transport=httpx.MockTransport(slow_handler)
            ),
            config=test_config,
        )
        service = TaskLinkService(credentials, store=store, config=test_config)

        def page_scheduler(timeout):
            presenter = LoggingPresenter()
            scheduler = ReconciliationScheduler(
                LocalChannel(service.handle, timeout=timeout),
                StaticPageContext.for_issue_url(ISSUE_URL, title="Undefined index: user"),
                presenter,
                test_config,
            )
            return scheduler, presenter

        impatient, impatient_view = page_scheduler(0.05)
        patient, patient_view = page_scheduler(5)

        async def join_later():
            await asyncio.sleep(0.01)
            return await patient.run_pass()

        results = await asyncio.gather(impatient.run_pass(), join_later(), return_exceptions=True)

        assert results == [True, True]
        assert impatient_view.current.detail.open_existing_url is None
        assert patient_view.current.detail.open_existing_url == "https://app.todoist.com/app/task/5"
        assert len(api.task_list_requests) == 1
        service.close()


class TestUnconfigured:
    @pytest.mark.asyncio
    async def test_draft_link_without_token(self, stack, recording_presenter):
        api, _, service, scheduler = stack(token="")

        await scheduler.run_pass()
        detail = recording_presenter.last.detail
        assert detail.status_text == STATUS_UNCONFIGURED
        assert detail.button_enabled is True

        outcome = await scheduler.create_task_for()
        await scheduler.stop()

        assert outcome.created is False
        assert outcome.url.startswith("https://todoist.com/add?")
        assert api.requests == []
        service.close()

    @pytest.mark.asyncio
    async def test_saving_token_enables_matching(self, stack, recording_presenter):
        api, credentials, service, scheduler = stack(token="", pages=[[{"id": "5", "content": "[NW:42]"}]])
        credentials.subscribe(scheduler.on_credential_change)

        await scheduler.run_pass()
        assert recording_presenter.last.configured is False

        credentials.set_token("fresh-token")
        await scheduler.wait_idle()

        assert recording_presenter.last.configured is True
        assert recording_presenter.last.detail.button_label == LABEL_ADDED
        service.close()
