"""Unit tests for the page collaborator helpers."""

import pytest

from tasklink.page import (
    IssueRecord,
    IssueRef,
    PageSnapshot,
    StaticPageContext,
    collect_list_issues,
    is_issue_list_path,
    is_monitored_context,
    parse_issue_reference,
)


class TestParseIssueReference:
    def test_exception_url(self):
        ref = parse_issue_reference("https://nightwatch.laravel.com/acme/app/exceptions/9f3c?tab=stack")

        assert ref.issue_id == "9f3c"
        assert ref.type == "exception"
        assert ref.pathname == "/acme/app/exceptions/9f3c"

    def test_issue_url(self):
        ref = parse_issue_reference("https://nightwatch.laravel.com/acme/app/issues/42")

        assert ref.issue_id == "42"
        assert ref.type == "issue"

    def test_relative_href_resolved(self):
        ref = parse_issue_reference("/acme/app/issue/7#trace", origin="https://nightwatch.laravel.com")

        assert ref.issue_id == "7"
        assert ref.url == "https://nightwatch.laravel.com/acme/app/issue/7#trace"

    def test_encoded_id_decoded(self):
        assert parse_issue_reference("https://x.test/issues/a%20b").issue_id == "a b"

    @pytest.mark.parametrize("value", ["", "https://x.test/", "https://x.test/issues", "https://x.test/users/4"])
    def test_non_issue_urls(self, value):
        assert parse_issue_reference(value) is None


class TestPathHelpers:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/acme/app/issues", True),
            ("/acme/app/exceptions/", True),
            ("/acme/app/issues/42", False),
            ("/acme/app/settings", False),
        ],
    )
    def test_is_issue_list_path(self, path, expected):
        assert is_issue_list_path(path) is expected

    def test_monitored_context_signals(self):
        assert is_monitored_context(hostname="nightwatch.laravel.com")
        assert is_monitored_context(title="Exceptions · Nightwatch")
        assert is_monitored_context(hostname="errors.acme.test", application_name="Laravel Nightwatch")
        assert not is_monitored_context(hostname="github.com", path="/acme", title="Issues")


class TestCollectListIssues:
    def test_dedupes_and_fills_missing_title(self):
        links = [
            ("/acme/app/issues/1", ""),
            ("/acme/app/issues/2", "  Slow   query "),
            ("/acme/app/issues/1", "Undefined index"),
            ("/acme/app/issues/1", "Ignored later title"),
            ("/acme/app/settings", "Settings"),
        ]

        refs = collect_list_issues(links, origin="https://nightwatch.laravel.com")

        assert refs == [IssueRef("1", "Undefined index"), IssueRef("2", "Slow query")]


class TestSnapshot:
    def test_issue_refs_current_first(self):
        snapshot = PageSnapshot(
            current_issue=IssueRecord(issue_id="42", title=""),
            list_entries=(IssueRef("7", "Other"),),
        )

        assert snapshot.issue_refs() == [IssueRef("42", "Issue 42"), IssueRef("7", "Other")]

    def test_static_page_for_issue_url(self):
        page = StaticPageContext.for_issue_url(
            "https://errors.acme.test/exceptions/42", title="Boom", environment="staging"
        )

        snapshot = page.snapshot()
        assert page.current_url() == "https://errors.acme.test/exceptions/42"
        assert snapshot.in_monitored_context is True
        assert snapshot.current_issue.issue_id == "42"
        assert snapshot.current_issue.type == "exception"
        assert snapshot.current_issue.environment == "staging"

    def test_static_page_outside_monitored_app(self):
        page = StaticPageContext.for_issue_url("https://github.com/acme")

        assert page.snapshot().in_monitored_context is False
        assert page.snapshot().current_issue is None

    def test_navigate(self):
        page = StaticPageContext("https://a.test/issues/1")
        page.navigate("https://a.test/issues/2", PageSnapshot(current_issue=IssueRecord(issue_id="2")))

        assert page.current_url() == "https://a.test/issues/2"
        assert page.snapshot().current_issue.issue_id == "2"
