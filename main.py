"""Command-line entry point for tasklink.

Loads environment variables, wires the credential store, service, channel and
scheduler together, and runs one operation: save or test the Todoist token,
look up matches for an issue, print or create a task draft, or run a single
reconciliation pass over a static page.
"""
from dotenv import load_dotenv
import argparse
import asyncio
import sys

# Load environment variables first, before any other imports
load_dotenv()

from tasklink.channel import LocalChannel
from tasklink.config import get_config
from tasklink.page import IssueRecord, StaticPageContext, parse_issue_reference
from tasklink.presenter import LoggingPresenter
from tasklink.scheduler import ReconciliationScheduler
from tasklink.service import TaskLinkService
from tasklink.settings_store import CredentialStore
from tasklink.todoist.payload import TaskDraftBuilder
from tasklink.utils.logger import configure_logging, log_error, log_info


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Link Nightwatch issues to Todoist tasks without duplicates.")
    parser.add_argument('--set-token', type=str, help='Save a Todoist API token (empty string removes it).')
    parser.add_argument('--test-token', action='store_true', help='Verify the saved Todoist token.')
    parser.add_argument('--issue-id', action='append', default=[], help='Issue id to look up (repeatable).')
    parser.add_argument('--title', type=str, default='', help='Issue title, used as a match hint and draft title.')
    parser.add_argument('--environment', type=str, default='', help='Issue environment for drafts.')
    parser.add_argument('--url', type=str, default='', help='Nightwatch issue URL (used by --draft, --create, --reconcile).')
    parser.add_argument('--draft', action='store_true', help='Print the task draft for the issue.')
    parser.add_argument('--create', action='store_true', help='Create the Todoist task for the issue.')
    parser.add_argument('--reconcile', action='store_true', help='Run one reconciliation pass for --url.')
    return parser


def _issue_from_args(args) -> IssueRecord:
    ref = parse_issue_reference(args.url) if args.url else None
    if ref is not None:
        return IssueRecord(issue_id=ref.issue_id, type=ref.type, url=ref.url, title=args.title, environment=args.environment)
    if args.issue_id:
        return IssueRecord(issue_id=args.issue_id[0], title=args.title, environment=args.environment)
    raise SystemExit("❌ --url or --issue-id is required")


async def _find_matches(service: TaskLinkService, args) -> int:
    hints = {issue_id: {"title": args.title} for issue_id in args.issue_id if args.title}
    response = await service.handle({"type": "findMatches", "issueIds": args.issue_id, "issueHints": hints})
    if not response.get("ok"):
        print(f"❌ {response.get('error')}")
        return 1
    if not response.get("configured"):
        print("⚠️  No Todoist token is saved; duplicate checks are disabled.")
        return 0
    for issue_id, tasks in response["matches"].items():
        if tasks:
            print(f"✅ {issue_id}: {len(tasks)} matching task(s)")
            for task in tasks:
                print(f"   - {task['content']} ({task['url']})")
        else:
            print(f"➖ {issue_id}: no matching task")
    return 0


async def _reconcile(service: TaskLinkService, args, config) -> int:
    page = StaticPageContext.for_issue_url(args.url, title=args.title, environment=args.environment)
    presenter = LoggingPresenter()
    scheduler = ReconciliationScheduler(LocalChannel(service.handle, config.channel_timeout_seconds), page, presenter, config)

    await scheduler.run_pass()
    view = presenter.current
    if view is None or view.detail is None:
        print("➖ Nothing to show for this page.")
        return 0

    detail = view.detail
    print(f"{detail.status_text}")
    print(f"   Button: {detail.button_label} ({'enabled' if detail.button_enabled else 'disabled'})")
    if detail.open_existing_url:
        print(f"   Existing: {detail.open_existing_url}")

    if args.create and detail.button_enabled:
        outcome = await scheduler.create_task_for()
        print(f"{'✅ Created' if outcome.created else '↗️  Open draft'}: {outcome.url}")
    await scheduler.stop()
    return 0


async def run(args) -> int:
    config = get_config()
    credentials = CredentialStore()
    service = TaskLinkService(credentials, config=config)

    try:
        if args.set_token is not None:
            changed = credentials.set_token(args.set_token)
            print("✅ Token saved." if changed else "➖ Token unchanged.")

        if args.test_token:
            response = await service.handle({"type": "testCredential"})
            print("✅ Token works." if response.get("ok") else f"❌ {response.get('error')}")
            if not response.get("ok"):
                return 1

        if args.reconcile:
            return await _reconcile(service, args, config)

        if args.draft or args.create:
            issue = _issue_from_args(args)
            draft = TaskDraftBuilder(config).build(issue)
            if args.draft:
                print(draft.title)
                print()
                print(draft.body)
                print()
                print(draft.prefilled_url)
            if args.create:
                response = await service.handle({"type": "createTask", "content": draft.title, "description": draft.body})
                if not response.get("ok"):
                    print(f"❌ {response.get('error')}")
                    print(f"↗️  Open draft instead: {draft.prefilled_url}")
                    return 1
                print(f"✅ Created: {response['task']['url']}")
            return 0

        if args.issue_id:
            return await _find_matches(service, args)
    finally:
        service.close()

    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # Load and validate configuration
    config = get_config()
    configure_logging(config.log_level, config.log_format)
    config.log_configuration()

    issues = config.validate_configuration()
    if issues:
        log_error("Configuration validation issues", issues=issues)
        print("⚠️  Configuration issues found:")
        for issue in issues:
            print(f"  - {issue}")

    exit_code = asyncio.run(run(args))
    log_info("tasklink finished", exit_code=exit_code)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
