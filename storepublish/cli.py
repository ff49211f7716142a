"""
storepublish command line interface.

Usage:
    # Update listings and replace packages, then commit
    storepublish update 9NBLGGH4R315 submission.json \\
        --package package.zip --update-listings --replace-packages --auto-commit

    # Show a submission / its certification status
    storepublish submission get 9NBLGGH4R315 1152921504621243540
    storepublish submission status 9NBLGGH4R315 1152921504621243540 --wait

    # List applications in the account
    storepublish apps --top 20
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import httpx
from pydantic import ValidationError as ModelValidationError
from structlog import get_logger

from storepublish.config import Settings, get_settings
from storepublish.exceptions import StorePublishError, ValidationError
from storepublish.models.patch import DEFAULT_SENTINEL, PatchOptions
from storepublish.models.submission import PublishMode, Submission, Visibility
from storepublish.observability import setup_logging, write_metrics
from storepublish.services.lifecycle import LifecycleConfig, SubmissionLifecycle
from storepublish.services.package_upload import PackageUploader
from storepublish.services.snapshots import SnapshotWriter
from storepublish.services.submission_client import SubmissionServiceClient
from storepublish.services.token_provider import TokenProvider

logger = get_logger(__name__)


def _print_json(document: Any) -> None:
    print(json.dumps(document, indent=2, sort_keys=True))


def load_submission(path: str | Path) -> Submission:
    """
    Read a proposed submission document from a JSON file.

    Raises:
        ValidationError: If the file is missing or not a valid submission document
    """
    path = Path(path)
    try:
        return Submission.model_validate_json(path.read_bytes())
    except FileNotFoundError as exc:
        raise ValidationError(f"Submission file not found: {path}") from exc
    except ModelValidationError as exc:
        raise ValidationError(f"{path} is not a valid submission document: {exc}") from exc


def build_lifecycle(
    settings: Settings,
    http_client: httpx.AsyncClient,
    snapshot_prefix: str | None = None,
) -> SubmissionLifecycle:
    """Wire the lifecycle orchestrator to its collaborators."""
    tokens = TokenProvider.from_settings(settings, http_client=http_client)
    service = SubmissionServiceClient.from_settings(settings, tokens, http_client=http_client)
    uploader = PackageUploader(http_client=http_client)
    config = LifecycleConfig(
        token_validity_seconds=settings.token_validity_seconds,
        poll_interval=settings.status_poll_interval,
        poll_timeout=settings.status_poll_timeout,
    )
    debug_sink = None
    if settings.debug_snapshot_dir:
        debug_sink = SnapshotWriter(
            settings.debug_snapshot_dir, prefix=snapshot_prefix or "submission"
        )
    return SubmissionLifecycle(service, tokens, uploader, config=config, debug_sink=debug_sink)


def options_from_args(args: argparse.Namespace) -> PatchOptions:
    """Translate parsed CLI flags into PatchOptions."""
    return PatchOptions.from_flags(
        add_packages=args.add_packages,
        replace_packages=args.replace_packages,
        update_listings=args.update_listings,
        update_publish_mode_and_visibility=args.update_publish_mode_and_visibility,
        update_pricing_and_availability=args.update_pricing_and_availability,
        update_app_properties=args.update_app_properties,
        update_notes_for_certification=args.update_notes_for_certification,
        target_publish_mode=args.target_publish_mode,
        target_publish_date=args.target_publish_date,
        visibility=args.visibility,
    )


# ============================================================================
# Commands
# ============================================================================


async def _cmd_update(args: argparse.Namespace, lifecycle: SubmissionLifecycle) -> int:
    options = options_from_args(args)
    proposed = load_submission(args.submission_data)
    result = await lifecycle.update_submission(
        app_id=args.app_id,
        proposed=proposed,
        options=options,
        submission_id=args.submission_id,
        force=args.force,
        package_path=args.package,
        auto_commit=args.auto_commit,
    )
    _print_json(
        {
            "submissionId": result.submission_id,
            "committed": result.committed,
            "uploadUrlIssued": result.upload_url is not None,
        }
    )
    return 0


async def _cmd_apps(args: argparse.Namespace, lifecycle: SubmissionLifecycle) -> int:
    page = await lifecycle.service.list_applications(skip=args.skip, top=args.top)
    _print_json(page.to_document())
    return 0


async def _cmd_app(args: argparse.Namespace, lifecycle: SubmissionLifecycle) -> int:
    application = await lifecycle.service.get_application(args.app_id)
    _print_json(application.to_document())
    return 0


async def _cmd_submission(args: argparse.Namespace, lifecycle: SubmissionLifecycle) -> int:
    if args.action == "get":
        submission = await lifecycle.service.get_submission(args.app_id, args.submission_id)
        _print_json(submission.to_document())
    elif args.action == "status":
        if args.wait:
            report = await lifecycle.wait_for_certification(args.app_id, args.submission_id)
        else:
            report = await lifecycle.service.get_submission_status(
                args.app_id, args.submission_id
            )
        _print_json(report.to_document())
        return 1 if report.is_failed else 0
    elif args.action == "delete":
        await lifecycle.delete_submission(args.app_id, args.submission_id)
    elif args.action == "commit":
        await lifecycle.commit(args.app_id, args.submission_id)
    return 0


_COMMANDS = {
    "update": _cmd_update,
    "apps": _cmd_apps,
    "app": _cmd_app,
    "submission": _cmd_submission,
}


# ============================================================================
# Argument parsing
# ============================================================================


def _parse_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 timestamp: {value}") from exc


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="storepublish",
        description="Clone, update and commit app store submissions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-format", choices=["json", "console"], help="Log output format")
    sub = parser.add_subparsers(dest="command", required=True)

    update = sub.add_parser("update", help="Clone (or reuse) a submission and apply changes")
    update.add_argument("app_id", help="Application id (Store ID)")
    update.add_argument("submission_data", help="JSON file with the proposed submission")
    update.add_argument("--package", help="Package archive (.zip) to upload")
    update.add_argument("--submission-id", help="Reuse this PendingCommit submission")
    update.add_argument(
        "--force", action="store_true", help="Delete an existing pending submission first"
    )
    update.add_argument("--auto-commit", action="store_true", help="Commit after updating")
    update.add_argument("--add-packages", action="store_true")
    update.add_argument("--replace-packages", action="store_true")
    update.add_argument("--update-listings", action="store_true")
    update.add_argument("--update-publish-mode-and-visibility", action="store_true")
    update.add_argument("--update-pricing-and-availability", action="store_true")
    update.add_argument("--update-app-properties", action="store_true")
    update.add_argument("--update-notes-for-certification", action="store_true")
    update.add_argument(
        "--target-publish-mode",
        default=DEFAULT_SENTINEL,
        type=str.lower,
        choices=[DEFAULT_SENTINEL.lower(), *(m.value.lower() for m in PublishMode)],
    )
    update.add_argument("--target-publish-date", type=_parse_datetime)
    update.add_argument(
        "--visibility",
        default=DEFAULT_SENTINEL,
        type=str.lower,
        choices=[DEFAULT_SENTINEL.lower(), *(v.value.lower() for v in Visibility)],
    )

    apps = sub.add_parser("apps", help="List applications")
    apps.add_argument("--skip", type=int, default=0)
    apps.add_argument("--top", type=int, default=100)

    app = sub.add_parser("app", help="Show an application")
    app.add_argument("app_id")

    submission = sub.add_parser("submission", help="Work with an existing submission")
    submission.add_argument("action", choices=["get", "status", "delete", "commit"])
    submission.add_argument("app_id")
    submission.add_argument("submission_id")
    submission.add_argument(
        "--wait", action="store_true", help="With status: poll until processing finishes"
    )

    return parser


async def run(args: argparse.Namespace, settings: Settings) -> int:
    """Execute the parsed command."""
    async with httpx.AsyncClient() as http_client:
        prefix = getattr(args, "app_id", None)
        lifecycle = build_lifecycle(settings, http_client, snapshot_prefix=prefix)
        return await _COMMANDS[args.command](args, lifecycle)


def main(argv: Sequence[str] | None = None) -> int:
    """Console entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(level="DEBUG" if args.verbose else None, log_format=args.log_format)

    try:
        return asyncio.run(run(args, settings))
    except StorePublishError as exc:
        logger.error("command_failed", command=args.command, error=str(exc))
        return 1
    finally:
        if settings.metrics_enabled and settings.metrics_textfile:
            write_metrics(settings.metrics_textfile)


if __name__ == "__main__":
    sys.exit(main())
