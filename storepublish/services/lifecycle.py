"""
Submission Lifecycle - Clone, patch, replace, upload and commit a submission.

States:
    NoWorkingSubmission -> Cloned/Reused (PendingCommit) -> Patched (local)
    -> Replaced (persisted) -> PackageUploaded (optional) -> Committed
    Deleted is reachable from any PendingCommit state.

Failures are fatal to the current invocation. Nothing is rolled back: a
clone created before a later step failed stays on the service as it was last
reported, and cleaning it up is an explicit follow-up (delete_submission).
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from structlog import get_logger

from storepublish.exceptions import (
    InvalidStateError,
    SubmissionTimeoutError,
    ValidationError,
)
from storepublish.models.patch import PatchOptions
from storepublish.models.submission import (
    Submission,
    SubmissionStatus,
    SubmissionStatusReport,
)
from storepublish.observability.logging import log_context
from storepublish.observability.metrics import metrics
from storepublish.services.package_upload import PackageUploader
from storepublish.services.patch_engine import (
    DebugSink,
    check_publish_schedule,
    patch_submission,
)
from storepublish.services.submission_service import SubmissionService
from storepublish.services.token_provider import TokenProvider

logger = get_logger(__name__)


@dataclass(frozen=True)
class LifecycleConfig:
    """Timing constants for the lifecycle orchestrator."""

    token_validity_seconds: float = 59 * 60
    poll_interval: float = 60.0
    poll_timeout: float = 4 * 60 * 60
    clock: Callable[[], float] = field(default=time.time)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)


@dataclass(frozen=True)
class PersistResult:
    """Outcome of replacing a submission on the service."""

    submission_id: str
    upload_url: str | None


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of a complete update run."""

    submission_id: str
    upload_url: str | None
    committed: bool
    submission: Submission


@contextmanager
def _lifecycle_step(operation: str) -> Iterator[None]:
    try:
        yield
    except Exception:
        metrics.record_lifecycle(operation, False)
        raise
    metrics.record_lifecycle(operation, True)


class SubmissionLifecycle:
    """
    Orchestrates a submission update against the remote service.

    Usage:
        lifecycle = SubmissionLifecycle(service, tokens, uploader)
        result = await lifecycle.update_submission(
            app_id="9NBLGGH4R315",
            proposed=proposed,
            options=PatchOptions(update_listings=True),
            package_path="package.zip",
            auto_commit=True,
        )
    """

    def __init__(
        self,
        service: SubmissionService,
        token_provider: TokenProvider,
        uploader: PackageUploader,
        config: LifecycleConfig | None = None,
        debug_sink: DebugSink | None = None,
    ) -> None:
        self.service = service
        self.token_provider = token_provider
        self.uploader = uploader
        self.config = config or LifecycleConfig()
        self.debug_sink = debug_sink

    # ========================================================================
    # Validation
    # ========================================================================

    def validate_target(self, app_id: str, proposed: Submission) -> None:
        """
        Check that `proposed` was written for `app_id`.

        Raises:
            ValidationError: If app_id is empty or the proposed appId differs
        """
        if not app_id or not app_id.strip():
            raise ValidationError("app_id is required")
        if proposed.app_id is None:
            logger.warning(
                "proposed_submission_missing_app_id",
                app_id=app_id,
                hint="add appId to the submission document to enable the cross-check",
            )
            return
        if proposed.app_id != app_id:
            raise ValidationError(
                f"Submission document is for app {proposed.app_id}, not {app_id}"
            )

    # ========================================================================
    # Lifecycle steps
    # ========================================================================

    async def acquire_working_submission(
        self,
        app_id: str,
        submission_id: str | None = None,
        force: bool = False,
    ) -> Submission:
        """
        Reuse a pending submission or clone the published one.

        Args:
            app_id: Application to work on
            submission_id: Reuse this submission; it must be PendingCommit
            force: Delete an existing pending submission before cloning

        Raises:
            InvalidStateError: If `submission_id` is not PendingCommit
            ConflictError: If a pending submission exists and force was not set
        """
        if submission_id:
            with _lifecycle_step("reuse"):
                submission = await self.service.get_submission(app_id, submission_id)
                if not submission.is_pending_commit:
                    raise InvalidStateError(
                        submission_id,
                        submission.status,
                        SubmissionStatus.PENDING_COMMIT.value,
                    )
            logger.info("submission_reused", app_id=app_id, submission_id=submission_id)
            return submission

        if force:
            application = await self.service.get_application(app_id)
            pending_id = application.pending_submission_id
            if pending_id:
                logger.warning(
                    "removing_pending_submission", app_id=app_id, submission_id=pending_id
                )
                await self.delete_submission(app_id, pending_id)

        with _lifecycle_step("clone"):
            submission = await self.service.create_submission(app_id)
        logger.info("submission_cloned", app_id=app_id, submission_id=submission.id)
        return submission

    def apply_update(
        self,
        working: Submission,
        proposed: Submission,
        options: PatchOptions,
    ) -> Submission:
        """Merge `proposed` into `working`. Nothing is persisted."""
        return patch_submission(working, proposed, options, debug_sink=self.debug_sink)

    async def persist(self, app_id: str, patched: Submission) -> PersistResult:
        """Replace the submission on the service with the full patched document."""
        if not patched.id:
            raise ValidationError("Patched submission has no id")

        with _lifecycle_step("replace"):
            replaced = await self.service.replace_submission(app_id, patched.id, patched)

        submission_id = replaced.id or patched.id
        logger.info("submission_replaced", app_id=app_id, submission_id=submission_id)
        return PersistResult(submission_id=submission_id, upload_url=replaced.file_upload_url)

    async def commit(self, app_id: str, submission_id: str) -> None:
        """Commit a pending submission. A single attempt; never retried here."""
        with _lifecycle_step("commit"):
            await self.service.commit_submission(app_id, submission_id)
        logger.info("submission_committed", app_id=app_id, submission_id=submission_id)

    async def finalize(
        self,
        app_id: str,
        submission_id: str,
        upload_url: str | None,
        package_path: str | Path | None = None,
        auto_commit: bool = False,
    ) -> bool:
        """
        Upload the package (if any) and commit (if requested).

        Returns:
            True if the submission was committed
        """
        if package_path is not None:
            with _lifecycle_step("upload"):
                await self.uploader.upload(package_path, upload_url or "")

        if not auto_commit:
            logger.info(
                "submission_left_pending",
                app_id=app_id,
                submission_id=submission_id,
            )
            return False

        if self._token_likely_expired():
            logger.info("access_token_refresh_before_commit", app_id=app_id)
            await self.token_provider.get_token(force_refresh=True)

        await self.commit(app_id, submission_id)
        return True

    async def delete_submission(self, app_id: str, submission_id: str) -> None:
        """Discard a pending submission."""
        with _lifecycle_step("delete"):
            await self.service.delete_submission(app_id, submission_id)

    # ========================================================================
    # Full flow
    # ========================================================================

    async def update_submission(
        self,
        app_id: str,
        proposed: Submission,
        options: PatchOptions,
        submission_id: str | None = None,
        force: bool = False,
        package_path: str | Path | None = None,
        auto_commit: bool = False,
    ) -> UpdateResult:
        """
        Validate, acquire, patch, persist and finalize a submission.

        All caller errors are detected before the first network call.
        """
        self.validate_target(app_id, proposed)
        if options.update_publish_mode_and_visibility:
            check_publish_schedule(
                options.target_publish_mode or proposed.target_publish_mode,
                options.target_publish_date or proposed.target_publish_date,
            )
        if package_path is not None and not Path(package_path).is_file():
            raise ValidationError(f"Package file not found: {package_path}")

        with log_context(app_id=app_id):
            working = await self.acquire_working_submission(
                app_id, submission_id=submission_id, force=force
            )
            patched = self.apply_update(working, proposed, options)
            persisted = await self.persist(app_id, patched)

            with log_context(submission_id=persisted.submission_id):
                committed = await self.finalize(
                    app_id,
                    persisted.submission_id,
                    persisted.upload_url,
                    package_path=package_path,
                    auto_commit=auto_commit,
                )

        return UpdateResult(
            submission_id=persisted.submission_id,
            upload_url=persisted.upload_url,
            committed=committed,
            submission=patched,
        )

    async def wait_for_certification(
        self, app_id: str, submission_id: str
    ) -> SubmissionStatusReport:
        """
        Poll the submission status until the service stops processing it.

        Returns:
            The first status report that is not in progress (including failures)

        Raises:
            SubmissionTimeoutError: If still in progress after poll_timeout
        """
        started = self.config.clock()
        last_status: str | None = None

        while True:
            report = await self.service.get_submission_status(app_id, submission_id)
            if report.status != last_status:
                logger.info(
                    "submission_status_changed",
                    app_id=app_id,
                    submission_id=submission_id,
                    status=report.status,
                    previous=last_status,
                )
                last_status = report.status

            if report.is_failed or not report.is_in_progress:
                return report

            if self.config.clock() - started >= self.config.poll_timeout:
                raise SubmissionTimeoutError(submission_id, last_status, self.config.poll_timeout)

            await self.config.sleep(self.config.poll_interval)

    def _token_likely_expired(self) -> bool:
        acquired_at = self.token_provider.acquired_at
        if acquired_at is None:
            return False
        return self.config.clock() - acquired_at > self.config.token_validity_seconds
