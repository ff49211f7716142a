"""
Submission Service Protocol - Contract the lifecycle needs from the remote API.

NO DICTIONARIES - All data uses strongly typed models.
"""

from typing import Protocol

from storepublish.models.submission import (
    Application,
    ApplicationPage,
    Submission,
    SubmissionStatusReport,
)


class SubmissionService(Protocol):
    """
    Remote submission service protocol.

    Every method may raise TransportError (network, timeout) or ServiceError
    (non-success response); ConflictError is raised when the service rejects
    the call because of a concurrent state change. None of them retry.
    """

    async def get_application(self, app_id: str) -> Application:
        """Fetch an application record, including its pending submission reference."""
        ...

    async def list_applications(self, skip: int = 0, top: int = 100) -> ApplicationPage:
        """Fetch one page of the applications in the developer account."""
        ...

    async def get_submission(self, app_id: str, submission_id: str) -> Submission:
        """Fetch a submission by id."""
        ...

    async def create_submission(self, app_id: str) -> Submission:
        """
        Create a new submission cloned from the published one.

        The response carries the new id and a fileUploadUrl.
        """
        ...

    async def replace_submission(
        self, app_id: str, submission_id: str, submission: Submission
    ) -> Submission:
        """Replace the full submission content. The response carries a fresh fileUploadUrl."""
        ...

    async def delete_submission(self, app_id: str, submission_id: str) -> None:
        """Discard a pending submission."""
        ...

    async def commit_submission(self, app_id: str, submission_id: str) -> None:
        """Hand a pending submission to certification."""
        ...

    async def get_submission_status(
        self, app_id: str, submission_id: str
    ) -> SubmissionStatusReport:
        """Fetch the processing status of a submission."""
        ...
