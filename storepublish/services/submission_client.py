"""
Submission Service Client - httpx implementation of the SubmissionService protocol.

NO DICTIONARIES - Responses are parsed into typed models at this boundary.

Talks to the Windows Store submission API:
https://learn.microsoft.com/windows/uwp/monetize/create-and-manage-submissions-using-windows-store-services
"""

from typing import Any

import httpx
from structlog import get_logger

from storepublish.config import Settings
from storepublish.exceptions import (
    AuthenticationError,
    ConflictError,
    ServiceError,
    TransportError,
)
from storepublish.models.submission import (
    Application,
    ApplicationPage,
    Submission,
    SubmissionStatusReport,
)
from storepublish.observability.metrics import metrics, track_request
from storepublish.services.token_provider import TokenProvider

logger = get_logger(__name__)


def _error_fields(response: httpx.Response) -> tuple[str | None, str]:
    """Extract (code, message) from a structured error body, falling back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return None, response.text or response.reason_phrase
    if isinstance(body, dict):
        # Some endpoints nest the error under "error"
        error = body.get("error", body)
        if isinstance(error, dict):
            code = error.get("code")
            message = error.get("message") or response.reason_phrase
            return (str(code) if code is not None else None), str(message)
    return None, response.text


class SubmissionServiceClient:
    """
    Authenticated client for the submission API.

    Errors are mapped once, here:
    - connection/timeout failures -> TransportError
    - 401 -> AuthenticationError
    - 409 -> ConflictError
    - any other status >= 400 -> ServiceError
    Nothing is retried.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token_provider = token_provider
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        token_provider: TokenProvider,
        http_client: httpx.AsyncClient | None = None,
    ) -> "SubmissionServiceClient":
        """Build a client from application settings."""
        return cls(
            base_url=settings.api_base_url,
            token_provider=token_provider,
            http_client=http_client,
            timeout=settings.request_timeout,
        )

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return self._http_client

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> Any:
        """Make an authenticated request and return the parsed JSON body (None if empty)."""
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {await self.token_provider.get_token()}",
            "Content-Type": "application/json",
        }

        logger.debug("submission_api_request", operation=operation, method=method, path=path)

        with track_request(operation) as tracker:
            try:
                response = await self.http_client.request(
                    method,
                    url,
                    headers=headers,
                    timeout=self.timeout,
                    **kwargs,
                )
            except httpx.TransportError as exc:
                metrics.record_error("transport", operation)
                logger.error("submission_api_unreachable", operation=operation, error=str(exc))
                raise TransportError(f"{method} {path}: {exc}") from exc
            tracker.set_status_code(response.status_code)

        if response.status_code >= 400:
            code, message = _error_fields(response)
            logger.error(
                "submission_api_error",
                operation=operation,
                status=response.status_code,
                code=code,
                error=message,
            )
            metrics.record_error(str(response.status_code), operation)
            if response.status_code == 401:
                raise AuthenticationError(message)
            if response.status_code == 409:
                raise ConflictError(message, code=code)
            raise ServiceError(response.status_code, message, code=code)

        if not response.content:
            return None
        return response.json()

    async def get_application(self, app_id: str) -> Application:
        """Fetch an application record."""
        result = await self._request("get_application", "GET", f"/my/applications/{app_id}")
        return Application.model_validate(result)

    async def list_applications(self, skip: int = 0, top: int = 100) -> ApplicationPage:
        """Fetch one page of applications."""
        result = await self._request(
            "list_applications",
            "GET",
            "/my/applications",
            params={"skip": skip, "top": top},
        )
        return ApplicationPage.model_validate(result)

    async def get_submission(self, app_id: str, submission_id: str) -> Submission:
        """Fetch a submission by id."""
        result = await self._request(
            "get_submission",
            "GET",
            f"/my/applications/{app_id}/submissions/{submission_id}",
        )
        return Submission.model_validate(result)

    async def create_submission(self, app_id: str) -> Submission:
        """Clone the published submission into a new pending one."""
        result = await self._request(
            "create_submission", "POST", f"/my/applications/{app_id}/submissions"
        )
        submission = Submission.model_validate(result)
        logger.info("submission_created", app_id=app_id, submission_id=submission.id)
        return submission

    async def replace_submission(
        self, app_id: str, submission_id: str, submission: Submission
    ) -> Submission:
        """Replace the full submission content."""
        result = await self._request(
            "replace_submission",
            "PUT",
            f"/my/applications/{app_id}/submissions/{submission_id}",
            json=submission.to_document(),
        )
        return Submission.model_validate(result)

    async def delete_submission(self, app_id: str, submission_id: str) -> None:
        """Discard a pending submission."""
        await self._request(
            "delete_submission",
            "DELETE",
            f"/my/applications/{app_id}/submissions/{submission_id}",
        )
        logger.info("submission_deleted", app_id=app_id, submission_id=submission_id)

    async def commit_submission(self, app_id: str, submission_id: str) -> None:
        """Hand a pending submission to certification."""
        await self._request(
            "commit_submission",
            "POST",
            f"/my/applications/{app_id}/submissions/{submission_id}/commit",
        )

    async def get_submission_status(
        self, app_id: str, submission_id: str
    ) -> SubmissionStatusReport:
        """Fetch the processing status of a submission."""
        result = await self._request(
            "get_submission_status",
            "GET",
            f"/my/applications/{app_id}/submissions/{submission_id}/status",
        )
        return SubmissionStatusReport.model_validate(result)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
