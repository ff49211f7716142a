"""
Exception Classes - Strongly typed exception hierarchy.

NO DICTIONARIES - All exceptions have typed attributes.
"""


class StorePublishError(Exception):
    """Base exception for all submission workflow errors."""

    pass


class ValidationError(StorePublishError):
    """Raised when caller-supplied input fails a required-field or option check."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Validation failed: {message}")


class InvalidStateError(StorePublishError):
    """Raised when a submission is not in the state an operation requires."""

    def __init__(self, submission_id: str, status: str | None, required: str) -> None:
        self.submission_id = submission_id
        self.status = status
        self.required = required
        super().__init__(
            f"Submission {submission_id} is in state {status!r}; {required!r} is required"
        )


class ConflictError(StorePublishError):
    """Raised when the service rejects an operation due to a concurrent state change."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code
        super().__init__(f"Conflict: {message}")


class TransportError(StorePublishError):
    """Raised when the service could not be reached (network, timeout)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Transport error: {message}")


class ServiceError(StorePublishError):
    """Raised when the service answers with a non-success status."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.message = message
        self.code = code
        label = f"{status_code} {code}" if code else str(status_code)
        super().__init__(f"Service error ({label}): {message}")


class AuthenticationError(StorePublishError):
    """Raised when an access token cannot be obtained or is rejected."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Authentication failed: {message}")


class SubmissionTimeoutError(StorePublishError):
    """Raised when a submission does not leave an in-progress status in time."""

    def __init__(self, submission_id: str, last_status: str | None, timeout: float) -> None:
        self.submission_id = submission_id
        self.last_status = last_status
        self.timeout = timeout
        super().__init__(
            f"Submission {submission_id} still {last_status!r} after {timeout:.0f} seconds"
        )
