"""
Pytest Configuration and Centralized Fixtures.

Provides reusable submission documents and mocked collaborators:
- Cloned (server) and proposed (caller) submission documents
- Mocked submission service, token provider and package uploader
- Lifecycle orchestrator wired to the mocks with a controllable clock
"""

import os
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Keep the developer's environment out of the tests
os.environ.setdefault("STOREPUBLISH_TENANT_ID", "test-tenant")
os.environ.setdefault("STOREPUBLISH_CLIENT_ID", "test-client")
os.environ.setdefault("STOREPUBLISH_CLIENT_SECRET", "test-secret")

from storepublish.models.submission import Application, Submission
from storepublish.services.lifecycle import LifecycleConfig, SubmissionLifecycle
from storepublish.services.package_upload import PackageUploader
from storepublish.services.submission_client import SubmissionServiceClient
from storepublish.services.token_provider import TokenProvider

APP_ID = "9NBLGGH4R315"
SUBMISSION_ID = "1152921504621243540"
UPLOAD_URL = "https://blob.example.net/upload/abc?sv=2015&sig=xyz"


def image(file_name: str, status: str = "Uploaded", image_type: str = "Screenshot") -> dict:
    """Wire-format image entry."""
    return {
        "fileName": file_name,
        "fileStatus": status,
        "imageType": image_type,
        "description": f"{file_name} description",
    }


def package(file_name: str, status: str = "Uploaded") -> dict:
    """Wire-format application package entry."""
    return {
        "fileName": file_name,
        "fileStatus": status,
        "version": "1.0.0.0",
        "architecture": "x64",
        "targetDeviceFamilies": ["Windows.Desktop min version 10.0.10240.0"],
    }


def cloned_document() -> dict[str, Any]:
    """A submission as the service returns it right after cloning."""
    return {
        "id": SUBMISSION_ID,
        "status": "PendingCommit",
        "fileUploadUrl": UPLOAD_URL,
        "friendlyName": "Submission 4",
        "applicationPackages": [package("app_1.0.msixupload"), package("app_0.9.msixupload")],
        "listings": {
            "en-us": {
                "baseListing": {
                    "title": "Contoso",
                    "description": "Old description",
                    "keywords": ["old"],
                    "images": [image("en_1.png"), image("en_2.png"), image("en_3.png")],
                },
                "platformOverrides": {
                    "Windows81": {
                        "title": "Contoso 8.1",
                        "images": [image("en_81.png")],
                    },
                },
            },
            "fr-fr": {
                "baseListing": {
                    "title": "Contoso FR",
                    "images": [image("fr_1.png")],
                },
                "platformOverrides": {},
            },
        },
        "targetPublishMode": "Immediate",
        "targetPublishDate": None,
        "visibility": "Public",
        "pricing": {"trialPeriod": "NoFreeTrial", "priceId": "Free", "marketSpecificPricings": {}},
        "allowTargetFutureDeviceFamilies": {"Desktop": True, "Mobile": False},
        "allowMicrosoftDecideAppAvailabilityToFutureDeviceFamilies": False,
        "enterpriseLicensing": "Online",
        "applicationCategory": "Productivity",
        "hardwarePreferences": ["Touch"],
        "hasExternalInAppProducts": False,
        "meetAccessibilityGuidelines": True,
        "canInstallOnRemovableMedia": True,
        "automaticBackupEnabled": False,
        "isGameDvrEnabled": False,
        "notesForCertification": "Old notes",
    }


def proposed_document() -> dict[str, Any]:
    """A caller-authored submission with new content."""
    return {
        "appId": APP_ID,
        "applicationPackages": [package("app_2.0.msixupload", status="PendingUpload")],
        "listings": {
            "en-us": {
                "baseListing": {
                    "title": "Contoso",
                    "description": "New description",
                    "keywords": ["new"],
                    "images": [image("en_new.png", status="PendingUpload")],
                },
            },
        },
        "targetPublishMode": "manual",
        "visibility": "PRIVATE",
        "pricing": {"trialPeriod": "OneDay", "priceId": "Tier2", "marketSpecificPricings": {}},
        "allowTargetFutureDeviceFamilies": {"Desktop": True, "Mobile": True},
        "allowMicrosoftDecideAppAvailabilityToFutureDeviceFamilies": True,
        "enterpriseLicensing": "None",
        "applicationCategory": "Games",
        "hardwarePreferences": [],
        "hasExternalInAppProducts": True,
        "meetAccessibilityGuidelines": False,
        "canInstallOnRemovableMedia": False,
        "automaticBackupEnabled": True,
        "isGameDvrEnabled": True,
        "notesForCertification": "New notes",
    }


# ============================================================================
# Document Fixtures
# ============================================================================


@pytest.fixture
def cloned() -> Submission:
    """Cloned submission model."""
    return Submission.model_validate(cloned_document())


@pytest.fixture
def proposed() -> Submission:
    """Proposed submission model."""
    return Submission.model_validate(proposed_document())


@pytest.fixture
def application() -> Application:
    """Application record with a published and no pending submission."""
    return Application.model_validate(
        {
            "id": APP_ID,
            "primaryName": "Contoso",
            "packageFamilyName": "Contoso.App_8wekyb3d8bbwe",
            "lastPublishedApplicationSubmission": {
                "id": "1152921504621243000",
                "resourceLocation": f"applications/{APP_ID}/submissions/1152921504621243000",
            },
        }
    )


# ============================================================================
# Collaborator Mocks
# ============================================================================


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock shared by the lifecycle and the token mock."""
    return FakeClock()


@pytest.fixture
def service(cloned: Submission) -> AsyncMock:
    """Mock submission service with happy-path defaults."""
    mock = AsyncMock(spec=SubmissionServiceClient)
    mock.get_submission.return_value = cloned
    mock.create_submission.return_value = cloned
    mock.replace_submission.side_effect = lambda app_id, submission_id, doc: doc.model_copy(
        update={"file_upload_url": UPLOAD_URL}
    )
    mock.delete_submission.return_value = None
    mock.commit_submission.return_value = None
    return mock


@pytest.fixture
def token_provider(clock: FakeClock) -> MagicMock:
    """Mock token provider whose token was obtained 'now'."""
    mock = MagicMock(spec=TokenProvider)
    mock.acquired_at = clock.now
    mock.get_token = AsyncMock(return_value="fresh-token")
    return mock


@pytest.fixture
def uploader() -> AsyncMock:
    """Mock package uploader."""
    mock = AsyncMock(spec=PackageUploader)
    mock.upload.return_value = 1024
    return mock


@pytest.fixture
def lifecycle(
    service: AsyncMock,
    token_provider: MagicMock,
    uploader: AsyncMock,
    clock: FakeClock,
) -> SubmissionLifecycle:
    """Lifecycle orchestrator wired to mocks."""
    sleep = AsyncMock()
    config = LifecycleConfig(
        token_validity_seconds=3540,
        poll_interval=30,
        poll_timeout=600,
        clock=clock,
        sleep=sleep,
    )
    return SubmissionLifecycle(service, token_provider, uploader, config=config)
