"""
Submission Models - Pydantic models for the submission wire documents.

Only the fields that take part in merge logic are named. Everything else the
service returns is kept as an extra field so that a clone -> patch -> replace
round trip never drops data.
"""

from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

E = TypeVar("E", bound=Enum)
M = TypeVar("M", bound=BaseModel)


def normalize_enum(enum_cls: type[E], value: str) -> E:
    """
    Map a case-insensitive string to the enum member with the service's casing.

    Raises:
        ValueError: If no member matches
    """
    for member in enum_cls:
        if member.value.lower() == value.strip().lower():
            return member
    allowed = ", ".join(m.value for m in enum_cls)
    raise ValueError(f"{value!r} is not a valid {enum_cls.__name__} (expected one of: {allowed})")


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value: object) -> Any:
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class FileStatus(_CaseInsensitiveEnum):
    """fileStatus values used by the service for packages and images."""

    NONE = "None"
    UPLOADED = "Uploaded"
    PENDING_UPLOAD = "PendingUpload"
    PENDING_DELETE = "PendingDelete"


class PublishMode(_CaseInsensitiveEnum):
    """targetPublishMode enumeration."""

    IMMEDIATE = "Immediate"
    MANUAL = "Manual"
    SPECIFIC_DATE = "SpecificDate"


class Visibility(_CaseInsensitiveEnum):
    """visibility enumeration."""

    PUBLIC = "Public"
    PRIVATE = "Private"
    HIDDEN = "Hidden"


class SubmissionStatus(str, Enum):
    """Submission status values the client interprets."""

    PENDING_COMMIT = "PendingCommit"
    COMMIT_STARTED = "CommitStarted"
    PRE_PROCESSING = "PreProcessing"
    CERTIFICATION = "Certification"
    PUBLISHING = "Publishing"
    PUBLISHED = "Published"
    RELEASE = "Release"
    CANCELED = "Canceled"


# Statuses during which the service is still working on a committed submission
IN_PROGRESS_STATUSES = frozenset(
    {
        SubmissionStatus.COMMIT_STARTED.value,
        SubmissionStatus.PRE_PROCESSING.value,
        SubmissionStatus.CERTIFICATION.value,
        SubmissionStatus.PUBLISHING.value,
    }
)


class WireModel(BaseModel):
    """Base for wire documents: camelCase aliases, unknown fields preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON document shape the service expects."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


def clone_document(document: M) -> M:
    """Return a deep, independent copy of a wire document."""
    return document.model_copy(deep=True)


# ============================================================================
# Listings
# ============================================================================


class Image(WireModel):
    """An image attached to a base listing or platform override."""

    id: str | None = None
    file_name: str | None = None
    file_status: str | None = None
    description: str | None = None
    image_type: str | None = None

    def mark_pending_delete(self) -> None:
        """Flag the image for removal by the service."""
        self.file_status = FileStatus.PENDING_DELETE.value


class BaseListing(WireModel):
    """Per-language store page content (description, keywords, images, ...)."""

    title: str | None = None
    description: str | None = None
    images: list[Image] | None = None


class PlatformOverride(WireModel):
    """Legacy platform-specific listing content for one language."""

    title: str | None = None
    description: str | None = None
    images: list[Image] | None = None


class Listing(WireModel):
    """Listing for one language tag."""

    base_listing: BaseListing | None = None
    platform_overrides: dict[str, PlatformOverride] | None = None


# ============================================================================
# Packages
# ============================================================================


class ApplicationPackage(WireModel):
    """A package (binary) descriptor in a submission."""

    id: str | None = None
    file_name: str | None = None
    file_status: str | None = None
    version: str | None = None
    architecture: str | None = None

    def mark_pending_delete(self) -> None:
        """Flag the package for removal by the service."""
        self.file_status = FileStatus.PENDING_DELETE.value


# ============================================================================
# Submission
# ============================================================================


class Submission(WireModel):
    """
    An application submission document.

    `app_id` is a client-side cross-check field: a caller may record in the
    proposed document which application it was written for. It is never sent
    to the service.
    """

    id: str | None = None
    app_id: str | None = Field(default=None, exclude=True)
    status: str | None = None
    file_upload_url: str | None = None

    application_packages: list[ApplicationPackage] | None = None
    listings: dict[str, Listing] | None = None

    # Publish policy
    target_publish_mode: PublishMode | None = None
    target_publish_date: datetime | None = None
    visibility: Visibility | None = None

    # Pricing and availability
    pricing: dict[str, Any] | None = None
    allow_target_future_device_families: dict[str, Any] | None = None
    allow_microsoft_decide_app_availability_to_future_device_families: bool | None = None
    enterprise_licensing: str | None = None

    # App properties
    application_category: str | None = None
    hardware_preferences: list[str] | None = None
    has_external_in_app_products: bool | None = None
    meet_accessibility_guidelines: bool | None = None
    can_install_on_removable_media: bool | None = None
    automatic_backup_enabled: bool | None = None
    is_game_dvr_enabled: bool | None = None

    notes_for_certification: str | None = None

    @field_validator("target_publish_mode", mode="before")
    @classmethod
    def normalize_publish_mode(cls, v: Any) -> Any:
        """Accept any casing of the publish mode."""
        if isinstance(v, str) and not isinstance(v, PublishMode):
            return normalize_enum(PublishMode, v)
        return v

    @field_validator("visibility", mode="before")
    @classmethod
    def normalize_visibility(cls, v: Any) -> Any:
        """Accept any casing of the visibility."""
        if isinstance(v, str) and not isinstance(v, Visibility):
            return normalize_enum(Visibility, v)
        return v

    @property
    def is_pending_commit(self) -> bool:
        """True if the submission can still be modified."""
        return self.status == SubmissionStatus.PENDING_COMMIT.value


class SubmissionReference(WireModel):
    """Reference to a submission from an application record."""

    id: str
    resource_location: str | None = None


class Application(WireModel):
    """Application record as returned by the service."""

    id: str
    primary_name: str | None = None
    package_family_name: str | None = None
    pending_application_submission: SubmissionReference | None = None
    last_published_application_submission: SubmissionReference | None = None

    @property
    def pending_submission_id(self) -> str | None:
        """Id of the submission currently in PendingCommit, if any."""
        if self.pending_application_submission is None:
            return None
        return self.pending_application_submission.id

    @property
    def published_submission_id(self) -> str | None:
        """Id of the last published submission, if any."""
        if self.last_published_application_submission is None:
            return None
        return self.last_published_application_submission.id


class ApplicationPage(WireModel):
    """One page of the application listing."""

    value: list[Application] = Field(default_factory=list)
    total_count: int | None = None
    next_link: str | None = Field(default=None, alias="@nextLink")


class StatusMessage(WireModel):
    """An error or warning from the service's processing pipeline."""

    code: str | None = None
    details: str | None = None


class StatusDetails(WireModel):
    """Detailed processing state of a submission."""

    errors: list[StatusMessage] = Field(default_factory=list)
    warnings: list[StatusMessage] = Field(default_factory=list)
    certification_reports: list[dict[str, Any]] = Field(default_factory=list)


class SubmissionStatusReport(WireModel):
    """Response of the submission status endpoint."""

    status: str
    status_details: StatusDetails | None = None

    @property
    def is_in_progress(self) -> bool:
        """True while the service is still processing a committed submission."""
        return self.status in IN_PROGRESS_STATUSES

    @property
    def is_failed(self) -> bool:
        """True if the service reported a failure state."""
        return self.status.endswith("Failed")
