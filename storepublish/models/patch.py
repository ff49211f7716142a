"""
Patch Options - What a merge should take from the proposed submission.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from storepublish.exceptions import ValidationError
from storepublish.models.submission import PublishMode, Visibility, normalize_enum

# Override value meaning "leave the field alone"
DEFAULT_SENTINEL = "Default"


class PackagesMode(str, Enum):
    """How application packages from the proposed submission are merged."""

    NONE = "none"
    ADD = "add"
    REPLACE = "replace"


class PatchOptions(BaseModel):
    """
    Update categories and field overrides for one merge.

    Category flags copy whole groups of fields from the proposed submission.
    The three overrides are applied after every category; None is the
    "Default" sentinel and leaves the value from the earlier steps in place.
    """

    model_config = ConfigDict(frozen=True)

    packages_mode: PackagesMode = PackagesMode.NONE
    update_listings: bool = False
    update_publish_mode_and_visibility: bool = False
    update_pricing_and_availability: bool = False
    update_app_properties: bool = False
    update_notes_for_certification: bool = False

    target_publish_mode: PublishMode | None = None
    target_publish_date: datetime | None = None
    visibility: Visibility | None = None

    @field_validator("target_publish_mode", mode="before")
    @classmethod
    def parse_publish_mode(cls, v: Any) -> Any:
        """Map the Default sentinel to None and normalize casing."""
        if isinstance(v, str) and not isinstance(v, PublishMode):
            if v.strip().lower() == DEFAULT_SENTINEL.lower():
                return None
            return normalize_enum(PublishMode, v)
        return v

    @field_validator("visibility", mode="before")
    @classmethod
    def parse_visibility(cls, v: Any) -> Any:
        """Map the Default sentinel to None and normalize casing."""
        if isinstance(v, str) and not isinstance(v, Visibility):
            if v.strip().lower() == DEFAULT_SENTINEL.lower():
                return None
            return normalize_enum(Visibility, v)
        return v

    @model_validator(mode="after")
    def validate_publish_date(self) -> "PatchOptions":
        """
        Reject a publish date overridden together with a different publish mode.

        Other mode/date combinations depend on the documents being merged and
        are checked on the merge result.
        """
        mode = self.target_publish_mode
        if self.target_publish_date is not None and mode not in (None, PublishMode.SPECIFIC_DATE):
            raise ValidationError(
                f"target_publish_date is only valid with target_publish_mode SpecificDate, "
                f"not {mode.value}"
            )
        return self

    @classmethod
    def from_flags(
        cls,
        *,
        add_packages: bool = False,
        replace_packages: bool = False,
        **kwargs: Any,
    ) -> "PatchOptions":
        """
        Build options from independent package switches.

        Raises:
            ValidationError: If both add_packages and replace_packages are set
        """
        if add_packages and replace_packages:
            raise ValidationError("add_packages and replace_packages are mutually exclusive")
        if add_packages:
            mode = PackagesMode.ADD
        elif replace_packages:
            mode = PackagesMode.REPLACE
        else:
            mode = PackagesMode.NONE
        return cls(packages_mode=mode, **kwargs)

    @property
    def has_updates(self) -> bool:
        """False when the merge would take nothing from the proposed submission."""
        return any(
            (
                self.packages_mode != PackagesMode.NONE,
                self.update_listings,
                self.update_publish_mode_and_visibility,
                self.update_pricing_and_availability,
                self.update_app_properties,
                self.update_notes_for_certification,
                self.target_publish_mode is not None,
                self.target_publish_date is not None,
                self.visibility is not None,
            )
        )
