"""
Patch Engine - Merge a proposed submission into a cloned one.

Pure document transformation: no network access, never mutates its inputs.
Category flags are applied in a fixed order (packages, listings, publish
mode/visibility, pricing/availability, app properties, certification notes)
and the field overrides from PatchOptions are applied last.
"""

from collections.abc import Callable
from datetime import datetime
from typing import Any

from structlog import get_logger

from storepublish.exceptions import ValidationError
from storepublish.models.patch import PackagesMode, PatchOptions
from storepublish.models.submission import (
    BaseListing,
    Listing,
    PublishMode,
    Submission,
    clone_document,
)

logger = get_logger(__name__)

# Receives ("pre" | "post", wire document)
DebugSink = Callable[[str, dict[str, Any]], None]

PUBLISH_FIELDS = ("target_publish_mode", "target_publish_date", "visibility")

PRICING_FIELDS = (
    "pricing",
    "allow_target_future_device_families",
    "allow_microsoft_decide_app_availability_to_future_device_families",
    "enterprise_licensing",
)

APP_PROPERTY_FIELDS = (
    "application_category",
    "hardware_preferences",
    "has_external_in_app_products",
    "meet_accessibility_guidelines",
    "can_install_on_removable_media",
    "automatic_backup_enabled",
    "is_game_dvr_enabled",
)


def _copy_fields(target: Submission, source: Submission, names: tuple[str, ...]) -> None:
    for name in names:
        setattr(target, name, getattr(source, name))


def check_publish_schedule(mode: PublishMode | None, date: datetime | None) -> None:
    """
    Check that a publish date is present exactly when the mode is SpecificDate.

    Raises:
        ValidationError: If SpecificDate has no date, or a date comes with another mode
    """
    specific_date = mode == PublishMode.SPECIFIC_DATE
    if specific_date and date is None:
        raise ValidationError("targetPublishMode SpecificDate requires a targetPublishDate")
    if date is not None and not specific_date:
        shown = mode.value if mode is not None else None
        raise ValidationError(
            f"targetPublishDate is only valid with targetPublishMode SpecificDate, not {shown}"
        )


def _touches_publish_schedule(options: PatchOptions) -> bool:
    return (
        options.update_publish_mode_and_visibility
        or options.target_publish_mode is not None
        or options.target_publish_date is not None
    )


def _merge_packages(patched: Submission, source: Submission, mode: PackagesMode) -> None:
    packages = list(patched.application_packages or [])
    if mode == PackagesMode.REPLACE:
        for package in packages:
            package.mark_pending_delete()
    packages.extend(source.application_packages or [])
    patched.application_packages = packages


def _merge_listings(patched: Submission, source: Submission) -> None:
    """
    Replace the listings wholesale, then carry the original images forward.

    Images from the original base listing are appended flagged PendingDelete.
    Platform overrides missing from the new listing are carried over as-is;
    overrides present in both get the original images appended, flagged.
    Languages absent from the new listings are not synthesized.
    """
    original_listings = patched.listings or {}
    merged: dict[str, Listing] = dict(source.listings or {})

    for lang, original in original_listings.items():
        listing = merged.get(lang)
        if listing is None:
            continue

        original_images = original.base_listing.images if original.base_listing else None
        if original_images:
            if listing.base_listing is None:
                listing.base_listing = BaseListing(images=[])
            images = list(listing.base_listing.images or [])
            for image in original_images:
                image.mark_pending_delete()
                images.append(image)
            listing.base_listing.images = images

        for platform, original_override in (original.platform_overrides or {}).items():
            overrides = dict(listing.platform_overrides or {})
            override = overrides.get(platform)
            if override is None:
                overrides[platform] = original_override
            elif original_override.images:
                images = list(override.images or [])
                for image in original_override.images:
                    image.mark_pending_delete()
                    images.append(image)
                override.images = images
            listing.platform_overrides = overrides

    patched.listings = merged


def patch_submission(
    cloned: Submission,
    proposed: Submission,
    options: PatchOptions,
    debug_sink: DebugSink | None = None,
) -> Submission:
    """
    Merge `proposed` into `cloned` according to `options`.

    Args:
        cloned: Submission returned by the service (PendingCommit clone)
        proposed: Caller-supplied submission carrying the new content
        options: Update categories and field overrides
        debug_sink: Optional receiver of the pre/post merge documents

    Returns:
        A new submission document; both inputs are left untouched.

    Raises:
        ValidationError: If the resulting publish mode and date do not agree
    """
    patched = clone_document(cloned)
    source = clone_document(proposed)

    if debug_sink is not None:
        debug_sink("pre", patched.to_document())

    if not options.has_updates:
        logger.warning("patch_no_updates_selected", submission_id=cloned.id)

    if options.packages_mode != PackagesMode.NONE:
        _merge_packages(patched, source, options.packages_mode)

    if options.update_listings:
        _merge_listings(patched, source)

    if options.update_publish_mode_and_visibility:
        _copy_fields(patched, source, PUBLISH_FIELDS)

    if options.update_pricing_and_availability:
        _copy_fields(patched, source, PRICING_FIELDS)

    if options.update_app_properties:
        _copy_fields(patched, source, APP_PROPERTY_FIELDS)

    if options.update_notes_for_certification:
        patched.notes_for_certification = source.notes_for_certification

    if options.target_publish_mode is not None:
        patched.target_publish_mode = options.target_publish_mode
    if options.target_publish_date is not None:
        patched.target_publish_date = options.target_publish_date
    if options.visibility is not None:
        patched.visibility = options.visibility

    # Only schedules this merge changed are checked; an untouched clone passes as is
    if _touches_publish_schedule(options):
        check_publish_schedule(patched.target_publish_mode, patched.target_publish_date)

    logger.debug(
        "submission_patched",
        submission_id=patched.id,
        packages_mode=options.packages_mode.value,
        update_listings=options.update_listings,
        package_count=len(patched.application_packages or []),
        listing_languages=sorted((patched.listings or {}).keys()),
    )

    if debug_sink is not None:
        debug_sink("post", patched.to_document())

    return patched
