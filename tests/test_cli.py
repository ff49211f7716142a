"""
Tests for the command line interface.
"""

import json
from datetime import UTC, datetime

import pytest

from storepublish.cli import build_parser, load_submission, options_from_args
from storepublish.exceptions import ValidationError
from storepublish.models.patch import PackagesMode
from storepublish.models.submission import PublishMode, Visibility


def parse_update(*extra: str):
    return build_parser().parse_args(["update", "9NBLGGH4R315", "submission.json", *extra])


class TestParser:
    """Tests for argument parsing."""

    def test_update_defaults(self):
        """Without flags nothing is selected and the sentinels apply."""
        args = parse_update()
        options = options_from_args(args)

        assert args.command == "update"
        assert args.auto_commit is False
        assert options.packages_mode is PackagesMode.NONE
        assert options.target_publish_mode is None
        assert options.visibility is None
        assert options.has_updates is False

    def test_update_flags(self):
        """Category switches and overrides map onto PatchOptions."""
        args = parse_update(
            "--add-packages",
            "--update-listings",
            "--update-notes-for-certification",
            "--visibility",
            "Hidden",
            "--target-publish-mode",
            "SpecificDate",
            "--target-publish-date",
            "2026-11-01T00:00:00Z",
        )
        options = options_from_args(args)

        assert options.packages_mode is PackagesMode.ADD
        assert options.update_listings is True
        assert options.update_notes_for_certification is True
        assert options.visibility is Visibility.HIDDEN
        assert options.target_publish_mode is PublishMode.SPECIFIC_DATE
        assert options.target_publish_date == datetime(2026, 11, 1, tzinfo=UTC)

    def test_both_package_switches_rejected(self):
        """--add-packages with --replace-packages is a caller error."""
        args = parse_update("--add-packages", "--replace-packages")
        with pytest.raises(ValidationError, match="mutually exclusive"):
            options_from_args(args)

    def test_invalid_visibility_choice(self):
        """Unknown visibility values are rejected by the parser."""
        with pytest.raises(SystemExit):
            parse_update("--visibility", "secret")

    def test_invalid_publish_date(self):
        """Malformed timestamps are rejected by the parser."""
        with pytest.raises(SystemExit):
            parse_update("--target-publish-date", "tomorrow")

    def test_submission_command(self):
        """The submission command takes an action and two ids."""
        args = build_parser().parse_args(["submission", "status", "APP", "123", "--wait"])
        assert (args.action, args.app_id, args.submission_id, args.wait) == (
            "status",
            "APP",
            "123",
            True,
        )

    def test_command_required(self):
        """A sub-command must be given."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestLoadSubmission:
    """Tests for reading proposed documents."""

    def test_load(self, tmp_path):
        """A valid document is parsed."""
        path = tmp_path / "submission.json"
        path.write_text(
            json.dumps({"appId": "9NBLGGH4R315", "visibility": "public"}), encoding="utf-8"
        )

        submission = load_submission(path)

        assert submission.app_id == "9NBLGGH4R315"
        assert submission.visibility is Visibility.PUBLIC

    def test_missing_file(self, tmp_path):
        """A missing file is a validation error."""
        with pytest.raises(ValidationError, match="not found"):
            load_submission(tmp_path / "nope.json")

    def test_invalid_document(self, tmp_path):
        """Malformed documents are validation errors."""
        path = tmp_path / "submission.json"
        path.write_text(json.dumps({"visibility": "Secret"}), encoding="utf-8")

        with pytest.raises(ValidationError, match="not a valid submission"):
            load_submission(path)
