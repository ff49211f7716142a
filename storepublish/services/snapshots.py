"""
Snapshot Writer - Persist pre/post merge documents for diagnostics.
"""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from structlog import get_logger

logger = get_logger(__name__)


class SnapshotWriter:
    """
    Debug sink that writes each merge stage to a standalone JSON file.

    Usage:
        writer = SnapshotWriter("/tmp/snapshots", prefix="app-123")
        patch_submission(cloned, proposed, options, debug_sink=writer)
        # -> /tmp/snapshots/app-123-<timestamp>-pre.json, ...-post.json
    """

    def __init__(self, directory: str | Path, prefix: str = "submission") -> None:
        self.directory = Path(directory)
        self.prefix = prefix
        self._stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S")
        self.written: list[Path] = []

    def path_for(self, stage: str) -> Path:
        """Path the given stage is written to."""
        return self.directory / f"{self.prefix}-{self._stamp}-{stage}.json"

    def __call__(self, stage: str, document: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(stage)
        path.write_text(json.dumps(document, indent=2, sort_keys=True), encoding="utf-8")
        self.written.append(path)
        logger.debug("submission_snapshot_written", stage=stage, path=str(path))
