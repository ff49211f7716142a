"""
Package Uploader - Upload a package archive to a submission's fileUploadUrl.

The upload URL is an Azure blob SAS URL issued by the service; the archive is
stored there as a single block blob.
"""

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import httpx
from structlog import get_logger

from storepublish.exceptions import ServiceError, TransportError, ValidationError
from storepublish.observability.metrics import metrics, track_request

logger = get_logger(__name__)

_CHUNK_SIZE = 4 * 1024 * 1024


async def _read_chunks(path: Path) -> AsyncIterator[bytes]:
    with path.open("rb") as fh:
        while chunk := await asyncio.to_thread(fh.read, _CHUNK_SIZE):
            yield chunk


class PackageUploader:
    """Uploads package archives (.zip with packages and images) to blob storage."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 60.0 * 60,
    ) -> None:
        self.timeout = timeout
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return self._http_client

    async def upload(self, package_path: str | Path, upload_url: str) -> int:
        """
        Upload the archive at `package_path` to `upload_url`.

        Returns:
            Number of bytes uploaded

        Raises:
            ValidationError: If the file does not exist or no URL was given
            TransportError: If blob storage cannot be reached
            ServiceError: If blob storage rejects the upload
        """
        path = Path(package_path)
        if not path.is_file():
            raise ValidationError(f"Package file not found: {path}")
        if not upload_url:
            raise ValidationError("No upload URL available for the package")

        size = path.stat().st_size
        headers = {
            "x-ms-blob-type": "BlockBlob",
            "Content-Length": str(size),
        }

        logger.info("uploading_package", path=str(path), size=size)

        with track_request("upload_package") as tracker:
            try:
                response = await self.http_client.put(
                    upload_url,
                    content=_read_chunks(path),
                    headers=headers,
                    timeout=self.timeout,
                )
            except httpx.TransportError as exc:
                metrics.record_error("transport", "upload_package")
                raise TransportError(f"Package upload failed: {exc}") from exc
            tracker.set_status_code(response.status_code)

        if response.status_code >= 400:
            logger.error(
                "package_upload_rejected",
                status=response.status_code,
                error=response.text,
            )
            metrics.record_error(str(response.status_code), "upload_package")
            raise ServiceError(response.status_code, response.text or response.reason_phrase)

        metrics.package_upload_bytes.observe(size)
        logger.info("package_uploaded", path=str(path), size=size)
        return size

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
