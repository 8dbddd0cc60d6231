"""Uploader adapters shipping dump artifacts to Azure Blob Storage."""

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path

import httpx

from threadwatch.core.errors import UploadError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 4 * 1024 * 1024


class AzCopyUploader:
    """Implementation of UploaderPort running ``azcopy copy``.

    Args:
        tool: Path of the azcopy executable.
    """

    def __init__(self, tool: Path = Path("/tools/azcopy")) -> None:
        self.tool = tool

    async def upload(self, local_path: Path, destination: str) -> None:
        """Copy ``local_path`` into the container behind ``destination``."""
        try:
            proc = await asyncio.create_subprocess_exec(
                str(self.tool),
                "copy",
                str(local_path),
                destination,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise UploadError(f"cannot run {self.tool}: {exc}") from exc
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip()
            raise UploadError(
                f"{self.tool.name} exited with status {proc.returncode}: {detail}"
            )


def blob_url(container_sas_url: str, blob_name: str) -> httpx.URL:
    """Build the URL of ``blob_name`` inside a container SAS URL.

    The SAS query string is preserved.
    """
    url = httpx.URL(container_sas_url)
    return url.copy_with(path=f"{url.path.rstrip('/')}/{blob_name}")


async def _read_chunks(path: Path) -> AsyncIterator[bytes]:
    """Stream a file without loading it into memory."""
    with open(path, "rb") as handle:
        while True:
            chunk = await asyncio.to_thread(handle.read, _CHUNK_SIZE)
            if not chunk:
                break
            yield chunk


class BlobHttpUploader:
    """Implementation of UploaderPort doing a Put Blob request with httpx.

    Used where azcopy is not installed. The dump is sent as a single block
    blob named after the local file.

    Args:
        client: Optional client to reuse (tests pass one with a mock transport).
        timeout: Request timeout in seconds.
    """

    def __init__(
        self, client: httpx.AsyncClient | None = None, timeout: float = 600.0
    ) -> None:
        self._client = client
        self._timeout = timeout

    async def upload(self, local_path: Path, destination: str) -> None:
        """PUT ``local_path`` to ``<container>/<file name>`` of ``destination``."""
        target = blob_url(destination, local_path.name)
        try:
            size = local_path.stat().st_size
        except OSError as exc:
            raise UploadError(f"cannot read {local_path}: {exc}") from exc
        headers = {
            "x-ms-blob-type": "BlockBlob",
            "Content-Length": str(size),
            "Content-Type": "application/octet-stream",
        }
        client = self._client or httpx.AsyncClient(timeout=self._timeout)
        try:
            response = await client.put(
                target, content=_read_chunks(local_path), headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UploadError(f"upload of {local_path.name} failed: {exc}") from exc
        finally:
            if self._client is None:
                await client.aclose()
        logger.debug("Uploaded %s (status %d)", local_path, response.status_code)
