"""Image upload client for the external object store.

Uploads product image payloads over HTTP and reports one outcome per
file. A single file failing is reported in its result; only an
unreachable object store raises.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from app.infrastructure.config import settings

logger = structlog.get_logger()


# ============================================================================
# Payloads and Results
# ============================================================================


@dataclass(frozen=True)
class FilePayload:
    """Binary file submitted for upload."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True)
class UploadResult:
    """Outcome of uploading one file.

    Exactly one of ``url`` and ``error`` is set.
    """

    filename: str
    url: str | None = None
    public_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the upload produced a usable URL."""
        return bool(self.url)

    @classmethod
    def from_api_response(cls, filename: str, data: dict[str, Any]) -> "UploadResult":
        """Create from the object store's upload response.

        Args:
            filename: Name of the uploaded file.
            data: API response data.

        Returns:
            UploadResult, failed when the response carries no URL.
        """
        url = data.get("secure_url") or data.get("url")
        if not url:
            return cls.failed(filename, "Upload response contained no URL")
        return cls(filename=filename, url=url, public_id=data.get("public_id"))

    @classmethod
    def failed(cls, filename: str, error: str) -> "UploadResult":
        """Create a failed result."""
        return cls(filename=filename, error=error)


class UploadGatewayError(Exception):
    """Raised when the object store cannot be reached at all."""

    def __init__(self, message: str, base_url: str) -> None:
        self.message = message
        self.base_url = base_url
        super().__init__(f"[{base_url}] {message}")


# ============================================================================
# Upload Client
# ============================================================================


class UploadGateway(ABC):
    """Uploads binary payloads to an object store.

    Implementations return one result per input file in input order
    and raise UploadGatewayError only when the store is unreachable.
    """

    @abstractmethod
    async def upload_files(self, files: list[FilePayload]) -> list[UploadResult]:
        """Upload files and report a per-file outcome."""


class ImageUploadClient(UploadGateway):
    """HTTP client for uploading images to the object store.

    Example usage:
        client = ImageUploadClient()
        try:
            results = await client.upload_files(files)
        finally:
            await client.close()
    """

    UPLOAD_PATH = "/image/upload"

    def __init__(
        self,
        base_url: str | None = None,
        upload_preset: str | None = None,
        folder: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize upload client.

        Args:
            base_url: Object store API base URL.
            upload_preset: Upload preset name sent with every file.
            folder: Destination folder in the object store.
            timeout: Per-request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self.base_url = base_url or settings.upload_base_url
        self.upload_preset = upload_preset or settings.upload_preset
        self.folder = folder or settings.upload_folder
        self.timeout = timeout if timeout is not None else settings.upload_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def upload_files(self, files: list[FilePayload]) -> list[UploadResult]:
        """Upload a batch of files concurrently.

        Args:
            files: Files to upload, in order.

        Returns:
            One result per input file, in input order.

        Raises:
            UploadGatewayError: If the object store is unreachable. Uploads
                still in flight are cancelled before it is raised.
        """
        if not files:
            return []

        tasks = [asyncio.create_task(self._upload_one(f)) for f in files]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        # Reading every exception keeps asyncio from warning about unretrieved ones
        errors = [task.exception() for task in tasks if not task.cancelled()]
        errors = [error for error in errors if error is not None]
        if errors:
            logger.error(
                "Image batch aborted",
                file_count=len(files),
                cancelled=sum(task.cancelled() for task in tasks),
            )
            raise errors[0]

        results = [task.result() for task in tasks]

        failed = [r for r in results if not r.ok]
        logger.info(
            "Image batch uploaded",
            file_count=len(files),
            uploaded=len(files) - len(failed),
            failed=len(failed),
        )
        return results

    async def _upload_one(self, file: FilePayload) -> UploadResult:
        """Upload a single file.

        Args:
            file: File to upload.

        Returns:
            Upload result for the file.

        Raises:
            UploadGatewayError: If the object store is unreachable.
        """
        client = await self._get_client()

        try:
            response = await client.post(
                self.UPLOAD_PATH,
                data={"upload_preset": self.upload_preset, "folder": self.folder},
                files={"file": (file.filename, file.content, file.content_type)},
            )
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.error(
                "Upload gateway unreachable",
                base_url=self.base_url,
                error=str(e),
            )
            raise UploadGatewayError(f"Upload gateway unreachable: {e}", self.base_url) from e
        except httpx.TimeoutException:
            logger.warning(
                "Image upload timed out",
                filename=file.filename,
                timeout=self.timeout,
            )
            return UploadResult.failed(file.filename, "Upload timed out")
        except httpx.HTTPError as e:
            logger.warning(
                "Image upload failed",
                filename=file.filename,
                error=str(e),
            )
            return UploadResult.failed(file.filename, str(e))

        if response.status_code >= 400:
            logger.warning(
                "Image upload rejected",
                filename=file.filename,
                status_code=response.status_code,
                body=response.text[:200],
            )
            return UploadResult.failed(
                file.filename,
                f"Upload rejected with status {response.status_code}",
            )

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Image upload returned invalid JSON", filename=file.filename)
            return UploadResult.failed(file.filename, "Invalid upload response")

        result = UploadResult.from_api_response(file.filename, data)
        if not result.ok:
            logger.warning("Image upload returned no URL", filename=file.filename)
        return result
