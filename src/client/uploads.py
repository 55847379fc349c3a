"""
Upload handler - Profile photo uploads for the registration client.

Each field has at most one upload that counts: starting a new one for the
same field supersedes the previous (nothing is cancelled, the older result
is simply reported as stale when it completes).
"""

import asyncio
import base64
import logging
from dataclasses import dataclass, field

from src.domain.validation import validate_photo_file

from .transport import ActionClient, TransportError

logger = logging.getLogger(__name__)

UPLOAD_FAILED = "Upload failed. Please try again."


class UploadRejected(Exception):
    """File fails the image / size precondition; nothing was sent."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class UploadFailed(Exception):
    """Network or server failure; no asset reference was produced."""

    def __init__(self, message: str = UPLOAD_FAILED) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class LocalFile:
    """A file picked by the user. Never persisted."""

    filename: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class UploadResult:
    """Outcome of one started upload."""

    generation: int
    current: bool
    url: str | None = None
    error: str | None = None


class UploadHandler:
    """Validates, previews and uploads profile photos."""

    def __init__(self, client: ActionClient) -> None:
        self._client = client
        self._generation: dict[str, int] = {}
        self._tasks: dict[str, asyncio.Task[UploadResult]] = {}

    @staticmethod
    def check(file: LocalFile) -> None:
        """
        Raises:
            UploadRejected: Not an image, or larger than 5 MiB
        """
        error = validate_photo_file(file.content_type, file.size)
        if error:
            raise UploadRejected(error)

    async def upload(self, file: LocalFile) -> str:
        """
        Upload one file and return its asset reference.

        Raises:
            UploadRejected: Precondition failed (client side or server side)
            UploadFailed: Transport or storage failure
        """
        self.check(file)
        try:
            response = await self._client.upload_photo(file.filename, file.content_type, file.data)
        except TransportError as exc:
            logger.warning("Photo upload failed: %s", exc)
            raise UploadFailed() from exc

        if response.success and response.data.get("url"):
            return response.data["url"]
        if response.status_code == 422 and response.message:
            raise UploadRejected(response.message)
        logger.warning("Photo upload rejected by server (%d)", response.status_code)
        raise UploadFailed(response.message or UPLOAD_FAILED)

    def start(self, field_name: str, file: LocalFile) -> asyncio.Task[UploadResult]:
        """
        Start an upload for a field in the background.

        The returned task never raises; its result says whether it is still
        the latest selection for the field.
        """
        generation = self._generation.get(field_name, 0) + 1
        self._generation[field_name] = generation
        task = asyncio.create_task(self._run(field_name, generation, file))
        self._tasks[field_name] = task
        return task

    async def _run(self, field_name: str, generation: int, file: LocalFile) -> UploadResult:
        try:
            url = await self.upload(file)
        except (UploadRejected, UploadFailed) as exc:
            return UploadResult(
                generation, self.is_current(field_name, generation), error=exc.message
            )
        return UploadResult(generation, self.is_current(field_name, generation), url=url)

    def is_current(self, field_name: str, generation: int) -> bool:
        return self._generation.get(field_name) == generation

    def pending(self, field_name: str) -> bool:
        task = self._tasks.get(field_name)
        return task is not None and not task.done()

    async def wait(self, field_name: str) -> UploadResult | None:
        """Wait for the latest upload of a field, if any."""
        task = self._tasks.get(field_name)
        if task is None:
            return None
        return await task

    async def render_preview(self, file: LocalFile) -> str:
        """Build a data: URL for the preview off the event loop thread."""
        return await asyncio.to_thread(_data_url, file.content_type, file.data)


def _data_url(content_type: str, data: bytes) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"
