"""
Local filesystem photo storage - Implements PhotoStorage protocol.

Files get a random name (the client's filename is never used on disk) and
are addressed by URL under the configured media prefix.
"""

import logging
import mimetypes
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class LocalPhotoStorage:
    """
    Implements PhotoStorage protocol on a local directory.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, media_dir: str | Path, media_url: str) -> None:
        self._media_dir = Path(media_dir)
        self._media_url = media_url.rstrip("/")

    def save(self, filename: str, content_type: str, data: bytes) -> str:
        """
        Write image bytes under a random name.

        Args:
            filename: Client-side filename (only used for its extension fallback)
            content_type: Image MIME type
            data: File content

        Returns:
            Public URL of the stored file
        """
        extension = _EXTENSIONS.get(content_type.lower())
        if extension is None:
            extension = mimetypes.guess_extension(content_type) or Path(filename).suffix.lower()
        name = f"{uuid.uuid4().hex}{extension}"

        self._media_dir.mkdir(parents=True, exist_ok=True)
        (self._media_dir / name).write_bytes(data)
        logger.info("Stored profile photo %s (%d bytes)", name, len(data))
        return f"{self._media_url}/{name}"
