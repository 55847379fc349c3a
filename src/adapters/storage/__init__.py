"""Storage adapters - Uploaded file persistence."""

from .local import LocalPhotoStorage

__all__ = ["LocalPhotoStorage"]
