"""
Registration client - asyncio driver for the five-step form.

Talks to the action surface over httpx and validates with the same ruleset
the server uses.
"""

from .controller import GENERIC_ERROR, InvalidTransition, StepController
from .draft import DRAFT_KEY, DraftStore, FileStorage, MemoryStorage, RegistrationDraft
from .transport import ActionClient, ActionResponse, TransportError
from .uploads import LocalFile, UploadFailed, UploadHandler, UploadRejected, UploadResult

__all__ = [
    "ActionClient",
    "ActionResponse",
    "DRAFT_KEY",
    "DraftStore",
    "FileStorage",
    "GENERIC_ERROR",
    "InvalidTransition",
    "LocalFile",
    "MemoryStorage",
    "RegistrationDraft",
    "StepController",
    "TransportError",
    "UploadFailed",
    "UploadHandler",
    "UploadRejected",
    "UploadResult",
]
