"""
Error taxonomy.

- `ValidationFailure`: a snapshot entity has the wrong shape. Readers catch it, log it and
  drop the entity; it never reaches callers.
- `StoreUnavailable`: backend I/O failed. One-shot reads degrade to empty results at the
  service layer; writes always re-raise.
- `NotFound`: a referenced parent entity does not exist. Terminal, never retried.
"""

from __future__ import annotations


class NoticeboardError(Exception):
    """Base class for all noticeboard errors."""


class ValidationFailure(NoticeboardError):
    """A stored entity does not have the expected shape."""

    def __init__(self, key: str | None, reason: str):
        super().__init__(f"invalid entity {key!r}: {reason}")
        self.key = key
        self.reason = reason


class StoreUnavailable(NoticeboardError):
    """The realtime backend could not be reached or rejected the request."""


class BlobUploadError(StoreUnavailable):
    """An image upload to the blob store failed."""


class NotFound(NoticeboardError):
    """A referenced entity is absent."""

    def __init__(self, path: str):
        super().__init__(f"{path} not found")
        self.path = path
