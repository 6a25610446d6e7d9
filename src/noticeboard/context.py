"""
Backend context.

Everything that talks to the outside world (realtime backend, blob store) is built once by
the application entry point and passed down explicitly; nothing in the package holds a
module-level backend handle.
"""

from __future__ import annotations

from dataclasses import dataclass

from noticeboard.config.settings import Settings, get_settings
from noticeboard.storage.blob import BlobStore, build_blob_store
from noticeboard.store.backend import RealtimeBackend
from noticeboard.store.firebase import FirebaseRestBackend
from noticeboard.store.memory import InMemoryBackend


@dataclass(frozen=True)
class BackendContext:
    settings: Settings
    backend: RealtimeBackend
    blobs: BlobStore


def build_backend(settings: Settings) -> RealtimeBackend:
    if settings.backend.kind == "firebase":
        return FirebaseRestBackend.from_settings(settings)
    return InMemoryBackend()


def build_context(
    settings: Settings | None = None,
    *,
    backend: RealtimeBackend | None = None,
    blobs: BlobStore | None = None,
) -> BackendContext:
    """Build a context from settings; explicit collaborators win over configured ones."""
    settings = settings or get_settings()
    return BackendContext(
        settings=settings,
        backend=backend if backend is not None else build_backend(settings),
        blobs=blobs if blobs is not None else build_blob_store(settings),
    )
