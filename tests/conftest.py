from __future__ import annotations

import pytest

from noticeboard.config.settings import get_settings
from noticeboard.context import build_context
from noticeboard.services.community import CommunityService
from noticeboard.storage.blob import LocalBlobStore
from noticeboard.store.memory import InMemoryBackend


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def service(backend, tmp_path) -> CommunityService:
    # Memory backend + tmp blob dir keeps every test offline and isolated.
    context = build_context(get_settings(), backend=backend, blobs=LocalBlobStore(tmp_path / "blobs"))
    return CommunityService(context)
