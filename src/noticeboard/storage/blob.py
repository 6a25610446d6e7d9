"""
Blob storage for notice, message and profile images.

`upload()` stores raw bytes under `{folder}/{unix_ms}_{random}.{ext}` and returns a durable
URL that can be put in `imageUrl`/`photoURL` fields.

Implementations:
- `LocalBlobStore`: files under a local directory (tests, demos, single-host deployments)
- `FirebaseStorageBlobStore`: Firebase Storage REST upload returning a token download URL
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import httpx

from noticeboard.config.settings import Settings
from noticeboard.core.env import resolve_project_path
from noticeboard.core.errors import BlobUploadError
from noticeboard.core.http import post_bytes

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


class BlobStore(Protocol):
    def upload(self, content: bytes, *, folder: str = "images", content_type: str = "image/jpeg") -> str: ...


def blob_name(folder: str, content_type: str, *, now_ms: int | None = None) -> str:
    """Build a unique object name like `images/1717000000000_k3j9x1.jpg`."""
    ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(6))
    ext = _EXTENSIONS.get(content_type, "jpg")
    return f"{folder.strip('/')}/{ms}_{suffix}.{ext}"


class LocalBlobStore:
    def __init__(self, base_dir: Path, *, public_base_url: str | None = None):
        self._base_dir = base_dir
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None

    def upload(self, content: bytes, *, folder: str = "images", content_type: str = "image/jpeg") -> str:
        name = blob_name(folder, content_type)
        path = self._base_dir / name
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as exc:
            raise BlobUploadError(f"could not store {name}: {exc}") from exc
        logger.info("Stored blob %s (%d bytes)", name, len(content))
        if self._public_base_url:
            return f"{self._public_base_url}/{name}"
        return path.resolve().as_uri()


class FirebaseStorageBlobStore:
    def __init__(
        self,
        bucket: str,
        *,
        upload_base_url: str = "https://firebasestorage.googleapis.com/v0/b",
        auth_token: str | None = None,
        timeout_seconds: float = 15,
    ):
        self._bucket = bucket
        self._base_url = upload_base_url.rstrip("/")
        self._auth_token = auth_token
        self._timeout_seconds = timeout_seconds

    def upload(self, content: bytes, *, folder: str = "images", content_type: str = "image/jpeg") -> str:
        name = blob_name(folder, content_type)
        headers = {"Authorization": f"Firebase {self._auth_token}"} if self._auth_token else None
        try:
            meta = post_bytes(
                f"{self._base_url}/{self._bucket}/o",
                content=content,
                content_type=content_type,
                params={"uploadType": "media", "name": name},
                headers=headers,
                timeout_seconds=self._timeout_seconds,
            )
        except (httpx.HTTPError, ValueError) as exc:
            raise BlobUploadError(f"upload of {name} failed: {exc}") from exc

        token = str((meta or {}).get("downloadTokens") or "").split(",")[0]
        url = f"{self._base_url}/{self._bucket}/o/{quote(name, safe='')}?alt=media"
        if token:
            url += f"&token={token}"
        logger.info("Uploaded blob %s (%d bytes)", name, len(content))
        return url


def build_blob_store(settings: Settings) -> BlobStore:
    cfg = settings.storage
    if cfg.kind == "firebase":
        if not cfg.bucket:
            raise RuntimeError("Firebase storage is not configured. Set FIREBASE_STORAGE_BUCKET.")
        return FirebaseStorageBlobStore(
            cfg.bucket,
            upload_base_url=cfg.upload_base_url,
            auth_token=settings.backend.auth_token,
            timeout_seconds=settings.app.http_timeout_seconds,
        )
    return LocalBlobStore(resolve_project_path(cfg.local_dir), public_base_url=cfg.public_base_url)
