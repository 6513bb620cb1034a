# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Blob key conventions and best-effort blob cleanup."""

import logging
import os
import time
import uuid
from functools import lru_cache

from timeline.config import settings
from timeline.exceptions import StorageError
from timeline.integrations.base import BlobStore
from timeline.integrations.local_storage import LocalBlobStore

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/heic": "heic",
    "image/heif": "heif",
}


@lru_cache
def get_blob_store() -> BlobStore:
    """Return the configured blob store."""
    return LocalBlobStore(settings.blob_root, settings.blob_base_url)


def file_extension(filename: str | None, content_type: str | None = None) -> str:
    """Pick an extension from the filename, then the content type, else ``jpg``."""
    if filename:
        ext = os.path.splitext(filename)[1].lstrip(".").lower()
        if ext and ext.isalnum():
            return ext
    return CONTENT_TYPE_EXTENSIONS.get((content_type or "").lower(), "jpg")


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def photo_key(ext: str) -> str:
    """Key for a user-uploaded photo."""
    return f"photos/{uuid.uuid4()}.{ext}"


def sketch_key(event_id: uuid.UUID, index: int, ext: str) -> str:
    """Key for a sketch generated when an event is created."""
    return f"sketches/{event_id}/{_timestamp_ms()}-{index}.{ext}"


def background_key(event_id: uuid.UUID, index: int, ext: str) -> str:
    """Key for a background generated by the backfill command."""
    return f"backgrounds/{event_id}/{_timestamp_ms()}-{index}.{ext}"


def best_effort_delete(store: BlobStore, url: str | None) -> bool:
    """Delete a blob, logging instead of raising on failure.

    Returns:
        True if the blob is gone, False if the delete failed.
    """
    if not url:
        return True
    try:
        store.delete(url)
    except StorageError as e:
        logger.warning(f"Could not delete blob {url}: {e}")
        return False
    return True
