# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Filesystem-backed blob store served as static files."""
import logging
from pathlib import Path

from timeline.exceptions import StorageError
from timeline.integrations.base import BlobStore

logger = logging.getLogger(__name__)


class LocalBlobStore(BlobStore):
    """Stores blobs below a root directory.

    URLs have the form ``<base_url>/<key>``; the application mounts the root
    directory at ``base_url`` so the URLs are directly fetchable.
    """

    def __init__(self, root: str | Path, base_url: str = "/blobs") -> None:
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/")

    def _path_for_key(self, key: str) -> Path:
        if not key or key.startswith("/") or "\\" in key:
            raise StorageError(f"Invalid blob key: {key!r}")
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root) or path == self.root:
            raise StorageError(f"Blob key escapes storage root: {key!r}")
        return path

    def _key_for_url(self, url: str) -> str | None:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return None
        return url[len(prefix):]

    def put(self, key: str, content: bytes, content_type: str) -> str:
        path = self._path_for_key(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "xb" refuses to overwrite: keys must be unique
            with open(path, "xb") as f:
                f.write(content)
        except FileExistsError as e:
            raise StorageError(f"Blob key already exists: {key}") from e
        except OSError as e:
            raise StorageError(f"Failed to write blob {key}: {e}") from e

        logger.debug(f"Stored blob {key} ({content_type}, {len(content)} bytes)")
        return f"{self.base_url}/{key}"

    def delete(self, url: str) -> None:
        key = self._key_for_url(url)
        if key is None:
            logger.debug(f"Ignoring delete for foreign blob url {url}")
            return

        path = self._path_for_key(key)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Blob {key} already gone")
        except OSError as e:
            raise StorageError(f"Failed to delete blob {key}: {e}") from e
