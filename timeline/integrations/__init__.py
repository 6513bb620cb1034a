# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""External collaborators: blob storage, geocoding, image generation."""
from timeline.integrations.base import BlobStore
from timeline.integrations.local_storage import LocalBlobStore

__all__ = [
    "BlobStore",
    "LocalBlobStore",
]
