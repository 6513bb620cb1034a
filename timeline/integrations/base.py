# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Base classes for integration providers."""
from abc import ABC, abstractmethod


class BlobStore(ABC):
    """Interface for binary asset storage addressed by opaque URLs.

    The metadata store is authoritative: a blob without a row is garbage,
    never an error. Implementations therefore treat deleting a missing
    object as success.
    """

    @abstractmethod
    def put(self, key: str, content: bytes, content_type: str) -> str:
        """Store content under a unique key. Returns the public URL.

        Raises:
            StorageError: If the object could not be written.
        """
        ...

    @abstractmethod
    def delete(self, url: str) -> None:
        """Delete the object behind a URL. Must not raise if it is absent.

        Raises:
            StorageError: On transport/filesystem failures other than absence.
        """
        ...

    def close(self) -> None:
        """Clean up resources."""
        pass
