# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Error taxonomy shared by the store, the blob adapters and the services."""


class TimelineError(Exception):
    """Base exception for timeline errors."""


class ValidationError(TimelineError):
    """A required field is missing or malformed."""


class NotFoundError(TimelineError):
    """An event, photo or background image id is unknown."""


class StorageError(TimelineError):
    """The blob store could not write or delete an object."""


class ExternalServiceError(TimelineError):
    """The geocoder or the image generator is unavailable."""
