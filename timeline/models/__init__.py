# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Database models package."""

from timeline.models.background_image import BackgroundImage
from timeline.models.base import Base, TimestampMixin
from timeline.models.event import Event
from timeline.models.photo import Photo

__all__ = [
    "BackgroundImage",
    "Base",
    "Event",
    "Photo",
    "TimestampMixin",
]
