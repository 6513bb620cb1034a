# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Event (memory) model."""

from __future__ import annotations

import datetime
import uuid as uuid_lib
from typing import TYPE_CHECKING

from sqlalchemy import Date, Float, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timeline.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from timeline.models.background_image import BackgroundImage
    from timeline.models.photo import Photo


class Event(Base, TimestampMixin):
    """A single recorded memory."""

    __tablename__ = "events"

    id: Mapped[uuid_lib.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid_lib.uuid4,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)

    # Location fields; latitude/longitude are set together or not at all
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Relationships
    photos: Mapped[list[Photo]] = relationship(
        "Photo",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="[Photo.sort_order, Photo.created_at]",
    )
    backgrounds: Mapped[list[BackgroundImage]] = relationship(
        "BackgroundImage",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="BackgroundImage.created_at",
    )
