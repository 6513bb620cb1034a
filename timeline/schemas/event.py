# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Event schemas."""

import datetime
import uuid
from typing import Self

from pydantic import BaseModel, Field, model_validator

from timeline.schemas.photo import BackgroundImageResponse, PhotoResponse


class EventWrite(BaseModel):
    """Full set of writable event fields.

    Used for both create and update: an update replaces every field, so an
    omitted location clears the stored one.
    """

    title: str = Field(..., min_length=1, max_length=255)
    date: datetime.date
    location: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)

    @model_validator(mode="after")
    def validate_coordinates(self) -> Self:
        """Ensure latitude and longitude are given together."""
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


class EventCreate(EventWrite):
    """Schema for creating an event."""


class EventUpdate(EventWrite):
    """Schema for replacing an event's fields."""


class EventResponse(BaseModel):
    """Schema for event response with nested photos and backgrounds."""

    id: uuid.UUID
    title: str
    date: datetime.date
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    created_at: datetime.datetime
    updated_at: datetime.datetime
    photos: list[PhotoResponse] = []
    backgrounds: list[BackgroundImageResponse] = []

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    """Timeline listing. ``error`` is set when the store could not be read."""

    events: list[EventResponse]
    error: str | None = None


class PhotoErrorResponse(BaseModel):
    """A file from a batch that could not be stored."""

    filename: str
    message: str


class EventImportResponse(BaseModel):
    """Result of creating an event together with a batch of photos."""

    event: EventResponse
    errors: list[PhotoErrorResponse] = []
