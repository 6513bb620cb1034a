# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Photo and background image schemas."""

import datetime
import uuid

from pydantic import BaseModel, ConfigDict, Field


class PhotoResponse(BaseModel):
    """Schema for a stored photo."""

    id: uuid.UUID
    event_id: uuid.UUID
    url: str
    sort_order: int
    created_at: datetime.datetime

    model_config = {"from_attributes": True}


class PhotoDelete(BaseModel):
    """Body of a photo removal request.

    ``url`` is accepted for compatibility; the stored row's url is the one
    that gets deleted from the blob store.
    """

    model_config = ConfigDict(populate_by_name=True)

    photo_id: uuid.UUID = Field(..., alias="photoId")
    url: str | None = None


class BackgroundImageResponse(BaseModel):
    """Schema for a generated background image."""

    id: uuid.UUID
    event_id: uuid.UUID
    url: str
    prompt: str | None = None
    created_at: datetime.datetime

    model_config = {"from_attributes": True}
