# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Metadata extraction schemas."""

import datetime

from pydantic import BaseModel


class ExtractionResponse(BaseModel):
    """Proposed event fields derived from a batch of photos."""

    date: datetime.date | None = None
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None
