# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Main API router for v1 endpoints."""

from fastapi import APIRouter

from timeline.api.v1 import backgrounds, events, extraction, photos

api_router = APIRouter()

# Event routes
api_router.include_router(events.router, prefix="/events", tags=["events"])

# Photo routes (nested under events)
api_router.include_router(photos.router, prefix="/events", tags=["photos"])

# Background image routes (nested under events)
api_router.include_router(
    backgrounds.router, prefix="/events", tags=["backgrounds"]
)

# Metadata extraction routes
api_router.include_router(extraction.router)
