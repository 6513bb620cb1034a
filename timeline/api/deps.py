# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""API dependencies for dependency injection."""

import logging
from collections.abc import AsyncGenerator, Generator

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timeline.database import SessionLocal, schema
from timeline.integrations.base import BlobStore
from timeline.integrations.bigdatacloud import ReverseGeocoder
from timeline.services import storage_service
from timeline.services.background_service import BackgroundJobRunner, job_runner
from timeline.services.extraction_service import PhotoFile, from_epoch_ms

logger = logging.getLogger(__name__)


def get_db() -> Generator[Session]:
    """Get database session, initializing the schema on first use."""
    try:
        schema.ensure()
    except SQLAlchemyError as e:
        logger.error(f"Schema initialization failed: {e}")

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_blob_store() -> BlobStore:
    """Get the configured blob store."""
    return storage_service.get_blob_store()


def get_job_runner() -> BackgroundJobRunner:
    """Get the background job runner."""
    return job_runner


async def get_geocoder() -> AsyncGenerator[ReverseGeocoder]:
    """Get a reverse geocoder for the duration of a request."""
    geocoder = ReverseGeocoder()
    try:
        yield geocoder
    finally:
        await geocoder.close()


async def read_uploads(
    files: list[UploadFile],
    last_modified: list[str] | None = None,
    tz_offset: int | None = None,
) -> list[PhotoFile]:
    """Read uploaded files.

    ``last_modified`` holds one millisecond timestamp per file, in order, as
    reported by the browser's ``File.lastModified``. ``tz_offset`` is the
    browser's ``Date.getTimezoneOffset()`` used to date those timestamps.
    """
    last_modified = last_modified or []
    photo_files = []
    for position, upload in enumerate(files):
        content = await upload.read()
        photo_files.append(
            PhotoFile(
                filename=upload.filename or f"upload-{position}",
                content=content,
                content_type=upload.content_type,
                last_modified=from_epoch_ms(
                    last_modified[position] if position < len(last_modified) else None,
                    tz_offset,
                ),
            )
        )
    return photo_files
