# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Event and media lifecycle across the metadata store and the blob store.

Rows are authoritative. Blobs are written before their rows and deleted
after them, and blob deletion is always best-effort, so the worst residue
of a partial failure is an unreferenced blob.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timeline.config import settings
from timeline.exceptions import NotFoundError, TimelineError, ValidationError
from timeline.integrations.base import BlobStore
from timeline.integrations.bigdatacloud import ReverseGeocoder
from timeline.integrations.gemini import GeneratedImage
from timeline.models import BackgroundImage, Event, Photo
from timeline.services import event_service, extraction_service
from timeline.services.extraction_service import PhotoFile
from timeline.services.storage_service import (
    best_effort_delete,
    file_extension,
    get_blob_store,
    photo_key,
    sketch_key,
)

if TYPE_CHECKING:
    from timeline.services.background_service import BackgroundJobRunner

logger = logging.getLogger(__name__)


@dataclass
class PhotoError:
    """A file that could not be attached."""

    filename: str
    message: str


@dataclass
class CreateResult:
    """Outcome of creating an event with a batch of files."""

    event: Event
    photos: list[Photo] = field(default_factory=list)
    errors: list[PhotoError] = field(default_factory=list)


def validate_upload(file: PhotoFile) -> None:
    """Reject files that must never reach the blob store.

    Raises:
        ValidationError: For empty, oversized or non-image files.
    """
    if not file.content:
        raise ValidationError(f"{file.filename}: file is empty")
    if len(file.content) > settings.max_upload_size:
        raise ValidationError(
            f"{file.filename}: file too large. "
            f"Max size: {settings.max_upload_size // (1024 * 1024)}MB"
        )
    content_type = (file.content_type or "").lower()
    if content_type and content_type not in settings.allowed_image_types:
        raise ValidationError(f"{file.filename}: file type {content_type} not allowed")


def attach_photo(
    db: Session,
    event_id: uuid.UUID,
    file: PhotoFile,
    sort_order: int | None = None,
    store: BlobStore | None = None,
) -> Photo:
    """Store a file and attach it to an existing event.

    Raises:
        NotFoundError: If the event does not exist; nothing is stored.
        ValidationError: If the file is not acceptable.
        StorageError: If the blob could not be written; no row is written.
    """
    store = store or get_blob_store()
    if not event_service.event_exists(db, event_id):
        raise NotFoundError(f"Event {event_id} not found")
    validate_upload(file)
    if sort_order is None:
        sort_order = event_service.next_sort_order(db, event_id)

    ext = file_extension(file.filename, file.content_type)
    url = store.put(photo_key(ext), file.content, file.content_type or "image/jpeg")

    try:
        return event_service.add_photo(db, event_id, url, sort_order)
    except (NotFoundError, SQLAlchemyError):
        db.rollback()
        best_effort_delete(store, url)
        raise


def detach_photo(
    db: Session,
    event_id: uuid.UUID,
    photo_id: uuid.UUID,
    store: BlobStore | None = None,
) -> bool:
    """Remove a photo row, then its blob. Returns False if there was no row."""
    store = store or get_blob_store()
    photo = event_service.get_photo(db, photo_id, event_id)
    if photo is None:
        return False

    url = photo.url
    if not event_service.remove_photo(db, photo_id, event_id):
        return False
    best_effort_delete(store, url)
    return True


def attach_background_image(
    db: Session,
    event_id: uuid.UUID,
    image: GeneratedImage,
    store: BlobStore | None = None,
    key_builder: Callable[[uuid.UUID, int, str], str] = sketch_key,
) -> BackgroundImage | None:
    """Store a generated image for an event.

    The event may have been deleted since generation started; that is a
    logged no-op returning None.

    Raises:
        StorageError: If the blob could not be written.
    """
    store = store or get_blob_store()
    if not event_service.event_exists(db, event_id):
        logger.info(f"Event {event_id} no longer exists, discarding generated image")
        return None

    key = key_builder(event_id, image.index, image.extension)
    url = store.put(key, image.content, image.mime_type)
    try:
        background = event_service.add_background_image(
            db, event_id, url, image.prompt
        )
    except NotFoundError:
        logger.info(f"Event {event_id} deleted during generation, discarding {url}")
        best_effort_delete(store, url)
        return None

    logger.info(f"Saved background image {url} for event {event_id}")
    return background


def remove_background_image(
    db: Session,
    event_id: uuid.UUID,
    background_id: uuid.UUID,
    store: BlobStore | None = None,
) -> bool:
    """Remove a background image row, then its blob."""
    store = store or get_blob_store()
    background = event_service.get_background_image(db, background_id, event_id)
    if background is None:
        return False

    url = background.url
    if not event_service.remove_background_image(db, background_id, event_id):
        return False
    best_effort_delete(store, url)
    return True


def store_event(
    db: Session,
    title: str,
    date: datetime.date | str | None,
    location: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    files: Sequence[PhotoFile] = (),
    store: BlobStore | None = None,
    jobs: BackgroundJobRunner | None = None,
) -> CreateResult:
    """Persist an event with final field values, then its photos.

    Photos get their batch position as sort order. Per-file failures are
    collected, not raised. A located event schedules background generation.

    Raises:
        ValidationError: If title or date is invalid.
    """
    store = store or get_blob_store()
    event = event_service.create_event(
        db, title, date, location, latitude, longitude
    )
    logger.info(f"Created event {event.id} ({event.title!r}, {event.date})")

    result = CreateResult(event=event)
    for sort_order, file in enumerate(files):
        try:
            photo = attach_photo(db, event.id, file, sort_order=sort_order, store=store)
        except (TimelineError, SQLAlchemyError) as e:
            logger.warning(f"Could not attach {file.filename} to event {event.id}: {e}")
            result.errors.append(PhotoError(filename=file.filename, message=str(e)))
            continue
        result.photos.append(photo)

    if event.location and jobs is not None:
        jobs.enqueue(event.id, event.location)

    result.event = event_service.get_event(db, event.id)
    return result


async def create_event(
    db: Session,
    title: str,
    date: datetime.date | str | None = None,
    location: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    files: Sequence[PhotoFile] = (),
    store: BlobStore | None = None,
    jobs: BackgroundJobRunner | None = None,
    geocoder: ReverseGeocoder | None = None,
) -> CreateResult:
    """Create an event, attach its photos and schedule background generation.

    Fields passed by the caller count as set by hand and are never replaced
    by extracted values. Storage runs in a worker thread.

    Raises:
        ValidationError: If title or date (after extraction) is invalid.
    """
    files = list(files)

    needs_date = date is None or date == ""
    needs_location = not location and latitude is None and longitude is None
    if files and (needs_date or needs_location):
        proposal = await extraction_service.extract_batch(files, geocoder=geocoder)
        if needs_date:
            date = proposal.date
        if needs_location:
            location = proposal.location
            latitude = proposal.latitude
            longitude = proposal.longitude

    return await asyncio.to_thread(
        store_event,
        db,
        title,
        date,
        location,
        latitude,
        longitude,
        files=files,
        store=store,
        jobs=jobs,
    )


def update_event(
    db: Session,
    event_id: uuid.UUID,
    title: str,
    date: datetime.date | str,
    location: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
) -> Event:
    """Replace an event's fields; a None location clears the stored place."""
    event = event_service.update_event(
        db, event_id, title, date, location, latitude, longitude
    )
    logger.info(f"Updated event {event_id}")
    return event


def delete_event(
    db: Session,
    event_id: uuid.UUID,
    store: BlobStore | None = None,
) -> bool:
    """Delete every blob of an event, then the event and its rows.

    Returns:
        False only if the event did not exist. Blob failures are logged.
    """
    store = store or get_blob_store()
    try:
        event = event_service.get_event(db, event_id)
    except NotFoundError:
        return False

    urls = [photo.url for photo in event.photos]
    urls += [background.url for background in event.backgrounds]
    failed = [url for url in urls if not best_effort_delete(store, url)]
    if failed:
        logger.warning(
            f"{len(failed)} of {len(urls)} blob(s) of event {event_id} "
            "could not be deleted"
        )

    deleted = event_service.delete_event(db, event_id)
    if deleted:
        logger.info(f"Deleted event {event_id} with {len(urls)} blob(s)")
    return deleted


def regenerate_backgrounds(
    db: Session,
    event_id: uuid.UUID,
    jobs: BackgroundJobRunner,
) -> bool:
    """Queue background generation for an existing event.

    Raises:
        NotFoundError: If the event does not exist.
        ValidationError: If the event has no location.
    """
    event = event_service.get_event(db, event_id)
    if not event.location:
        raise ValidationError("Event has no location to generate backgrounds for")
    return jobs.enqueue(event.id, event.location)
