# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Event API endpoints."""

import logging
import uuid

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timeline.api.deps import (
    get_blob_store,
    get_db,
    get_geocoder,
    get_job_runner,
    read_uploads,
)
from timeline.exceptions import NotFoundError, ValidationError
from timeline.integrations.base import BlobStore
from timeline.integrations.bigdatacloud import ReverseGeocoder
from timeline.schemas.event import (
    EventCreate,
    EventImportResponse,
    EventListResponse,
    EventResponse,
    EventUpdate,
    PhotoErrorResponse,
)
from timeline.services import event_service, lifecycle_service
from timeline.services.background_service import BackgroundJobRunner

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=EventListResponse)
def list_events(db: Session = Depends(get_db)) -> EventListResponse | JSONResponse:
    """List all events by date with their photos and backgrounds.

    A store failure answers 500 with an empty list so the timeline can still
    render.
    """
    try:
        events = event_service.list_events(db)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching events: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Failed to fetch events", "events": []},
        )
    return EventListResponse(
        events=[EventResponse.model_validate(event) for event in events]
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    data: EventCreate,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    jobs: BackgroundJobRunner = Depends(get_job_runner),
) -> EventResponse:
    """Create an event. A location schedules background generation."""
    try:
        result = lifecycle_service.store_event(
            db,
            data.title,
            data.date,
            data.location,
            data.latitude,
            data.longitude,
            store=store,
            jobs=jobs,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return EventResponse.model_validate(result.event)


@router.post(
    "/import",
    response_model=EventImportResponse,
    status_code=status.HTTP_201_CREATED,
)
async def import_event(
    title: str = Form(...),
    date: str | None = Form(None),
    location: str | None = Form(None),
    latitude: float | None = Form(None),
    longitude: float | None = Form(None),
    files: list[UploadFile] = File(default=[]),
    last_modified: list[str] = Form(default=[]),
    tz_offset: int | None = Form(None),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
    jobs: BackgroundJobRunner = Depends(get_job_runner),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
) -> EventImportResponse:
    """Create an event together with a batch of photos.

    Date and location left empty are filled from the photos' metadata.
    Photos that cannot be stored are reported individually.
    """
    photo_files = await read_uploads(files, last_modified, tz_offset)
    try:
        result = await lifecycle_service.create_event(
            db,
            title,
            date or None,
            location or None,
            latitude,
            longitude,
            files=photo_files,
            store=store,
            jobs=jobs,
            geocoder=geocoder,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    return EventImportResponse(
        event=EventResponse.model_validate(result.event),
        errors=[
            PhotoErrorResponse(filename=error.filename, message=error.message)
            for error in result.errors
        ],
    )


@router.get("/{event_id}", response_model=EventResponse)
def get_event(event_id: uuid.UUID, db: Session = Depends(get_db)) -> EventResponse:
    """Get an event with its photos and backgrounds."""
    try:
        event = event_service.get_event(db, event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Event not found") from e
    return EventResponse.model_validate(event)


@router.put("/{event_id}", response_model=EventResponse)
def update_event(
    event_id: uuid.UUID,
    data: EventUpdate,
    db: Session = Depends(get_db),
) -> EventResponse:
    """Replace an event's title, date and location."""
    try:
        event = lifecycle_service.update_event(
            db,
            event_id,
            data.title,
            data.date,
            data.location,
            data.latitude,
            data.longitude,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Event not found") from e
    return EventResponse.model_validate(event)


@router.delete("/{event_id}")
def delete_event(
    event_id: uuid.UUID,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
) -> dict:
    """Delete an event, its photos and backgrounds, and their blobs."""
    if not lifecycle_service.delete_event(db, event_id, store=store):
        raise HTTPException(status_code=404, detail="Event not found")
    return {"success": True}
