# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Photo API endpoints (nested under events)."""

import logging
import uuid

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from timeline.api.deps import get_blob_store, get_db, read_uploads
from timeline.exceptions import NotFoundError, StorageError, ValidationError
from timeline.integrations.base import BlobStore
from timeline.schemas.photo import PhotoDelete, PhotoResponse
from timeline.services import lifecycle_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/{event_id}/photos",
    response_model=PhotoResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_photo(
    event_id: uuid.UUID,
    file: UploadFile,
    sort_order: int | None = Form(None),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
) -> PhotoResponse:
    """Upload a photo and attach it to an event.

    Without ``sort_order`` the photo is appended after the last one.
    """
    (photo_file,) = await read_uploads([file])
    try:
        photo = lifecycle_service.attach_photo(
            db, event_id, photo_file, sort_order=sort_order, store=store
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Event not found") from e
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)
        ) from e
    except StorageError as e:
        logger.error(f"Error storing photo for event {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to store photo",
        ) from e
    return PhotoResponse.model_validate(photo)


@router.delete("/{event_id}/photos")
def remove_photo(
    event_id: uuid.UUID,
    data: PhotoDelete,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
) -> dict:
    """Detach a photo from an event and delete its blob."""
    if not lifecycle_service.detach_photo(db, event_id, data.photo_id, store=store):
        raise HTTPException(status_code=404, detail="Photo not found")
    return {"success": True}
