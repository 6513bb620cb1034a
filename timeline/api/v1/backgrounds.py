# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Background image API endpoints (nested under events)."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from timeline.api.deps import get_blob_store, get_db, get_job_runner
from timeline.exceptions import NotFoundError, ValidationError
from timeline.integrations.base import BlobStore
from timeline.services import lifecycle_service
from timeline.services.background_service import BackgroundJobRunner

router = APIRouter()


@router.post("/{event_id}/backgrounds", status_code=status.HTTP_202_ACCEPTED)
async def generate_backgrounds(
    event_id: uuid.UUID,
    db: Session = Depends(get_db),
    jobs: BackgroundJobRunner = Depends(get_job_runner),
) -> dict:
    """Queue background image generation for an event's location."""
    try:
        queued = lifecycle_service.regenerate_backgrounds(db, event_id, jobs)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Event not found") from e
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {"queued": queued}


@router.delete("/{event_id}/backgrounds/{background_id}")
def remove_background(
    event_id: uuid.UUID,
    background_id: uuid.UUID,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_blob_store),
) -> dict:
    """Delete a background image and its blob."""
    if not lifecycle_service.remove_background_image(
        db, event_id, background_id, store=store
    ):
        raise HTTPException(status_code=404, detail="Background image not found")
    return {"success": True}
