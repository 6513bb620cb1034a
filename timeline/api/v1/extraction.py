# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Photo metadata extraction endpoint used to pre-fill the event form."""
from fastapi import APIRouter, Depends, File, Form, UploadFile

from timeline.api.deps import get_geocoder, read_uploads
from timeline.integrations.bigdatacloud import ReverseGeocoder
from timeline.schemas.extraction import ExtractionResponse
from timeline.services import extraction_service

router = APIRouter(prefix="/extract", tags=["extraction"])


@router.post("", response_model=ExtractionResponse)
async def extract_metadata(
    files: list[UploadFile] = File(...),
    last_modified: list[str] = Form(default=[]),
    tz_offset: int | None = Form(None),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
) -> ExtractionResponse:
    """
    Propose date and place for a batch of photos.

    The first photo wins for each field; later photos only fill gaps.
    Missing data comes back as null, never as an error.
    """
    photo_files = await read_uploads(files, last_modified, tz_offset)
    proposal = await extraction_service.extract_batch(photo_files, geocoder=geocoder)
    return ExtractionResponse(
        date=proposal.date,
        location=proposal.location,
        latitude=proposal.latitude,
        longitude=proposal.longitude,
    )
