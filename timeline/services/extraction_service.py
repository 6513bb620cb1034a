# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Best-effort date and place extraction from uploaded photos.

Every step may fail independently; a failure only removes that step's
contribution. Nothing here raises to the caller.
"""

from __future__ import annotations

import asyncio
import datetime
import io
import logging
import math
import mimetypes
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from PIL import ExifTags, Image
from pillow_heif import register_heif_opener

from timeline.config import settings
from timeline.integrations.bigdatacloud import ReverseGeocoder, format_coordinates

logger = logging.getLogger(__name__)

register_heif_opener()

# Evaluated in order; the file's modification time comes last
DATE_TAG_PRIORITY: list[tuple[str, ExifTags.IFD | None, int]] = [
    ("DateTimeOriginal", ExifTags.IFD.Exif, ExifTags.Base.DateTimeOriginal),
    ("CreateDate", ExifTags.IFD.Exif, ExifTags.Base.DateTimeDigitized),
    ("ModifyDate", None, ExifTags.Base.DateTime),
    ("GPSDateStamp", ExifTags.IFD.GPSInfo, ExifTags.GPS.GPSDateStamp),
]

EXIF_DATE_PATTERN = re.compile(r"(\d{4})[:\-/](\d{2})[:\-/](\d{2})")

# Offsets beyond UTC±14:00 are ignored
MAX_TZ_OFFSET_MINUTES = 14 * 60


@dataclass
class PhotoFile:
    """An uploaded file as seen by the pipeline."""

    filename: str
    content: bytes
    content_type: str | None = None
    last_modified: datetime.datetime | None = None

    @classmethod
    def from_path(cls, path: str | Path) -> PhotoFile:
        """Load a file from disk, taking last_modified from its mtime."""
        path = Path(path)
        stat = path.stat()
        return cls(
            filename=path.name,
            content=path.read_bytes(),
            content_type=mimetypes.guess_type(path.name)[0],
            last_modified=datetime.datetime.fromtimestamp(stat.st_mtime),
        )


@dataclass
class PhotoMetadata:
    """Fields proposed for an event. None means no data."""

    date: datetime.date | None = None
    location: str | None = None
    latitude: float | None = None
    longitude: float | None = None


@dataclass
class ExifSnapshot:
    """Raw values read from a file's EXIF block."""

    date_tags: dict[str, Any] = field(default_factory=dict)
    latitude: float | None = None
    longitude: float | None = None


def from_epoch_ms(
    value: float | str | None,
    tz_offset: int | None = None,
) -> datetime.datetime | None:
    """Convert a browser ``lastModified`` value (ms since epoch) to a datetime.

    ``tz_offset`` is the client's ``Date.getTimezoneOffset()`` in minutes
    (positive west of UTC) so the calendar date matches the client's. Without
    it, or when it is out of range, the result is in UTC.
    """
    if value is None or value == "":
        return None
    tz = datetime.UTC
    if tz_offset is not None and abs(tz_offset) <= MAX_TZ_OFFSET_MINUTES:
        tz = datetime.timezone(-datetime.timedelta(minutes=tz_offset))
    try:
        return datetime.datetime.fromtimestamp(float(value) / 1000, tz=tz)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


def parse_exif_date(value: Any) -> datetime.date | None:
    """Parse ``YYYY:MM:DD`` (or ``-``/``/`` separated) into a real calendar date."""
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    if not isinstance(value, str):
        return None
    match = EXIF_DATE_PATTERN.search(value)
    if not match:
        return None
    try:
        return datetime.date(int(match[1]), int(match[2]), int(match[3]))
    except ValueError:
        return None


def _to_degrees(values: Any, ref: Any) -> float | None:
    """Convert EXIF degrees/minutes/seconds plus N/S/E/W to decimal degrees."""
    if values is None:
        return None
    try:
        if isinstance(values, (int, float)):
            degrees = float(values)
        else:
            parts = [float(v) for v in values]
            while len(parts) < 3:
                parts.append(0.0)
            degrees = parts[0] + parts[1] / 60 + parts[2] / 3600
    except (TypeError, ValueError, ZeroDivisionError):
        return None

    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if isinstance(ref, str) and ref.strip().upper() in ("S", "W"):
        degrees = -degrees
    return degrees if math.isfinite(degrees) else None


def read_exif(content: bytes) -> ExifSnapshot:
    """Read date tags and GPS coordinates from image bytes.

    Raises whatever Pillow raises for unreadable files; callers degrade.
    """
    snapshot = ExifSnapshot()
    with Image.open(io.BytesIO(content)) as img:
        exif = img.getexif()
        for name, ifd, tag in DATE_TAG_PRIORITY:
            source = exif if ifd is None else exif.get_ifd(ifd)
            value = source.get(tag)
            if value is not None:
                snapshot.date_tags[name] = value

        gps = exif.get_ifd(ExifTags.IFD.GPSInfo)
        latitude = _to_degrees(
            gps.get(ExifTags.GPS.GPSLatitude), gps.get(ExifTags.GPS.GPSLatitudeRef)
        )
        longitude = _to_degrees(
            gps.get(ExifTags.GPS.GPSLongitude), gps.get(ExifTags.GPS.GPSLongitudeRef)
        )

    if (
        latitude is not None
        and longitude is not None
        and -90 <= latitude <= 90
        and -180 <= longitude <= 180
    ):
        snapshot.latitude = latitude
        snapshot.longitude = longitude
    return snapshot


def first_valid_date(date_tags: dict[str, Any]) -> datetime.date | None:
    """First tag, in priority order, that parses as a calendar date."""
    for name, _ifd, _tag in DATE_TAG_PRIORITY:
        parsed = parse_exif_date(date_tags.get(name))
        if parsed is not None:
            return parsed
    return None


async def extract_file(
    file: PhotoFile,
    geocoder: ReverseGeocoder,
    exif_timeout: float | None = None,
) -> PhotoMetadata:
    """Derive date, coordinates and place name from one file."""
    timeout = exif_timeout if exif_timeout is not None else settings.exif_timeout
    result = PhotoMetadata()

    try:
        snapshot = await asyncio.wait_for(
            asyncio.to_thread(read_exif, file.content),
            timeout=timeout,
        )
    except Exception as e:
        logger.info(f"No EXIF data from {file.filename}: {e!r}")
        snapshot = None

    if snapshot is not None:
        result.date = first_valid_date(snapshot.date_tags)
        result.latitude = snapshot.latitude
        result.longitude = snapshot.longitude

    if result.date is None and file.last_modified is not None:
        result.date = file.last_modified.date()
        logger.debug(f"Using last-modified date for {file.filename}: {result.date}")

    if result.latitude is not None and result.longitude is not None:
        try:
            result.location = await geocoder.describe(
                result.latitude, result.longitude
            )
        except Exception as e:
            logger.warning(f"Geocoding failed for {file.filename}: {e!r}")
            result.location = None
        if not result.location:
            result.location = format_coordinates(result.latitude, result.longitude)

    return result


def merge_results(results: list[PhotoMetadata]) -> PhotoMetadata:
    """Combine per-file results; earlier files win field by field.

    Place name and coordinates always come from the same file.
    """
    date = next((r.date for r in results if r.date is not None), None)
    located = next((r for r in results if r.location), None)
    if located is None:
        return PhotoMetadata(date=date)
    return PhotoMetadata(
        date=date,
        location=located.location,
        latitude=located.latitude,
        longitude=located.longitude,
    )


async def extract_batch(
    files: list[PhotoFile],
    geocoder: ReverseGeocoder | None = None,
    exif_timeout: float | None = None,
) -> PhotoMetadata:
    """Propose event fields for a batch of files."""
    if not files:
        return PhotoMetadata()

    owns_geocoder = geocoder is None
    geocoder = geocoder or ReverseGeocoder()

    async def safe_extract(file: PhotoFile) -> PhotoMetadata:
        try:
            return await extract_file(file, geocoder, exif_timeout)
        except Exception as e:
            logger.warning(f"Metadata extraction failed for {file.filename}: {e}")
            return PhotoMetadata()

    try:
        results = await asyncio.gather(*(safe_extract(f) for f in files))
    finally:
        if owns_geocoder:
            await geocoder.close()

    merged = merge_results(list(results))
    logger.info(
        f"Extracted metadata from {len(files)} file(s): "
        f"date={merged.date}, location={merged.location!r}"
    )
    return merged
