# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""Event, photo and background image persistence.

The relational store is authoritative for what exists: a photo or
background image is only real once its row is written, and deleting an
event removes every dependent row through the cascade.
"""

import datetime
import math
import uuid

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from timeline.exceptions import NotFoundError, ValidationError
from timeline.models import BackgroundImage, Event, Photo
from timeline.models.base import utcnow


def _clean_title(title: str | None) -> str:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title is required")
    title = title.strip()
    if len(title) > 255:
        raise ValidationError("Title must be at most 255 characters")
    return title


def _clean_date(value: datetime.date | str | None) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.date.fromisoformat(value.strip())
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value!r}") from e
    raise ValidationError("Date is required")


def _clean_location(
    location: str | None,
    latitude: float | None,
    longitude: float | None,
) -> tuple[str | None, float | None, float | None]:
    """Normalize a place name and coordinates.

    Coordinates must come as a valid pair and are kept even without a
    place name. A blank name is stored as None.
    """
    if (latitude is None) != (longitude is None):
        raise ValidationError("Latitude and longitude must be provided together")
    if latitude is not None and longitude is not None:
        try:
            latitude = float(latitude)
            longitude = float(longitude)
        except (TypeError, ValueError) as e:
            raise ValidationError("Coordinates must be numbers") from e
        if not (math.isfinite(latitude) and -90 <= latitude <= 90):
            raise ValidationError(f"Latitude out of range: {latitude}")
        if not (math.isfinite(longitude) and -180 <= longitude <= 180):
            raise ValidationError(f"Longitude out of range: {longitude}")

    location = location.strip() if isinstance(location, str) else None
    return location or None, latitude, longitude


def _event_query():
    return select(Event).options(
        selectinload(Event.photos),
        selectinload(Event.backgrounds),
    )


def list_events(db: Session) -> list[Event]:
    """All events ordered by date, with photos and backgrounds loaded."""
    return list(
        db.scalars(_event_query().order_by(Event.date.asc(), Event.created_at.asc()))
    )


def get_event(db: Session, event_id: uuid.UUID) -> Event:
    """Get an event with its photos and backgrounds.

    Raises:
        NotFoundError: If the event does not exist.
    """
    event = db.scalars(_event_query().where(Event.id == event_id)).first()
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")
    return event


def event_exists(db: Session, event_id: uuid.UUID) -> bool:
    return db.get(Event, event_id) is not None


def create_event(
    db: Session,
    title: str,
    date: datetime.date | str,
    location: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
) -> Event:
    """Create a new event.

    Raises:
        ValidationError: If title or date is missing or malformed, or the
            coordinates are one-sided or out of range.
    """
    location, latitude, longitude = _clean_location(location, latitude, longitude)
    event = Event(
        title=_clean_title(title),
        date=_clean_date(date),
        location=location,
        latitude=latitude,
        longitude=longitude,
    )
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def update_event(
    db: Session,
    event_id: uuid.UUID,
    title: str,
    date: datetime.date | str,
    location: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
) -> Event:
    """Replace an event's fields. Photos and backgrounds are untouched.

    Raises:
        ValidationError: If the new values are invalid.
        NotFoundError: If the event does not exist.
    """
    title = _clean_title(title)
    date = _clean_date(date)
    location, latitude, longitude = _clean_location(location, latitude, longitude)

    event = db.get(Event, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")

    event.title = title
    event.date = date
    event.location = location
    event.latitude = latitude
    event.longitude = longitude
    event.updated_at = utcnow()
    db.commit()
    return get_event(db, event_id)


def delete_event(db: Session, event_id: uuid.UUID) -> bool:
    """Delete an event and, through the cascade, its photos and backgrounds.

    Returns:
        False if the event did not exist.
    """
    event = db.get(Event, event_id)
    if event is None:
        return False
    db.delete(event)
    db.commit()
    return True


def list_events_without_backgrounds(db: Session) -> list[Event]:
    """Events with a location that have no background images yet."""
    has_backgrounds = select(BackgroundImage.id).where(
        BackgroundImage.event_id == Event.id
    )
    query = (
        select(Event)
        .where(Event.location.is_not(None), Event.location != "")
        .where(~has_backgrounds.exists())
        .order_by(Event.date.asc())
    )
    return list(db.scalars(query))


# Photos


def next_sort_order(db: Session, event_id: uuid.UUID) -> int:
    """Sort order that appends after the event's current last photo."""
    current = db.scalar(
        select(func.max(Photo.sort_order)).where(Photo.event_id == event_id)
    )
    return 0 if current is None else current + 1


def get_photo(
    db: Session,
    photo_id: uuid.UUID,
    event_id: uuid.UUID | None = None,
) -> Photo | None:
    """Get a photo, optionally only if it belongs to the given event."""
    photo = db.get(Photo, photo_id)
    if photo is None or (event_id is not None and photo.event_id != event_id):
        return None
    return photo


def add_photo(
    db: Session,
    event_id: uuid.UUID,
    url: str,
    sort_order: int = 0,
) -> Photo:
    """Attach a stored blob to an event.

    Raises:
        NotFoundError: If the event does not exist. No row is written.
    """
    if not event_exists(db, event_id):
        raise NotFoundError(f"Event {event_id} not found")

    photo = Photo(event_id=event_id, url=url, sort_order=sort_order)
    db.add(photo)
    try:
        db.commit()
    except IntegrityError as e:
        # The event vanished between the check and the insert
        db.rollback()
        raise NotFoundError(f"Event {event_id} not found") from e
    db.refresh(photo)
    return photo


def remove_photo(
    db: Session,
    photo_id: uuid.UUID,
    event_id: uuid.UUID | None = None,
) -> bool:
    """Delete a photo row. Returns False if it does not exist."""
    photo = get_photo(db, photo_id, event_id)
    if photo is None:
        return False
    db.delete(photo)
    db.commit()
    return True


# Background images


def get_backgrounds_for_event(db: Session, event_id: uuid.UUID) -> list[BackgroundImage]:
    """Background images of an event, oldest first."""
    return list(
        db.scalars(
            select(BackgroundImage)
            .where(BackgroundImage.event_id == event_id)
            .order_by(BackgroundImage.created_at.asc())
        )
    )


def list_background_images(db: Session) -> list[BackgroundImage]:
    """Every background image across all events."""
    return list(db.scalars(select(BackgroundImage)))


def get_background_image(
    db: Session,
    background_id: uuid.UUID,
    event_id: uuid.UUID | None = None,
) -> BackgroundImage | None:
    """Get a background image, optionally only if it belongs to the event."""
    background = db.get(BackgroundImage, background_id)
    if background is None or (
        event_id is not None and background.event_id != event_id
    ):
        return None
    return background


def add_background_image(
    db: Session,
    event_id: uuid.UUID,
    url: str,
    prompt: str | None = None,
) -> BackgroundImage:
    """Attach a generated image to an event.

    Raises:
        NotFoundError: If the event does not exist. No row is written.
    """
    if not event_exists(db, event_id):
        raise NotFoundError(f"Event {event_id} not found")

    background = BackgroundImage(event_id=event_id, url=url, prompt=prompt)
    db.add(background)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise NotFoundError(f"Event {event_id} not found") from e
    db.refresh(background)
    return background


def remove_background_image(
    db: Session,
    background_id: uuid.UUID,
    event_id: uuid.UUID | None = None,
) -> bool:
    """Delete a background image row. Returns False if it does not exist."""
    background = get_background_image(db, background_id, event_id)
    if background is None:
        return False
    db.delete(background)
    db.commit()
    return True
