# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
import io
import os
import uuid

import pytest
from fastapi.testclient import TestClient
from PIL import ExifTags, Image
from PIL.TiffImagePlugin import IFDRational
from sqlalchemy.orm import sessionmaker

# Set test environment before importing app
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["BLOB_ROOT"] = "./test-blobs"
os.environ["GEMINI_API_KEY"] = ""

from timeline.api.deps import get_blob_store, get_db, get_geocoder, get_job_runner
from timeline.database import make_engine
from timeline.integrations.bigdatacloud import format_coordinates
from timeline.integrations.local_storage import LocalBlobStore
from timeline.main import app
from timeline.models import Base

# Test database setup
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = make_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeGeocoder:
    """Offline geocoder: known coordinates resolve, others fall back."""

    def __init__(self, names: dict[tuple[float, float], str] | None = None) -> None:
        self.names = names or {}
        self.calls: list[tuple[float, float]] = []

    async def describe(self, latitude: float, longitude: float) -> str:
        self.calls.append((latitude, longitude))
        for (lat, lon), name in self.names.items():
            if abs(lat - latitude) < 1e-3 and abs(lon - longitude) < 1e-3:
                return name
        return format_coordinates(latitude, longitude)

    async def close(self) -> None:
        pass


class RecordingJobRunner:
    """Job runner stub that records enqueued jobs."""

    def __init__(self) -> None:
        self.jobs: list[tuple[uuid.UUID, str]] = []

    def enqueue(self, event_id: uuid.UUID, location: str) -> bool:
        self.jobs.append((event_id, location))
        return True


def _dms(value: float) -> tuple[IFDRational, IFDRational, IFDRational]:
    value = abs(value)
    degrees = int(value)
    minutes_full = (value - degrees) * 60
    minutes = int(minutes_full)
    seconds = (minutes_full - minutes) * 60
    return (
        IFDRational(degrees, 1),
        IFDRational(minutes, 1),
        IFDRational(round(seconds * 10000), 10000),
    )


def make_jpeg(
    date_original: str | None = None,
    modify_date: str | None = None,
    gps: tuple[float, float] | None = None,
) -> bytes:
    """Build a small JPEG carrying the requested EXIF tags."""
    exif = Image.Exif()
    if modify_date:
        exif[ExifTags.Base.DateTime] = modify_date
    if date_original:
        exif[ExifTags.IFD.Exif] = {ExifTags.Base.DateTimeOriginal: date_original}
    if gps:
        latitude, longitude = gps
        exif[ExifTags.IFD.GPSInfo] = {
            ExifTags.GPS.GPSLatitudeRef: "N" if latitude >= 0 else "S",
            ExifTags.GPS.GPSLatitude: _dms(latitude),
            ExifTags.GPS.GPSLongitudeRef: "E" if longitude >= 0 else "W",
            ExifTags.GPS.GPSLongitude: _dms(longitude),
        }

    buffer = io.BytesIO()
    image = Image.new("RGB", (16, 16), "white")
    if len(exif):
        image.save(buffer, format="JPEG", exif=exif)
    else:
        image.save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    """Blob store writing below a temporary directory."""
    return LocalBlobStore(tmp_path / "blobs", "/blobs")


@pytest.fixture
def fake_geocoder() -> FakeGeocoder:
    return FakeGeocoder({(48.8566, 2.3522): "Paris, Île-de-France, France"})


@pytest.fixture
def job_recorder() -> RecordingJobRunner:
    return RecordingJobRunner()


@pytest.fixture
def jpeg_factory():
    return make_jpeg


@pytest.fixture(scope="function")
def client(db_session, blob_store, fake_geocoder, job_recorder):
    """Create a test client with database, storage and collaborator overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    async def override_get_geocoder():
        yield fake_geocoder

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_geocoder] = override_get_geocoder
    app.dependency_overrides[get_job_runner] = lambda: job_recorder
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
