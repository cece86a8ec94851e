"""Test configuration and fixtures."""

import asyncio
import io
from datetime import datetime, timedelta, timezone
from pathlib import Path

import jwt
import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from PIL import Image

from tournest.core.config import settings
from tournest.core.database import get_db
from tournest.core.dependencies import get_image_pipeline
from tournest.core.exceptions import UpstreamError
from tournest.services.image_pipeline import ImagePipeline

TEST_IMAGE_SIZE = (250, 100)


class FakeUploader:
    """
    In-memory stand-in for the cloud uploader.

    Records every call along with the format and size of the file it was
    given, and can be told to fail or stall for specific files.
    """

    def __init__(self):
        self.calls: list[tuple[str, str]] = []
        self.seen_on_disk: dict[str, bool] = {}
        self.images: dict[str, tuple[str, tuple[int, int]]] = {}
        self.fail_when: set[str] = set()
        self.delays: dict[str, float] = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def upload(self, folder: str, local_path: str) -> dict:
        name = Path(local_path).name
        self.calls.append((folder, local_path))
        self.seen_on_disk[name] = Path(local_path).exists()
        if self.seen_on_disk[name]:
            with Image.open(local_path) as image:
                self.images[name] = (image.format, image.size)

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for marker, delay in self.delays.items():
                if marker in name:
                    await asyncio.sleep(delay)
            if any(marker in name for marker in self.fail_when):
                raise UpstreamError(f"upload of {name} rejected", service="fake")
        finally:
            self.in_flight -= 1

        return {
            "secure_url": f"https://cdn.example.test/{folder}/{name}",
            "public_id": f"{folder}/{name}",
        }


def make_image_bytes(fmt: str = "JPEG", size: tuple[int, int] = (400, 300), color: str = "teal") -> bytes:
    """Encode a solid-colour image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest_asyncio.fixture(scope="function")
async def test_db():
    """In-memory document store with the unique indexes the API relies on."""
    client = AsyncMongoMockClient()
    db = client["tournest_test"]
    await db.tours.create_index("slug", unique=True)
    await db.tours.create_index("name", unique=True)
    yield db


@pytest.fixture
def fake_uploader():
    """Fake cloud uploader."""
    return FakeUploader()


@pytest.fixture
def image_size():
    """Target size of resized test images."""
    return TEST_IMAGE_SIZE


@pytest.fixture
def image_tmp_dir(tmp_path):
    """Transient directory for resized images."""
    return tmp_path / "images"


@pytest.fixture
def image_pipeline(fake_uploader, image_tmp_dir):
    """Image pipeline wired to the fake uploader and small target size."""
    return ImagePipeline(
        uploader=fake_uploader,
        tmp_dir=image_tmp_dir,
        folder="test/tours",
        size=TEST_IMAGE_SIZE,
        quality=80,
    )


@pytest_asyncio.fixture(scope="function")
async def test_app(test_db, image_pipeline):
    """Create a test FastAPI application."""
    from fastapi import FastAPI
    from fastapi.exceptions import RequestValidationError

    from tournest.core.exceptions import (
        AppError,
        app_error_handler,
        generic_exception_handler,
        request_validation_handler,
    )
    from tournest.routers import health, metrics, tour, users

    # Create a simplified test app without lifespan
    app = FastAPI(
        title="Tournest API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(tour.router)
    app.include_router(users.router)
    app.include_router(metrics.router)

    async def override_get_db():
        return test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_pipeline] = lambda: image_pipeline

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth_headers():
    """Bearer token signed with the configured secret."""
    token = jwt.encode(
        {
            "sub": "user-1",
            "email": "lead@example.com",
            "roles": ["lead-guide"],
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        },
        settings.bearer_token_secret,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def jpeg_bytes():
    """A small JPEG image."""
    return make_image_bytes("JPEG")


@pytest.fixture
def png_bytes():
    """A small PNG image."""
    return make_image_bytes("PNG", size=(120, 300), color="orange")


@pytest.fixture
def sample_tour_data():
    """Sample tour payload in wire form."""
    return {
        "name": "The Forest Hiker",
        "duration": 5,
        "maxGroupSize": 25,
        "difficulty": "easy",
        "price": 397,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "description": "Ut enim ad minim veniam, quis nostrud exercitation ullamco.",
        "startDates": ["2025-04-25T09:00:00Z", "2025-07-20T09:00:00Z", "2025-10-05T09:00:00Z"],
        "startLocation": {
            "type": "Point",
            "coordinates": [-115.570154, 51.178456],
            "address": "224 Banff Ave, Banff, AB, Canada",
            "description": "Banff, CAN",
        },
    }


def tour_document(name: str, **overrides) -> dict:
    """Stored tour document with sensible defaults."""
    from tournest.models.tour import slugify

    document = {
        "_id": ObjectId(),
        "name": name,
        "slug": slugify(name),
        "duration": 7,
        "maxGroupSize": 15,
        "difficulty": "medium",
        "ratings": 4.5,
        "totalRatings": 10,
        "price": 997.0,
        "summary": f"Summary of {name}",
        "images": [],
        "startDates": [datetime(2025, 6, 19, 9), datetime(2025, 7, 20, 9)],
        "startLocation": {"type": "Point", "coordinates": [-80.185942, 25.774772]},
        "createdAt": datetime(2024, 1, 1),
        "__v": 0,
    }
    document.update(overrides)
    return document


@pytest.fixture
def make_tour():
    """Factory for stored tour documents."""
    return tour_document


@pytest_asyncio.fixture
async def seeded_tours(test_db):
    """A small catalogue covering each difficulty tier."""
    tours = [
        tour_document("The Sea Explorer", difficulty="medium", price=497.0, ratings=4.8, totalRatings=23,
                      createdAt=datetime(2024, 1, 3)),
        tour_document("The Snow Adventurer", difficulty="difficult", price=997.0, ratings=4.5, totalRatings=13,
                      startDates=[datetime(2025, 1, 5, 10), datetime(2025, 2, 12, 10)],
                      createdAt=datetime(2024, 1, 2)),
        tour_document("The City Wanderer", difficulty="easy", price=1197.0, ratings=4.6, totalRatings=31,
                      startDates=[datetime(2025, 3, 11, 10), datetime(2025, 7, 1, 10)],
                      createdAt=datetime(2024, 1, 4)),
        tour_document("The Park Camper", difficulty="medium", price=1497.0, ratings=3.9, totalRatings=8,
                      startDates=[datetime(2025, 7, 12, 10), datetime(2026, 1, 1, 0)],
                      createdAt=datetime(2024, 1, 1)),
        tour_document("The Sports Lover", difficulty="difficult", price=2997.0, ratings=4.7, totalRatings=19,
                      startDates=[datetime(2024, 12, 31, 23, 59)],
                      createdAt=datetime(2024, 1, 5)),
    ]
    await test_db.tours.insert_many([dict(tour) for tour in tours])
    return tours
