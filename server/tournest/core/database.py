"""Document store configuration and connection management."""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, GEOSPHERE, IndexModel

from .config import settings

logger = logging.getLogger(__name__)

# Indexes the API relies on: unique slug/name lookups and 2dsphere geo queries
TOUR_INDEXES = [
    IndexModel([("slug", ASCENDING)], name="slug_unique", unique=True),
    IndexModel([("name", ASCENDING)], name="name_unique", unique=True),
    IndexModel([("price", ASCENDING), ("ratings", -1)], name="price_ratings"),
    IndexModel([("startLocation", GEOSPHERE)], name="start_location_2dsphere"),
]

REVIEW_INDEXES = [
    IndexModel([("tour", ASCENDING)], name="review_tour"),
]

_client: Optional[AsyncIOMotorClient] = None


def get_client() -> AsyncIOMotorClient:
    """Return the process-wide client, creating it lazily."""
    global _client
    if _client is None:
        _client = AsyncIOMotorClient(settings.mongo_url, tz_aware=False)
    return _client


def get_database() -> AsyncIOMotorDatabase:
    """Return the configured database handle."""
    return get_client()[settings.mongo_db_name]


async def get_db() -> AsyncIOMotorDatabase:
    """
    Dependency function that yields the database handle.

    Returns:
        AsyncIOMotorDatabase: database handle shared by all requests
    """
    return get_database()


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes used by slug lookups and geo queries."""
    await db.tours.create_indexes(TOUR_INDEXES)
    await db.reviews.create_indexes(REVIEW_INDEXES)
    logger.info(
        "Document store indexes ensured",
        extra={"collections": ["tours", "reviews"]},
    )


async def init_db() -> None:
    """Connect to the document store and ensure indexes exist."""
    db = get_database()
    await db.command("ping")
    await ensure_indexes(db)


async def close_db() -> None:
    """Close document store connections."""
    global _client
    if _client is not None:
        _client.close()
        _client = None
