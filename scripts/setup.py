#!/usr/bin/env python3
"""Setup script for the Tournest API: indexes and sample tours."""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from tournest.core.database import close_db, get_database, init_db  # noqa: E402
from tournest.models.base import utcnow  # noqa: E402
from tournest.models.tour import TOUR_RESOURCE, slugify  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_TOURS = [
    {
        "name": "The Forest Hiker",
        "duration": 5,
        "maxGroupSize": 25,
        "difficulty": "easy",
        "price": 397.0,
        "summary": "Breathtaking hike through the Canadian Banff National Park",
        "startDates": [datetime(2025, 4, 25, 9), datetime(2025, 7, 20, 9), datetime(2025, 10, 5, 9)],
        "startLocation": {
            "type": "Point",
            "coordinates": [-115.570154, 51.178456],
            "address": "224 Banff Ave, Banff, AB, Canada",
            "description": "Banff, CAN",
        },
    },
    {
        "name": "The Sea Explorer",
        "duration": 7,
        "maxGroupSize": 15,
        "difficulty": "medium",
        "price": 497.0,
        "summary": "Exploring the jaw-dropping US east coast by foot and by boat",
        "startDates": [datetime(2025, 6, 19, 9), datetime(2025, 7, 20, 9), datetime(2025, 8, 18, 9)],
        "startLocation": {
            "type": "Point",
            "coordinates": [-80.185942, 25.774772],
            "address": "301 Biscayne Blvd, Miami, FL 33132, USA",
            "description": "Miami, USA",
        },
    },
    {
        "name": "The Snow Adventurer",
        "duration": 4,
        "maxGroupSize": 10,
        "difficulty": "difficult",
        "price": 997.0,
        "summary": "Exciting adventure in the snow with snowboarding and skiing",
        "startDates": [datetime(2025, 1, 5, 10), datetime(2025, 2, 12, 10), datetime(2026, 1, 6, 10)],
        "startLocation": {
            "type": "Point",
            "coordinates": [-106.822318, 39.190872],
            "address": "419 S Mill St, Aspen, CO 81611, USA",
            "description": "Aspen, USA",
        },
    },
]


async def setup_database():
    """Connect to the document store and create the indexes."""
    logger.info("Setting up document store...")

    try:
        await init_db()
        logger.info("Document store setup completed successfully!")
    except Exception as e:
        logger.error(f"Document store setup failed: {e}")
        raise


async def create_sample_data():
    """Create some sample tours for local development."""
    logger.info("Creating sample data...")

    tours = get_database()[TOUR_RESOURCE.collection]
    if await tours.count_documents({}) > 0:
        logger.info("Sample data already exists, skipping...")
        return

    now = utcnow()
    await tours.insert_many([
        {**tour, "slug": slugify(tour["name"]), "ratings": 4.5, "totalRatings": 0, "images": [], "createdAt": now}
        for tour in SAMPLE_TOURS
    ])
    logger.info(f"Created {len(SAMPLE_TOURS)} sample tours")


async def main():
    """Main setup function."""
    logger.info("Starting Tournest API setup...")

    try:
        await setup_database()
        await create_sample_data()
    finally:
        await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn tournest.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
