"""Tour service for business logic operations."""

import logging
from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.exceptions import NotFoundError
from ..core.observability import metrics_collector
from ..models.base import parse_object_id, utcnow
from ..models.review import REVIEW_RESOURCE
from ..models.tour import TOUR_RESOURCE, slugify
from .crud_service import CrudService
from .geo import distance_multiplier, parse_latlon, radius_in_radians
from .query_builder import QuerySpec

logger = logging.getLogger(__name__)


def build_stats_pipeline(min_rating: float = 1) -> list[dict[str, Any]]:
    """Group rated tours by difficulty with count, rating and price statistics."""
    return [
        {"$match": {"ratings": {"$gte": min_rating}}},
        {
            "$group": {
                "_id": "$difficulty",
                "totalTours": {"$sum": 1},
                "avgRatings": {"$avg": "$ratings"},
                "totalRatings": {"$sum": "$totalRatings"},
                "avgPrice": {"$avg": "$price"},
                "minPrice": {"$min": "$price"},
                "maxPrice": {"$max": "$price"},
            }
        },
        {"$sort": {"totalTours": -1, "_id": 1}},
    ]


def build_monthly_plan_pipeline(year: int) -> list[dict[str, Any]]:
    """One row per start date in ``year``, grouped by calendar month."""
    return [
        {"$unwind": "$startDates"},
        {
            "$match": {
                "startDates": {
                    "$gte": datetime(year, 1, 1),
                    "$lt": datetime(year + 1, 1, 1),
                }
            }
        },
        {
            "$group": {
                "_id": {"$month": "$startDates"},
                "numTours": {"$sum": 1},
                "tours": {"$push": "$name"},
            }
        },
        {"$addFields": {"month": "$_id"}},
        {"$project": {"_id": 0}},
        {"$sort": {"numTours": -1, "month": 1}},
    ]


def build_distances_pipeline(latitude: float, longitude: float, multiplier: float) -> list[dict[str, Any]]:
    """Rank tours by distance from a point; ``$geoNear`` must be the first stage."""
    return [
        {
            "$geoNear": {
                "near": {"type": "Point", "coordinates": [longitude, latitude]},
                "distanceField": "distance",
                "distanceMultiplier": multiplier,
                "key": "startLocation",
            }
        },
        {"$project": {"name": 1, "distance": 1}},
        {"$sort": {"distance": 1}},
    ]


class TourService:
    """Service for tour-related operations."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.crud = CrudService(db, TOUR_RESOURCE)
        self.tours = db[TOUR_RESOURCE.collection]
        self.reviews = db[REVIEW_RESOURCE.collection]

    async def list_tours(self, spec: QuerySpec) -> tuple[list[dict[str, Any]], int]:
        """List tours for a query specification."""
        return await self.crud.list(spec)

    async def create_tour(
        self,
        payload: dict[str, Any],
        tour_id: Optional[ObjectId] = None,
    ) -> dict[str, Any]:
        """
        Create a new tour.

        Args:
            payload: Validated tour fields in document (camelCase) form
            tour_id: Identifier reserved before image processing, if any

        Returns:
            Created tour document

        Raises:
            ConflictError: If a tour with the same name or slug already exists
        """
        document = {
            **payload,
            "slug": slugify(payload["name"]),
            "createdAt": utcnow(),
        }
        if tour_id is not None:
            document["_id"] = tour_id

        tour = await self.crud.create(document)
        metrics_collector.record_tour_write("create")
        return tour

    async def update_tour(self, tour_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
        """
        Partially update a tour, re-deriving its slug when the name changes.

        Raises:
            NotFoundError: If tour not found
        """
        if "name" in changes:
            changes = {**changes, "slug": slugify(changes["name"])}

        tour = await self.crud.update(tour_id, changes)
        metrics_collector.record_tour_write("update")
        return tour

    async def delete_tour(self, tour_id: Any) -> None:
        """Delete a tour by ID."""
        await self.crud.delete(tour_id)
        metrics_collector.record_tour_write("delete")

    async def get_tour_with_reviews(self, tour_id: Any) -> dict[str, Any]:
        """
        Get a tour by ID with its reviews expanded.

        Raises:
            ValidationError: If the ID is malformed
            NotFoundError: If tour not found
        """
        oid = parse_object_id(tour_id, TOUR_RESOURCE.name)
        tour = await self.tours.find_one({"_id": oid}, TOUR_RESOURCE.default_projection())
        if tour is None:
            logger.warning("Tour not found", extra={"tour_id": str(oid)})
            raise NotFoundError(
                resource_type="tour",
                resource_id=str(oid),
                message="No tour found with this ID",
            )

        cursor = self.reviews.find(
            {"tour": oid},
            REVIEW_RESOURCE.default_projection(),
            sort=list(REVIEW_RESOURCE.default_sort),
        )
        tour["reviews"] = await cursor.to_list(length=None)
        return tour

    async def get_tour_by_slug(self, slug: str) -> dict[str, Any]:
        """
        Get tour by slug.

        Raises:
            NotFoundError: If tour not found
        """
        tour = await self.tours.find_one({"slug": slug}, TOUR_RESOURCE.default_projection())
        if tour is None:
            logger.warning("Tour not found", extra={"slug": slug})
            raise NotFoundError(resource_type="tour", message="No tour found with this slug")
        return tour

    async def get_tours_within(self, distance: float, latlon: str, unit: str) -> list[dict[str, Any]]:
        """
        Find tours starting within ``distance`` of a point.

        Raises:
            ValidationError: If the coordinates are missing or malformed
        """
        latitude, longitude = parse_latlon(latlon)
        radius = radius_in_radians(distance, unit)

        cursor = self.tours.find(
            {
                "startLocation": {
                    "$geoWithin": {"$centerSphere": [[longitude, latitude], radius]}
                }
            },
            TOUR_RESOURCE.default_projection(),
        )
        tours = await cursor.to_list(length=None)

        logger.info(
            "Geo radius search completed",
            extra={"latitude": latitude, "longitude": longitude, "radius": radius, "results": len(tours)}
        )
        return tours

    async def get_tour_distances(self, latlon: str, unit: str) -> list[dict[str, Any]]:
        """
        Rank all tours by distance from a point, nearest first.

        Raises:
            ValidationError: If the coordinates are missing or malformed
        """
        latitude, longitude = parse_latlon(latlon)
        pipeline = build_distances_pipeline(latitude, longitude, distance_multiplier(unit))
        return await self.tours.aggregate(pipeline).to_list(length=None)

    async def get_tour_stats(self) -> list[dict[str, Any]]:
        """Aggregate statistics per difficulty tier, largest tier first."""
        return await self.tours.aggregate(build_stats_pipeline()).to_list(length=None)

    async def get_monthly_plan(self, year: int) -> list[dict[str, Any]]:
        """Count tour start dates per month of ``year``, busiest month first."""
        plan = await self.tours.aggregate(build_monthly_plan_pipeline(year)).to_list(length=None)

        logger.info(
            "Monthly plan computed",
            extra={"year": year, "months": len(plan), "starts": sum(row["numTours"] for row in plan)}
        )
        return plan
