"""Tour router for tour management operations."""

import json
import logging
import math
from typing import Any

from bson import ObjectId
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from ..core.config import settings
from ..core.database import get_db
from ..core.dependencies import RequiredAuth, get_image_pipeline
from ..core.exceptions import ValidationError
from ..models.base import parse_object_id
from ..models.tour import TOUR_RESOURCE
from ..schemas.common import envelope
from ..schemas.tour import (
    MonthlyPlanEntry,
    Tour,
    TourCreate,
    TourDistance,
    TourStats,
    TourUpdate,
)
from ..services.image_pipeline import ImagePipeline
from ..services.image_service import ImageUpload
from ..services.query_builder import TOP_CHEAP_TOURS, build_query_spec
from ..services.tour_service import TourService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tours", tags=["tour"])

# Form fields that always hold a list, even when sent once
LIST_FIELDS = frozenset({"startDates", "images"})


def _decode_form_value(value: str) -> Any:
    stripped = value.strip()
    if stripped[:1] in ("[", "{"):
        try:
            return json.loads(stripped)
        except ValueError:
            return value
    return value


async def read_payload(request: Request) -> tuple[dict[str, Any], list[ImageUpload]]:
    """
    Read a JSON or form body into plain fields and uploaded files.

    Repeated form keys become lists, and form values that look like JSON
    arrays or objects are decoded, so nested fields such as
    ``startLocation`` can be sent alongside files.

    Raises:
        ValidationError: If a JSON body is malformed or not an object
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        values: dict[str, list[Any]] = {}
        uploads = []
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                uploads.append(ImageUpload(
                    field=key,
                    filename=value.filename or "",
                    content_type=value.content_type or "",
                    data=await value.read(),
                ))
                continue

            decoded = _decode_form_value(value)
            if key in LIST_FIELDS and isinstance(decoded, list):
                values.setdefault(key, []).extend(decoded)
            else:
                values.setdefault(key, []).append(decoded)

        payload = {
            key: items if key in LIST_FIELDS or len(items) > 1 else items[0]
            for key, items in values.items()
        }
        return payload, uploads

    body = await request.body()
    if not body.strip():
        return {}, []
    try:
        payload = json.loads(body)
    except ValueError:
        raise ValidationError("Request body is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload, []


def validate_payload(model: type[BaseModel], payload: dict[str, Any]) -> Any:
    """Validate ``payload`` against ``model``, reporting failures as 400 with violations."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError.from_errors(e.errors())


def _tours(documents: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [Tour.model_validate(doc).to_json() for doc in documents]


@router.get("/top-5-cheap")
async def top_cheap_tours(db: AsyncIOMotorDatabase = Depends(get_db)) -> JSONResponse:
    """Well rated tours under the price cap, cheapest first. Ignores the query string."""
    tours, results = await TourService(db).list_tours(TOP_CHEAP_TOURS.spec)
    return envelope({"tours": _tours(tours)}, results=results)


@router.get("/stats")
async def tour_stats(db: AsyncIOMotorDatabase = Depends(get_db)) -> JSONResponse:
    """Statistics per difficulty tier."""
    stats = await TourService(db).get_tour_stats()
    return envelope({"stats": [TourStats.model_validate(row).to_json() for row in stats]})


@router.get("/monthly-plan/{year}")
async def monthly_plan(year: int, db: AsyncIOMotorDatabase = Depends(get_db)) -> JSONResponse:
    """Tour starts per month of ``year``, busiest month first."""
    if not 1 <= year <= 9998:
        raise ValidationError(f"Year must be between 1 and 9998, got {year}")

    plan = await TourService(db).get_monthly_plan(year)
    return envelope(
        {"plan": [MonthlyPlanEntry.model_validate(row).to_json() for row in plan]},
        results=len(plan),
    )


@router.get("/within/{distance}/center/{latlon}/unit/{unit}")
async def tours_within(
    distance: float,
    latlon: str,
    unit: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> JSONResponse:
    """Tours starting within ``distance`` (miles for ``mi``, otherwise kilometers) of a point."""
    if not math.isfinite(distance) or distance < 0:
        raise ValidationError("Distance must be a finite, non-negative number")

    tours = await TourService(db).get_tours_within(distance, latlon, unit)
    return envelope({"tours": _tours(tours)}, results=len(tours))


@router.get("/distances/{latlon}/unit/{unit}")
async def tour_distances(
    latlon: str,
    unit: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
) -> JSONResponse:
    """Every tour with its distance from a point, nearest first."""
    distances = await TourService(db).get_tour_distances(latlon, unit)
    return envelope(
        {"distances": [TourDistance.model_validate(row).to_json() for row in distances]},
        results=len(distances),
    )


@router.get("/slug/{slug}")
async def get_tour_by_slug(slug: str, db: AsyncIOMotorDatabase = Depends(get_db)) -> JSONResponse:
    """Get a tour by its slug."""
    tour = await TourService(db).get_tour_by_slug(slug)
    return envelope({"tour": Tour.model_validate(tour).to_json()})


@router.get("")
async def list_tours(request: Request, db: AsyncIOMotorDatabase = Depends(get_db)) -> JSONResponse:
    """
    List tours.

    Supports ``field=value`` and ``field[op]=value`` filters, ``fields``,
    ``sort``, ``page`` and ``limit``.
    """
    spec = build_query_spec(
        request.query_params.multi_items(),
        TOUR_RESOURCE,
        default_limit=settings.default_page_limit,
        max_limit=settings.max_page_limit,
    )
    tours, results = await TourService(db).list_tours(spec)
    return envelope({"tours": _tours(tours)}, results=results)


@router.post("", status_code=201)
async def create_tour(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    pipeline: ImagePipeline = Depends(get_image_pipeline),
    user: dict = RequiredAuth,
) -> JSONResponse:
    """
    Create a new tour from a JSON or multipart body.

    Multipart requests may carry one ``imageCover`` and up to three
    ``images`` files. They are resized, uploaded and their URLs stored on
    the tour.
    """
    payload, uploads = await read_payload(request)
    tour_in = validate_payload(TourCreate, payload)

    tour_id = ObjectId()
    document = tour_in.to_document()
    urls = await pipeline.run(str(tour_id), uploads)
    if urls is not None:
        document = urls.apply(document)

    tour = await TourService(db).create_tour(document, tour_id=tour_id)

    logger.info(
        "Tour created successfully",
        extra={
            "tour_id": str(tour_id),
            "slug": tour["slug"],
            "images": len(uploads),
            "user_id": user["user_id"],
        }
    )
    return envelope({"tour": Tour.model_validate(tour).to_json()}, status_code=201)


@router.get("/{tour_id}")
async def get_tour(tour_id: str, db: AsyncIOMotorDatabase = Depends(get_db)) -> JSONResponse:
    """Get a tour by ID with its reviews."""
    tour = await TourService(db).get_tour_with_reviews(tour_id)
    return envelope({"tour": Tour.model_validate(tour).to_json()})


@router.patch("/{tour_id}")
async def update_tour(
    tour_id: str,
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    pipeline: ImagePipeline = Depends(get_image_pipeline),
    user: dict = RequiredAuth,
) -> JSONResponse:
    """Partially update a tour from a JSON or multipart body."""
    oid = parse_object_id(tour_id, TOUR_RESOURCE.name)
    payload, uploads = await read_payload(request)
    changes = validate_payload(TourUpdate, payload).to_changes()

    urls = await pipeline.run(str(oid), uploads)
    if urls is not None:
        changes = urls.apply(changes)

    tour = await TourService(db).update_tour(oid, changes)

    logger.info(
        "Tour updated successfully",
        extra={"tour_id": str(oid), "fields": sorted(changes), "user_id": user["user_id"]}
    )
    return envelope({"tour": Tour.model_validate(tour).to_json()})


@router.delete("/{tour_id}", status_code=204)
async def delete_tour(
    tour_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = RequiredAuth,
) -> Response:
    """Delete a tour."""
    await TourService(db).delete_tour(tour_id)

    logger.info(
        "Tour deleted",
        extra={"tour_id": tour_id, "user_id": user["user_id"]}
    )
    return Response(status_code=204)
