"""User router. Listing only; account management lives elsewhere."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from motor.motor_asyncio import AsyncIOMotorDatabase

from ..core.config import settings
from ..core.database import get_db
from ..core.dependencies import RequiredAuth
from ..models.user import USER_RESOURCE
from ..schemas.common import envelope
from ..schemas.user import User
from ..services.crud_service import CrudService
from ..services.query_builder import build_query_spec

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["user"])


@router.get("")
async def list_users(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: dict = RequiredAuth,
) -> JSONResponse:
    """List users with the same filter, sort and paging parameters as tours."""
    spec = build_query_spec(
        request.query_params.multi_items(),
        USER_RESOURCE,
        default_limit=settings.default_page_limit,
        max_limit=settings.max_page_limit,
    )
    users, results = await CrudService(db, USER_RESOURCE).list(spec)

    logger.debug(
        "Users listed",
        extra={"results": results, "requested_by": user["user_id"]}
    )
    return envelope(
        {"users": [User.model_validate(doc).to_json() for doc in users]},
        results=results,
    )
