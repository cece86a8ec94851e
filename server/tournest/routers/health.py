"""Health check router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..schemas.health import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping() -> JSONResponse:
    """Liveness ping returning the service status and server time."""
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0"
    )

    logger.debug(
        "Health ping",
        extra={"health_status": response_data.status.value}
    )

    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json")
    )
