"""
Health check endpoint (no authentication required).
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import Services, get_services
from api.models import HealthResponse

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, services: Services = Depends(get_services)):
    """Report service and database status."""
    db_status = "unknown"
    if services.health_check is not None:
        health_info = await services.health_check()
        db_status = health_info.get("status", "unknown")

    healthy = db_status in ("healthy", "unknown")
    if not healthy:
        logger.warning("Health check degraded", database_status=db_status)

    response = HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.utcnow(),
        version=request.app.state.api_settings.api_version,
        database_status=db_status,
    )
    return JSONResponse(status_code=200 if healthy else 503, content=response.model_dump(mode="json"))
