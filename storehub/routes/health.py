"""
StoreHub Backend: Health Check Route
=====================================

What:  GET /health for container orchestrators and load balancers.
How:   Runs SELECT 1 through the app's session factory and checks that the
       resizer's upload directory is writable, so the report covers the same
       database and directory the app actually serves.

    healthy:   both checks pass (HTTP 200)
    unhealthy: either check fails (HTTP 503)
"""

import logging
import os
import time

from fastapi import APIRouter, Request, Response
from sqlalchemy import text

from storehub import __version__
from storehub.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(request: Request, response: Response) -> HealthResponse:
    db_status = "connected"
    upload_status = "writable"
    overall = "healthy"

    try:
        async with request.app.state.session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    upload_dir = request.app.state.image_resizer.upload_dir
    if not (upload_dir.is_dir() and os.access(upload_dir, os.W_OK)):
        upload_status = "unwritable"
        overall = "unhealthy"
        logger.warning("Health check: upload directory not writable: %s", upload_dir)

    if overall != "healthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        upload_dir=upload_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
