"""
LittleNest Backend: System Routes
===================================

What:  Welcome, health check, stored-media serving and admin counts.
Who:   Load balancers and Docker poll /health; <img> tags load /media;
       the admin dashboard reads /api/system/admin-counts.

Health status levels:
    healthy:    database reachable (HTTP 200)
    unhealthy:  database unreachable (HTTP 503, stop routing traffic)
"""

import logging
import os
import platform
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from littlenest import __version__
from littlenest import database
from littlenest.config import settings
from littlenest.database import get_db_session
from littlenest.dependencies import require_admin
from littlenest.exceptions import NotFoundError
from littlenest.responses import http_response
from littlenest.schemas.common import ErrorResponse, HealthResponse
from littlenest.services.blog_service import blog_service
from littlenest.services.file_service import file_service
from littlenest.services.name_service import name_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])

_start_time = time.time()


def _system_info() -> dict:
    info = {
        "platform": platform.system(),
        "python_version": platform.python_version(),
        "cpu_count": os.cpu_count(),
        "pid": os.getpid(),
    }
    if hasattr(os, "getloadavg"):
        info["load_average"] = [round(value, 2) for value in os.getloadavg()]
    return info


@router.get("/", summary="Welcome")
async def welcome(request: Request) -> JSONResponse:
    return http_response(request, 200, "Welcome to the LittleNest API")


@router.get(
    "/health",
    summary="Service health check",
    responses={503: {"description": "Database unreachable"}},
)
async def health_check(request: Request) -> JSONResponse:
    db_status = "connected"
    overall = "healthy"
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    health = HealthResponse(
        status=overall,
        version=__version__,
        environment=settings.environment,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
        system=_system_info(),
    )
    status_code = 200 if overall == "healthy" else 503
    return http_response(request, status_code, f"Service is {overall}", health)


@router.get(
    f"{settings.media_url_prefix}/{{public_id:path}}",
    summary="Serve a stored image",
    responses={
        400: {"description": "Invalid path", "model": ErrorResponse},
        404: {"description": "File not found", "model": ErrorResponse},
    },
)
async def serve_media(public_id: str) -> FileResponse:
    path = file_service.resolve(public_id)
    if not path.is_file():
        raise NotFoundError(resource="file", resource_id=public_id)
    # Stored names are UUIDs, so the content never changes
    return FileResponse(path=str(path), headers={"Cache-Control": "public, max-age=86400"})


@router.get(
    "/api/system/admin-counts",
    summary="Blog and name totals (admin)",
    responses={
        401: {"description": "Missing or invalid principal", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
    },
)
async def admin_counts(
    request: Request,
    _admin=Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    counts = {
        "total_blogs": await blog_service.total(db),
        "total_names": await name_service.total(db),
    }
    return http_response(request, 200, "Admin counts retrieved successfully", counts)
