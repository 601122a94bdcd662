"""
LittleNest Backend: Name Route Handlers
=========================================

What:  Public name lookup/search/recommendation endpoints and the admin
       name management endpoints.
How:   Parse path/query/body parameters, delegate to NameService, wrap
       the result in the response envelope.

Public (prefix /api/names):
    GET  /trending              GET  /count               GET  /top
    GET  /search                GET  /meaning/{name}      GET  /analysis/{name}
    GET  /similar/{name}        GET  /suggestions/parents POST /generate
    GET  /region/{region}       GET  /religion/{religion} GET  /origin/{origin}
    GET  /gender/{gender}       GET  /letter/{letter}     GET  /length/{length}
    GET  /numerology/{number}   GET  /zodiac/{sign}       GET  /element/{element}
    POST /{name_id}/view        POST /{name_id}/search-appearance
    GET  /{slug}

Admin (prefix /api/names/admin, admin principal required):
    GET  /all      GET /statistics   POST /         POST /import
    PUT  /trending PUT /bulk         PUT  /{slug}   DELETE /{name_id}
"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from littlenest.database import get_db_session
from littlenest.dependencies import require_admin
from littlenest.responses import http_response
from littlenest.schemas.common import ErrorResponse
from littlenest.schemas.name import (
    BulkUpdateRequest,
    Gender,
    GenerateRequest,
    ImportRequest,
    NameCreate,
    NameUpdate,
    TrendUpdateRequest,
)
from littlenest.services.name_service import name_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/names", tags=["Names"])
admin_router = APIRouter(
    prefix="/api/names/admin",
    tags=["Names Admin"],
    dependencies=[Depends(require_admin)],
    responses={
        401: {"description": "Missing or invalid principal", "model": ErrorResponse},
        403: {"description": "Admin access required", "model": ErrorResponse},
    },
)

PageParam = Annotated[int, Query(ge=1, description="1-based page number")]
LimitParam = Annotated[int, Query(ge=1, le=100, description="Items per page (max 100)")]


# ══════════════════════════════════════════════════════════════════════════
# Ranking & counts
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "/trending",
    summary="Trending names",
    responses={404: {"description": "No trending names", "model": ErrorResponse}},
)
async def trending_names(
    request: Request,
    limit: int = Query(default=20, ge=1, le=100),
    gender: Optional[Gender] = Query(default=None),
    origin: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    names = await name_service.trending(db, limit=limit, gender=gender, origin=origin)
    return http_response(request, 200, "Trending names retrieved successfully", names)


@router.get("/count", summary="Name counts by gender")
async def count_names(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    counts = await name_service.counts(db)
    return http_response(request, 200, "Name counts retrieved successfully", counts)


@router.get(
    "/top",
    summary="Top names by trend and popularity",
    description="`limit` is clamped to 1..200.",
)
async def top_names(
    request: Request,
    limit: int = Query(default=20),
    gender: Optional[Gender] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    names = await name_service.top(db, limit=limit, gender=gender)
    return http_response(request, 200, "Top names retrieved successfully", names)


# ══════════════════════════════════════════════════════════════════════════
# Search & lookup
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "/search",
    summary="Search names",
    description=(
        "Matches the query against names by prefix, suffix, substring or full-text "
        "(name and meaning). Every returned name records one search appearance."
    ),
    responses={
        400: {"description": "Invalid query", "model": ErrorResponse},
        404: {"description": "No matches", "model": ErrorResponse},
    },
)
async def search_names(
    request: Request,
    q: str = Query(..., description="Search text (at least 2 characters)"),
    type: str = Query(default="prefix", description="prefix | suffix | contains | text"),
    gender: Optional[Gender] = Query(default=None),
    origin: Optional[str] = Query(default=None),
    religion: Optional[str] = Query(default=None),
    min_length: Optional[int] = Query(default=None, ge=1),
    max_length: Optional[int] = Query(default=None, ge=1),
    sort_by: str = Query(default="popularity", description="popularity | name | length"),
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.search(
        db,
        query=q,
        search_type=type,
        gender=gender,
        origin=origin,
        religion=religion,
        min_length=min_length,
        max_length=max_length,
        page=page,
        limit=limit,
        sort_by=sort_by,
    )
    return http_response(request, 200, "Search results retrieved successfully", result)


@router.get("/meaning/{name}", summary="Meaning of a name (by name or slug)")
async def name_meaning(
    name: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    record = await name_service.meaning(db, name)
    return http_response(request, 200, "Name meaning retrieved successfully", record)


@router.get("/analysis/{name}", summary="Letter analysis of a name")
async def name_analysis(
    name: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    analysis = await name_service.letter_analysis(db, name)
    return http_response(request, 200, "Letter analysis retrieved successfully", analysis)


# ══════════════════════════════════════════════════════════════════════════
# Recommendations
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "/similar/{name}",
    summary="Names similar to a given name",
    description="Same gender; scored +2 origin, +1 length, +1 numerology.",
)
async def similar_names(
    name: str,
    request: Request,
    limit: int = Query(default=10, ge=1, le=50),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    names = await name_service.similar(db, name, limit=limit)
    return http_response(request, 200, "Similar names retrieved successfully", names)


@router.get("/suggestions/parents", summary="Suggestions from parents' names")
async def parent_suggestions(
    request: Request,
    mother: Optional[str] = Query(default=None),
    father: Optional[str] = Query(default=None),
    gender: Optional[Gender] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    names = await name_service.suggest_from_parents(db, mother=mother, father=father, gender=gender)
    return http_response(request, 200, "Name suggestions retrieved successfully", names)


@router.post("/generate", summary="Generate name ideas")
async def generate_names(
    criteria: GenerateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    names = await name_service.generate(db, criteria)
    return http_response(request, 200, "Names generated successfully", names)


# ══════════════════════════════════════════════════════════════════════════
# Facet browsing
# ══════════════════════════════════════════════════════════════════════════

@router.get("/region/{region}", summary="Names used in a region")
async def names_by_region(
    region: str,
    request: Request,
    gender: Optional[Gender] = Query(default=None),
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_region(db, region, gender=gender, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


@router.get("/religion/{religion}", summary="Names by religion")
async def names_by_religion(
    religion: str,
    request: Request,
    gender: Optional[Gender] = Query(default=None),
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_religion(db, religion, gender=gender, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


@router.get("/origin/{origin}", summary="Names by origin (substring, case-insensitive)")
async def names_by_origin(
    origin: str,
    request: Request,
    gender: Optional[Gender] = Query(default=None),
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_origin(db, origin, gender=gender, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


@router.get("/gender/{gender}", summary="Names by gender, alphabetical")
async def names_by_gender(
    gender: str,
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_gender(db, gender, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


@router.get("/letter/{letter}", summary="Names starting with a letter")
async def names_by_letter(
    letter: str,
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_letter(db, letter, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


@router.get("/length/{length}", summary="Names of an exact length")
async def names_by_length(
    length: int,
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_length(db, length, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


@router.get("/numerology/{number}", summary="Names with a numerology number (1-9, 11, 22, 33)")
async def names_by_numerology(
    number: int,
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_numerology(db, number, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


@router.get("/zodiac/{sign}", summary="Names by zodiac sign")
async def names_by_zodiac(
    sign: str,
    request: Request,
    gender: Optional[Gender] = Query(default=None),
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_zodiac(db, sign, gender=gender, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


@router.get("/element/{element}", summary="Names by zodiac element")
async def names_by_element(
    element: str,
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 20,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.by_element(db, element, page=page, limit=limit)
    return http_response(request, 200, "Names retrieved successfully", result)


# ══════════════════════════════════════════════════════════════════════════
# Popularity tracking
# ══════════════════════════════════════════════════════════════════════════

@router.post("/{name_id}/view", summary="Record a name view")
async def track_view(
    name_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    record = await name_service.record_view(db, name_id)
    return http_response(request, 200, "View recorded successfully", record)


@router.post("/{name_id}/search-appearance", summary="Record a search appearance")
async def track_search_appearance(
    name_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    record = await name_service.record_search_appearance(db, name_id)
    return http_response(request, 200, "Search appearance recorded successfully", record)


# ══════════════════════════════════════════════════════════════════════════
# Admin
# ══════════════════════════════════════════════════════════════════════════

@admin_router.get("/all", summary="List all names (admin)")
async def list_all_names(
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 20,
    sort_by: str = Query(default="created_at"),
    order: str = Query(default="desc", description="asc | desc"),
    gender: Optional[Gender] = Query(default=None),
    origin: Optional[str] = Query(default=None),
    regions: Optional[str] = Query(default=None, description="Comma-separated"),
    religions: Optional[str] = Query(default=None, description="Comma-separated"),
    search: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.list_all(
        db,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
        gender=gender,
        origin=origin,
        regions=regions,
        religions=religions,
        search_query=search,
    )
    return http_response(request, 200, "Names retrieved successfully", result)


@admin_router.get("/statistics", summary="Name statistics (admin)")
async def name_statistics(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    stats = await name_service.statistics(db)
    return http_response(request, 200, "Statistics retrieved successfully", stats)


@admin_router.post(
    "",
    summary="Create a name (admin)",
    status_code=201,
    responses={409: {"description": "Name already exists", "model": ErrorResponse}},
)
async def create_name(
    data: NameCreate,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    record = await name_service.create(db, data)
    return http_response(request, 201, "Name created successfully", record)


@admin_router.post(
    "/import",
    summary="Import names in bulk (admin)",
    description="201 when every item is inserted; 207 with per-item failures otherwise.",
)
async def import_names(
    payload: ImportRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.import_names(db, payload.names)
    if result.failures:
        return http_response(request, 207, "Names partially imported", result)
    return http_response(request, 201, "Names imported successfully", result)


@admin_router.put("/trending", summary="Update trend values (admin)")
async def update_trends(
    payload: TrendUpdateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.update_trends(db, payload.trends)
    return http_response(request, 200, "Trending data updated successfully", result)


@admin_router.put("/bulk", summary="Bulk update names (admin)")
async def bulk_update_names(
    payload: BulkUpdateRequest,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await name_service.bulk_update(db, payload.operations)
    return http_response(request, 200, "Bulk update completed successfully", result)


@admin_router.put(
    "/{slug}",
    summary="Update a name (admin)",
    responses={
        404: {"description": "Name not found", "model": ErrorResponse},
        409: {"description": "Name or slug already exists", "model": ErrorResponse},
    },
)
async def update_name(
    slug: str,
    data: NameUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    record = await name_service.update(db, slug, data)
    return http_response(request, 200, "Name updated successfully", record)


@admin_router.delete("/{name_id}", summary="Delete a name (admin)")
async def delete_name(
    name_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    await name_service.delete(db, name_id)
    return http_response(request, 200, "Name deleted successfully")


# Registered last so the fixed paths above take precedence
@router.get(
    "/{slug}",
    summary="Get a name by slug",
    responses={404: {"description": "Name not found", "model": ErrorResponse}},
)
async def get_name(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    record = await name_service.get_by_slug(db, slug)
    return http_response(request, 200, "Name retrieved successfully", record)
