"""
LittleNest Backend: Blog Route Handlers
=========================================

What:  Public blog reading endpoints and author-owned write endpoints.
How:   Create and image replacement are multipart uploads (form fields +
       `image` file); update is a JSON body. Writes require a principal
       from the gateway headers.

Public (prefix /api/blogs):
    GET /                      GET /search           GET /category/{category}
    GET /{slug}/similar        GET /{slug}

Authenticated:
    POST /                     PUT /{blog_id}       PUT /{blog_id}/image
    DELETE /{blog_id}
"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from littlenest.database import get_db_session
from littlenest.dependencies import Principal, get_principal
from littlenest.responses import http_response
from littlenest.schemas.blog import BlogCreate, BlogUpdate, Status
from littlenest.schemas.common import ErrorResponse
from littlenest.services.blog_service import blog_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blogs", tags=["Blogs"])

PageParam = Annotated[int, Query(ge=1)]
LimitParam = Annotated[int, Query(ge=1, le=50)]

AUTH_RESPONSES = {
    401: {"description": "Missing or invalid principal", "model": ErrorResponse},
    403: {"description": "Not the author of this post", "model": ErrorResponse},
    404: {"description": "Blog post not found", "model": ErrorResponse},
}


def blog_create_form(
    title: str = Form(...),
    content: str = Form(...),
    excerpt: str = Form(...),
    category: str = Form(...),
    meta_description: str = Form(...),
    image_alt: str = Form(...),
    tags: Optional[str] = Form(default=None, description="Comma-separated"),
    status: str = Form(default="draft"),
) -> BlogCreate:
    """Collect the multipart form fields of a new post into a BlogCreate."""
    try:
        return BlogCreate(
            title=title,
            content=content,
            excerpt=excerpt,
            category=category,
            meta_description=meta_description,
            image_alt=image_alt,
            tags=tags or [],
            status=status,
        )
    except PydanticValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e


# ── Public reads ──────────────────────────────────────────────────────────

@router.get("", summary="List blog posts")
async def list_blogs(
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 10,
    status: Status = Query(default="published"),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await blog_service.list(db, page=page, limit=limit, status=status)
    return http_response(request, 200, "Blogs retrieved successfully", result)


@router.get("/search", summary="Search published blog posts")
async def search_blogs(
    request: Request,
    q: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    blogs = await blog_service.search(db, q)
    return http_response(request, 200, "Search results retrieved successfully", blogs)


@router.get("/category/{category}", summary="Published posts in a category")
async def blogs_by_category(
    category: str,
    request: Request,
    page: PageParam = 1,
    limit: LimitParam = 10,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    result = await blog_service.by_category(db, category, page=page, limit=limit)
    return http_response(request, 200, "Blogs retrieved successfully", result)


@router.get("/{slug}/similar", summary="Posts sharing a tag")
async def similar_blogs(
    slug: str,
    request: Request,
    limit: int = Query(default=3, ge=1, le=20),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    blogs = await blog_service.similar(db, slug, limit=limit)
    return http_response(request, 200, "Similar blogs retrieved successfully", blogs)


@router.get(
    "/{slug}",
    summary="Read a published post",
    description="Counts one view per request.",
    responses={404: {"description": "Blog post not found", "model": ErrorResponse}},
)
async def get_blog(
    slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    blog = await blog_service.get_by_slug(db, slug)
    return http_response(request, 200, "Blog retrieved successfully", blog)


# ── Author writes ─────────────────────────────────────────────────────────

@router.post(
    "",
    summary="Create a blog post",
    status_code=201,
    responses={
        400: {"description": "Invalid image", "model": ErrorResponse},
        409: {"description": "Title already used", "model": ErrorResponse},
        **AUTH_RESPONSES,
    },
)
async def create_blog(
    request: Request,
    data: BlogCreate = Depends(blog_create_form),
    image: UploadFile = File(..., description="Featured image (PNG, JPEG, GIF or WebP)"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    content = await image.read()
    blog = await blog_service.create(
        db,
        author_id=principal.user_id,
        data=data,
        filename=image.filename or "",
        image=content,
        content_length=image.size,
    )
    return http_response(request, 201, "Blog created successfully", blog)


@router.put(
    "/{blog_id}",
    summary="Update a blog post",
    responses={409: {"description": "Title already used", "model": ErrorResponse}, **AUTH_RESPONSES},
)
async def update_blog(
    blog_id: UUID,
    data: BlogUpdate,
    request: Request,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    blog = await blog_service.update(db, blog_id, principal.user_id, data)
    return http_response(request, 200, "Blog updated successfully", blog)


@router.put(
    "/{blog_id}/image",
    summary="Replace the featured image",
    responses={400: {"description": "Invalid image", "model": ErrorResponse}, **AUTH_RESPONSES},
)
async def replace_blog_image(
    blog_id: UUID,
    request: Request,
    image: UploadFile = File(...),
    alt: Optional[str] = Form(default=None, max_length=200),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    content = await image.read()
    blog = await blog_service.replace_image(
        db,
        blog_id,
        principal.user_id,
        filename=image.filename or "",
        image=content,
        content_length=image.size,
        alt=alt.strip() if alt else None,
    )
    return http_response(request, 200, "Blog image replaced successfully", blog)


@router.delete("/{blog_id}", summary="Delete a blog post", responses=AUTH_RESPONSES)
async def delete_blog(
    blog_id: UUID,
    request: Request,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db_session),
) -> JSONResponse:
    await blog_service.delete(db, blog_id, principal.user_id)
    return http_response(request, 200, "Blog deleted successfully")
