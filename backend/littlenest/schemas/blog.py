"""
LittleNest Backend: Blog Request/Response Schemas
===================================================

What:  API contract for blog posts.
How:   BlogCreate is built from multipart form fields (the featured image
       arrives in the same request); BlogUpdate is a partial JSON body.
       Length rules mirror the column sizes in models/blog.py.
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from littlenest.schemas.common import Pagination

Category = Literal[
    "parenting",
    "pregnancy",
    "baby-names",
    "child-development",
    "nutrition",
    "health",
    "education",
    "activities",
]
Status = Literal["draft", "published"]


class FeaturedImage(BaseModel):
    url: str
    alt: str
    public_id: str


class BlogResponse(BaseModel):
    id: uuid.UUID
    title: str
    slug: str
    content: Optional[str] = None
    excerpt: str
    category: str
    tags: List[str] = Field(default_factory=list)
    author_id: str
    featured_image: FeaturedImage
    status: str
    read_time: int
    meta_description: str
    views: int = 0
    likes: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, blog, include_content: bool = True) -> "BlogResponse":
        return cls(
            id=blog.id,
            title=blog.title,
            slug=blog.slug,
            content=blog.content if include_content else None,
            excerpt=blog.excerpt,
            category=blog.category,
            tags=list(blog.tags or []),
            author_id=blog.author_id,
            featured_image=FeaturedImage(
                url=blog.image_url,
                alt=blog.image_alt,
                public_id=blog.image_public_id,
            ),
            status=blog.status,
            read_time=blog.read_time,
            meta_description=blog.meta_description,
            views=blog.views or 0,
            likes=blog.likes or 0,
            created_at=blog.created_at,
            updated_at=blog.updated_at,
        )


class BlogPage(BaseModel):
    blogs: List[BlogResponse]
    pagination: Pagination


def _split_tags(v):
    if v is None:
        return v
    # Form posts send either "a,b" or repeated tags=a&tags=b
    if isinstance(v, str):
        v = [v]
    return [tag.strip().lower() for item in v for tag in str(item).split(",") if tag.strip()]


class BlogCreate(BaseModel):
    title: str = Field(min_length=10, max_length=100)
    content: str = Field(min_length=100)
    excerpt: str = Field(min_length=1, max_length=200)
    category: Category
    tags: List[str] = Field(default_factory=list)
    status: Status = "draft"
    meta_description: str = Field(min_length=1, max_length=160)
    image_alt: str = Field(min_length=1, max_length=200)

    @field_validator("title", "excerpt", "meta_description", "image_alt", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return _split_tags(v) or []


class BlogUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=10, max_length=100)
    content: Optional[str] = Field(default=None, min_length=100)
    excerpt: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[Category] = None
    tags: Optional[List[str]] = None
    status: Optional[Status] = None
    meta_description: Optional[str] = Field(default=None, min_length=1, max_length=160)
    image_alt: Optional[str] = Field(default=None, min_length=1, max_length=200)

    @field_validator("title", "excerpt", "meta_description", "image_alt", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v):
        return _split_tags(v)
