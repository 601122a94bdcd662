"""
LittleNest Backend: Blog Service (Business Logic)
===================================================

What:  Blog listing, reading, search and author-owned writes.
How:   Composes FileService (featured images) with SQLAlchemy queries on
       the `blogs` table. Slugs come from the same slugify() used for
       names; read time is derived from the content word count.
Who:   Called by routes/blogs.py and routes/system.py.

Create flow (POST /api/blogs):
    ┌──────────┐    ┌──────────────┐    ┌──────────┐
    │  Upload  │───▶│ Store image  │───▶│ Insert   │
    │  (Route) │    │ (FileService)│    │ (DB)     │
    └──────────┘    └──────────────┘    └──────────┘
    If the insert fails, the stored image is deleted before the error
    propagates, so no orphaned files are left behind.

Ownership:
    update / replace_image / delete only succeed for the post's author.
    Unknown id → NotFoundError (404); someone else's post →
    PermissionDeniedError (403).
"""

import logging
import uuid
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from littlenest.database import add_after_commit
from littlenest.exceptions import LittleNestError, NotFoundError, PermissionDeniedError, ValidationError
from littlenest.models.blog import BLOG_CATEGORIES, BLOG_STATUSES, Blog, estimate_read_time
from littlenest.schemas.blog import BlogCreate, BlogPage, BlogResponse, BlogUpdate
from littlenest.schemas.common import Pagination
from littlenest.services.db_errors import translate_db_errors
from littlenest.services.derivation import slugify
from littlenest.services.file_service import file_service

logger = logging.getLogger(__name__)

SEARCH_RESULT_LIMIT = 50


class BlogService:
    async def _get_owned(self, db: AsyncSession, blog_id: UUID, author_id: str) -> Blog:
        with translate_db_errors("retrieve the blog post", blog_id=str(blog_id)):
            result = await db.execute(select(Blog).where(Blog.id == blog_id))
            blog = result.scalar_one_or_none()
        if blog is None:
            raise NotFoundError(resource="blog post", resource_id=str(blog_id))
        if blog.author_id != author_id:
            raise PermissionDeniedError(
                message="You can only modify your own blog posts",
                context={"blog_id": str(blog_id)},
            )
        return blog

    async def _paginate(self, db: AsyncSession, filters, page: int, limit: int) -> BlogPage:
        skip = (page - 1) * limit
        with translate_db_errors("retrieve blog posts"):
            result = await db.execute(
                select(Blog)
                .where(*filters)
                .order_by(Blog.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            blogs = list(result.scalars().all())
            count_result = await db.execute(select(func.count(Blog.id)).where(*filters))
            total = count_result.scalar() or 0

        return BlogPage(
            blogs=[BlogResponse.from_model(blog) for blog in blogs],
            pagination=Pagination.build(page, limit, total, len(blogs)),
        )

    # ── Public reads ──────────────────────────────────────────────────────

    async def list(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 10,
        status: str = "published",
    ) -> BlogPage:
        if status not in BLOG_STATUSES:
            raise ValidationError(
                message=f"Status must be one of: {', '.join(BLOG_STATUSES)}", field="status"
            )
        return await self._paginate(db, [Blog.status == status], page, limit)

    async def get_by_slug(self, db: AsyncSession, slug: str) -> BlogResponse:
        """Fetch a published post and count the view in the same statement."""
        with translate_db_errors("retrieve the blog post", slug=slug):
            result = await db.execute(
                update(Blog)
                .where(Blog.slug == slug, Blog.status == "published")
                .values(views=Blog.views + 1)
                .returning(Blog)
                .execution_options(synchronize_session="fetch")
            )
            blog = result.scalar_one_or_none()
        if blog is None:
            raise NotFoundError(resource="blog post", resource_id=slug)
        return BlogResponse.from_model(blog)

    async def by_category(
        self,
        db: AsyncSession,
        category: str,
        page: int = 1,
        limit: int = 10,
    ) -> BlogPage:
        if category not in BLOG_CATEGORIES:
            raise ValidationError(
                message=f"Category must be one of: {', '.join(BLOG_CATEGORIES)}",
                field="category",
            )
        return await self._paginate(
            db, [Blog.status == "published", Blog.category == category], page, limit
        )

    async def search(self, db: AsyncSession, query: str) -> List[BlogResponse]:
        """Case-insensitive match on title, content or any tag; content omitted."""
        query = (query or "").strip()
        if not query:
            raise ValidationError(message="Search query is required", field="q")

        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        with translate_db_errors("search blog posts"):
            result = await db.execute(
                select(Blog)
                .where(
                    Blog.status == "published",
                    or_(
                        Blog.title.ilike(pattern, escape="\\"),
                        Blog.content.ilike(pattern, escape="\\"),
                        func.array_to_string(Blog.tags, " ").ilike(pattern, escape="\\"),
                    ),
                )
                .order_by(Blog.created_at.desc())
                .limit(SEARCH_RESULT_LIMIT)
            )
            blogs = list(result.scalars().all())
        return [BlogResponse.from_model(blog, include_content=False) for blog in blogs]

    async def similar(self, db: AsyncSession, slug: str, limit: int = 3) -> List[BlogResponse]:
        """Published posts sharing at least one tag with the given post."""
        with translate_db_errors("find similar blog posts", slug=slug):
            result = await db.execute(
                select(Blog).where(Blog.slug == slug, Blog.status == "published")
            )
            source = result.scalar_one_or_none()
            if source is None:
                raise NotFoundError(resource="blog post", resource_id=slug)
            if not source.tags:
                return []

            result = await db.execute(
                select(Blog)
                .where(
                    Blog.id != source.id,
                    Blog.status == "published",
                    Blog.tags.overlap(list(source.tags)),
                )
                .order_by(Blog.created_at.desc())
                .limit(limit)
            )
            blogs = list(result.scalars().all())
        return [BlogResponse.from_model(blog, include_content=False) for blog in blogs]

    # ── Author writes ─────────────────────────────────────────────────────

    async def create(
        self,
        db: AsyncSession,
        author_id: str,
        data: BlogCreate,
        filename: str,
        image: bytes,
        content_length: Optional[int] = None,
    ) -> BlogResponse:
        slug = slugify(data.title)
        stored = await file_service.save_image(filename, image, content_length)

        blog = Blog(
            id=uuid.uuid4(),
            title=data.title,
            slug=slug,
            content=data.content,
            excerpt=data.excerpt,
            category=data.category,
            tags=list(data.tags),
            author_id=author_id,
            image_url=stored.url,
            image_alt=data.image_alt,
            image_public_id=stored.public_id,
            status=data.status,
            read_time=estimate_read_time(data.content),
            meta_description=data.meta_description,
            views=0,
            likes=0,
        )
        try:
            with translate_db_errors(
                "create the blog post",
                duplicate_message="A blog post with this title already exists",
                slug=slug,
            ):
                db.add(blog)
                await db.flush()
        except LittleNestError:
            await file_service.delete_image(stored.public_id)
            raise

        logger.info("Blog post created: %s by %s", blog.slug, author_id)
        return BlogResponse.from_model(blog)

    async def update(
        self,
        db: AsyncSession,
        blog_id: UUID,
        author_id: str,
        data: BlogUpdate,
    ) -> BlogResponse:
        blog = await self._get_owned(db, blog_id, author_id)
        fields = data.model_dump(exclude_unset=True, exclude_none=True)

        if "title" in fields and fields["title"] != blog.title:
            blog.slug = slugify(fields["title"])
        if "content" in fields:
            blog.read_time = estimate_read_time(fields["content"])
        for key, value in fields.items():
            setattr(blog, key, value)

        with translate_db_errors(
            "update the blog post",
            duplicate_message="A blog post with this title already exists",
            blog_id=str(blog_id),
        ):
            await db.flush()
        logger.info("Blog post updated: %s", blog.slug)
        return BlogResponse.from_model(blog)

    async def replace_image(
        self,
        db: AsyncSession,
        blog_id: UUID,
        author_id: str,
        filename: str,
        image: bytes,
        content_length: Optional[int] = None,
        alt: Optional[str] = None,
    ) -> BlogResponse:
        blog = await self._get_owned(db, blog_id, author_id)
        stored = await file_service.save_image(filename, image, content_length)
        previous = blog.image_public_id

        blog.image_url = stored.url
        blog.image_public_id = stored.public_id
        if alt:
            blog.image_alt = alt
        try:
            with translate_db_errors("replace the blog image", blog_id=str(blog_id)):
                await db.flush()
        except LittleNestError:
            await file_service.delete_image(stored.public_id)
            raise

        # The old file stays until the new reference is committed
        add_after_commit(db, file_service.delete_image, previous)
        logger.info("Blog image replaced: %s (%s → %s)", blog.slug, previous, stored.public_id)
        return BlogResponse.from_model(blog)

    async def delete(self, db: AsyncSession, blog_id: UUID, author_id: str) -> None:
        blog = await self._get_owned(db, blog_id, author_id)
        public_id = blog.image_public_id

        with translate_db_errors("delete the blog post", blog_id=str(blog_id)):
            await db.delete(blog)
            await db.flush()

        add_after_commit(db, file_service.delete_image, public_id)
        logger.info("Blog post deleted: %s", blog_id)

    async def total(self, db: AsyncSession) -> int:
        with translate_db_errors("count blog posts"):
            result = await db.execute(select(func.count(Blog.id)))
            return result.scalar() or 0


# ── Singleton Instance ────────────────────────────────────────────────────
blog_service = BlogService()
