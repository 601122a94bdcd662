"""
LittleNest Backend: Blog SQLAlchemy Model
===========================================

What:  ORM model for the `blogs` table (parenting articles).
How:   The slug and read time are derived from the title and content by
       BlogService before each flush; the featured image is stored as
       flat url/alt/public_id columns.
Who:   Used by BlogService and Alembic.
"""

import math
import uuid
from datetime import datetime, timezone

from sqlalchemy import Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import ARRAY, UUID, TIMESTAMP

from littlenest.database import Base

BLOG_CATEGORIES = (
    "parenting",
    "pregnancy",
    "baby-names",
    "child-development",
    "nutrition",
    "health",
    "education",
    "activities",
)

BLOG_STATUSES = ("draft", "published")

WORDS_PER_MINUTE = 200


def estimate_read_time(content: str) -> int:
    """Minutes to read `content` at 200 words per minute, rounded up."""
    word_count = len(content.split())
    return math.ceil(word_count / WORDS_PER_MINUTE)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Blog(Base):
    __tablename__ = "blogs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    excerpt: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(String(50)), nullable=False, default=list, server_default=text("'{}'")
    )

    # Principal user id forwarded by the auth gateway
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # ── Featured Image ────────────────────────────────────────────────────
    image_url: Mapped[str] = mapped_column(String(500), nullable=False)
    image_alt: Mapped[str] = mapped_column(String(200), nullable=False)
    image_public_id: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft", server_default=text("'draft'")
    )
    read_time: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    meta_description: Mapped[str] = mapped_column(String(160), nullable=False)
    views: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    likes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_blogs_status_created_category", "status", created_at.desc(), "category"),
        Index("idx_blogs_tags", "tags", postgresql_using="gin"),
    )

    def __repr__(self) -> str:
        return f"<Blog(id={self.id}, slug='{self.slug}', status='{self.status}')>"
