"""Create names and blogs tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the `names` table (with flattened derived columns) and the
       `blogs` table.
How:   PostgreSQL-specific types: UUID primary keys, TEXT[] arrays with GIN
       indexes, JSONB letter traits, TIMESTAMP WITH TIME ZONE.

Rollback: downgrade() drops both tables (destructive, all data lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def _string_array(name: str, length: int, comment: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.ARRAY(sa.String(length)),
        nullable=False,
        server_default=sa.text("'{}'"),
        comment=comment,
    )


def upgrade() -> None:
    # ── names ─────────────────────────────────────────────────────────────
    op.create_table(
        "names",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(100), nullable=False, comment="Trimmed display name"),
        sa.Column("slug", sa.String(120), nullable=False, comment="Derived from name"),
        sa.Column("meaning", sa.Text(), nullable=False),
        sa.Column("gender", sa.String(10), nullable=False, comment="boy, girl, unisex"),
        sa.Column("origin", sa.String(100), nullable=False),
        _string_array("religion", 50, "Religions the name is used in"),
        _string_array("regions", 100, "Regions the name is used in"),
        sa.Column("zodiac_sign", sa.String(20), nullable=True),
        sa.Column("zodiac_element", sa.String(10), nullable=True),
        _string_array("zodiac_qualities", 50, "Client-supplied zodiac qualities"),

        # Derived from name; written only through Name.apply_derivation()
        sa.Column("length", sa.Integer(), nullable=False),
        sa.Column("first_letter", sa.String(1), nullable=False),
        sa.Column("last_letter", sa.String(1), nullable=False),
        sa.Column("vowels", sa.Integer(), nullable=False),
        sa.Column("consonants", sa.Integer(), nullable=False),
        sa.Column("first_letter_traits", postgresql.JSONB(), nullable=False),
        sa.Column("last_letter_traits", postgresql.JSONB(), nullable=False),
        sa.Column("numerology_number", sa.Integer(), nullable=False, comment="1-9, 11, 22 or 33"),
        _string_array("numerology_traits", 50, "Empty for master numbers"),

        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("search_appearances", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("trend", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "score",
            sa.Float(),
            nullable=False,
            server_default=sa.text("0"),
            comment="views*0.6 + search_appearances*0.3 + trend*0.1 at the last view/search",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_names_name"),
        sa.UniqueConstraint("slug", name="uq_names_slug"),
    )
    op.create_index("idx_names_gender_origin_length", "names", ["gender", "origin", "length"])
    op.create_index("idx_names_first_letter", "names", ["first_letter"])
    op.create_index("idx_names_numerology_number", "names", ["numerology_number"])
    op.create_index("idx_names_zodiac", "names", ["zodiac_sign", "zodiac_element"])
    op.create_index(
        "idx_names_trend_score", "names", [sa.text("trend DESC"), sa.text("score DESC")]
    )
    op.create_index("idx_names_regions", "names", ["regions"], postgresql_using="gin")
    op.create_index("idx_names_religion", "names", ["religion"], postgresql_using="gin")

    # ── blogs ─────────────────────────────────────────────────────────────
    op.create_table(
        "blogs",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("excerpt", sa.String(200), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        _string_array("tags", 50, "Lowercased tags"),
        sa.Column("author_id", sa.String(64), nullable=False, comment="Gateway user id"),
        sa.Column("image_url", sa.String(500), nullable=False),
        sa.Column("image_alt", sa.String(200), nullable=False),
        sa.Column(
            "image_public_id",
            sa.String(255),
            nullable=False,
            comment="Path relative to the storage root",
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'draft'")),
        sa.Column("read_time", sa.Integer(), nullable=False, comment="Minutes at 200 wpm"),
        sa.Column("meta_description", sa.String(160), nullable=False),
        sa.Column("views", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("likes", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug", name="uq_blogs_slug"),
    )
    op.create_index(
        "idx_blogs_status_created_category",
        "blogs",
        ["status", sa.text("created_at DESC"), "category"],
    )
    op.create_index("idx_blogs_tags", "blogs", ["tags"], postgresql_using="gin")


def downgrade() -> None:
    op.drop_index("idx_blogs_tags", table_name="blogs")
    op.drop_index("idx_blogs_status_created_category", table_name="blogs")
    op.drop_table("blogs")

    for index in (
        "idx_names_religion",
        "idx_names_regions",
        "idx_names_trend_score",
        "idx_names_zodiac",
        "idx_names_numerology_number",
        "idx_names_first_letter",
        "idx_names_gender_origin_length",
    ):
        op.drop_index(index, table_name="names")
    op.drop_table("names")
