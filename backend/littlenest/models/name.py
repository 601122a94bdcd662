"""
LittleNest Backend: Name SQLAlchemy Model
===========================================

What:  ORM model representing the `names` table in PostgreSQL.
How:   Derived fields (slug, metadata, letter analysis, numerology) are
       flattened into columns so they can be indexed and filtered; the
       nested API shape is rebuilt by the response schemas.
Who:   Used by NameService for every name operation and by Alembic.
When:  Created by admins (single or bulk import); read by every public
       name endpoint; popularity counters bumped on views and searches.

Column groups:
    identity:    id, name, slug
    content:     meaning, gender, origin, religion[], regions[], zodiac_*
    derived:     length, first_letter, last_letter, vowels, consonants,
                 first_letter_traits, last_letter_traits,
                 numerology_number, numerology_traits
    popularity:  views, search_appearances, trend, score

Derived columns are only ever written through apply_derivation().
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Float, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID, TIMESTAMP

from littlenest.database import Base
from littlenest.services.derivation import NameDerivation

GENDERS = ("boy", "girl", "unisex")

ZODIAC_SIGNS = (
    "aries", "taurus", "gemini", "cancer", "leo", "virgo",
    "libra", "scorpio", "sagittarius", "capricorn", "aquarius", "pisces",
)

ELEMENTS = ("fire", "earth", "air", "water")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Name(Base):
    """
    A baby name and everything derived from it.

    Lifecycle:
        1. Created with a full derivation run (apply_derivation)
        2. Updated by admins; re-derived only when `name` changes
        3. Popularity counters bumped by view/search events
        4. Deleted on explicit admin delete
    """

    __tablename__ = "names"

    # ── Identity ──────────────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
        server_default=text("gen_random_uuid()"),
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)

    # ── Content ───────────────────────────────────────────────────────────
    meaning: Mapped[str] = mapped_column(Text, nullable=False)
    gender: Mapped[str] = mapped_column(String(10), nullable=False)
    origin: Mapped[str] = mapped_column(String(100), nullable=False)
    religion: Mapped[list[str]] = mapped_column(
        ARRAY(String(50)), nullable=False, default=list, server_default=text("'{}'")
    )
    regions: Mapped[list[str]] = mapped_column(
        ARRAY(String(100)), nullable=False, default=list, server_default=text("'{}'")
    )

    # Supplied by the client, not derived
    zodiac_sign: Mapped[str | None] = mapped_column(String(20), nullable=True)
    zodiac_element: Mapped[str | None] = mapped_column(String(10), nullable=True)
    zodiac_qualities: Mapped[list[str]] = mapped_column(
        ARRAY(String(50)), nullable=False, default=list, server_default=text("'{}'")
    )

    # ── Derived: metadata ─────────────────────────────────────────────────
    length: Mapped[int] = mapped_column(Integer, nullable=False)
    first_letter: Mapped[str] = mapped_column(String(1), nullable=False)
    last_letter: Mapped[str] = mapped_column(String(1), nullable=False)

    # ── Derived: letter analysis ──────────────────────────────────────────
    vowels: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consonants: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # {"nature": ..., "element": ..., "ruling": ...}
    first_letter_traits: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    last_letter_traits: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    # ── Derived: numerology ───────────────────────────────────────────────
    numerology_number: Mapped[int] = mapped_column(Integer, nullable=False)
    numerology_traits: Mapped[list[str]] = mapped_column(
        ARRAY(String(50)), nullable=False, default=list, server_default=text("'{}'")
    )

    # ── Popularity ────────────────────────────────────────────────────────
    views: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    search_appearances: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=text("0")
    )
    trend: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default=text("0")
    )
    score: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, server_default=text("0")
    )

    # ── Timestamps ────────────────────────────────────────────────────────
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

    # ── Indexes ───────────────────────────────────────────────────────────
    # Facet browsing filters on gender/origin/length together; trending and
    # top lists sort on (trend, score)
    __table_args__ = (
        Index("idx_names_gender_origin_length", "gender", "origin", "length"),
        Index("idx_names_first_letter", "first_letter"),
        Index("idx_names_numerology_number", "numerology_number"),
        Index("idx_names_zodiac", "zodiac_sign", "zodiac_element"),
        Index("idx_names_trend_score", trend.desc(), score.desc()),
        Index("idx_names_regions", "regions", postgresql_using="gin"),
        Index("idx_names_religion", "religion", postgresql_using="gin"),
    )

    def apply_derivation(self, derived: NameDerivation) -> None:
        """
        Copy a derivation result onto this row.

        The only write path for derived columns, so a stored name can never
        disagree with its slug, metadata, letter analysis or numerology.
        """
        self.name = derived.name
        self.slug = derived.slug

        self.length = derived.metadata.length
        self.first_letter = derived.metadata.first_letter
        self.last_letter = derived.metadata.last_letter

        analysis = derived.letter_analysis
        self.vowels = analysis.vowels
        self.consonants = analysis.consonants
        self.first_letter_traits = {
            "nature": analysis.first_letter.nature,
            "element": analysis.first_letter.element,
            "ruling": analysis.first_letter.ruling,
        }
        self.last_letter_traits = {
            "nature": analysis.last_letter.nature,
            "element": analysis.last_letter.element,
            "ruling": analysis.last_letter.ruling,
        }

        self.numerology_number = derived.numerology.number
        self.numerology_traits = list(derived.numerology.traits)

    def __repr__(self) -> str:
        return f"<Name(id={self.id}, name='{self.name}', slug='{self.slug}')>"
