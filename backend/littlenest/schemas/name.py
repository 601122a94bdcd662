"""
LittleNest Backend: Name Request/Response Schemas
===================================================

What:  Pydantic models defining the API contract for names.
How:   Request models validate admin writes; response models rebuild the
       nested record shape (metadata, letter_analysis, numerology,
       popularity, zodiac) from the flat ORM columns.

Response shape (NameResponse):
    {
        "id": "...", "name": "Ava", "slug": "ava", "meaning": "...",
        "gender": "girl", "origin": "latin", "religion": [], "regions": [],
        "metadata": {"length": 3, "first_letter": "a", "last_letter": "a"},
        "letter_analysis": {
            "vowels": 2, "consonants": 1,
            "first_letter": {"nature": "spiritual", "element": "air", "ruling": "sun"},
            "last_letter":  {"nature": "spiritual", "element": "air", "ruling": "sun"}
        },
        "numerology": {"number": 6, "traits": ["nurturing", ...]},
        "popularity": {"score": 0.0, "trend": 0.0, "views": 0, "search_appearances": 0},
        "zodiac": null
    }
"""

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from littlenest.schemas.common import Pagination

Gender = Literal["boy", "girl", "unisex"]
ZodiacSign = Literal[
    "aries", "taurus", "gemini", "cancer", "leo", "virgo",
    "libra", "scorpio", "sagittarius", "capricorn", "aquarius", "pisces",
]
Element = Literal["fire", "earth", "air", "water"]


# ══════════════════════════════════════════════════════════════════════════
# Nested Blocks
# ══════════════════════════════════════════════════════════════════════════


class LetterTraitsSchema(BaseModel):
    nature: str = "unknown"
    element: str = "unknown"
    ruling: str = "unknown"


class NameMetadataSchema(BaseModel):
    length: int
    first_letter: str
    last_letter: str


class LetterAnalysisSchema(BaseModel):
    vowels: int
    consonants: int
    first_letter: LetterTraitsSchema
    last_letter: LetterTraitsSchema


class NumerologySchema(BaseModel):
    number: int
    traits: List[str] = Field(default_factory=list)


class PopularitySchema(BaseModel):
    score: float = 0.0
    trend: float = 0.0
    views: int = 0
    search_appearances: int = 0


class ZodiacSchema(BaseModel):
    sign: ZodiacSign
    element: Optional[Element] = None
    qualities: List[str] = Field(default_factory=list)

    @field_validator("sign", "element", mode="before")
    @classmethod
    def lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NameResponse(BaseModel):
    """Full name record as returned by every name endpoint."""
    id: uuid.UUID
    name: str
    slug: str
    meaning: str
    gender: str
    origin: str
    religion: List[str] = Field(default_factory=list)
    regions: List[str] = Field(default_factory=list)
    metadata: NameMetadataSchema
    letter_analysis: LetterAnalysisSchema
    numerology: NumerologySchema
    popularity: PopularitySchema
    zodiac: Optional[ZodiacSchema] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, name) -> "NameResponse":
        zodiac = None
        if name.zodiac_sign:
            zodiac = ZodiacSchema(
                sign=name.zodiac_sign,
                element=name.zodiac_element,
                qualities=list(name.zodiac_qualities or []),
            )
        return cls(
            id=name.id,
            name=name.name,
            slug=name.slug,
            meaning=name.meaning,
            gender=name.gender,
            origin=name.origin,
            religion=list(name.religion or []),
            regions=list(name.regions or []),
            metadata=NameMetadataSchema(
                length=name.length,
                first_letter=name.first_letter,
                last_letter=name.last_letter,
            ),
            letter_analysis=LetterAnalysisSchema(
                vowels=name.vowels,
                consonants=name.consonants,
                first_letter=LetterTraitsSchema(**(name.first_letter_traits or {})),
                last_letter=LetterTraitsSchema(**(name.last_letter_traits or {})),
            ),
            numerology=NumerologySchema(
                number=name.numerology_number,
                traits=list(name.numerology_traits or []),
            ),
            popularity=PopularitySchema(
                score=name.score or 0.0,
                trend=name.trend or 0.0,
                views=name.views or 0,
                search_appearances=name.search_appearances or 0,
            ),
            zodiac=zodiac,
            created_at=name.created_at,
            updated_at=name.updated_at,
        )


class SimilarNameResponse(NameResponse):
    similarity: int = Field(description="0-4: +2 origin, +1 length, +1 numerology")


class GeneratedNameResponse(NameResponse):
    combined_score: float = Field(description="popularity score + trend")


class NamePage(BaseModel):
    names: List[NameResponse]
    pagination: Pagination


class LetterAnalysisResponse(BaseModel):
    name: str
    letter_analysis: LetterAnalysisSchema
    zodiac: Optional[ZodiacSchema] = None


class NameCounts(BaseModel):
    total: int
    boy: int
    girl: int
    unisex: int


class DistributionBucket(BaseModel):
    key: Optional[str | int]
    count: int


class PopularityTrendItem(BaseModel):
    name: str
    trend: float
    score: float


class NameStatistics(BaseModel):
    total_names: int
    gender_distribution: List[DistributionBucket]
    origin_distribution: List[DistributionBucket]
    length_distribution: List[DistributionBucket]
    popularity_trends: List[PopularityTrendItem]


class BulkResult(BaseModel):
    modified: int
    total: int


class ImportFailure(BaseModel):
    index: int
    name: Optional[str] = None
    error: str


class ImportResult(BaseModel):
    imported: int
    total: int
    failures: List[ImportFailure] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class NameCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    meaning: str = Field(min_length=1)
    gender: Gender
    origin: str = Field(min_length=1, max_length=100)
    religion: List[str] = Field(default_factory=list)
    regions: List[str] = Field(default_factory=list)
    zodiac: Optional[ZodiacSchema] = None

    @field_validator("name", "meaning", "origin")
    @classmethod
    def not_blank(cls, v: str) -> str:
        return _strip_required(v)


class NameUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    meaning: Optional[str] = None
    gender: Optional[Gender] = None
    origin: Optional[str] = Field(default=None, max_length=100)
    religion: Optional[List[str]] = None
    regions: Optional[List[str]] = None
    zodiac: Optional[ZodiacSchema] = None

    @field_validator("name", "meaning", "origin")
    @classmethod
    def not_blank(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required(v)


class ImportRequest(BaseModel):
    # Items are validated one by one so a bad row is reported, not fatal
    names: List[dict] = Field(min_length=1)


class TrendUpdate(BaseModel):
    name_id: uuid.UUID
    trend: float = Field(ge=0)


class TrendUpdateRequest(BaseModel):
    trends: List[TrendUpdate]


class BulkOperation(BaseModel):
    name_id: uuid.UUID
    updates: NameUpdate


class BulkUpdateRequest(BaseModel):
    operations: List[BulkOperation]


class GenerateRequest(BaseModel):
    gender: Optional[Gender] = None
    religion: Optional[str] = None
    origin: Optional[str] = None
    preferred_length: Optional[int] = Field(default=None, ge=1, le=100)
    avoid_letters: List[str] = Field(default_factory=list)

    @field_validator("avoid_letters")
    @classmethod
    def single_letters(cls, v: List[str]) -> List[str]:
        letters = [letter.strip().lower() for letter in v if letter.strip()]
        for letter in letters:
            if len(letter) != 1 or not letter.isalpha():
                raise ValueError(f"'{letter}' is not a single letter")
        return letters
