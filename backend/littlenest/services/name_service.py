"""
LittleNest Backend: Name Service (Business Logic)
===================================================

What:  Every name operation exposed by the API: lookup, search, facet
       browsing, recommendations, popularity tracking and admin writes.
How:   Builds SQLAlchemy queries over the flat `names` table, runs the
       derivation pipeline before every write that touches `name`, and
       returns response schemas so routes stay thin.
Who:   Called by routes/names.py and routes/system.py.
When:  For every /api/names request.

Write paths and derivation:
    create / import_names         → derive_name_fields() always
    update / bulk_update          → derive_name_fields() only if `name` changed
    record_view / search          → atomic counter + score UPDATE, no derivation
    update_trends                 → trend only, score left as-is

Popularity increments:
    UPDATE names
       SET views = views + 1,
           score = (views + 1) * 0.6 + search_appearances * 0.3 + trend * 0.1
     WHERE id = :id
 RETURNING *

    Postgres evaluates every SET expression against the pre-update row, so
    the score is computed from the post-increment counters in the same
    statement and concurrent views cannot lose an increment.
"""

import logging
import uuid
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_, asc, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from littlenest.exceptions import NotFoundError, ValidationError
from littlenest.models.name import ELEMENTS, GENDERS, ZODIAC_SIGNS, Name
from littlenest.schemas.common import Pagination
from littlenest.schemas.name import (
    BulkOperation,
    BulkResult,
    DistributionBucket,
    GeneratedNameResponse,
    GenerateRequest,
    ImportFailure,
    ImportResult,
    LetterAnalysisResponse,
    NameCounts,
    NameCreate,
    NamePage,
    NameResponse,
    NameStatistics,
    NameUpdate,
    PopularityTrendItem,
    SimilarNameResponse,
    TrendUpdate,
    ZodiacSchema,
)
from littlenest.services.db_errors import translate_db_errors
from littlenest.services.derivation import (
    VALID_NUMEROLOGY_NUMBERS,
    NameDerivation,
    derive_name_fields,
)
from littlenest.services.popularity import (
    SimilarityProfile,
    popularity_score,
    rank_by_similarity,
)

logger = logging.getLogger(__name__)

SEARCH_TYPES = ("prefix", "suffix", "contains", "text")
MIN_SEARCH_LENGTH = 2
MAX_TOP_LIMIT = 200
PARENT_SUGGESTION_LIMIT = 20
GENERATED_SAMPLE_SIZE = 10
STATISTICS_TOP_ORIGINS = 10
STATISTICS_TOP_NAMES = 20

# Admin listing: public sort key → column
ADMIN_SORT_COLUMNS = {
    "created_at": Name.created_at,
    "updated_at": Name.updated_at,
    "name": Name.name,
    "length": Name.length,
    "views": Name.views,
    "search_appearances": Name.search_appearances,
    "trend": Name.trend,
    "score": Name.score,
}

SEARCH_SORTS = {
    "popularity": (Name.score.desc(), Name.name.asc()),
    "name": (Name.name.asc(),),
    "length": (Name.length.asc(), Name.name.asc()),
}

DEFAULT_ORDER = (Name.score.desc(), Name.name.asc())
TRENDING_ORDER = (Name.trend.desc(), Name.score.desc())


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains(column, value: str):
    return column.ilike(f"%{_like_escape(value)}%", escape="\\")


def _similarity_profile(name: Name) -> SimilarityProfile:
    return SimilarityProfile(
        origin=name.origin,
        length=name.length,
        numerology_number=name.numerology_number,
    )


def _split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class NameService:
    """
    Business logic layer for baby names.

    Every method receives the request's AsyncSession; nothing is committed
    here. get_db_session() commits on success and rolls back when any
    exception escapes, so a failed import or bulk update leaves no partial
    writes behind.
    """

    # ══════════════════════════════════════════════════════════════════════
    # Shared helpers
    # ══════════════════════════════════════════════════════════════════════

    async def _paginate(
        self,
        db: AsyncSession,
        filters: Sequence,
        page: int,
        limit: int,
        order_by: Sequence = DEFAULT_ORDER,
    ) -> NamePage:
        skip = (page - 1) * limit
        with translate_db_errors("retrieve names"):
            result = await db.execute(
                select(Name).where(*filters).order_by(*order_by).offset(skip).limit(limit)
            )
            names = list(result.scalars().all())

            count_result = await db.execute(select(func.count(Name.id)).where(*filters))
            total = count_result.scalar() or 0

        return NamePage(
            names=[NameResponse.from_model(name) for name in names],
            pagination=Pagination.build(page, limit, total, len(names)),
        )

    async def _get_by_id(self, db: AsyncSession, name_id: UUID) -> Name:
        with translate_db_errors("retrieve the name", name_id=str(name_id)):
            result = await db.execute(select(Name).where(Name.id == name_id))
            name = result.scalar_one_or_none()
        if name is None:
            raise NotFoundError(resource="name", resource_id=str(name_id))
        return name

    async def _get_by_name(self, db: AsyncSession, value: str) -> Name:
        """Case-insensitive exact match on the name, falling back to the slug."""
        needle = (value or "").strip().lower()
        if not needle:
            raise ValidationError(message="Name is required", field="name")
        with translate_db_errors("retrieve the name", name=value):
            result = await db.execute(
                select(Name)
                .where(or_(func.lower(Name.name) == needle, Name.slug == needle))
                .limit(1)
            )
            name = result.scalars().first()
        if name is None:
            raise NotFoundError(resource="name", resource_id=value)
        return name

    @staticmethod
    def _apply_zodiac(name: Name, zodiac: Optional[ZodiacSchema]) -> None:
        if zodiac is None:
            name.zodiac_sign = None
            name.zodiac_element = None
            name.zodiac_qualities = []
        else:
            name.zodiac_sign = zodiac.sign
            name.zodiac_element = zodiac.element
            name.zodiac_qualities = list(zodiac.qualities)

    def _build(self, data: NameCreate, derived: NameDerivation) -> Name:
        name = Name(
            id=uuid.uuid4(),
            meaning=data.meaning,
            gender=data.gender,
            origin=data.origin,
            religion=list(data.religion),
            regions=list(data.regions),
            views=0,
            search_appearances=0,
            trend=0.0,
            score=0.0,
        )
        self._apply_zodiac(name, data.zodiac)
        name.apply_derivation(derived)
        return name

    def _apply_updates(self, name: Name, data: NameUpdate) -> bool:
        """
        Apply a partial update in place; returns True if anything changed.

        Derived columns are rewritten only when the cleaned name differs
        from the stored one.
        """
        changed = False
        fields = data.model_dump(exclude_unset=True)

        new_name = fields.pop("name", None)
        if new_name is not None:
            derived = derive_name_fields(new_name)
            if derived.name != name.name:
                name.apply_derivation(derived)
                changed = True

        if "zodiac" in fields:
            fields.pop("zodiac")
            self._apply_zodiac(name, data.zodiac)
            changed = True

        for key, value in fields.items():
            # Required columns cannot be cleared through a partial update
            if value is None:
                continue
            if getattr(name, key) != value:
                setattr(name, key, value)
                changed = True
        return changed

    # ══════════════════════════════════════════════════════════════════════
    # Ranking & counts
    # ══════════════════════════════════════════════════════════════════════

    async def trending(
        self,
        db: AsyncSession,
        limit: int = 20,
        gender: Optional[str] = None,
        origin: Optional[str] = None,
    ) -> List[NameResponse]:
        filters = []
        if gender:
            filters.append(Name.gender == gender)
        if origin:
            filters.append(Name.origin == origin)

        with translate_db_errors("retrieve trending names"):
            result = await db.execute(
                select(Name).where(*filters).order_by(*TRENDING_ORDER).limit(limit)
            )
            names = list(result.scalars().all())

        if not names:
            raise NotFoundError(resource="name", message="No trending names found")
        return [NameResponse.from_model(name) for name in names]

    async def top(
        self,
        db: AsyncSession,
        limit: int = 20,
        gender: Optional[str] = None,
    ) -> List[NameResponse]:
        limit = max(1, min(limit, MAX_TOP_LIMIT))
        filters = [Name.gender == gender] if gender else []

        with translate_db_errors("retrieve top names"):
            result = await db.execute(
                select(Name).where(*filters).order_by(*TRENDING_ORDER).limit(limit)
            )
            names = list(result.scalars().all())

        if not names:
            raise NotFoundError(resource="name", message="No names found")
        return [NameResponse.from_model(name) for name in names]

    async def counts(self, db: AsyncSession) -> NameCounts:
        with translate_db_errors("count names"):
            result = await db.execute(
                select(Name.gender, func.count(Name.id)).group_by(Name.gender)
            )
            by_gender = {gender: count for gender, count in result.all()}

        return NameCounts(
            total=sum(by_gender.values()),
            boy=by_gender.get("boy", 0),
            girl=by_gender.get("girl", 0),
            unisex=by_gender.get("unisex", 0),
        )

    # ══════════════════════════════════════════════════════════════════════
    # Lookup
    # ══════════════════════════════════════════════════════════════════════

    async def get_by_slug(self, db: AsyncSession, slug: str) -> NameResponse:
        with translate_db_errors("retrieve the name", slug=slug):
            result = await db.execute(select(Name).where(Name.slug == slug.strip().lower()))
            name = result.scalar_one_or_none()
        if name is None:
            raise NotFoundError(resource="name", resource_id=slug)
        return NameResponse.from_model(name)

    async def meaning(self, db: AsyncSession, value: str) -> NameResponse:
        return NameResponse.from_model(await self._get_by_name(db, value))

    async def letter_analysis(self, db: AsyncSession, value: str) -> LetterAnalysisResponse:
        record = NameResponse.from_model(await self._get_by_name(db, value))
        return LetterAnalysisResponse(
            name=record.name,
            letter_analysis=record.letter_analysis,
            zodiac=record.zodiac,
        )

    # ══════════════════════════════════════════════════════════════════════
    # Facet browsing
    # ══════════════════════════════════════════════════════════════════════

    async def by_region(
        self,
        db: AsyncSession,
        region: str,
        gender: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> NamePage:
        filters = [Name.regions.any(region.strip())]
        if gender:
            filters.append(Name.gender == gender)
        return await self._paginate(db, filters, page, limit)

    async def by_religion(
        self,
        db: AsyncSession,
        religion: str,
        gender: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> NamePage:
        filters = [Name.religion.any(religion.strip())]
        if gender:
            filters.append(Name.gender == gender)
        return await self._paginate(db, filters, page, limit)

    async def by_origin(
        self,
        db: AsyncSession,
        origin: str,
        gender: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> NamePage:
        """Case-insensitive substring match on origin, alphabetical."""
        filters = [_contains(Name.origin, origin.strip())]
        if gender:
            filters.append(Name.gender == gender)
        return await self._paginate(db, filters, page, limit, order_by=(Name.name.asc(),))

    async def by_gender(self, db: AsyncSession, gender: str, page: int = 1, limit: int = 20) -> NamePage:
        gender = gender.strip().lower()
        if gender not in GENDERS:
            raise ValidationError(
                message=f"Gender must be one of: {', '.join(GENDERS)}", field="gender"
            )
        return await self._paginate(
            db, [Name.gender == gender], page, limit, order_by=(Name.name.asc(),)
        )

    async def by_letter(self, db: AsyncSession, letter: str, page: int = 1, limit: int = 20) -> NamePage:
        letter = letter.strip().lower()
        if len(letter) != 1 or not letter.isalpha():
            raise ValidationError(message="A single letter is required", field="letter")
        return await self._paginate(
            db, [Name.first_letter == letter], page, limit, order_by=(Name.name.asc(),)
        )

    async def by_length(self, db: AsyncSession, length: int, page: int = 1, limit: int = 20) -> NamePage:
        if length < 1:
            raise ValidationError(message="Length must be a positive integer", field="length")
        return await self._paginate(db, [Name.length == length], page, limit)

    async def by_numerology(self, db: AsyncSession, number: int, page: int = 1, limit: int = 20) -> NamePage:
        if number not in VALID_NUMEROLOGY_NUMBERS:
            raise ValidationError(
                message="Numerology number must be 1-9, 11, 22 or 33", field="number"
            )
        return await self._paginate(db, [Name.numerology_number == number], page, limit)

    async def by_zodiac(
        self,
        db: AsyncSession,
        sign: str,
        gender: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> NamePage:
        sign = sign.strip().lower()
        if sign not in ZODIAC_SIGNS:
            raise ValidationError(message=f"Unknown zodiac sign '{sign}'", field="sign")
        filters = [Name.zodiac_sign == sign]
        if gender:
            filters.append(Name.gender == gender)
        return await self._paginate(db, filters, page, limit)

    async def by_element(self, db: AsyncSession, element: str, page: int = 1, limit: int = 20) -> NamePage:
        element = element.strip().lower()
        if element not in ELEMENTS:
            raise ValidationError(
                message=f"Element must be one of: {', '.join(ELEMENTS)}", field="element"
            )
        return await self._paginate(db, [Name.zodiac_element == element], page, limit)

    # ══════════════════════════════════════════════════════════════════════
    # Search
    # ══════════════════════════════════════════════════════════════════════

    async def search(
        self,
        db: AsyncSession,
        query: str,
        search_type: str = "prefix",
        gender: Optional[str] = None,
        origin: Optional[str] = None,
        religion: Optional[str] = None,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "popularity",
    ) -> NamePage:
        """
        Search names and count one search appearance for every returned row.

        The returned records show the counters as they were before this
        search; the bump is applied in one UPDATE over the returned ids.

        Raises:
            ValidationError: query shorter than 2 characters, unknown type
                or sort key.
            NotFoundError: nothing matched.
        """
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            raise ValidationError(
                message=f"Search query must be at least {MIN_SEARCH_LENGTH} characters",
                field="q",
            )
        if search_type not in SEARCH_TYPES:
            raise ValidationError(
                message=f"Search type must be one of: {', '.join(SEARCH_TYPES)}", field="type"
            )
        if sort_by not in SEARCH_SORTS:
            raise ValidationError(
                message=f"Sort must be one of: {', '.join(SEARCH_SORTS)}", field="sort_by"
            )

        escaped = _like_escape(query)
        if search_type == "prefix":
            filters = [Name.name.ilike(f"{escaped}%", escape="\\")]
        elif search_type == "suffix":
            filters = [Name.name.ilike(f"%{escaped}", escape="\\")]
        elif search_type == "contains":
            filters = [Name.name.ilike(f"%{escaped}%", escape="\\")]
        else:
            document = func.to_tsvector("simple", Name.name + " " + Name.meaning)
            filters = [document.op("@@")(func.plainto_tsquery("simple", query))]

        if gender:
            filters.append(Name.gender == gender)
        if origin:
            filters.append(Name.origin == origin)
        if religion:
            filters.append(Name.religion.any(religion))
        if min_length is not None:
            filters.append(Name.length >= min_length)
        if max_length is not None:
            filters.append(Name.length <= max_length)

        result = await self._paginate(db, filters, page, limit, order_by=SEARCH_SORTS[sort_by])
        if not result.names:
            raise NotFoundError(resource="name", message=f"No names found matching '{query}'")

        await self._bump_search_appearances(db, [name.id for name in result.names])
        return result

    async def _bump_search_appearances(self, db: AsyncSession, name_ids: Iterable[UUID]) -> None:
        name_ids = list(name_ids)
        with translate_db_errors("record search appearances"):
            await db.execute(
                update(Name)
                .where(Name.id.in_(name_ids))
                .values(
                    search_appearances=Name.search_appearances + 1,
                    score=popularity_score(Name.views, Name.search_appearances + 1, Name.trend),
                )
                .execution_options(synchronize_session=False)
            )
        logger.debug("Search appearance recorded for %d names", len(name_ids))

    # ══════════════════════════════════════════════════════════════════════
    # Recommendations
    # ══════════════════════════════════════════════════════════════════════

    async def suggest_from_parents(
        self,
        db: AsyncSession,
        mother: Optional[str] = None,
        father: Optional[str] = None,
        gender: Optional[str] = None,
    ) -> List[NameResponse]:
        """
        Suggest names inspired by the parents' names.

        Both parents: names containing any letter found in either name.
        One parent:   names starting with that parent's first letter.
        """
        mother = (mother or "").strip()
        father = (father or "").strip()
        if not mother and not father:
            raise ValidationError(message="At least one parent name is required")

        filters = []
        if mother and father:
            letters = sorted({ch for ch in (mother + father).lower() if ch.isalpha()})
            if not letters:
                raise ValidationError(message="Parent names must contain letters")
            filters.append(Name.name.op("~*")(f"[{''.join(letters)}]"))
        else:
            parent = mother or father
            filters.append(Name.first_letter == parent[0].lower())
        if gender:
            filters.append(Name.gender == gender)

        with translate_db_errors("suggest names"):
            result = await db.execute(
                select(Name).where(*filters).order_by(*DEFAULT_ORDER).limit(PARENT_SUGGESTION_LIMIT)
            )
            names = list(result.scalars().all())
        return [NameResponse.from_model(name) for name in names]

    async def generate(self, db: AsyncSession, criteria: GenerateRequest) -> List[GeneratedNameResponse]:
        """Random sample of 10 matching names, ranked by score + trend."""
        filters = []
        if criteria.gender:
            filters.append(Name.gender == criteria.gender)
        if criteria.religion:
            filters.append(Name.religion.any(criteria.religion))
        if criteria.origin:
            filters.append(Name.origin == criteria.origin)
        if criteria.preferred_length:
            filters.append(
                Name.length.between(criteria.preferred_length - 1, criteria.preferred_length + 1)
            )
        if criteria.avoid_letters:
            filters.append(Name.first_letter.notin_(criteria.avoid_letters))

        with translate_db_errors("generate names"):
            result = await db.execute(
                select(Name).where(*filters).order_by(func.random()).limit(GENERATED_SAMPLE_SIZE)
            )
            names = list(result.scalars().all())

        names.sort(key=lambda name: (name.score or 0.0) + (name.trend or 0.0), reverse=True)
        return [
            GeneratedNameResponse(
                **NameResponse.from_model(name).model_dump(),
                combined_score=(name.score or 0.0) + (name.trend or 0.0),
            )
            for name in names
        ]

    async def similar(self, db: AsyncSession, value: str, limit: int = 10) -> List[SimilarNameResponse]:
        source = await self._get_by_name(db, value)

        with translate_db_errors("find similar names", name=value):
            result = await db.execute(
                select(Name)
                .where(
                    Name.id != source.id,
                    Name.gender == source.gender,
                    or_(
                        Name.origin == source.origin,
                        Name.length == source.length,
                        Name.numerology_number == source.numerology_number,
                    ),
                )
                .order_by(func.random())
                .limit(limit)
            )
            candidates = list(result.scalars().all())

        ranked = rank_by_similarity(_similarity_profile(source), candidates, _similarity_profile)
        return [
            SimilarNameResponse(**NameResponse.from_model(name).model_dump(), similarity=score)
            for name, score in ranked
        ]

    # ══════════════════════════════════════════════════════════════════════
    # Popularity events
    # ══════════════════════════════════════════════════════════════════════

    async def record_view(self, db: AsyncSession, name_id: UUID) -> NameResponse:
        with translate_db_errors("record the view", name_id=str(name_id)):
            result = await db.execute(
                update(Name)
                .where(Name.id == name_id)
                .values(
                    views=Name.views + 1,
                    score=popularity_score(Name.views + 1, Name.search_appearances, Name.trend),
                )
                .returning(Name)
                .execution_options(synchronize_session="fetch")
            )
            name = result.scalar_one_or_none()
        if name is None:
            raise NotFoundError(resource="name", resource_id=str(name_id))
        return NameResponse.from_model(name)

    async def record_search_appearance(self, db: AsyncSession, name_id: UUID) -> NameResponse:
        with translate_db_errors("record the search appearance", name_id=str(name_id)):
            result = await db.execute(
                update(Name)
                .where(Name.id == name_id)
                .values(
                    search_appearances=Name.search_appearances + 1,
                    score=popularity_score(Name.views, Name.search_appearances + 1, Name.trend),
                )
                .returning(Name)
                .execution_options(synchronize_session="fetch")
            )
            name = result.scalar_one_or_none()
        if name is None:
            raise NotFoundError(resource="name", resource_id=str(name_id))
        return NameResponse.from_model(name)

    # ══════════════════════════════════════════════════════════════════════
    # Admin
    # ══════════════════════════════════════════════════════════════════════

    async def list_all(
        self,
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        sort_by: str = "created_at",
        order: str = "desc",
        gender: Optional[str] = None,
        origin: Optional[str] = None,
        regions: Optional[str] = None,
        religions: Optional[str] = None,
        search_query: Optional[str] = None,
    ) -> NamePage:
        column = ADMIN_SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError(
                message=f"Sort must be one of: {', '.join(ADMIN_SORT_COLUMNS)}", field="sort_by"
            )
        if order not in ("asc", "desc"):
            raise ValidationError(message="Order must be 'asc' or 'desc'", field="order")

        filters = []
        if gender:
            filters.append(Name.gender == gender)
        if origin:
            filters.append(_contains(Name.origin, origin))
        region_list = _split_csv(regions)
        if region_list:
            filters.append(Name.regions.overlap(region_list))
        religion_list = _split_csv(religions)
        if religion_list:
            filters.append(Name.religion.overlap(religion_list))
        if search_query and search_query.strip():
            needle = search_query.strip()
            filters.append(or_(_contains(Name.name, needle), _contains(Name.meaning, needle)))

        direction = asc if order == "asc" else desc
        return await self._paginate(db, filters, page, limit, order_by=(direction(column), Name.id))

    async def create(self, db: AsyncSession, data: NameCreate) -> NameResponse:
        derived = derive_name_fields(data.name)
        name = self._build(data, derived)

        with translate_db_errors(
            "create the name", duplicate_message="Name already exists", name=derived.name
        ):
            db.add(name)
            await db.flush()

        logger.info("Name created: %s (%s)", name.name, name.slug)
        return NameResponse.from_model(name)

    async def update(self, db: AsyncSession, slug: str, data: NameUpdate) -> NameResponse:
        with translate_db_errors("retrieve the name", slug=slug):
            result = await db.execute(select(Name).where(Name.slug == slug.strip().lower()))
            name = result.scalar_one_or_none()
        if name is None:
            raise NotFoundError(resource="name", resource_id=slug)

        if self._apply_updates(name, data):
            with translate_db_errors(
                "update the name", duplicate_message="Name or slug already exists", slug=slug
            ):
                await db.flush()
            logger.info("Name updated: %s", name.slug)
        return NameResponse.from_model(name)

    async def delete(self, db: AsyncSession, name_id: UUID) -> None:
        name = await self._get_by_id(db, name_id)
        with translate_db_errors("delete the name", name_id=str(name_id)):
            await db.delete(name)
            await db.flush()
        logger.info("Name deleted: %s", name_id)

    async def import_names(self, db: AsyncSession, items: List[dict]) -> ImportResult:
        """
        Insert many names, reporting per-item failures instead of aborting.

        Each item is validated and derived on its own. Items whose name or
        slug already exists (in the table or earlier in the same batch)
        fail with "Duplicate name". Everything that passes is inserted in a
        single flush.
        """
        failures: List[ImportFailure] = []
        prepared = []

        for index, raw in enumerate(items):
            raw_name = raw.get("name") if isinstance(raw, dict) else None
            try:
                data = NameCreate.model_validate(raw)
                prepared.append((index, data, derive_name_fields(data.name)))
            except PydanticValidationError as e:
                error = e.errors()[0]
                location = ".".join(str(part) for part in error.get("loc", ()))
                message = f"{location}: {error['msg']}" if location else error["msg"]
                failures.append(ImportFailure(index=index, name=raw_name, error=message))
            except ValidationError as e:
                failures.append(ImportFailure(index=index, name=raw_name, error=e.message))

        inserted = 0
        if prepared:
            with translate_db_errors("check existing names"):
                result = await db.execute(
                    select(Name.name, Name.slug).where(
                        or_(
                            func.lower(Name.name).in_([d.name.lower() for _, _, d in prepared]),
                            Name.slug.in_([d.slug for _, _, d in prepared]),
                        )
                    )
                )
                existing = result.all()
            taken_names = {name.lower() for name, _ in existing}
            taken_slugs = {slug for _, slug in existing}

            for index, data, derived in prepared:
                if derived.name.lower() in taken_names or derived.slug in taken_slugs:
                    failures.append(ImportFailure(index=index, name=derived.name, error="Duplicate name"))
                    continue
                taken_names.add(derived.name.lower())
                taken_slugs.add(derived.slug)
                db.add(self._build(data, derived))
                inserted += 1

            if inserted:
                with translate_db_errors("import names", duplicate_message="Duplicate name in import"):
                    await db.flush()

        failures.sort(key=lambda failure: failure.index)
        logger.info(
            "Name import finished: %d of %d inserted, %d failed",
            inserted, len(items), len(failures),
        )
        return ImportResult(imported=inserted, total=len(items), failures=failures)

    async def update_trends(self, db: AsyncSession, trends: List[TrendUpdate]) -> BulkResult:
        """Overwrite `trend` per id. Scores are not recomputed."""
        modified = 0
        with translate_db_errors("update trends"):
            for item in trends:
                result = await db.execute(
                    update(Name)
                    .where(and_(Name.id == item.name_id, Name.trend != item.trend))
                    .values(trend=item.trend)
                    .execution_options(synchronize_session=False)
                )
                modified += result.rowcount or 0
        logger.info("Trend update: %d of %d names modified", modified, len(trends))
        return BulkResult(modified=modified, total=len(trends))

    async def bulk_update(self, db: AsyncSession, operations: List[BulkOperation]) -> BulkResult:
        """Apply partial updates by id; unknown ids are skipped, not fatal."""
        modified = 0
        with translate_db_errors("bulk update names"):
            result = await db.execute(
                select(Name).where(Name.id.in_([op.name_id for op in operations]))
            )
            by_id = {name.id: name for name in result.scalars().all()}

        for op in operations:
            name = by_id.get(op.name_id)
            if name is None:
                logger.warning("Bulk update skipped unknown name id %s", op.name_id)
                continue
            if self._apply_updates(name, op.updates):
                modified += 1

        if modified:
            with translate_db_errors(
                "bulk update names", duplicate_message="Bulk update would duplicate a name or slug"
            ):
                await db.flush()
        logger.info("Bulk update: %d of %d names modified", modified, len(operations))
        return BulkResult(modified=modified, total=len(operations))

    async def statistics(self, db: AsyncSession) -> NameStatistics:
        with translate_db_errors("compute name statistics"):
            total = (await db.execute(select(func.count(Name.id)))).scalar() or 0

            gender_rows = (await db.execute(
                select(Name.gender, func.count(Name.id).label("count"))
                .group_by(Name.gender)
                .order_by(desc("count"))
            )).all()

            origin_rows = (await db.execute(
                select(Name.origin, func.count(Name.id).label("count"))
                .group_by(Name.origin)
                .order_by(desc("count"))
                .limit(STATISTICS_TOP_ORIGINS)
            )).all()

            length_rows = (await db.execute(
                select(Name.length, func.count(Name.id).label("count"))
                .group_by(Name.length)
                .order_by(Name.length)
            )).all()

            top_rows = (await db.execute(
                select(Name.name, Name.trend, Name.score)
                .order_by(Name.score.desc())
                .limit(STATISTICS_TOP_NAMES)
            )).all()

        return NameStatistics(
            total_names=total,
            gender_distribution=[DistributionBucket(key=k, count=c) for k, c in gender_rows],
            origin_distribution=[DistributionBucket(key=k, count=c) for k, c in origin_rows],
            length_distribution=[DistributionBucket(key=k, count=c) for k, c in length_rows],
            popularity_trends=[
                PopularityTrendItem(name=n, trend=t or 0.0, score=s or 0.0) for n, t, s in top_rows
            ],
        )

    async def total(self, db: AsyncSession) -> int:
        with translate_db_errors("count names"):
            result = await db.execute(select(func.count(Name.id)))
            return result.scalar() or 0


# ── Singleton Instance ────────────────────────────────────────────────────
name_service = NameService()
