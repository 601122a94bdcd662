"""
LittleNest Backend: Name Service Unit Tests
=============================================

What:  Tests for NameService business logic.
How:   Uses the mock AsyncSession from conftest; each execute() call gets a
       prepared Result via return_value or side_effect.

What we test:
    ✅ Create / update / delete run the derivation pipeline correctly
    ✅ Unique-index violations become DuplicateKeyError
    ✅ Input validation (search, facets, parents) raises ValidationError
    ✅ Popularity events and search bump counters atomically
    ✅ Similar names are ranked by the similarity indicators
    ✅ Import reports per-item failures without aborting the batch
    ✅ Trend and bulk updates count modified rows
"""

import pytest
from unittest.mock import AsyncMock
from uuid import uuid4

from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from littlenest.exceptions import DatabaseError, DuplicateKeyError, NotFoundError, ValidationError
from littlenest.schemas.name import (
    BulkOperation,
    GenerateRequest,
    NameCreate,
    NameUpdate,
    TrendUpdate,
)
from littlenest.services.name_service import NameService


def _literal_sql(statement) -> str:
    return str(statement.compile(dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}))


def _integrity_error():
    return IntegrityError("INSERT INTO names", {}, Exception("duplicate key value"))


class TestNameServiceCreate:
    def setup_method(self):
        self.service = NameService()

    @pytest.mark.asyncio
    async def test_create_derives_fields(self, mock_db_session):
        data = NameCreate(name="  Mary   Ann ", meaning="Bitter grace", gender="girl", origin="hebrew")

        result = await self.service.create(mock_db_session, data)

        assert result.name == "Mary Ann"
        assert result.slug == "mary-ann"
        assert result.metadata.length == 8
        assert result.letter_analysis.vowels == 2
        assert result.popularity.score == 0.0
        mock_db_session.add.assert_called_once()
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_create_duplicate_raises_conflict(self, mock_db_session):
        mock_db_session.flush = AsyncMock(side_effect=_integrity_error())
        data = NameCreate(name="Ava", meaning="Life", gender="girl", origin="latin")

        with pytest.raises(DuplicateKeyError, match="Name already exists"):
            await self.service.create(mock_db_session, data)

    @pytest.mark.asyncio
    async def test_create_without_slug_characters_is_rejected(self, mock_db_session):
        data = NameCreate(name="!!!", meaning="Nothing", gender="boy", origin="none")

        with pytest.raises(ValidationError):
            await self.service.create(mock_db_session, data)
        mock_db_session.flush.assert_not_awaited()


class TestNameServiceUpdate:
    def setup_method(self):
        self.service = NameService()

    @pytest.mark.asyncio
    async def test_rename_rederives(self, mock_db_session, make_result, make_name):
        record = make_name("Ava")
        mock_db_session.execute.return_value = make_result(one=record)

        result = await self.service.update(mock_db_session, "ava", NameUpdate(name="Max"))

        assert result.slug == "max"
        assert result.numerology.number == 11
        assert result.numerology.traits == []
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_meaning_change_keeps_derived_fields(self, mock_db_session, make_result, make_name):
        record = make_name("Ava")
        mock_db_session.execute.return_value = make_result(one=record)

        result = await self.service.update(mock_db_session, "ava", NameUpdate(meaning="Bird"))

        assert result.meaning == "Bird"
        assert result.slug == "ava"
        assert result.numerology.number == 6

    @pytest.mark.asyncio
    async def test_no_change_skips_flush(self, mock_db_session, make_result, make_name):
        record = make_name("Ava")
        mock_db_session.execute.return_value = make_result(one=record)

        await self.service.update(mock_db_session, "ava", NameUpdate(name="Ava", meaning="Life"))

        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_slug(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(one=None)

        with pytest.raises(NotFoundError):
            await self.service.update(mock_db_session, "nobody", NameUpdate(meaning="x"))

    @pytest.mark.asyncio
    async def test_rename_onto_existing_raises_conflict(self, mock_db_session, make_result, make_name):
        mock_db_session.execute.return_value = make_result(one=make_name("Ava"))
        mock_db_session.flush = AsyncMock(side_effect=_integrity_error())

        with pytest.raises(DuplicateKeyError, match="already exists"):
            await self.service.update(mock_db_session, "ava", NameUpdate(name="Max"))

    @pytest.mark.asyncio
    async def test_delete(self, mock_db_session, make_result, make_name):
        record = make_name("Ava")
        mock_db_session.execute.return_value = make_result(one=record)

        await self.service.delete(mock_db_session, record.id)

        mock_db_session.delete.assert_awaited_once_with(record)
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_unknown(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(one=None)

        with pytest.raises(NotFoundError):
            await self.service.delete(mock_db_session, uuid4())


class TestNameServiceLookup:
    def setup_method(self):
        self.service = NameService()

    @pytest.mark.asyncio
    async def test_get_by_slug_not_found(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(one=None)

        with pytest.raises(NotFoundError, match="nobody"):
            await self.service.get_by_slug(mock_db_session, "nobody")

    @pytest.mark.asyncio
    async def test_letter_analysis(self, mock_db_session, make_result, make_name):
        mock_db_session.execute.return_value = make_result(items=[make_name("Ava")])

        result = await self.service.letter_analysis(mock_db_session, "AVA")

        assert result.name == "Ava"
        assert result.letter_analysis.first_letter.element == "air"

    @pytest.mark.asyncio
    async def test_trending_empty_is_not_found(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(items=[])

        with pytest.raises(NotFoundError):
            await self.service.trending(mock_db_session)

    @pytest.mark.asyncio
    async def test_counts(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(rows=[("boy", 3), ("girl", 5)])

        counts = await self.service.counts(mock_db_session)

        assert counts.total == 8
        assert counts.boy == 3
        assert counts.girl == 5
        assert counts.unisex == 0

    @pytest.mark.asyncio
    async def test_facet_pagination(self, mock_db_session, make_result, make_name):
        mock_db_session.execute.side_effect = [
            make_result(items=[make_name("Max", gender="boy")]),
            make_result(scalar=21),
        ]

        page = await self.service.by_numerology(mock_db_session, 11, page=2, limit=20)

        assert page.names[0].name == "Max"
        assert page.pagination.total_items == 21
        assert page.pagination.current_page == 2
        assert page.pagination.has_more is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, value, condition",
        [
            ("by_region", "north", "'north' = ANY (names.regions)"),
            ("by_religion", "hindu", "'hindu' = ANY (names.religion)"),
            ("by_origin", "Sanskrit", "names.origin ILIKE '%"),
        ],
    )
    async def test_facet_gender_filter(self, mock_db_session, make_result, make_name, method, value, condition):
        mock_db_session.execute.side_effect = [
            make_result(items=[make_name("Aarav", gender="boy")]),
            make_result(scalar=1),
        ]

        await getattr(self.service, method)(mock_db_session, value, gender="boy")

        sql = _literal_sql(mock_db_session.execute.await_args_list[0].args[0])
        assert "names.gender = 'boy'" in sql
        assert condition in sql

    @pytest.mark.asyncio
    async def test_facet_without_gender_is_unfiltered(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(items=[]), make_result(scalar=0)]

        await self.service.by_region(mock_db_session, "north")

        sql = _literal_sql(mock_db_session.execute.await_args_list[0].args[0])
        assert "names.gender" not in sql.split("WHERE", 1)[1]

    @pytest.mark.asyncio
    async def test_origin_sorted_by_name(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(items=[]), make_result(scalar=0)]

        await self.service.by_origin(mock_db_session, "latin")

        sql = _literal_sql(mock_db_session.execute.await_args_list[0].args[0])
        assert "ORDER BY names.name ASC" in sql
        assert "names.score DESC" not in sql

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, value",
        [
            ("by_numerology", 10),
            ("by_letter", "ab"),
            ("by_gender", "other"),
            ("by_zodiac", "ophiuchus"),
            ("by_element", "metal"),
            ("by_length", 0),
        ],
    )
    async def test_facet_validation(self, mock_db_session, method, value):
        with pytest.raises(ValidationError):
            await getattr(self.service, method)(mock_db_session, value)
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_failure_is_wrapped(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(DatabaseError):
            await self.service.counts(mock_db_session)


class TestNameServiceSearch:
    def setup_method(self):
        self.service = NameService()

    @pytest.mark.asyncio
    async def test_short_query_rejected(self, mock_db_session):
        with pytest.raises(ValidationError, match="at least 2"):
            await self.service.search(mock_db_session, "a")

    @pytest.mark.asyncio
    async def test_unknown_type_rejected(self, mock_db_session):
        with pytest.raises(ValidationError, match="Search type"):
            await self.service.search(mock_db_session, "av", search_type="fuzzy")

    @pytest.mark.asyncio
    async def test_results_bump_search_appearances(self, mock_db_session, make_result, make_name):
        mock_db_session.execute.side_effect = [
            make_result(items=[make_name("Ava"), make_name("Avery")]),
            make_result(scalar=2),
            make_result(rowcount=2),
        ]

        page = await self.service.search(mock_db_session, "av", search_type="prefix")

        assert [name.name for name in page.names] == ["Ava", "Avery"]
        assert mock_db_session.execute.await_count == 3
        # Returned records show the counters from before the bump
        assert page.names[0].popularity.search_appearances == 0
        bump = _literal_sql(mock_db_session.execute.await_args_list[2].args[0])
        assert bump.startswith("UPDATE names")
        assert "search_appearances=(names.search_appearances + 1)" in bump
        assert (
            "score=(names.views * 0.6 + (names.search_appearances + 1) * 0.3 + names.trend * 0.1)" in bump
        )

    @pytest.mark.asyncio
    async def test_default_type_is_prefix_with_exact_origin(self, mock_db_session, make_result, make_name):
        mock_db_session.execute.side_effect = [
            make_result(items=[make_name("Ava")]),
            make_result(scalar=1),
            make_result(rowcount=1),
        ]

        await self.service.search(mock_db_session, "av", origin="latin")

        sql = _literal_sql(mock_db_session.execute.await_args_list[0].args[0])
        assert "names.name ILIKE 'av%" in sql
        assert "ILIKE '%" not in sql
        assert "names.origin = 'latin'" in sql

    @pytest.mark.asyncio
    async def test_no_results_is_not_found_without_bump(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [
            make_result(items=[]),
            make_result(scalar=0),
        ]

        with pytest.raises(NotFoundError, match="zz"):
            await self.service.search(mock_db_session, "zz")
        assert mock_db_session.execute.await_count == 2


class TestNameServicePopularity:
    def setup_method(self):
        self.service = NameService()

    @pytest.mark.asyncio
    async def test_record_view_returns_updated_row(self, mock_db_session, make_result, make_name):
        record = make_name("Ava", views=11, search_appearances=5, trend=2.0, score=8.3)
        mock_db_session.execute.return_value = make_result(one=record)

        result = await self.service.record_view(mock_db_session, record.id)

        assert result.popularity.views == 11
        assert result.popularity.score == pytest.approx(8.3)
        sql = _literal_sql(mock_db_session.execute.await_args.args[0])
        assert sql.startswith("UPDATE names")
        assert "views=(names.views + 1)" in sql
        assert "score=((names.views + 1) * 0.6 + names.search_appearances * 0.3 + names.trend * 0.1)" in sql
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_record_search_appearance_rescores(self, mock_db_session, make_result, make_name):
        record = make_name("Ava", views=10, search_appearances=6, trend=2.0, score=8.0)
        mock_db_session.execute.return_value = make_result(one=record)

        result = await self.service.record_search_appearance(mock_db_session, record.id)

        assert result.popularity.search_appearances == 6
        sql = _literal_sql(mock_db_session.execute.await_args.args[0])
        assert "search_appearances=(names.search_appearances + 1)" in sql
        assert "score=(names.views * 0.6 + (names.search_appearances + 1) * 0.3 + names.trend * 0.1)" in sql
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_record_view_unknown_id(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(one=None)

        with pytest.raises(NotFoundError):
            await self.service.record_view(mock_db_session, uuid4())

    @pytest.mark.asyncio
    async def test_record_search_appearance_unknown_id(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(one=None)

        with pytest.raises(NotFoundError):
            await self.service.record_search_appearance(mock_db_session, uuid4())


class TestNameServiceRecommendations:
    def setup_method(self):
        self.service = NameService()

    @pytest.mark.asyncio
    async def test_parents_required(self, mock_db_session):
        with pytest.raises(ValidationError, match="parent"):
            await self.service.suggest_from_parents(mock_db_session, mother=" ", father=None)

    @pytest.mark.asyncio
    async def test_single_parent_suggestions(self, mock_db_session, make_result, make_name):
        mock_db_session.execute.return_value = make_result(items=[make_name("Maya")])

        result = await self.service.suggest_from_parents(mock_db_session, mother="Maria")

        assert [name.name for name in result] == ["Maya"]

    @pytest.mark.asyncio
    async def test_generate_ranks_by_score_plus_trend(self, mock_db_session, make_result, make_name):
        mock_db_session.execute.return_value = make_result(items=[
            make_name("Ava", score=1.0, trend=1.0),
            make_name("Mia", score=3.0, trend=4.0),
            make_name("Zoe", score=5.0, trend=0.0),
        ])

        result = await self.service.generate(mock_db_session, GenerateRequest(gender="girl"))

        assert [name.name for name in result] == ["Mia", "Zoe", "Ava"]
        assert result[0].combined_score == pytest.approx(7.0)

    @pytest.mark.asyncio
    async def test_similar_ranks_candidates(self, mock_db_session, make_result, make_name):
        source = make_name("Ava", origin="latin")
        weak = make_name("Eve", origin="hebrew")            # length 3
        strong = make_name("Ivy", origin="latin")           # origin + length
        mock_db_session.execute.side_effect = [
            make_result(items=[source]),
            make_result(items=[weak, strong]),
        ]

        result = await self.service.similar(mock_db_session, "ava")

        assert [(name.name, name.similarity) for name in result][0] == ("Ivy", 3)
        assert result[-1].name == "Eve"

    @pytest.mark.asyncio
    async def test_similar_unknown_source(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(items=[])

        with pytest.raises(NotFoundError):
            await self.service.similar(mock_db_session, "nobody")


class TestNameServiceAdmin:
    def setup_method(self):
        self.service = NameService()

    @pytest.mark.asyncio
    async def test_import_reports_failures(self, mock_db_session, make_result):
        mock_db_session.execute.return_value = make_result(rows=[("Max", "max")])
        items = [
            {"name": "Ava", "meaning": "Life", "gender": "girl", "origin": "latin"},
            {"name": "Max", "meaning": "Greatest", "gender": "boy", "origin": "latin"},
            {"name": "Noah", "meaning": "Rest", "origin": "hebrew"},
            {"name": "ava", "meaning": "Again", "gender": "girl", "origin": "latin"},
        ]

        result = await self.service.import_names(mock_db_session, items)

        assert result.imported == 1
        assert result.total == 4
        assert [failure.index for failure in result.failures] == [1, 2, 3]
        assert result.failures[0].error == "Duplicate name"
        assert result.failures[1].error.startswith("gender")
        assert result.failures[2].error == "Duplicate name"
        mock_db_session.add.assert_called_once()
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_import_all_invalid_skips_database(self, mock_db_session):
        result = await self.service.import_names(mock_db_session, [{"name": "Ava"}])

        assert result.imported == 0
        assert len(result.failures) == 1
        mock_db_session.execute.assert_not_awaited()
        mock_db_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_trends_counts_modified_rows(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [make_result(rowcount=1), make_result(rowcount=0)]
        trends = [TrendUpdate(name_id=uuid4(), trend=5.0), TrendUpdate(name_id=uuid4(), trend=1.0)]

        result = await self.service.update_trends(mock_db_session, trends)

        assert result.modified == 1
        assert result.total == 2

    @pytest.mark.asyncio
    async def test_bulk_update_skips_unknown_ids(self, mock_db_session, make_result, make_name):
        record = make_name("Ava")
        mock_db_session.execute.return_value = make_result(items=[record])
        operations = [
            BulkOperation(name_id=record.id, updates=NameUpdate(name="Ivy")),
            BulkOperation(name_id=uuid4(), updates=NameUpdate(meaning="Ghost")),
        ]

        result = await self.service.bulk_update(mock_db_session, operations)

        assert result.modified == 1
        assert result.total == 2
        assert record.slug == "ivy"
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_list_all_rejects_unknown_sort(self, mock_db_session):
        with pytest.raises(ValidationError, match="Sort"):
            await self.service.list_all(mock_db_session, sort_by="password")

    @pytest.mark.asyncio
    async def test_statistics(self, mock_db_session, make_result):
        mock_db_session.execute.side_effect = [
            make_result(scalar=3),
            make_result(rows=[("girl", 2), ("boy", 1)]),
            make_result(rows=[("latin", 3)]),
            make_result(rows=[(3, 2), (4, 1)]),
            make_result(rows=[("Ava", 2.0, 8.3)]),
        ]

        stats = await self.service.statistics(mock_db_session)

        assert stats.total_names == 3
        assert stats.gender_distribution[0].key == "girl"
        assert stats.length_distribution[1].key == 4
        assert stats.popularity_trends[0].score == pytest.approx(8.3)
