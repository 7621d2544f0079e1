# tests/test_query.py
"""
Query specification tests
Tests: composition, modifiers, count queries, value coercion
"""
from datetime import date, datetime

import pytest

from stockpile.db.errors import InvalidValueError, UnknownColumnsError
from stockpile.db.query import QuerySpec
from stockpile.db.resources import BRANDS, ITEMS, MODELS, RENTALS, USERS

brands = BRANDS.table
models = MODELS.table


def sql(statement) -> str:
    return " ".join(str(statement).split())


class TestQuerySpec:
    """Test how specifications compile onto a table"""

    def test_default_columns(self):
        statement = QuerySpec().build(brands, BRANDS.visible_columns())

        compiled = sql(statement)
        assert compiled.startswith("SELECT ")
        assert all(f"brands.{name}" in compiled for name in ("id", "organization_id", "name"))
        assert compiled.endswith("FROM brands")

    def test_hidden_columns_never_selected(self):
        statement = QuerySpec().build(USERS.table, USERS.visible_columns())

        assert "password" not in sql(statement)

    def test_join_and_extra_column(self):
        spec = QuerySpec().select(brands.c.name.label("brand")).join(brands, brands.c.id == models.c.brand_id)

        compiled = sql(spec.build(models, MODELS.visible_columns()))

        assert "brands.name AS brand" in compiled
        assert "JOIN brands ON brands.id = models.brand_id" in compiled

    def test_search_is_case_insensitive(self):
        spec = QuerySpec().search("SoNy", brands.c.name)

        compiled = spec.build(brands, BRANDS.visible_columns()).compile()

        assert "lower(brands.name) LIKE" in sql(compiled)
        assert "%sony%" in compiled.params.values()

    def test_empty_search_ignored(self):
        spec = QuerySpec().search("", brands.c.name)

        assert spec.search_term is None
        assert "LIKE" not in sql(spec.build(brands, BRANDS.visible_columns()))

    def test_count_ignores_ordering_and_pagination(self):
        spec = QuerySpec().where(brands.c.name == "Sony").order(brands.c.name).paginate(10, 20)

        compiled = sql(spec.build_count(brands))

        assert compiled.startswith("SELECT count(*) AS count_1 FROM brands WHERE")
        assert "ORDER BY" not in compiled
        assert "LIMIT" not in compiled

    def test_modifier_returning_none_keeps_spec(self):
        spec = QuerySpec()

        assert spec.modify(lambda request, current: None, object()) is spec

    def test_modifier_receives_request(self):
        seen = []

        def modifier(request, spec):
            seen.append(request)
            return spec.where(brands.c.id == request)

        spec = QuerySpec().modify(modifier, 5)

        assert seen == [5]
        assert len(spec.filters) == 1

    def test_merge(self):
        spec = QuerySpec().where(brands.c.id == 1).merge(QuerySpec().where(brands.c.name == "x").paginate(5))

        assert len(spec.filters) == 2
        assert spec.limit == 5


class TestCoercion:
    """Test conversion of request values to column types"""

    def test_integer_path_value(self):
        assert BRANDS.coerce("id", "42") == 42

    def test_invalid_integer(self):
        with pytest.raises(InvalidValueError):
            BRANDS.coerce("id", "forty-two")

    def test_boolean_strings(self):
        assert RENTALS.coerce("is_reservation", "true") is True
        assert RENTALS.coerce("is_reservation", "0") is False

    def test_dates(self):
        assert RENTALS.coerce("start_date", "2026-05-01") == date(2026, 5, 1)

    def test_aware_datetime_stored_as_utc(self):
        value = USERS.coerce("archived", "2026-05-01T14:00:00+02:00")

        assert value == datetime(2026, 5, 1, 12, 0, 0)
        assert value.tzinfo is None

    def test_strings_reject_objects(self):
        with pytest.raises(InvalidValueError):
            ITEMS.coerce("barcode", {"nested": True})

    def test_unknown_column(self):
        with pytest.raises(UnknownColumnsError):
            ITEMS.validate({"barcode": "X", "colour": "red"})
