"""Unit tests for statement.py.

These tests verify the `:name` to pyformat rewrite and parameter binding
checks, without any database.
"""

from __future__ import annotations

import pytest

from database.errors import ParameterBindingError
from database.statement import prepare


class TestPrepare:
    """Tests for the placeholder rewrite."""

    def test_rewrites_named_placeholders(self) -> None:
        """Should turn :name into %(name)s and record names in order."""
        stmt = prepare("select * from users where id = :id or id = :id5")

        assert stmt.text == "select * from users where id = %(id)s or id = %(id5)s"
        assert stmt.names == ("id", "id5")
        assert stmt.sql == "select * from users where id = :id or id = :id5"

    def test_repeated_placeholder_is_listed_once(self) -> None:
        """Should list a placeholder used twice only once."""
        stmt = prepare("select :a, :b, :a")

        assert stmt.text == "select %(a)s, %(b)s, %(a)s"
        assert stmt.names == ("a", "b")

    def test_query_without_placeholders(self) -> None:
        """Should leave a plain query untouched."""
        stmt = prepare("select level, count(*) totalPerLevel from users group by level")

        assert stmt.text == "select level, count(*) totalPerLevel from users group by level"
        assert stmt.names == ()

    def test_postgres_cast_is_not_a_placeholder(self) -> None:
        """Should keep ::type casts and still find the placeholder before them."""
        stmt = prepare("select :value::int, now()::date")

        assert stmt.text == "select %(value)s::int, now()::date"
        assert stmt.names == ("value",)

    def test_quoted_sections_are_skipped(self) -> None:
        """Should ignore :words inside strings and quoted identifiers."""
        stmt = prepare("select ':not', \"col:x\", `tbl:y` from t where t.at = '10:30' and id = :id")

        assert stmt.text == "select ':not', \"col:x\", `tbl:y` from t where t.at = '10:30' and id = %(id)s"
        assert stmt.names == ("id",)

    def test_escaped_quotes_inside_strings(self) -> None:
        """Should not end a string at a doubled or backslash-escaped quote."""
        stmt = prepare("select 'it''s :x', 'a\\':y', :z")

        assert stmt.names == ("z",)
        assert stmt.text.endswith("%(z)s")

    def test_comments_are_skipped(self) -> None:
        """Should ignore placeholders inside line and block comments."""
        stmt = prepare("-- filter on :skipped\nselect :a /* not :b */ from t")

        assert stmt.names == ("a",)
        assert stmt.text == "-- filter on :skipped\nselect %(a)s /* not :b */ from t"

    def test_dollar_quoted_body_is_skipped(self) -> None:
        """Should ignore placeholders inside PostgreSQL dollar-quoted bodies."""
        stmt = prepare("create function f() returns int as $body$ select :x; $body$ language sql; select :y")

        assert stmt.names == ("y",)
        assert "$body$ select :x; $body$" in stmt.text

    def test_percent_signs_are_escaped(self) -> None:
        """Should double % everywhere so the driver formats it back to one."""
        stmt = prepare("select * from users where name like 'Mi%' and score % 2 = :rest")

        assert stmt.text == "select * from users where name like 'Mi%%' and score %% 2 = %(rest)s"
        assert stmt.names == ("rest",)


class TestBind:
    """Tests for PreparedStatement.bind."""

    def test_bind_returns_mapping(self) -> None:
        """Should fold the name/value pairs into a dict."""
        stmt = prepare("insert into users (firstname, lastname) values (:firstname, :lastname)")

        values = stmt.bind([("firstname", "Michael"), ("lastname", "Jackson")])

        assert values == {"firstname": "Michael", "lastname": "Jackson"}

    def test_bind_last_value_wins(self) -> None:
        """Should keep the last value of a name bound twice."""
        stmt = prepare("select * from users where id = :id")

        assert stmt.bind([("id", 1), ("id", 5)]) == {"id": 5}

    def test_bind_without_parameters(self) -> None:
        """Should return an empty mapping for a query without placeholders."""
        assert prepare("select 1").bind([]) == {}

    def test_bind_missing_value_raises(self) -> None:
        """Should reject a placeholder that has no value."""
        stmt = prepare("update users set lastname = :lastname where id = :id")

        with pytest.raises(ParameterBindingError, match=":id"):
            stmt.bind([("lastname", "Jordan")])

    def test_bind_unknown_name_raises(self) -> None:
        """Should reject a value whose name is not in the statement."""
        stmt = prepare("select * from users where id = :id")

        with pytest.raises(ParameterBindingError, match="not defined: :extra"):
            stmt.bind([("id", 1), ("extra", 2)])
