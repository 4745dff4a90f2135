"""
Unit Tests for query-shape building blocks

Tests:
- orderBy parsing
- Column sets derived from the member models
- PostgreSQL rendering of array membership, insert-ignore and reach ordering
- Error payloads

Run with: pytest backend/tests/test_query_shapes.py -v
"""

import pytest
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite

from database.dialects import array_contains, insert_ignore
from members import (
    MemberDB,
    MemberSegmentDB,
    InvalidOrderByError,
    IdentityRowCountMismatchError,
)
from members.columns import (
    get_insert_member_column_set,
    get_update_member_column_set,
    get_insert_member_identity_column_set,
)
from members.ordering import parse_order_by, resolve_order_by


def render(statement, dialect):
    return str(statement.compile(dialect=dialect))


class TestParseOrderBy:

    @pytest.mark.parametrize("value,expected", [
        ("joinedAt_DESC", ("joinedAt", "desc")),
        ("displayName_asc", ("displayName", "asc")),
        ("reach_ASC", ("reach", "asc")),
        ("score_Desc", ("score", "desc")),
    ])
    def test_valid(self, value, expected):
        assert parse_order_by(value) == expected

    @pytest.mark.parametrize("value", ["bogus_ASC", "score", "score_UP", "_ASC", None, 5])
    def test_invalid(self, value):
        with pytest.raises(InvalidOrderByError):
            parse_order_by(value)

    def test_reach_sorts_on_total_as_integer(self):
        clause = resolve_order_by("reach_DESC")
        sql = render(select(MemberDB.id).order_by(clause), postgresql.dialect())

        assert "->>" in sql
        assert "AS INTEGER" in sql
        assert "DESC" in sql


class TestColumnSets:

    def test_insert_member_columns_use_storage_names(self):
        column_set = get_insert_member_column_set()

        assert column_set.keys["tenant_id"] == "tenantId"
        assert column_set.keys["weak_identities"] == "weakIdentities"
        assert column_set.keys["updated_at"] == "updatedAt"

    def test_update_member_columns_exclude_identity_fields(self):
        names = set(get_update_member_column_set().names)

        assert "id" not in names
        assert "tenant_id" not in names
        assert "created_at" not in names
        assert {"display_name", "emails", "weak_identities", "updated_at"} <= names

    def test_prepare_keeps_only_known_fields(self):
        column_set = get_update_member_column_set().subset(["display_name", "updated_at"])

        prepared = column_set.prepare({"display_name": "Ada", "score": 3, "updated_at": "now"})

        assert prepared == {"displayName": "Ada", "updatedAt": "now"}

    def test_prepare_batch_fills_missing(self):
        column_set = get_insert_member_identity_column_set()

        rows = column_set.prepare_batch([{"platform": "github", "username": "ada"}])

        assert rows[0]["platform"] == "github"
        assert rows[0]["sourceId"] is None
        assert set(rows[0]) == set(column_set.keys.values())

    def test_column_sets_are_immutable(self):
        column_set = get_insert_member_column_set()

        with pytest.raises(TypeError):
            column_set.keys["extra"] = "extra"
        with pytest.raises(AttributeError):
            column_set.table = None


class TestDialects:

    def test_array_contains_postgresql(self):
        query = select(MemberDB.id).where(array_contains(MemberDB.emails, "ada@example.com"))

        assert "= ANY (members.emails)" in render(query, postgresql.dialect())

    def test_array_contains_sqlite(self):
        query = select(MemberDB.id).where(array_contains(MemberDB.emails, "ada@example.com"))

        assert "json_each(members.emails)" in render(query, sqlite.dialect())

    @pytest.mark.parametrize("dialect_name,dialect", [
        ("postgresql", postgresql.dialect()),
        ("sqlite", sqlite.dialect()),
    ])
    def test_insert_ignore(self, dialect_name, dialect):
        statement = insert_ignore(dialect_name, MemberSegmentDB.__table__).values(
            memberId="m", segmentId="s", tenantId="t"
        )

        assert "ON CONFLICT DO NOTHING" in render(statement, dialect)

    def test_insert_ignore_unsupported_dialect(self):
        with pytest.raises(ValueError):
            insert_ignore("mysql", MemberSegmentDB.__table__)


class TestErrors:

    def test_row_count_mismatch_payload(self):
        error = IdentityRowCountMismatchError(expected=3, actual=1)

        assert error.to_dict() == {
            "error": "identity_row_count_mismatch",
            "message": "Expected 3 identity rows to be affected, got 1",
            "expected": 3,
            "actual": 1,
        }

    def test_invalid_order_by_payload(self):
        payload = InvalidOrderByError("bogus_ASC").to_dict()

        assert payload["error"] == "invalid_order_by"
        assert payload["parameter"] == "orderBy"
        assert payload["received_value"] == "bogus_ASC"
