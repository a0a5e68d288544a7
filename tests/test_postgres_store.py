"""Tests for the PostgreSQL store — SQL shape and error mapping (mocked connection)."""

from contextlib import contextmanager
from types import SimpleNamespace
from unittest.mock import MagicMock

import psycopg2
import psycopg2.errors
import pytest

from tenantvault.errors import ConflictError, InvalidInputError, StoreError
from tenantvault.roles import VaultRole
from tenantvault.store.postgres import PostgresStore, _like_pattern


class _SlugViolation(psycopg2.errors.UniqueViolation):
    diag = SimpleNamespace(constraint_name="tenants_slug_key")


def _store(conn=None):
    conn = conn or MagicMock()
    db = MagicMock()

    @contextmanager
    def connection():
        yield conn

    db.connection.side_effect = connection
    return PostgresStore(db), conn


class TestErrorMapping:
    def test_named_unique_violation(self):
        store, _ = _store()
        with pytest.raises(ConflictError, match="tenant slug already taken"), store.session():
            raise _SlugViolation()

    def test_unknown_unique_violation(self):
        store, _ = _store()
        with pytest.raises(ConflictError, match="already exists"), store.session():
            raise psycopg2.errors.UniqueViolation()

    def test_other_errors_become_store_error(self):
        store, _ = _store()
        with pytest.raises(StoreError) as exc, store.session():
            raise psycopg2.OperationalError("canceling statement due to statement timeout")
        assert exc.value.retryable is True
        assert "timeout" not in exc.value.message

    def test_overlong_value_is_invalid_input(self):
        store, _ = _store()
        with pytest.raises(InvalidInputError) as exc, store.session():
            raise psycopg2.errors.StringDataRightTruncation("value too long for type character varying(500)")
        assert exc.value.kind == "invalid_input"
        assert exc.value.retryable is False

    def test_foreign_key_violation_is_invalid_input(self):
        store, _ = _store()
        with pytest.raises(InvalidInputError), store.session():
            raise psycopg2.errors.ForeignKeyViolation()

    def test_domain_errors_pass_through(self):
        store, _ = _store()
        with pytest.raises(ConflictError, match="custom"), store.session():
            raise ConflictError("custom")


class TestRepositories:
    def test_tenant_get(self):
        store, conn = _store()
        cur = conn.cursor.return_value
        cur.fetchone.return_value = {"id": 1, "name": "Acme", "slug": "acme"}
        with store.session() as s:
            tenant = s.tenants.get(1)
        assert tenant.slug == "acme"
        sql, params = cur.execute.call_args.args
        assert "FROM tenants" in sql
        assert params == (1,)

    def test_missing_row(self):
        store, conn = _store()
        conn.cursor.return_value.fetchone.return_value = None
        with store.session() as s:
            assert s.users.get(404) is None

    def test_user_email_lookup_is_case_insensitive(self):
        store, conn = _store()
        cur = conn.cursor.return_value
        cur.fetchone.return_value = None
        with store.session() as s:
            s.users.get_by_email("Ann@Example.com")
        assert "lower(email) = lower(%s)" in cur.execute.call_args.args[0]

    def test_member_update_never_touches_owner(self):
        store, conn = _store()
        cur = conn.cursor.return_value
        cur.fetchone.return_value = None
        with store.session() as s:
            assert s.members.update_role(1, 2, VaultRole.EDITOR) is None
        assert "owner" in cur.execute.call_args.args[0]

    def test_search_filters_plaintext_columns(self):
        store, conn = _store()
        cur = conn.cursor.return_value
        cur.fetchall.return_value = []
        with store.session() as s:
            s.credentials.list_visible(1, 2, "50%_off")
        sql, params = cur.execute.call_args.args
        assert "c.category ILIKE %s OR c.favicon ILIKE %s" in sql
        assert params == [1, 2, 2, "%50\\%\\_off%", "%50\\%\\_off%"]

    def test_search_without_query(self):
        store, conn = _store()
        cur = conn.cursor.return_value
        cur.fetchall.return_value = []
        with store.session() as s:
            s.credentials.list_visible(1, 2)
        sql, params = cur.execute.call_args.args
        assert "ILIKE" not in sql
        assert params == [1, 2, 2]


class TestLikePattern:
    def test_escapes_wildcards(self):
        assert _like_pattern("a%b_c\\d") == "%a\\%b\\_c\\\\d%"

    def test_close_closes_database(self):
        store, _ = _store()
        store.close()
        store.db.close.assert_called_once()
