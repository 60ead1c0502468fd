from __future__ import annotations

from typing import Any, Optional

import pytest

from config import AppConfig


def make_config(tmp_path=None, **overrides: Any) -> AppConfig:
    values = dict(
        supabase_url="https://demo.supabase.co",
        supabase_anon_key="anon-key",
        supabase_service_key=None,
        hf_api_key=None,
        hf_model_url="https://hf.example/models/mistral",
        site_url="http://localhost:8501",
        mentorship_time_zone="Asia/Kolkata",
        local_bookings_dir=str(tmp_path / "bookings") if tmp_path is not None else ".skutopia/bookings",
        cache_ttl_seconds=60,
        request_timeout=5,
        log_level="INFO",
        log_file=None,
        default_use_mock=True,
    )
    values.update(overrides)
    return AppConfig(**values)


def _matches(row: dict, filters: tuple) -> bool:
    for column, op, value in filters:
        if column not in row:
            continue
        if op == "eq" and row[column] != value:
            return False
        if op == "in" and row[column] not in value:
            return False
    return True


class FakeSupabase:
    """
    In-memory stand-in for SupabaseClient.

    `tables` maps a table name to rows (or to a callable taking the query).
    `errors` maps a method name or (method, table) to an exception to raise.
    Every call is recorded in `calls`.
    """

    def __init__(
        self,
        tables: Optional[dict] = None,
        errors: Optional[dict] = None,
        counts: Optional[dict] = None,
        rpc_results: Optional[dict] = None,
        function_results: Optional[dict] = None,
        auth_payload: Optional[dict] = None,
        auth_users: Optional[list] = None,
    ):
        self.tables = tables or {}
        self.errors = errors or {}
        self.counts = counts or {}
        self.rpc_results = rpc_results or {}
        self.function_results = function_results or {}
        self.auth_payload = auth_payload or {}
        self.auth_users = auth_users or []
        self.calls: list = []
        self.inserted: dict = {}
        self._next_id = 0

    def _check(self, method: str, table: Optional[str] = None) -> None:
        err = self.errors.get((method, table)) or self.errors.get(method)
        if err is not None:
            raise err

    def calls_to(self, method: str) -> list:
        return [c for c in self.calls if c[0] == method]

    # PostgREST

    def select(self, query):
        self.calls.append(("select", query))
        self._check("select", query.table)
        rows = self.tables.get(query.table, [])
        if callable(rows):
            return [dict(r) for r in rows(query)]
        return [dict(r) for r in rows if _matches(r, query.filters)]

    def select_one(self, query):
        rows = self.select(query.take(1))
        return rows[0] if rows else None

    def count(self, table, filters=()):
        self.calls.append(("count", table, filters))
        self._check("count", table)
        return self.counts.get((table, filters), self.counts.get(table, 0))

    def insert(self, table, rows, returning=True):
        rows = rows if isinstance(rows, list) else [rows]
        self.calls.append(("insert", table, rows))
        self._check("insert", table)
        stored = []
        for r in rows:
            self._next_id += 1
            stored.append({"id": f"{table}-{self._next_id}", "created_at": "2024-06-01T00:00:00+00:00", **r})
        self.inserted.setdefault(table, []).extend(stored)
        return stored if returning else []

    def update(self, table, values, filters, returning=True):
        self.calls.append(("update", table, values, filters))
        self._check("update", table)
        row = dict(values)
        for column, op, value in filters:
            if op == "eq":
                row[column] = value
        return [row] if returning else []

    def upsert(self, table, rows, on_conflict):
        self.calls.append(("upsert", table, rows, on_conflict))
        self._check("upsert", table)
        return rows if isinstance(rows, list) else [rows]

    def delete(self, table, filters):
        self.calls.append(("delete", table, filters))
        self._check("delete", table)

    def rpc(self, fn, params=None):
        self.calls.append(("rpc", fn, params))
        self._check("rpc", fn)
        return self.rpc_results.get(fn)

    # Storage / functions

    def upload(self, bucket, path, content, content_type, upsert=True):
        self.calls.append(("upload", bucket, path, content_type))
        self._check("upload", bucket)

    def public_url(self, bucket, path):
        return f"https://demo.supabase.co/storage/v1/object/public/{bucket}/{path}"

    def invoke_function(self, name, body=None):
        self.calls.append(("invoke_function", name, body))
        self._check("invoke_function", name)
        return self.function_results.get(name)

    # Auth

    def sign_in_with_password(self, email, password):
        self.calls.append(("sign_in_with_password", email))
        self._check("sign_in_with_password")
        return self.auth_payload

    def sign_up(self, email, password, metadata=None):
        self.calls.append(("sign_up", email, metadata))
        self._check("sign_up")
        return self.auth_payload

    def sign_out(self):
        self.calls.append(("sign_out",))
        self._check("sign_out")

    def admin_list_users(self, page=1, per_page=200):
        self.calls.append(("admin_list_users",))
        self._check("admin_list_users")
        return [dict(u) for u in self.auth_users]

    def admin_delete_user(self, user_id):
        self.calls.append(("admin_delete_user", user_id))
        self._check("admin_delete_user")


@pytest.fixture
def cfg(tmp_path):
    return make_config(tmp_path)


@pytest.fixture
def fake_client():
    return FakeSupabase()
