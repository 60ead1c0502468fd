"""
Supabase REST access.

Design rules:
- Views never call this module directly; they go through the data layer.
- No env var reads here (config-only).
- Every non-2xx response raises SupabaseError so callers can fall back.
"""
from __future__ import annotations

import re
from typing import Any, Optional
from urllib.parse import quote, urlencode

import pandas as pd
import requests

from config import AppConfig
from data.queries import TableQuery, filter_params
from log_config import get_logger


log = get_logger(__name__)

_CONTENT_RANGE = re.compile(r"/(\d+|\*)$")


class SupabaseError(RuntimeError):
    def __init__(self, message: str, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code

    @property
    def is_permission_denied(self) -> bool:
        return self.code == "42501" or self.status in (401, 403)

    @property
    def is_unique_violation(self) -> bool:
        return self.code == "23505" or self.status == 409

    @property
    def is_not_found(self) -> bool:
        return self.code == "PGRST116"


class SupabaseConfigError(SupabaseError):
    pass


class SupabaseAuthError(SupabaseError):
    pass


def _error_from_response(resp: requests.Response, default: str) -> SupabaseError:
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or body.get("error_description") or body.get("msg") or body.get("error") or default
    code = body.get("code") or body.get("error_code")
    return SupabaseError(str(message), status=resp.status_code, code=str(code) if code is not None else None)


class SupabaseClient:
    """
    Thin client over the four Supabase HTTP surfaces:
    PostgREST (/rest/v1), GoTrue (/auth/v1), Storage (/storage/v1), Edge Functions (/functions/v1).

    The anon key is always sent as `apikey`; the bearer token is the signed-in
    user's access token when present so row-level security applies to them.
    """

    def __init__(self, cfg: AppConfig, access_token: Optional[str] = None, use_service_key: bool = False):
        self.cfg = cfg
        self.access_token = access_token
        self._key = cfg.supabase_service_key if use_service_key else cfg.supabase_anon_key
        self._base = cfg.supabase_url.rstrip("/")

    def is_configured(self) -> bool:
        return bool(self._base and self._key)

    # --- plumbing ---

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        if not self.is_configured():
            raise SupabaseConfigError(
                "Missing SUPABASE_URL / SUPABASE_ANON_KEY. "
                "Set them in .env for live data, or keep mock data enabled."
            )
        headers = {
            "apikey": self._key or "",
            "Authorization": f"Bearer {self.access_token or self._key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Any = None,
        json: Any = None,
        data: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> requests.Response:
        url = f"{self._base}{path}"
        try:
            resp = requests.request(
                method,
                url,
                params=params,
                json=json,
                data=data,
                headers=self._headers(headers),
                timeout=self.cfg.request_timeout,
            )
        except requests.RequestException as e:
            log.error("%s %s failed: %s", method, path, e)
            raise SupabaseError(f"Request to Supabase failed: {e}") from e
        if resp.status_code >= 300:
            err = _error_from_response(resp, f"{method} {path} returned {resp.status_code}")
            log.error("%s %s -> %s (%s): %s", method, path, resp.status_code, err.code, err.message)
            raise err
        return resp

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        if not resp.content:
            return None
        return resp.json()

    # --- PostgREST ---

    def select(self, query: TableQuery) -> list[dict]:
        resp = self._request("GET", f"/rest/v1/{query.table}", params=query.params())
        rows = self._json(resp)
        return rows or []

    def select_df(self, query: TableQuery) -> pd.DataFrame:
        return pd.DataFrame(self.select(query))

    def select_one(self, query: TableQuery) -> Optional[dict]:
        """Maybe-single: the first matching row or None."""
        rows = self.select(query.take(1))
        return rows[0] if rows else None

    def count(self, table: str, filters: tuple = ()) -> int:
        params = [("select", "*")] + filter_params(filters)
        resp = self._request("HEAD", f"/rest/v1/{table}", params=params, headers={"Prefer": "count=exact"})
        match = _CONTENT_RANGE.search(resp.headers.get("Content-Range", ""))
        if not match or match.group(1) == "*":
            return 0
        return int(match.group(1))

    def insert(self, table: str, rows: list[dict] | dict, returning: bool = True) -> list[dict]:
        prefer = "return=representation" if returning else "return=minimal"
        resp = self._request("POST", f"/rest/v1/{table}", json=rows, headers={"Prefer": prefer})
        return (self._json(resp) or []) if returning else []

    def update(self, table: str, values: dict, filters: tuple, returning: bool = True) -> list[dict]:
        prefer = "return=representation" if returning else "return=minimal"
        resp = self._request(
            "PATCH", f"/rest/v1/{table}", params=filter_params(filters), json=values, headers={"Prefer": prefer}
        )
        return (self._json(resp) or []) if returning else []

    def upsert(self, table: str, rows: list[dict] | dict, on_conflict: str) -> list[dict]:
        resp = self._request(
            "POST",
            f"/rest/v1/{table}",
            params={"on_conflict": on_conflict},
            json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )
        return self._json(resp) or []

    def delete(self, table: str, filters: tuple) -> None:
        if not filters:
            raise ValueError("Refusing to delete without filters")
        self._request("DELETE", f"/rest/v1/{table}", params=filter_params(filters))

    def rpc(self, fn: str, params: Optional[dict] = None) -> Any:
        resp = self._request("POST", f"/rest/v1/rpc/{fn}", json=params or {})
        return self._json(resp)

    # --- Storage ---

    def upload(self, bucket: str, path: str, content: bytes, content_type: str, upsert: bool = True) -> None:
        self._request(
            "POST",
            f"/storage/v1/object/{bucket}/{quote(path)}",
            data=content,
            headers={
                "Content-Type": content_type,
                "Cache-Control": "3600",
                "x-upsert": "true" if upsert else "false",
            },
        )

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self._base}/storage/v1/object/public/{bucket}/{quote(path)}"

    # --- Edge Functions ---

    def invoke_function(self, name: str, body: Optional[dict] = None) -> Any:
        resp = self._request("POST", f"/functions/v1/{name}", json=body or {})
        return self._json(resp)

    # --- Auth (GoTrue) ---

    def _auth(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            return self._json(self._request(method, f"/auth/v1/{path}", **kwargs))
        except SupabaseConfigError:
            raise
        except SupabaseError as e:
            raise SupabaseAuthError(e.message, status=e.status, code=e.code) from e

    def sign_in_with_password(self, email: str, password: str) -> dict:
        return self._auth("POST", "token", params={"grant_type": "password"}, json={"email": email, "password": password})

    def sign_up(self, email: str, password: str, metadata: Optional[dict] = None) -> dict:
        return self._auth("POST", "signup", json={"email": email, "password": password, "data": metadata or {}})

    def sign_out(self) -> None:
        if self.access_token:
            self._auth("POST", "logout")

    def get_user(self) -> dict:
        if not self.access_token:
            raise SupabaseAuthError("Not signed in", status=401)
        return self._auth("GET", "user")

    # GoTrue admin endpoints only accept the service role key
    def admin_list_users(self, page: int = 1, per_page: int = 200) -> list[dict]:
        payload = self._auth("GET", "admin/users", params={"page": page, "per_page": per_page})
        return (payload or {}).get("users") or []

    def admin_delete_user(self, user_id: str) -> None:
        self._auth("DELETE", f"admin/users/{quote(user_id)}")

    def oauth_url(self, provider: str, redirect_to: str) -> str:
        return f"{self._base}/auth/v1/authorize?" + urlencode({"provider": provider, "redirect_to": redirect_to})


def get_supabase_client(cfg: AppConfig, access_token: Optional[str] = None) -> SupabaseClient:
    return SupabaseClient(cfg, access_token=access_token)
