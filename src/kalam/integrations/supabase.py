"""Supabase integration: config and PostgREST data store client.

Talks to the project's REST endpoint with the anon key plus the signed-in
user's access token, so the backend's row-level policies decide what each
call may touch.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Iterable
from typing import Any

import jwt
from pydantic import BaseModel

from kalam.errors import StoreError
from kalam.store.base import DataStore, Filters, Record

logger = logging.getLogger(__name__)


class SupabaseConfig(BaseModel):
    """Connection settings for a Supabase project."""

    url: str = ""
    anon_key: str = ""
    access_token: str = ""
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.anon_key)


def user_id_from_token(access_token: str) -> str | None:
    """Return the ``sub`` claim of a Supabase access token.

    The signature is checked by the backend on every request; here the
    token is only read to learn who the caller is.
    """
    if not access_token:
        return None
    try:
        claims = jwt.decode(
            access_token,
            options={"verify_signature": False, "verify_aud": False},
        )
    except jwt.PyJWTError:
        logger.warning("Access token is not a readable JWT")
        return None
    sub = claims.get("sub")
    return str(sub) if sub else None


def _encode_value(value: Any) -> str:
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"eq.{'true' if value else 'false'}"
    return f"eq.{value}"


def _encode_in(values: Iterable[Any]) -> str:
    quoted = ",".join(f'"{v}"' for v in values)
    return f"in.({quoted})"


class SupabaseStore(DataStore):
    """PostgREST client implementing the data store contract via urllib."""

    def __init__(self, config: SupabaseConfig) -> None:
        self.config = config
        self.base_url = config.url.rstrip("/")

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        bearer = self.config.access_token or self.config.anon_key
        headers = {
            "apikey": self.config.anon_key,
            "Authorization": f"Bearer {bearer}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _url(self, collection: str, params: list[tuple[str, str]]) -> str:
        url = f"{self.base_url}/rest/v1/{collection}"
        if params:
            url += "?" + urllib.parse.urlencode(params)
        return url

    @staticmethod
    def _filter_params(filters: Filters | None) -> list[tuple[str, str]]:
        return [(key, _encode_value(value)) for key, value in (filters or {}).items()]

    def _request(
        self,
        method: str,
        url: str,
        data: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """Make an authenticated request and decode the JSON reply."""
        body = json.dumps(data).encode("utf-8") if data is not None else None
        req = urllib.request.Request(
            url,
            data=body,
            method=method,
            headers=self._headers(prefer),
        )
        try:
            with urllib.request.urlopen(req, timeout=self.config.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as exc:
            message = exc.reason
            try:
                detail = json.loads(exc.read().decode("utf-8"))
                message = detail.get("message") or message
            except (json.JSONDecodeError, ValueError, AttributeError):
                pass
            logger.debug("%s %s failed: %s %s", method, url, exc.code, message)
            raise StoreError(str(message), status=exc.code) from exc
        except urllib.error.URLError as exc:
            raise StoreError(f"Could not reach {self.base_url}: {exc.reason}") from exc
        except (TimeoutError, OSError) as exc:
            raise StoreError(f"Request to {self.base_url} failed: {exc}") from exc
        if not raw:
            return None
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise StoreError(f"Unreadable reply from {self.base_url}: {exc}") from exc

    # ── DataStore contract ───────────────────────────────────────

    def select(
        self,
        collection: str,
        filters: Filters | None = None,
        *,
        in_: tuple[str, Iterable[Any]] | None = None,
        order: str | None = None,
        descending: bool = False,
        columns: Iterable[str] | None = None,
    ) -> list[Record]:
        params = [("select", ",".join(columns) if columns else "*")]
        params += self._filter_params(filters)
        if in_ is not None:
            key, values = in_
            params.append((key, _encode_in(values)))
        if order is not None:
            direction = "desc" if descending else "asc"
            params.append(("order", f"{order}.{direction}.nullslast"))
        return self._request("GET", self._url(collection, params)) or []

    def insert(self, collection: str, records: Record | list[Record]) -> list[Record]:
        batch = [records] if isinstance(records, dict) else records
        result = self._request(
            "POST",
            self._url(collection, []),
            batch,
            prefer="return=representation",
        )
        return result or []

    def update(self, collection: str, filters: Filters, patch: Record) -> None:
        self._request(
            "PATCH",
            self._url(collection, self._filter_params(filters)),
            patch,
            prefer="return=minimal",
        )

    def delete_where(self, collection: str, filters: Filters) -> None:
        self._request(
            "DELETE",
            self._url(collection, self._filter_params(filters)),
            prefer="return=minimal",
        )
