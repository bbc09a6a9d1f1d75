from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Sequence

import requests

from ..core.exceptions import GatewayError, RemoteUnreachableError
from .gateway import RemoteTableGateway, validate_table

logger = logging.getLogger(__name__)

# PostgREST: "JSON object requested, multiple (or no) rows returned"
_EMPTY_RESULT_CODE = "PGRST116"


class SupabaseTableGateway(RemoteTableGateway):
    """Tables exposed through Supabase's PostgREST endpoint."""

    def __init__(self, url: str, key: str, *, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self._base = url.rstrip("/") + "/rest/v1"
        self._key = key
        self._timeout = timeout
        self._session = session or requests.Session()

    def _headers(self, prefer: Optional[str] = None) -> dict[str, str]:
        headers = {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(self, method: str, table: str, *, prefer: Optional[str] = None, **kwargs) -> requests.Response:
        url = f"{self._base}/{validate_table(table)}"
        try:
            resp = self._session.request(method, url, headers=self._headers(prefer), timeout=self._timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise RemoteUnreachableError(f"{method} {table} failed: {e}") from e
        except requests.RequestException as e:
            raise GatewayError(f"{method} {table} failed: {e}") from e
        if not resp.ok:
            raise GatewayError(f"{method} {table} failed: {resp.status_code} {resp.text[:200]}")
        return resp

    def upsert(self, table: str, row: Mapping[str, Any]) -> None:
        self._request(
            "POST",
            table,
            prefer="resolution=merge-duplicates,return=minimal",
            params={"on_conflict": "id"},
            json=dict(row),
        )

    def insert(self, table: str, row: Mapping[str, Any]) -> None:
        self._request("POST", table, prefer="return=minimal", json=dict(row))

    def delete(self, table: str, entity_id: str) -> None:
        self._request("DELETE", table, params={"id": f"eq.{entity_id}"})

    def select(self, table: str) -> Sequence[dict[str, Any]]:
        resp = self._request("GET", table, params={"select": "*"})
        try:
            data = resp.json()
        except ValueError as e:
            raise GatewayError(f"GET {table} returned invalid JSON") from e
        if not isinstance(data, list):
            raise GatewayError(f"GET {table} did not return a list")
        return data

    def check_connection(self) -> bool:
        try:
            resp = self._session.get(
                f"{self._base}/students",
                headers=self._headers(),
                params={"select": "id", "limit": "1"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.error("Supabase connection exception: %s", e)
            return False
        if resp.ok:
            return True
        try:
            code = resp.json().get("code")
        except (ValueError, AttributeError):
            code = None
        if code == _EMPTY_RESULT_CODE:
            return True
        logger.error("Supabase connection error: %s %s", resp.status_code, resp.text[:200])
        return False
