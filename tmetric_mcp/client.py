"""Async TMetric API client using httpx.

Wraps the TMetric REST API v3 (https://app.tmetric.com/api/v3).
Designed to be used as a lifespan-managed singleton — one httpx.AsyncClient
is created at server start and reused for all requests.

Account-scoped endpoints take the account id explicitly; resolving it is the
job of ``tmetric_mcp.session.Session``.
"""

from __future__ import annotations

import os

import httpx
from dotenv import load_dotenv

load_dotenv()

API_TOKEN_ENV = "TMETRIC_API_TOKEN"
API_URL_ENV = "TMETRIC_API_URL"
DEFAULT_API_URL = "https://app.tmetric.com/api/v3"
REQUEST_TIMEOUT = 30.0


class TMetricAPIError(Exception):
    """Raised when the TMetric API returns an error."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"TMetric API error {status_code}: {detail}")


class TMetricClient:
    """Async wrapper around the TMetric API v3.

    Usage with lifespan:
        client = TMetricClient()   # reads token from env
        user = await client.get_user()
        await client.close()
    """

    def __init__(self, api_token: str | None = None, base_url: str | None = None) -> None:
        self._api_token = api_token or os.getenv(API_TOKEN_ENV, "")
        if not self._api_token:
            raise ValueError(
                f"{API_TOKEN_ENV} is required. "
                "Set it in your .env file or pass it directly. "
                "Get a token in TMetric under My Profile > API Tokens"
            )
        self.base_url = base_url or os.getenv(API_URL_ENV) or DEFAULT_API_URL
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self._api_token}",
                "Content-Type": "application/json",
            },
            timeout=REQUEST_TIMEOUT,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict | list | None = None,
        params: dict | None = None,
    ) -> dict | list | None:
        """Make an API request and handle errors consistently."""
        response = await self._http.request(
            method,
            path,
            json=json_body,
            params=params,
        )
        if response.status_code >= 400:
            detail = response.text or f"HTTP {response.status_code}"
            raise TMetricAPIError(response.status_code, detail)
        if response.status_code == 204 or not response.text:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # User
    # ------------------------------------------------------------------

    async def get_user(self) -> dict:
        """GET /user — profile of the token owner, including activeAccountId."""
        result = await self._request("GET", "/user")
        return result if isinstance(result, dict) else {}

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def get_projects(self, account_id: str) -> list[dict]:
        """GET /accounts/{aid}/timeentries/projects — projects available for tracking."""
        result = await self._request("GET", f"/accounts/{account_id}/timeentries/projects")
        return result if isinstance(result, list) else []

    # ------------------------------------------------------------------
    # Time entries
    # ------------------------------------------------------------------

    async def get_time_entries(self, account_id: str, start_date: str, end_date: str) -> list[dict]:
        """GET /accounts/{aid}/timeentries?startDate=..&endDate=.. (YYYY-MM-DD)."""
        result = await self._request(
            "GET",
            f"/accounts/{account_id}/timeentries",
            params={"startDate": start_date, "endDate": end_date},
        )
        return result if isinstance(result, list) else []

    async def create_time_entry(self, account_id: str, body: dict) -> dict:
        """POST /accounts/{aid}/timeentries — create a time entry."""
        result = await self._request(
            "POST", f"/accounts/{account_id}/timeentries", json_body=body
        )
        return result if isinstance(result, dict) else {}

    async def update_time_entry(self, account_id: str, entry_id: str | int, body: dict) -> dict:
        """PUT /accounts/{aid}/timeentries/{id} — replace a time entry."""
        result = await self._request(
            "PUT", f"/accounts/{account_id}/timeentries/{entry_id}", json_body=body
        )
        return result if isinstance(result, dict) else {}

    async def delete_time_entry(self, account_id: str, entry_id: str | int) -> None:
        """DELETE /accounts/{aid}/timeentries/{id} — delete a time entry."""
        await self._request("DELETE", f"/accounts/{account_id}/timeentries/{entry_id}")
