"""Per-process TMetric session: the credential-bearing client plus the
lazily resolved account id that every account-scoped endpoint needs.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from tmetric_mcp.client import TMetricAPIError, TMetricClient

logger = logging.getLogger(__name__)


class InitializationError(Exception):
    """Raised when the active account id cannot be resolved."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Failed to initialize TMetric session: {detail}")


class Session:
    """Holds the API client and the account id resolved from ``GET /user``.

    The account id is fetched once, on first use, and never invalidated.
    """

    def __init__(self, client: TMetricClient) -> None:
        self.client = client
        self._account_id: str | None = None
        self._lock = asyncio.Lock()

    @property
    def account_id(self) -> str | None:
        return self._account_id

    @property
    def is_resolved(self) -> bool:
        return self._account_id is not None

    async def resolve(self) -> str:
        """Return the active account id, fetching it on the first call.

        Concurrent callers share a single ``GET /user`` request.

        Raises:
            InitializationError: the profile could not be read or has no
                active account.
        """
        if self._account_id is not None:
            return self._account_id

        async with self._lock:
            if self._account_id is None:
                try:
                    user = await self.client.get_user()
                except (TMetricAPIError, httpx.HTTPError) as e:
                    raise InitializationError(str(e) or type(e).__name__) from e

                account_id = user.get("activeAccountId")
                if account_id in (None, ""):
                    raise InitializationError("user profile has no activeAccountId")
                self._account_id = str(account_id)
                logger.info(f"Resolved TMetric account {self._account_id}")

        return self._account_id
