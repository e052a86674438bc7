"""
Remote Analytics Client

Async client for an optional server-side analytics API. Reports it returns
take precedence over local computation; any failure surfaces as
RemoteAnalyticsError so the caller can fall back.
"""

import asyncio
from typing import Any, Optional

import httpx

from config import RemoteAnalyticsSettings, get_settings
from core.errors import RemoteAnalyticsError
from core.logging_config import remote_logger as logger


class RemoteAnalyticsClient:
    """
    Async client for the remote analytics API.

    Features:
    - Connection pooling
    - Retries on timeouts and 5xx responses, up to ``max_attempts`` requests
    - Envelope validation (``{"success": true, "data": {...}}``)
    """

    def __init__(
        self,
        settings: Optional[RemoteAnalyticsSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_seconds: float = 0.5,
    ):
        self.settings = settings or get_settings().remote
        self.transport = transport
        self.backoff_seconds = backoff_seconds
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    async def get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            headers = {"Accept": "application/json"}
            if self.settings.api_key:
                headers["Authorization"] = f"Bearer {self.settings.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                timeout=httpx.Timeout(self.settings.timeout),
                headers=headers,
                transport=self.transport,
            )
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def fetch_report(
        self,
        date_range: str,
        filters: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Fetch a sales report computed by the remote API.

        Args:
            date_range: Date range key (today, week, month, ...)
            filters: Optional report filters, sent as query parameters

        Returns:
            The ``data`` object of the response envelope

        Raises:
            RemoteAnalyticsError: HTTP failure, exhausted retries or an
                envelope without ``success`` and a ``data`` object
        """
        params = {"dateRange": date_range}
        for name, value in (filters or {}).items():
            if value is not None:
                params[name] = str(value)

        payload = await self._get("/analytics/report", params)

        if not isinstance(payload, dict) or not payload.get("success"):
            raise RemoteAnalyticsError("Remote analytics returned an unsuccessful response")
        data = payload.get("data")
        if not isinstance(data, dict):
            raise RemoteAnalyticsError("Remote analytics response has no report data")
        return data

    async def _backoff(self, attempt: int) -> None:
        await asyncio.sleep(self.backoff_seconds * 2 ** attempt)

    async def _get(self, path: str, params: dict[str, str]) -> Any:
        try:
            client = await self.get_client()
        except (httpx.InvalidURL, ValueError) as e:
            raise RemoteAnalyticsError(f"Remote analytics is misconfigured: {e}") from e

        attempts = self.settings.max_attempts
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                response = await client.get(path, params=params)
                response.raise_for_status()
                return response.json()

            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    raise RemoteAnalyticsError(
                        f"Remote analytics rejected the request: {e.response.status_code}"
                    ) from e
                last_error = e
                logger.warning(
                    f"Remote analytics returned {e.response.status_code} (attempt {attempt + 1}/{attempts})"
                )
            except httpx.TimeoutException as e:
                last_error = e
                logger.warning(f"Remote analytics timed out (attempt {attempt + 1}/{attempts})")
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
                # Connection failures and undecodable JSON are not retried
                last_error = e
                break

            if attempt + 1 < attempts:
                await self._backoff(attempt)

        raise RemoteAnalyticsError(f"Remote analytics request failed: {last_error}")


# Global instance
remote_client = RemoteAnalyticsClient()
