"""Client for the Sabre hotel search and availability APIs."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from bellhopping.config.settings import Settings

logger = logging.getLogger(__name__)

SEARCH_PATH = "/v5/get/hotelavail"
AVAILABILITY_PATH = "/v3.0.0/hotel/availability"
MAX_ERROR_BODY = 512


class UpstreamRequestError(RuntimeError):
    """Raised when a search or availability call fails or exceeds its deadline."""

    def __init__(self, status: Optional[int], body: str, *, timeout: bool = False) -> None:
        if timeout:
            message = "Upstream request timed out"
        else:
            message = f"Upstream request failed ({status})"
        super().__init__(message)
        self.status = status
        self.body = body[:MAX_ERROR_BODY]
        self.timeout = timeout


class SabreClient:
    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    async def __aenter__(self) -> "SabreClient":
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, path: str) -> str:
        return f"{self.settings.base_url.rstrip('/')}{path}"

    async def search_hotels(self, payload: Dict[str, Any], token: str) -> Any:
        """Decoded search body; its shape is left to the normalizer."""
        return await self._post(SEARCH_PATH, payload, token, timeout=self.settings.search_timeout_s)

    async def check_availability(self, payload: Dict[str, Any], token: str) -> Dict[str, Any]:
        data = await self._post(AVAILABILITY_PATH, payload, token, timeout=self.settings.probe_timeout_s)
        if not isinstance(data, dict):
            raise UpstreamRequestError(200, f"Unexpected availability body: {type(data).__name__}")
        return data

    async def _post(
        self,
        path: str,
        payload: Dict[str, Any],
        token: str,
        *,
        timeout: float,
    ) -> Any:
        url = self._url(path)
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        started = time.perf_counter()
        try:
            response = await self._client.post(
                url,
                json=payload,
                headers=headers,
                timeout=httpx.Timeout(timeout),
            )
        except httpx.TimeoutException as exc:
            logger.warning("POST %s timed out after %.1fs", path, timeout)
            raise UpstreamRequestError(None, str(exc), timeout=True) from exc
        except httpx.TransportError as exc:
            logger.warning("POST %s transport error: %s", path, exc)
            raise UpstreamRequestError(None, str(exc)) from exc
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("POST %s -> %s in %.0fms", path, response.status_code, elapsed_ms)
        if not response.is_success:
            raise UpstreamRequestError(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamRequestError(response.status_code, response.text) from exc
        return data
