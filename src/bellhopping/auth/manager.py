"""Bearer token lifecycle for the Sabre APIs."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

import httpx

from bellhopping.config.settings import Settings

from .strategies import AuthAttemptError, AuthStrategy, AuthVariant, Credential, build_strategies

logger = logging.getLogger(__name__)


class AuthenticationError(RuntimeError):
    """Raised when every configured auth variant failed."""

    def __init__(self, failures: Sequence[Tuple[str, str]]) -> None:
        self.failures = list(failures)
        if self.failures:
            detail = "; ".join(f"{name}: {reason}" for name, reason in self.failures)
        else:
            detail = "no auth methods configured"
        super().__init__(f"All authentication methods failed ({detail})")


class AuthManager:
    """Hands out a cached bearer token, re-authenticating near expiry.

    Variants are tried in priority order on every refresh cycle. A variant that
    failed last time is tried again next time, since provisioning can change.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: Optional[httpx.AsyncClient] = None,
        strategies: Optional[Sequence[AuthStrategy]] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.settings = settings
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.auth_timeout_s)
        self._strategies: List[AuthStrategy] = (
            list(strategies) if strategies is not None else build_strategies(settings)
        )
        self._clock = clock
        self._credential: Optional[Credential] = None
        self._lock = asyncio.Lock()

    async def __aenter__(self) -> "AuthManager":
        return self

    async def __aexit__(self, exc_type, exc, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def active_variant(self) -> Optional[AuthVariant]:
        return self._credential.variant if self._credential else None

    def invalidate(self) -> None:
        self._credential = None

    def _cached_token(self) -> Optional[str]:
        credential = self._credential
        if credential and credential.is_valid(self._clock(), self.settings.token_expiry_buffer_s):
            return credential.token
        return None

    async def get_token(self) -> str:
        token = self._cached_token()
        if token:
            logger.debug("Using cached token (%s)", self._credential.variant.value)  # type: ignore[union-attr]
            return token
        async with self._lock:
            # Another caller may have refreshed while we waited for the lock.
            token = self._cached_token()
            if token:
                return token
            self._credential = None
            credential = await self._authenticate()
            self._credential = credential
            return credential.token

    async def _authenticate(self) -> Credential:
        failures: List[Tuple[str, str]] = []
        for strategy in self._strategies:
            started = time.perf_counter()
            try:
                credential = await strategy.attempt(
                    self._client,
                    timeout=self.settings.auth_timeout_s,
                    clock=self._clock,
                )
            except AuthAttemptError as exc:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.warning("Auth %s failed in %.0fms: %s", strategy.label, elapsed_ms, exc.reason)
                failures.append((strategy.variant.value, exc.reason))
                continue
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info("Auth %s succeeded in %.0fms", strategy.label, elapsed_ms)
            return credential
        raise AuthenticationError(failures)

    async def test_authentication(self) -> dict[str, object]:
        try:
            await self.get_token()
        except AuthenticationError as exc:
            return {"success": False, "error": str(exc)}
        variant = self.active_variant
        return {"success": True, "variant": variant.value if variant else None}
