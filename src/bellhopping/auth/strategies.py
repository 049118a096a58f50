"""Sabre token protocol variants.

Sabre exposes several mutually incompatible token endpoints whose availability
depends on how the client id was provisioned. Each variant is a self-contained
strategy: it builds its own request, performs one POST and either returns a
:class:`Credential` or raises :class:`AuthAttemptError`.
"""
from __future__ import annotations

import base64
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from bellhopping.config.settings import Settings
from bellhopping.core.cache import CacheTTL

logger = logging.getLogger(__name__)

FORM_HEADERS = {"Content-Type": "application/x-www-form-urlencoded"}


class AuthVariant(str, Enum):
    EPR = "epr"
    PASSWORD = "password"
    LEGACY = "legacy"


@dataclass(frozen=True)
class Credential:
    token: str
    expires_at: float
    variant: AuthVariant

    def is_valid(self, now: float, buffer_s: float) -> bool:
        return now < self.expires_at - buffer_s


class AuthAttemptError(RuntimeError):
    """Raised when a single auth variant fails."""

    def __init__(self, variant: AuthVariant, reason: str, *, status: Optional[int] = None) -> None:
        super().__init__(f"{variant.value} auth failed: {reason}")
        self.variant = variant
        self.reason = reason
        self.status = status


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


def epr_username(settings: Settings) -> str:
    return f"V1:{settings.epr_user}:{settings.epr_pcc}:{settings.epr_domain}"


class AuthStrategy:
    """Base class; subclasses provide ``variant``, ``path`` and ``build_request``."""

    variant: AuthVariant
    path: str
    label: str

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def missing_settings(self) -> List[str]:
        return []

    def build_request(self) -> tuple[Dict[str, str], Dict[str, str]]:
        raise NotImplementedError

    async def attempt(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float,
        clock: Callable[[], float] = time.time,
    ) -> Credential:
        missing = self.missing_settings()
        if missing:
            raise AuthAttemptError(self.variant, f"missing configuration: {', '.join(missing)}")

        headers, form = self.build_request()
        url = f"{self.settings.base_url.rstrip('/')}{self.path}"
        try:
            response = await client.post(url, data=form, headers=headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise AuthAttemptError(self.variant, f"timed out after {timeout:.1f}s") from exc
        except httpx.HTTPError as exc:
            raise AuthAttemptError(self.variant, f"transport error: {exc}") from exc

        if not response.is_success:
            raise AuthAttemptError(
                self.variant,
                f"HTTP {response.status_code}: {response.text[:200]}",
                status=response.status_code,
            )
        return self._parse_token(response, clock())

    def _parse_token(self, response: httpx.Response, now: float) -> Credential:
        try:
            data: Any = response.json()
        except ValueError as exc:
            raise AuthAttemptError(self.variant, "token response is not JSON") from exc
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthAttemptError(self.variant, "token response has no access_token")
        try:
            lifetime_s = float(data.get("expires_in"))
        except (TypeError, ValueError):
            lifetime_s = CacheTTL.AUTH_TOKEN / 1000.0
        return Credential(token=str(token), expires_at=now + lifetime_s, variant=self.variant)


class EprClientCredentialsStrategy(AuthStrategy):
    """V2 token: double-encoded EPR credentials with a client_credentials grant."""

    variant = AuthVariant.EPR
    path = "/v2/auth/token"
    label = "V2 EPR"

    def missing_settings(self) -> List[str]:
        return [] if self.settings.password else ["password"]

    def build_request(self) -> tuple[Dict[str, str], Dict[str, str]]:
        encoded_user = _b64(epr_username(self.settings))
        encoded_pass = _b64(self.settings.password or "")
        headers = {**FORM_HEADERS, "Authorization": f"Basic {_b64(f'{encoded_user}:{encoded_pass}')}"}
        return headers, {"grant_type": "client_credentials"}


class PasswordGrantStrategy(AuthStrategy):
    """V3 token: client id/secret in Basic auth, EPR user/password in the body."""

    variant = AuthVariant.PASSWORD
    path = "/v3/auth/token"
    label = "V3 password grant"

    def missing_settings(self) -> List[str]:
        required = {
            "client_id": self.settings.client_id,
            "client_secret": self.settings.client_secret,
            "password": self.settings.password,
        }
        return [name for name, value in required.items() if not value]

    def build_request(self) -> tuple[Dict[str, str], Dict[str, str]]:
        client_auth = _b64(f"{self.settings.client_id}:{self.settings.client_secret}")
        headers = {**FORM_HEADERS, "Authorization": f"Basic {client_auth}"}
        form = {
            "grant_type": "password",
            "username": epr_username(self.settings),
            "password": self.settings.password or "",
        }
        return headers, form


class LegacySessionStrategy(AuthStrategy):
    """V1 token: every credential in the form body."""

    variant = AuthVariant.LEGACY
    path = "/v1/auth/token"
    label = "V1 legacy session"

    def missing_settings(self) -> List[str]:
        required = {
            "client_id": self.settings.client_id,
            "secret": self.settings.active_secret(),
            "username": self.settings.username,
            "password": self.settings.password,
        }
        return [name for name, value in required.items() if not value]

    def build_request(self) -> tuple[Dict[str, str], Dict[str, str]]:
        form = {
            "client_id": self.settings.client_id or "",
            "client_secret": self.settings.active_secret() or "",
            "grant_type": "password",
            "username": self.settings.username or "",
            "password": self.settings.password or "",
        }
        return dict(FORM_HEADERS), form


STRATEGY_TYPES: Dict[AuthVariant, type[AuthStrategy]] = {
    AuthVariant.EPR: EprClientCredentialsStrategy,
    AuthVariant.PASSWORD: PasswordGrantStrategy,
    AuthVariant.LEGACY: LegacySessionStrategy,
}


def build_strategies(settings: Settings, order: Optional[Sequence[str]] = None) -> List[AuthStrategy]:
    """Instantiate the configured variants in priority order."""
    names = order if order is not None else settings.auth_methods
    return [STRATEGY_TYPES[AuthVariant(name)](settings) for name in names]
