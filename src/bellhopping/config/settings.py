"""Runtime configuration for the Sabre search core.

Relies on pydantic-settings so that environment variables (prefixed with ``SABRE_``)
can override defaults. See `.env.example` for common values.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

KNOWN_AUTH_METHODS: tuple[str, ...] = ("epr", "password", "legacy")


def _split_csv(value: object, field_name: str) -> Tuple[str, ...]:
    if value is None or value == "":
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(item).strip() for item in value if str(item).strip())
    if isinstance(value, str):
        parts: Iterable[str] = (part.strip() for part in value.split(","))
        return tuple(part for part in parts if part)
    raise TypeError(f"{field_name} must be provided as a comma-separated string or list")


class Settings(BaseSettings):
    """Captures runtime configuration for auth, search, probing and storage."""

    base_url: str = Field(
        default="https://api.sabre.com",
        description="Sabre REST base URL used for auth, search and availability calls",
    )
    environment: str = Field(default="cert", description="Target environment: 'cert' or 'prod'")
    client_id: Optional[str] = Field(default=None, description="Sabre client id")
    client_secret: Optional[str] = Field(default=None, description="Sabre client secret (password grant)")
    username: Optional[str] = Field(default=None, description="Legacy session username")
    password: Optional[str] = Field(default=None, description="Shared account password")
    epr_user: str = Field(default="250463", description="EPR user id")
    epr_pcc: str = Field(default="52JL", description="Pseudo city code")
    epr_domain: str = Field(default="AA", description="EPR domain")
    cert_secret: Optional[str] = None
    prod_secret: Optional[str] = None

    auth_methods: Tuple[str, ...] = Field(
        default=KNOWN_AUTH_METHODS,
        description="Auth protocol variants to try, in priority order; comma-separated when provided via env",
    )
    auth_timeout_s: float = Field(default=5.0, description="Deadline for a single auth attempt")
    token_expiry_buffer_s: float = Field(
        default=300.0, description="Refresh the cached token this many seconds before it expires"
    )

    search_timeout_s: float = Field(default=10.0, description="Deadline for a hotel search call")
    search_api_version: str = Field(default="5.1.0")
    search_currency: str = Field(default="USD")
    default_radius_miles: float = Field(default=20.0)
    default_rooms: int = Field(default=1)
    default_adults: int = Field(default=2)
    fallback_ref_point: str = Field(
        default="ORD", description="Airport code used when a query carries no usable location"
    )

    search_cache_ttl_s: float = Field(default=600.0, description="Search result cache lifetime")
    hotel_cache_ttl_s: float = Field(default=3600.0, description="Hotel detail cache lifetime")
    cache_sweep_interval_s: float = Field(default=300.0, description="Background eviction interval")

    probe_timeout_s: float = Field(default=10.0)
    probe_delay_ms: int = Field(default=1000, description="Pause between sequential probes")
    probe_days_in_future: int = Field(default=45)
    probe_night_count: int = Field(default=2)

    reverify_max_failures: int = Field(
        default=3, description="Consecutive probe failures before a hotel leaves the registry"
    )
    reverify_delay_ms: int = Field(default=1500)
    failure_history_path: Path = Field(default=Path("data/luxury/verification-failures.json"))
    luxury_registry_path: Optional[Path] = Field(
        default=None, description="Optional JSON registry maintained by the discovery tooling"
    )

    search_log_enabled: bool = Field(default=False, description="Persist searches to SQLite")
    search_log_path: Path = Field(default=Path("data/storage/search_log.sqlite3"))

    log_level: str = Field(default="INFO")
    log_dir: Path = Field(default=Path("data/logs"))

    model_config = SettingsConfigDict(
        env_prefix="SABRE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    @field_validator("environment")
    def _validate_environment(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"cert", "prod"}:
            raise ValueError("environment must be 'cert' or 'prod'")
        return normalized

    @field_validator("auth_methods", mode="before")
    def _parse_auth_methods(cls, value: object) -> Tuple[str, ...]:
        methods = tuple(method.lower() for method in _split_csv(value, "auth_methods"))
        unknown = [method for method in methods if method not in KNOWN_AUTH_METHODS]
        if unknown:
            raise ValueError(f"Unknown auth methods: {', '.join(unknown)}")
        return methods

    @field_validator("failure_history_path", "search_log_path", "log_dir", mode="before")
    def _expand_path(cls, value: str | Path) -> Path:
        if isinstance(value, Path):
            return value
        return Path(value).expanduser()

    @field_validator("luxury_registry_path", mode="before")
    def _expand_registry_path(cls, value: str | Path | None) -> Optional[Path]:
        if value in (None, ""):
            return None
        return Path(value).expanduser()

    @field_validator("reverify_max_failures", "default_rooms", "default_adults", "probe_night_count")
    def _validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("value must be positive")
        return value

    def active_secret(self) -> Optional[str]:
        return self.cert_secret if self.environment == "cert" else self.prod_secret

    def ensure_directories(self) -> None:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.failure_history_path.parent.mkdir(parents=True, exist_ok=True)
        if self.search_log_enabled:
            self.search_log_path.parent.mkdir(parents=True, exist_ok=True)
        if self.luxury_registry_path is not None:
            self.luxury_registry_path.parent.mkdir(parents=True, exist_ok=True)
