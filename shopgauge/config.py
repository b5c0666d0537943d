"""
shopgauge/config.py

Environment-driven configuration for the ShopGauge client.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def load_env_files() -> None:
    """
    Load simple KEY=VALUE pairs from `.env` and `.env.local` (if present).
    Existing process environment variables are not overwritten.
    """

    project_root = Path(__file__).resolve().parents[1]
    for filename in (".env", ".env.local"):
        env_path = project_root / filename
        if not env_path.exists():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and key not in os.environ:
                os.environ[key] = value


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class ApiSettings:
    """
    Location of the ShopGauge REST API and shared HTTP behaviour.
    """

    base_url: str = "http://localhost:8080"
    api_prefix: str = "/api"
    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class RetrySettings:
    """
    Exponential backoff applied to rate-limited dashboard fetches.
    """

    max_retries: int = 3
    backoff_initial_seconds: float = 1.0
    backoff_multiplier: float = 2.0


@dataclass(frozen=True)
class CacheSettings:
    """
    Dashboard cache lifetime. Matches the server-side cache TTL.
    """

    ttl_seconds: float = 7200.0
    warning_seconds: float = 6000.0
    version: str = "2.1.0"


@dataclass(frozen=True)
class DiscoverySettings:
    """
    Client-side limits for the competitor discovery trigger.
    """

    max_attempts: int = 3
    cooldown_seconds: float = 300.0
    refresh_delay_seconds: float = 30.0
    suggestion_count_debounce_seconds: float = 30.0


@dataclass(frozen=True)
class SessionSettings:
    """
    Session heartbeat and session-limit caching.
    """

    heartbeat_interval_seconds: float = 60.0
    heartbeat_max_retries: int = 3
    heartbeat_retry_delay_seconds: float = 5.0
    limit_cache_seconds: float = 300.0
    idle_timeout_seconds: float = 1800.0


@dataclass(frozen=True)
class ServiceStatusSettings:
    """
    Health-check debounce for the service status monitor.
    """

    min_interval_seconds: float = 2.0


@dataclass(frozen=True)
class AppSettings:
    """
    Top-level client behaviour.
    """

    demo_fallback: bool = True
    log_level: str = "INFO"
    refresh_debounce_seconds: float = 2.0
    prediction_days: int = 60


@lru_cache(maxsize=1)
def get_api_settings() -> ApiSettings:
    """
    Return cached API location settings from environment variables.
    """

    return ApiSettings(
        base_url=_get_str_env("SHOPGAUGE_API_BASE_URL", "http://localhost:8080").rstrip("/"),
        api_prefix="/" + _get_str_env("SHOPGAUGE_API_PREFIX", "/api").strip("/"),
        timeout_seconds=max(1.0, _get_float_env("SHOPGAUGE_HTTP_TIMEOUT_SECONDS", 15.0)),
    )


@lru_cache(maxsize=1)
def get_retry_settings() -> RetrySettings:
    """
    Return cached backoff settings from environment variables.
    """

    return RetrySettings(
        max_retries=max(0, _get_int_env("SHOPGAUGE_RETRY_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(
            0.0, _get_float_env("SHOPGAUGE_RETRY_BACKOFF_INITIAL_SECONDS", 1.0)
        ),
        backoff_multiplier=max(1.0, _get_float_env("SHOPGAUGE_RETRY_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_cache_settings() -> CacheSettings:
    """
    Return cached dashboard cache settings from environment variables.
    """

    ttl_seconds = max(1.0, _get_float_env("SHOPGAUGE_CACHE_TTL_SECONDS", 7200.0))
    warning_seconds = max(0.0, _get_float_env("SHOPGAUGE_CACHE_WARNING_SECONDS", 6000.0))
    return CacheSettings(
        ttl_seconds=ttl_seconds,
        warning_seconds=min(warning_seconds, ttl_seconds),
        version=_get_str_env("SHOPGAUGE_CACHE_VERSION", "2.1.0"),
    )


@lru_cache(maxsize=1)
def get_discovery_settings() -> DiscoverySettings:
    """
    Return cached discovery trigger settings from environment variables.
    """

    return DiscoverySettings(
        max_attempts=max(1, _get_int_env("SHOPGAUGE_DISCOVERY_MAX_ATTEMPTS", 3)),
        cooldown_seconds=max(0.0, _get_float_env("SHOPGAUGE_DISCOVERY_COOLDOWN_SECONDS", 300.0)),
        refresh_delay_seconds=max(
            0.0, _get_float_env("SHOPGAUGE_DISCOVERY_REFRESH_DELAY_SECONDS", 30.0)
        ),
        suggestion_count_debounce_seconds=max(
            0.0, _get_float_env("SHOPGAUGE_SUGGESTION_COUNT_DEBOUNCE_SECONDS", 30.0)
        ),
    )


@lru_cache(maxsize=1)
def get_session_settings() -> SessionSettings:
    """
    Return cached session heartbeat settings from environment variables.
    """

    return SessionSettings(
        heartbeat_interval_seconds=max(
            1.0, _get_float_env("SHOPGAUGE_HEARTBEAT_INTERVAL_SECONDS", 60.0)
        ),
        heartbeat_max_retries=max(1, _get_int_env("SHOPGAUGE_HEARTBEAT_MAX_RETRIES", 3)),
        heartbeat_retry_delay_seconds=max(
            0.0, _get_float_env("SHOPGAUGE_HEARTBEAT_RETRY_DELAY_SECONDS", 5.0)
        ),
        limit_cache_seconds=max(0.0, _get_float_env("SHOPGAUGE_SESSION_LIMIT_CACHE_SECONDS", 300.0)),
        idle_timeout_seconds=max(
            60.0, _get_float_env("SHOPGAUGE_SESSION_IDLE_TIMEOUT_SECONDS", 1800.0)
        ),
    )


@lru_cache(maxsize=1)
def get_service_status_settings() -> ServiceStatusSettings:
    """
    Return cached health-check settings from environment variables.
    """

    return ServiceStatusSettings(
        min_interval_seconds=max(0.0, _get_float_env("SHOPGAUGE_HEALTH_MIN_INTERVAL_SECONDS", 2.0)),
    )


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Return cached application settings.
    """

    return AppSettings(
        demo_fallback=_get_bool_env("SHOPGAUGE_DEMO_FALLBACK", True),
        log_level=_get_str_env("LOG_LEVEL", "INFO").upper(),
        refresh_debounce_seconds=max(
            0.0, _get_float_env("SHOPGAUGE_REFRESH_DEBOUNCE_SECONDS", 2.0)
        ),
        prediction_days=min(60, max(0, _get_int_env("SHOPGAUGE_PREDICTION_DAYS", 60))),
    )
