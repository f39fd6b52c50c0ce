"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files

_ALLOWED_PACING_STRATEGIES = {"fixed", "min_interval", "none"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
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


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for external connectors.
    """

    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_initial_seconds: float = 1.0
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 5.0


@dataclass(frozen=True)
class SyncSettings:
    """
    Runtime settings for the fan-out sync orchestrator.

    pacing_seconds is the pause between primary entities; pacing_strategy is
    one of "fixed", "min_interval" or "none".
    """

    pacing_seconds: float = 0.2
    pacing_strategy: str = "fixed"
    principal: str = "default"
    interval_hours: int = 24
    scheduler_enabled: bool = True


@dataclass(frozen=True)
class LogSettings:
    """
    Batched execution log settings.
    """

    retention_days: int = 30
    flush_interval_minutes: int = 5


@dataclass(frozen=True)
class BusinessProfileSettings:
    """
    Business Profile connector settings.
    """

    enabled: bool = True
    access_token: str | None = None
    accounts_url: str = "https://mybusinessaccountmanagement.googleapis.com/v1/accounts"
    locations_base_url: str = "https://mybusinessbusinessinformation.googleapis.com/v1"
    locations_read_mask: str = (
        "name,title,categories,storeCode,regularHours,labels,latlng,"
        "openInfo,metadata,serviceArea,relationshipData"
    )


@dataclass(frozen=True)
class MerchantCenterSettings:
    """
    Merchant Center connector settings.
    """

    enabled: bool = True
    access_token: str | None = None
    base_url: str = "https://merchantapi.googleapis.com"
    developer_email: str | None = None
    products_page_size: int = 50


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared connector HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 30.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 1.0)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("EXTERNAL_HTTP_RATE_LIMIT_PER_SECOND", 5.0)),
    )


@lru_cache(maxsize=1)
def get_sync_settings() -> SyncSettings:
    """
    Return sync orchestration settings from environment variables.

    Raises RuntimeError for an unknown SYNC_PACING_STRATEGY.
    """

    strategy = _get_str_env("SYNC_PACING_STRATEGY", "fixed").lower()
    if strategy not in _ALLOWED_PACING_STRATEGIES:
        raise RuntimeError(
            f"SYNC_PACING_STRATEGY '{strategy}' is not valid. "
            f"Allowed values: {sorted(_ALLOWED_PACING_STRATEGIES)}."
        )

    return SyncSettings(
        pacing_seconds=max(0.0, _get_float_env("SYNC_PACING_SECONDS", 0.2)),
        pacing_strategy=strategy,
        principal=_get_str_env("SYNC_PRINCIPAL", "default"),
        interval_hours=max(1, _get_int_env("SYNC_INTERVAL_HOURS", 24)),
        scheduler_enabled=_get_bool_env("SYNC_SCHEDULER_ENABLED", True),
    )


@lru_cache(maxsize=1)
def get_log_settings() -> LogSettings:
    """
    Return execution log settings from environment variables.
    """

    return LogSettings(
        retention_days=max(1, _get_int_env("LOG_RETENTION_DAYS", 30)),
        flush_interval_minutes=max(1, _get_int_env("LOG_FLUSH_INTERVAL_MINUTES", 5)),
    )


@lru_cache(maxsize=1)
def get_business_profile_settings() -> BusinessProfileSettings:
    """
    Return Business Profile connector settings from environment variables.
    """

    defaults = BusinessProfileSettings()
    return BusinessProfileSettings(
        enabled=_get_bool_env("GBP_ENABLED", True),
        access_token=_get_optional_str_env("GBP_ACCESS_TOKEN"),
        accounts_url=_get_str_env("GBP_ACCOUNTS_URL", defaults.accounts_url),
        locations_base_url=_get_str_env("GBP_LOCATIONS_BASE_URL", defaults.locations_base_url),
        locations_read_mask=_get_str_env("GBP_LOCATIONS_READ_MASK", defaults.locations_read_mask),
    )


@lru_cache(maxsize=1)
def get_merchant_center_settings() -> MerchantCenterSettings:
    """
    Return Merchant Center connector settings from environment variables.
    """

    return MerchantCenterSettings(
        enabled=_get_bool_env("GMC_ENABLED", True),
        access_token=_get_optional_str_env("GMC_ACCESS_TOKEN"),
        base_url=_get_str_env("GMC_BASE_URL", "https://merchantapi.googleapis.com"),
        developer_email=_get_optional_str_env("GMC_DEVELOPER_EMAIL"),
        products_page_size=max(1, _get_int_env("GMC_PRODUCTS_PAGE_SIZE", 50)),
    )
