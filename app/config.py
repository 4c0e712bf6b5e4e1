"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


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
class IndexingAPISettings:
    """
    Endpoints and credentials for the external indexing API.
    """

    service_account_path: str = "secure/service-account.json"
    token_url: str = "https://oauth2.googleapis.com/token"
    publish_url: str = "https://indexing.googleapis.com/v3/urlNotifications:publish"
    metadata_url: str = "https://indexing.googleapis.com/v3/urlNotifications/metadata"
    scope: str = "https://www.googleapis.com/auth/indexing"
    site_url: str = "https://www.backbonejobs.xyz"
    item_url_template: str = "{site_url}/job-details.php?id={item_id}"
    timeout_seconds: float = 15.0


@dataclass(frozen=True)
class IndexingSyncSettings:
    """
    Decision policy and per-run bounds for the indexing sync.
    """

    cooldown_hours: float = 6.0
    content_change_window_hours: float = 1.0
    remove_dedup_hours: float = 24.0
    new_item_lookback_days: int = 7
    updated_item_lookback_hours: float = 24.0
    retry_window_hours: float = 48.0
    retry_max_tries: int = 3
    new_items_limit: int = 50
    updated_items_limit: int = 30
    orphaned_items_limit: int = 20
    retry_items_limit: int = 10
    inter_request_delay_seconds: float = 0.1
    run_deadline_seconds: float = 300.0
    lease_ttl_seconds: int = 900
    run_log_dir: str = "logs"
    run_log_retention_days: int = 30
    attempt_log_retention_days: int | None = None
    cron_secret: str | None = None


@dataclass(frozen=True)
class IndexingSchedulerSettings:
    """
    In-process scheduler settings for the hourly sync job.
    """

    enabled: bool = True
    cron_minute: str = "0"
    cron_hour: str = "*"
    misfire_grace_seconds: int = 900


@lru_cache(maxsize=1)
def get_indexing_api_settings() -> IndexingAPISettings:
    """
    Return cached indexing API settings from environment variables.
    """

    return IndexingAPISettings(
        service_account_path=_get_str_env(
            "INDEXING_SERVICE_ACCOUNT_PATH", "secure/service-account.json"
        ),
        token_url=_get_str_env("INDEXING_TOKEN_URL", "https://oauth2.googleapis.com/token"),
        publish_url=_get_str_env(
            "INDEXING_PUBLISH_URL",
            "https://indexing.googleapis.com/v3/urlNotifications:publish",
        ),
        metadata_url=_get_str_env(
            "INDEXING_METADATA_URL",
            "https://indexing.googleapis.com/v3/urlNotifications/metadata",
        ),
        scope=_get_str_env("INDEXING_SCOPE", "https://www.googleapis.com/auth/indexing"),
        site_url=_get_str_env("INDEXING_SITE_URL", "https://www.backbonejobs.xyz").rstrip("/"),
        item_url_template=_get_str_env(
            "INDEXING_ITEM_URL_TEMPLATE", "{site_url}/job-details.php?id={item_id}"
        ),
        timeout_seconds=max(1.0, _get_float_env("INDEXING_HTTP_TIMEOUT_SECONDS", 15.0)),
    )


@lru_cache(maxsize=1)
def get_indexing_sync_settings() -> IndexingSyncSettings:
    """
    Return cached sync policy settings from environment variables.
    """

    retention_raw = _get_int_env("INDEXING_ATTEMPT_LOG_RETENTION_DAYS", 0)
    return IndexingSyncSettings(
        cooldown_hours=max(0.0, _get_float_env("INDEXING_COOLDOWN_HOURS", 6.0)),
        content_change_window_hours=max(
            0.0, _get_float_env("INDEXING_CONTENT_CHANGE_WINDOW_HOURS", 1.0)
        ),
        remove_dedup_hours=max(0.0, _get_float_env("INDEXING_REMOVE_DEDUP_HOURS", 24.0)),
        new_item_lookback_days=max(1, _get_int_env("INDEXING_NEW_ITEM_LOOKBACK_DAYS", 7)),
        updated_item_lookback_hours=max(
            1.0, _get_float_env("INDEXING_UPDATED_ITEM_LOOKBACK_HOURS", 24.0)
        ),
        retry_window_hours=max(1.0, _get_float_env("INDEXING_RETRY_WINDOW_HOURS", 48.0)),
        retry_max_tries=max(1, _get_int_env("INDEXING_RETRY_MAX_TRIES", 3)),
        new_items_limit=max(0, _get_int_env("INDEXING_NEW_ITEMS_LIMIT", 50)),
        updated_items_limit=max(0, _get_int_env("INDEXING_UPDATED_ITEMS_LIMIT", 30)),
        orphaned_items_limit=max(0, _get_int_env("INDEXING_ORPHANED_ITEMS_LIMIT", 20)),
        retry_items_limit=max(0, _get_int_env("INDEXING_RETRY_ITEMS_LIMIT", 10)),
        inter_request_delay_seconds=max(
            0.0, _get_float_env("INDEXING_INTER_REQUEST_DELAY_SECONDS", 0.1)
        ),
        run_deadline_seconds=max(1.0, _get_float_env("INDEXING_RUN_DEADLINE_SECONDS", 300.0)),
        lease_ttl_seconds=max(60, _get_int_env("INDEXING_LEASE_TTL_SECONDS", 900)),
        run_log_dir=_get_str_env("INDEXING_RUN_LOG_DIR", "logs"),
        run_log_retention_days=max(1, _get_int_env("INDEXING_RUN_LOG_RETENTION_DAYS", 30)),
        attempt_log_retention_days=retention_raw if retention_raw > 0 else None,
        cron_secret=_get_optional_str_env("INDEXING_CRON_SECRET"),
    )


@lru_cache(maxsize=1)
def get_indexing_scheduler_settings() -> IndexingSchedulerSettings:
    """
    Return cached scheduler settings from environment variables.
    """

    return IndexingSchedulerSettings(
        enabled=_get_bool_env("INDEXING_SCHEDULER_ENABLED", True),
        cron_minute=_get_str_env("INDEXING_SCHEDULER_CRON_MINUTE", "0"),
        cron_hour=_get_str_env("INDEXING_SCHEDULER_CRON_HOUR", "*"),
        misfire_grace_seconds=max(60, _get_int_env("INDEXING_SCHEDULER_MISFIRE_GRACE_SECONDS", 900)),
    )
