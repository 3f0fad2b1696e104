"""Centralized application settings.

A single place to load runtime configuration values for the dispatch engine.
Components receive the values they need through their constructors; only the
bootstrap container and scripts call :func:`get_settings` directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional

import pytz
from dotenv import load_dotenv

from . import constants as dispatch_constants


def _to_bool(value: Optional[str], default: bool = False) -> bool:
    """Normalize environment strings such as "true"/"1" into booleans."""

    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _to_positive_int(value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    parsed = int(value)
    if parsed < 1:
        raise ValueError(f"Expected a positive integer, received {value!r}")
    return parsed


@dataclass(frozen=True)
class AppSettings:
    """Immutable snapshot of high-level configuration values."""

    production_mode: bool
    timezone: str
    documents_file: str
    match_enrichment_concurrency: int
    notify_fanout_concurrency: int
    notify_cleanup_attempts: int
    operation_timeout_seconds: float
    default_deep_link: str

    @property
    def tzinfo(self):
        """Return the pytz zone bookings are scheduled in."""

        return pytz.timezone(self.timezone)


def load_settings(env: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Load configuration from the environment and fall back to defaults."""

    if env is None:
        load_dotenv(override=False)
        env = os.environ

    production_mode = _to_bool(env.get("PRODUCTION_MODE", "false"), default=False)

    timezone = env.get("DISPATCH_TIMEZONE", dispatch_constants.DEFAULT_TIMEZONE)
    # Fail fast on a typo rather than when the first booking is localised.
    pytz.timezone(timezone)

    documents_file = env.get("DOCUMENTS_FILE", dispatch_constants.DOCUMENTS_FILE)

    match_enrichment_concurrency = _to_positive_int(
        env.get("MATCH_ENRICHMENT_CONCURRENCY"),
        dispatch_constants.MATCH_ENRICHMENT_CONCURRENCY,
    )
    notify_fanout_concurrency = _to_positive_int(
        env.get("NOTIFY_FANOUT_CONCURRENCY"),
        dispatch_constants.NOTIFY_FANOUT_CONCURRENCY,
    )
    notify_cleanup_attempts = _to_positive_int(
        env.get("NOTIFY_CLEANUP_ATTEMPTS"),
        dispatch_constants.NOTIFY_CLEANUP_ATTEMPTS,
    )
    operation_timeout_seconds = float(
        env.get("OPERATION_TIMEOUT_SECONDS", dispatch_constants.OPERATION_TIMEOUT_SECONDS)
    )
    default_deep_link = env.get("DEFAULT_DEEP_LINK", dispatch_constants.DEFAULT_DEEP_LINK)

    return AppSettings(
        production_mode=production_mode,
        timezone=timezone,
        documents_file=documents_file,
        match_enrichment_concurrency=match_enrichment_concurrency,
        notify_fanout_concurrency=notify_fanout_concurrency,
        notify_cleanup_attempts=notify_cleanup_attempts,
        operation_timeout_seconds=operation_timeout_seconds,
        default_deep_link=default_deep_link,
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached :class:`AppSettings` instance."""

    return load_settings()
