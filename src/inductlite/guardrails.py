"""Resource guardrails for exports, uploads and retention.

Limits are read from environment variables once, at process start, into an
immutable GuardrailConfig that is passed to the export runner and retention
reaper. Invalid or missing values fall back to the documented defaults
rather than failing startup.

Environment Variables (default):
    MAX_EXPORT_ROWS (50000)
    MAX_EXPORT_BYTES (104857600)
    MAX_EXPORT_ATTEMPTS (3)
    MAX_EXPORT_RUNTIME_SECONDS (120)
    MAX_CONCURRENT_EXPORTS_GLOBAL (1)
    MAX_CONCURRENT_EXPORTS_PER_COMPANY (1)
    EXPORT_OFFPEAK_ONLY (false)
    EXPORTS_RETENTION_DAYS (30)
    AUDIT_RETENTION_DAYS (90)
    EXPORT_STALE_TIMEOUT_SECONDS (2 x MAX_EXPORT_RUNTIME_SECONDS)
"""

import math
import os
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict

DEFAULT_EXPORT_TIMEZONE = "Pacific/Auckland"

# Off-peak window in local hours; wraps midnight.
OFFPEAK_START_HOUR = 20
OFFPEAK_END_HOUR = 6


class BudgetTier(str, Enum):
    MVP = "MVP"
    EARLY = "EARLY"
    GROWTH = "GROWTH"


def to_int(raw: Optional[str], fallback: int) -> int:
    """Parse a positive integer, flooring decimals.

    Example:
        >>> to_int("42", 7)
        42
        >>> to_int("0", 7)
        7
        >>> to_int("abc", 7)
        7
    """
    if raw is None:
        return fallback
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(value) or value <= 0:
        return fallback
    return math.floor(value)


def to_bool(raw: Optional[str], fallback: bool) -> bool:
    """Only "true" and "1" are true; unset uses the fallback."""
    if raw is None:
        return fallback
    return raw == "true" or raw == "1"


def to_tier(raw: Optional[str]) -> BudgetTier:
    try:
        return BudgetTier(raw)
    except ValueError:
        return BudgetTier.MVP


def to_list(raw: Optional[str], fallback: str) -> Tuple[str, ...]:
    value = fallback if raw is None else raw
    return tuple(item.strip().lower() for item in value.split(",") if item.strip())


class GuardrailConfig(BaseModel):
    """Immutable set of operational limits."""

    model_config = ConfigDict(frozen=True)

    ENV_BUDGET_TIER: BudgetTier = BudgetTier.MVP

    MAX_EXPORT_ROWS: int = 50000
    MAX_EXPORT_BYTES: int = 104857600
    MAX_EXPORT_ATTEMPTS: int = 3
    MAX_EXPORT_RUNTIME_SECONDS: int = 120
    MAX_CONCURRENT_EXPORTS_GLOBAL: int = 1
    MAX_CONCURRENT_EXPORTS_PER_COMPANY: int = 1
    EXPORT_OFFPEAK_ONLY: bool = False
    EXPORT_STALE_TIMEOUT_SECONDS: Optional[int] = None
    MAX_EXPORTS_PER_COMPANY_PER_DAY: int = 5
    MAX_EXPORT_BYTES_GLOBAL_PER_DAY: int = 2147483648

    EXPORTS_RETENTION_DAYS: int = 30
    AUDIT_RETENTION_DAYS: int = 90
    FILES_RETENTION_DAYS: int = 90
    LOG_RETENTION_DAYS: int = 14

    MAX_UPLOAD_MB: int = 5
    UPLOAD_ALLOWED_MIME: Tuple[str, ...] = ("application/pdf", "image/jpeg", "image/png")
    UPLOAD_ALLOWED_EXTENSIONS: Tuple[str, ...] = ("pdf", "jpg", "jpeg", "png")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "GuardrailConfig":
        """Resolve every guardrail from the environment (os.environ by default)."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def num(name: str) -> int:
            return to_int(env.get(name), getattr(defaults, name))

        stale_raw = env.get("EXPORT_STALE_TIMEOUT_SECONDS")
        return cls(
            ENV_BUDGET_TIER=to_tier(env.get("ENV_BUDGET_TIER")),
            MAX_EXPORT_ROWS=num("MAX_EXPORT_ROWS"),
            MAX_EXPORT_BYTES=num("MAX_EXPORT_BYTES"),
            MAX_EXPORT_ATTEMPTS=num("MAX_EXPORT_ATTEMPTS"),
            MAX_EXPORT_RUNTIME_SECONDS=num("MAX_EXPORT_RUNTIME_SECONDS"),
            MAX_CONCURRENT_EXPORTS_GLOBAL=num("MAX_CONCURRENT_EXPORTS_GLOBAL"),
            MAX_CONCURRENT_EXPORTS_PER_COMPANY=num("MAX_CONCURRENT_EXPORTS_PER_COMPANY"),
            EXPORT_OFFPEAK_ONLY=to_bool(env.get("EXPORT_OFFPEAK_ONLY"), defaults.EXPORT_OFFPEAK_ONLY),
            EXPORT_STALE_TIMEOUT_SECONDS=to_int(stale_raw, 0) or None,
            MAX_EXPORTS_PER_COMPANY_PER_DAY=num("MAX_EXPORTS_PER_COMPANY_PER_DAY"),
            MAX_EXPORT_BYTES_GLOBAL_PER_DAY=num("MAX_EXPORT_BYTES_GLOBAL_PER_DAY"),
            EXPORTS_RETENTION_DAYS=num("EXPORTS_RETENTION_DAYS"),
            AUDIT_RETENTION_DAYS=num("AUDIT_RETENTION_DAYS"),
            FILES_RETENTION_DAYS=num("FILES_RETENTION_DAYS"),
            LOG_RETENTION_DAYS=num("LOG_RETENTION_DAYS"),
            MAX_UPLOAD_MB=num("MAX_UPLOAD_MB"),
            UPLOAD_ALLOWED_MIME=to_list(
                env.get("UPLOAD_ALLOWED_MIME"), ",".join(defaults.UPLOAD_ALLOWED_MIME)
            ),
            UPLOAD_ALLOWED_EXTENSIONS=to_list(
                env.get("UPLOAD_ALLOWED_EXTENSIONS"), ",".join(defaults.UPLOAD_ALLOWED_EXTENSIONS)
            ),
        )

    @property
    def stale_timeout_seconds(self) -> int:
        """Age after which a RUNNING job is presumed abandoned."""
        return self.EXPORT_STALE_TIMEOUT_SECONDS or self.MAX_EXPORT_RUNTIME_SECONDS * 2


def is_allowed_mime_type(config: GuardrailConfig, mime_type: str) -> bool:
    """Case-insensitive check against UPLOAD_ALLOWED_MIME.

    Example:
        >>> is_allowed_mime_type(GuardrailConfig(), " Application/PDF ")
        True
    """
    return mime_type.strip().lower() in config.UPLOAD_ALLOWED_MIME


def is_off_peak_now(
    now: Optional[datetime] = None,
    time_zone: str = DEFAULT_EXPORT_TIMEZONE,
) -> bool:
    """True between 20:00 and 05:59 local time in time_zone.

    Naive datetimes are treated as UTC.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    hour = now.astimezone(ZoneInfo(time_zone)).hour
    return hour >= OFFPEAK_START_HOUR or hour < OFFPEAK_END_HOUR


def get_export_expiry_date(config: GuardrailConfig, now: Optional[datetime] = None) -> datetime:
    if now is None:
        now = datetime.now(timezone.utc)
    return now + timedelta(days=config.EXPORTS_RETENTION_DAYS)
