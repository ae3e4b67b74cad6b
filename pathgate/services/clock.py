"""Period keys for usage counters."""
from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo

from pathgate.config import Settings

settings = Settings()


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` in UTC; naive values are taken as UTC (SQLite drops tzinfo)."""
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _local(t: datetime, tz: str | None) -> datetime:
    return ensure_utc(t).astimezone(_zone(tz or settings.timezone))


def day_key(t: datetime, tz: str | None = None) -> str:
    """Return the ``YYYY-MM-DD`` key of ``t`` in the canonical timezone."""
    return _local(t, tz).strftime("%Y-%m-%d")


def month_key(t: datetime, tz: str | None = None) -> tuple[int, int]:
    """Return ``(year, month)`` of ``t`` in the canonical timezone."""
    local = _local(t, tz)
    return local.year, local.month


__all__ = ["utcnow", "ensure_utc", "day_key", "month_key"]
