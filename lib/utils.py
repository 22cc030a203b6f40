# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application: UUID normalization,
# timestamps in the formats PostgREST expects, and money rounding.
# =============================================================================

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Example:
        character_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        character_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


# =============================================================================
# Time Utilities
# =============================================================================

def utc_now() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def today_str() -> str:
    """Current UTC date as YYYY-MM-DD (the daily stats key)."""
    return utc_now().date().isoformat()


def iso_from_timestamp(ts: int | float | None, fallback_days: int | None = None) -> str | None:
    """
    Convert a Unix timestamp (as Stripe sends them) to ISO-8601.

    Args:
        ts: Seconds since epoch, or None
        fallback_days: When ts is None, return now + this many days instead

    Returns:
        ISO string, or None when neither ts nor fallback_days is given
    """
    if ts:
        return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()
    if fallback_days is not None:
        return (utc_now() + timedelta(days=fallback_days)).isoformat()
    return None


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO timestamp from the database, tolerating a trailing Z."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Money Utilities
# =============================================================================

def round_money(amount: float) -> float:
    """Round a dollar amount to cents."""
    return round(float(amount), 2)


def first_row(data: Any) -> dict[str, Any] | None:
    """
    Return the first row of an RPC/PostgREST result.

    Table-returning RPCs come back as a list; scalar ones as a dict.
    """
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None
