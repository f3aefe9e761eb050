"""Time utilities in the canteen's local time zone."""

import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from canteen_pos.config import settings

logger = logging.getLogger(__name__)


def load_zone(name: str) -> tzinfo:
    """Resolve an IANA zone name, falling back to the system zone."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        # tzdata missing or unknown key
        logger.warning(f"Time zone {name!r} unavailable, using system local time")
        return datetime.now().astimezone().tzinfo


LOCAL_TZ = load_zone(settings.timezone)


def now_local() -> datetime:
    """Return timezone-aware datetime in the canteen time zone."""
    return datetime.now(LOCAL_TZ)


def epoch_millis() -> int:
    """Current time as integer milliseconds, the format walk-in rows use."""
    return int(now_local().timestamp() * 1000)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp coming from the backend or from a local row.

    Accepts datetimes, ISO-8601 strings (with or without a trailing "Z")
    and epoch milliseconds. Aware values are converted to naive local time.
    Returns None for empty input or values that cannot be parsed.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(LOCAL_TZ).replace(tzinfo=None)
    return parsed


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None
