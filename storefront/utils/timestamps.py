# storefront/utils/timestamps.py
from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(raw: Any) -> Optional[datetime]:
    """
    Parse a timestamp as stored in the CSV tables. Accepts datetime objects,
    ISO strings and the plain '%Y-%m-%d %H:%M:%S' form; anything else is None.
    """
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw
    try:
        return datetime.fromisoformat(str(raw))
    except ValueError:
        pass
    try:
        return datetime.strptime(str(raw), "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None


def format_datetime(value: Optional[datetime]) -> str:
    if not isinstance(value, datetime):
        return ""
    return value.isoformat(sep=" ", timespec="microseconds")
