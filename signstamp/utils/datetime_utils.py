"""
Timezone-aware datetime helpers.

Audit timestamps are always UTC and always timezone-aware.
"""
from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Current UTC time (aware). Use instead of datetime.utcnow()."""
    return datetime.now(timezone.utc)


def epoch_millis(dt: datetime) -> int:
    """Milliseconds since the Unix epoch, used in output file names."""
    return int(dt.timestamp() * 1000)


def parse_db_timestamp(value: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """
    Parse a timestamp read back from the audit store as aware UTC.

    Accepts ISO strings with a ``Z`` suffix or an explicit offset, naive
    datetimes (taken as UTC) and aware datetimes. Returns None for empty or
    unparseable input.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value:
        # PostgreSQL/Supabase return "...Z"; fromisoformat wants an offset
        try:
            dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
