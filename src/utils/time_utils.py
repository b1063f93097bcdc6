import logging
from datetime import datetime

import pytz

logger = logging.getLogger(__name__)


def now_utc() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(pytz.UTC)


def to_iso(dt: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision and a 'Z' suffix.

    Naive datetimes are assumed to already be in UTC.
    """
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    else:
        dt = dt.astimezone(pytz.UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    return to_iso(now_utc())


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 string (accepting a 'Z' suffix) into an aware datetime."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt


def to_epoch_ms(dt: datetime) -> int:
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return int(dt.timestamp() * 1000)


def format_uptime(seconds: float) -> str:
    """Render an uptime as '<h>h <m>m <s>s'."""
    total = int(max(seconds, 0))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}h {minutes}m {secs}s"
