import re
import warnings
from datetime import datetime, timezone
from typing import Optional

from dateutil import parser as dateparser

# "Mon, 06 May 2024 14:30:00 +0000 UTC", "2024-05-06T14:30:00Z Etc/GMT" and similar stray zone names
_TRAILING_ZONE_RE = re.compile(r"\s+[A-Za-z_/]{1,32}$")

# Abbreviations dateutil does not resolve on its own (offsets in seconds)
TZINFOS = {
    "EST": -5 * 3600,
    "EDT": -4 * 3600,
    "CST": -6 * 3600,
    "CDT": -5 * 3600,
    "MST": -7 * 3600,
    "MDT": -6 * 3600,
    "PST": -8 * 3600,
    "PDT": -7 * 3600,
}


def _parse(raw: str) -> Optional[datetime]:
    try:
        with warnings.catch_warnings():
            # dateutil warns on tz names it does not know and returns a naive value
            warnings.simplefilter("ignore")
            parsed = dateparser.parse(raw, tzinfos=TZINFOS)
    except (ValueError, OverflowError, TypeError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def strip_trailing_zone(raw: str) -> str:
    return _TRAILING_ZONE_RE.sub("", raw)


def normalize_date(raw: Optional[str]) -> Optional[datetime]:
    """Parse a feed date into an aware UTC datetime, or None.

    A stray timezone name at the end of the string is dropped and the parse
    retried once. Never raises.
    """
    if not raw:
        return None
    raw = raw.strip()
    if not raw:
        return None
    parsed = _parse(raw)
    if parsed is not None:
        return parsed
    stripped = strip_trailing_zone(raw)
    if stripped and stripped != raw:
        return _parse(stripped)
    return None


def to_iso(instant: datetime) -> str:
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    instant = instant.astimezone(timezone.utc)
    return instant.strftime("%Y-%m-%dT%H:%M:%S.") + f"{instant.microsecond // 1000:03d}Z"


def to_calendar_date(instant: datetime) -> str:
    return to_iso(instant)[:10]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
