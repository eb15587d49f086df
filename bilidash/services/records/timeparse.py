"""
Bilidash Publish-Time Resolution.

Two directions:
  - resolve_publish_time(): raw entry → canonical "YYYY-MM-DD HH:MM:SS" string
    (local time), a pre-formatted fallback text, or the unknown sentinel.
  - parse_publish_time(): canonical / scraped display text → datetime, used by
    the dashboard for recency ranking and the publish-date timeline. Handles
    Bilibili's relative phrasing ("3小时前", "昨天") against an explicit
    reference time so results never depend on the system clock.

All datetimes returned here are naive and expressed in local time.
"""
from __future__ import annotations

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Mapping, Optional

from dateutil import parser as dateparser
from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

UNKNOWN_PUBLISH_TIME = "未知时间"

# Timestamp-bearing fields, highest priority first.
PUBLISH_TIMESTAMP_FIELDS = (
    "publishTime",
    "publishTimestamp",
    "publishTimeMs",
    "publish_time",
    "pubdate",
    "pub_time",
    "pubDate",
    "ctime",
    "createTime",
    "created_at",
    "createdAt",
)

# Pre-formatted display texts used verbatim when no timestamp parses.
PUBLISH_TEXT_FIELDS = (
    "publishTimeFormatted",
    "publishTimeRaw",
    "pubdateText",
    "pub_time_text",
    "time",
)

MILLISECONDS_THRESHOLD = 1e12
# Longer digit runs cannot be an epoch in seconds or milliseconds.
MAX_EPOCH_DIGITS = 16

# Missing calendar components are filled from a fixed date, never from today.
_CALENDAR_DEFAULT = datetime(1970, 1, 1)
_SECOND_DEFAULT = datetime(1971, 2, 2)

_DIGITS = re.compile(r"^[0-9]+$")
_CANONICAL = re.compile(
    r"^(\d{4})-(\d{1,2})-(\d{1,2})\s+(\d{1,2}):(\d{1,2}):(\d{1,2})$"
)
_DATE_ONLY = re.compile(r"(\d{4})[-./年](\d{1,2})[-./月](\d{1,2})")
_RELATIVE = re.compile(r"(\d+)\s*(小时|天|周|月|年|分钟|分|秒)前")
_MONTH_DAY = re.compile(r"^(\d{1,2})[-./](\d{1,2})$")

# Keyword → days before the reference date.
DAY_KEYWORDS = {
    "今天": 0,
    "昨天": 1,
    "昨日": 1,
    "前天": 2,
}
JUST_NOW = "刚刚"


# ── Coercion helpers ─────────────────────────────────────────────────────

def _to_local(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _from_epoch(number: float) -> Optional[datetime]:
    """Seconds or milliseconds since the epoch; > 10^12 means milliseconds."""
    millis = number if number > MILLISECONDS_THRESHOLD else number * 1000
    try:
        return datetime.fromtimestamp(millis / 1000)
    except (OverflowError, OSError, ValueError):
        return None


def _parse_calendar(text: str) -> Optional[datetime]:
    """dateutil parse; strings without a year ("May", "3:45") are rejected."""
    try:
        parsed = dateparser.parse(text, default=_CALENDAR_DEFAULT)
        if parsed.year == _CALENDAR_DEFAULT.year:
            # Year may have come from the default; a second default tells.
            if dateparser.parse(text, default=_SECOND_DEFAULT).year != parsed.year:
                return None
    except (ValueError, OverflowError):
        return None
    return _to_local(parsed)


def coerce_to_datetime(value: Any) -> Optional[datetime]:
    """Interpret one raw field value as a point in time, or return None."""
    if isinstance(value, datetime):
        return _to_local(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        return _from_epoch(value)
    if isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return None
        if _DIGITS.match(trimmed):
            if len(trimmed) > MAX_EPOCH_DIGITS:
                return None
            parsed = _from_epoch(int(trimmed))
            if parsed is not None:
                return parsed
        return _parse_calendar(trimmed)
    return None


def format_date_time(value: datetime) -> str:
    return (
        f"{value.year}-{value.month:02d}-{value.day:02d} "
        f"{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def _first_text(item: Mapping[str, Any], fields) -> Optional[str]:
    for name in fields:
        value = item.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def resolve_publish_time(item: Mapping[str, Any]) -> str:
    """Canonical publish time for one raw entry."""
    for name in PUBLISH_TIMESTAMP_FIELDS:
        value = item.get(name)
        if value is None:
            continue
        parsed = coerce_to_datetime(value)
        if parsed is not None:
            return format_date_time(parsed)

    return _first_text(item, PUBLISH_TEXT_FIELDS) or UNKNOWN_PUBLISH_TIME


# ── Display-text parsing ─────────────────────────────────────────────────

def _midnight(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _shift_back(now: datetime, amount: int, unit: str) -> Optional[datetime]:
    deltas = {
        "小时": timedelta(hours=amount),
        "分钟": timedelta(minutes=amount),
        "分": timedelta(minutes=amount),
        "秒": timedelta(seconds=amount),
        "天": timedelta(days=amount),
        "周": timedelta(weeks=amount),
        "月": relativedelta(months=amount),
        "年": relativedelta(years=amount),
    }
    try:
        return now - deltas[unit]
    except (OverflowError, ValueError):
        return None


def parse_publish_time(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a publish-time display string.

    Accepted forms, tried in order: canonical "YYYY-MM-DD HH:MM:SS"; 10-digit
    second / 13-digit millisecond timestamps; 今天/昨天/昨日/前天; 刚刚;
    dates such as 2024-12-24, 2024/12/24, 2024.12.24, 2024年12月24日;
    "N小时前"-style offsets; "12-24" month/day (most recent past occurrence);
    anything else dateutil understands.

    ``now`` anchors every relative form. Returns None for the unknown
    sentinel and anything unparseable.
    """
    if not text or text == UNKNOWN_PUBLISH_TIME:
        return None
    sanitized = text.strip()
    if not sanitized:
        return None
    if now is None:
        now = datetime.now()

    match = _CANONICAL.match(sanitized)
    if match:
        try:
            return datetime(*(int(part) for part in match.groups()))
        except ValueError:
            pass

    if _DIGITS.match(sanitized):
        if len(sanitized) > MAX_EPOCH_DIGITS:
            logger.debug("Digit run too long for a timestamp: %d digits", len(sanitized))
            return None
        timestamp = int(sanitized)
        if 1_000_000_000 <= timestamp <= 9_999_999_999:
            parsed = _from_epoch(timestamp)
            if parsed is not None:
                return parsed
        if 1_000_000_000_000 <= timestamp <= 9_999_999_999_999:
            parsed = _from_epoch(timestamp)
            if parsed is not None:
                return parsed

    for keyword, offset in DAY_KEYWORDS.items():
        if keyword in sanitized:
            return _midnight(now - timedelta(days=offset))

    if sanitized == JUST_NOW:
        return now

    match = _DATE_ONLY.search(sanitized)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return datetime(year, month, day)
        except ValueError:
            return None

    match = _RELATIVE.search(sanitized)
    if match:
        return _shift_back(now, int(match.group(1)), match.group(2))

    match = _MONTH_DAY.match(sanitized)
    if match:
        month, day = (int(part) for part in match.groups())
        try:
            candidate = datetime(now.year, month, day)
            if candidate > now:
                candidate = candidate.replace(year=now.year - 1)
        except ValueError:
            return None
        return candidate

    parsed = _parse_calendar(sanitized)
    if parsed is not None:
        return parsed

    logger.debug("Unparseable publish time: %r", sanitized)
    return None
