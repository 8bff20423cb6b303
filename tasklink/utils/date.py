"""
Date parsing and formatting utilities.
"""

import re
from datetime import date, datetime, time, timedelta
from email.utils import parsedate_to_datetime
from typing import Any, Iterable, Optional


TIMESTAMP_FORMAT = "%Y-%m-%d %I:%M%p"

WEEKDAY_TAGS = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]

MONTH_TAGS = [
    "01 - January",
    "02 - February",
    "03 - March",
    "04 - April",
    "05 - May",
    "06 - June",
    "07 - July",
    "08 - August",
    "09 - September",
    "10 - October",
    "11 - November",
    "12 - December",
]

RELATIVE_TIME_TAGS = [
    "Today",
    "Tomorrow",
    "This Week",
    "Next Week",
    "This Month",
    "Next Month",
]

TIME_TAGS = WEEKDAY_TAGS + MONTH_TAGS + RELATIVE_TIME_TAGS

_MONTH_NAMES = [tag.split(" - ", 1)[1].lower() for tag in MONTH_TAGS]
_WEEKDAY_NAMES = [tag.lower() for tag in WEEKDAY_TAGS]

_FORMATS = [
    TIMESTAMP_FORMAT,
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
]

_OFFSET_RE = re.compile(
    r'^(?:in\s+)?(?P<amount>\d+|an?|one)\s+(?P<unit>minute|hour|day|week|month|year)s?(?P<ago>\s+ago)?$'
)
_UNIT_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}


def now() -> datetime:
    """Current local time as a timezone-aware datetime."""
    return datetime.now().astimezone()


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as local time so that all comparisons are safe."""
    if value.tzinfo is None:
        return value.astimezone()
    return value


def _at_noon(day: date, reference: datetime) -> datetime:
    return datetime.combine(day, time(12, 0), tzinfo=reference.tzinfo)


def _parse_relative(text: str, reference: datetime) -> Optional[datetime]:
    today = reference.date()

    if text == "now":
        return reference
    if text == "today":
        return _at_noon(today, reference)
    if text == "tomorrow":
        return _at_noon(today + timedelta(days=1), reference)
    if text == "yesterday":
        return _at_noon(today - timedelta(days=1), reference)
    if text == "this week":
        return _at_noon(today + timedelta(days=6 - today.weekday()), reference)
    if text == "next week":
        return _at_noon(today + timedelta(days=7 - today.weekday()), reference)
    if text == "this month":
        next_month = (today.replace(day=28) + timedelta(days=4)).replace(day=1)
        return _at_noon(next_month - timedelta(days=1), reference)
    if text == "next month":
        return _at_noon((today.replace(day=28) + timedelta(days=4)).replace(day=1), reference)

    weekday = text[5:] if text.startswith("next ") else text
    if weekday in _WEEKDAY_NAMES:
        days_ahead = (_WEEKDAY_NAMES.index(weekday) - today.weekday()) % 7
        if text.startswith("next ") and days_ahead == 0:
            days_ahead = 7
        return _at_noon(today + timedelta(days=days_ahead), reference)

    # "01 - January" style month tags as well as bare month names
    month = re.sub(r'^\d{1,2}\s*-\s*', '', text)
    if month in _MONTH_NAMES:
        return _at_noon(date(today.year, _MONTH_NAMES.index(month) + 1, 1), reference)

    match = _OFFSET_RE.match(text)
    if match:
        raw_amount = match.group('amount')
        amount = int(raw_amount) if raw_amount.isdigit() else 1
        unit = match.group('unit')
        if unit == "minute":
            delta = timedelta(minutes=amount)
        elif unit == "hour":
            delta = timedelta(hours=amount)
        else:
            delta = timedelta(days=amount * _UNIT_DAYS[unit])
        return reference - delta if match.group('ago') else reference + delta

    return None


def parse_datetime(value: Any, reference: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a date/time value from a provider record.

    Handles:
    - datetime and date objects
    - Unix timestamps (int/float)
    - ISO 8601 strings (with or without "Z")
    - RFC 2822 strings (HTTP headers, mail-style APIs)
    - Common written formats ("Dec 15 2023", "12/15/2023", ...)
    - Relative expressions ("today", "tomorrow", "next monday",
      "3 days ago", "in 2 weeks") and month names

    Date-only values resolve to noon local time.

    Args:
        value: Raw value to parse
        reference: Point in time that relative expressions are resolved against

    Returns:
        Timezone-aware datetime, or None if the value cannot be parsed
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return ensure_aware(value)

    reference = ensure_aware(reference) if reference else now()

    if isinstance(value, date):
        return _at_noon(value, reference)

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value).astimezone()
        except (OverflowError, OSError, ValueError):
            return None

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        if len(text) <= 10:
            return _at_noon(parsed.date(), reference)
        return ensure_aware(parsed)
    except ValueError:
        pass

    for fmt in _FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if '%H' in fmt or '%I' in fmt:
            return ensure_aware(parsed)
        return _at_noon(parsed.date(), reference)

    try:
        parsed = parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is not None:
        return ensure_aware(parsed)

    return _parse_relative(re.sub(r'\s+', ' ', text.lower()), reference)


def format_timestamp(value: Optional[datetime] = None) -> str:
    """
    Format a datetime the way run records store it ("2024-01-05 09:30AM").

    Args:
        value: Datetime to format (defaults to now)

    Returns:
        Formatted timestamp string
    """
    return (value or now()).strftime(TIMESTAMP_FORMAT)


def due_date_from_tags(tags: Iterable[str], reference: Optional[datetime] = None) -> Optional[datetime]:
    """
    Derive a due date from time tags such as "Friday" or "03 - March".

    Weekday tags that already passed roll over to next week and month tags
    that already passed roll over to next year.

    Args:
        tags: Tags attached to an item
        reference: Current time (defaults to now)

    Returns:
        Derived due date, or None if no time tag is present
    """
    tags = list(tags or [])
    time_tag = next((tag for tag in tags if tag in TIME_TAGS), None)
    if time_tag is None:
        return None

    reference = ensure_aware(reference) if reference else now()
    due = parse_datetime(time_tag, reference=reference)
    if due is None:
        return None

    if due < reference:
        if time_tag in WEEKDAY_TAGS:
            due += timedelta(weeks=1)
        elif time_tag in MONTH_TAGS:
            due = due.replace(year=due.year + 1)
    return due


def dates_equal(first: Optional[datetime], second: Optional[datetime]) -> bool:
    """Compare two optional datetimes by calendar day."""
    if first is None and second is None:
        return True
    if first is None or second is None:
        return False
    return ensure_aware(first).date() == ensure_aware(second).date()
