"""Resolve the date range a question refers to.

Rules are checked in priority order and the first match wins. A question
with no recognizable phrase gets the trailing 30-day window, flagged as
not explicit so answers can say which range was assumed.
"""

import calendar
import re
from datetime import date, timedelta
from typing import Optional, Tuple

from ...config import DEFAULT_RANGE_DAYS, MAX_RANGE_DAYS
from ...schemas.assistant import DateRange

ISO_DATE_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
LAST_N_DAYS_RE = re.compile(r"\blast\s+(\d{1,3})\s+days?\b")


# Calendar helpers

def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def days_in_month(day: date) -> int:
    return calendar.monthrange(day.year, day.month)[1]


def inclusive_days(start: date, end: date) -> int:
    """Number of calendar days in ``[start, end]``, never less than 1."""
    return max(1, (end - start).days + 1)


def parse_iso_date(value) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` (or the date part of an ISO timestamp); None if invalid."""
    if value is None:
        return None
    if isinstance(value, date):
        return value
    text = str(value).strip()[:10]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def clamp_range(start: date, end: date, max_days: int = MAX_RANGE_DAYS) -> Tuple[date, date]:
    """Order the endpoints and cap the span, measured back from the later date."""
    if start > end:
        start, end = end, start
    if inclusive_days(start, end) > max_days:
        start = add_days(end, -(max_days - 1))
    return start, end


def default_range(today: date) -> DateRange:
    return DateRange(
        start_date=add_days(today, -(DEFAULT_RANGE_DAYS - 1)),
        end_date=today,
        is_explicit=False,
    )


def resolve_range(normalized_text: str, today: Optional[date] = None) -> DateRange:
    t = normalized_text or ""
    today = today or date.today()

    tokens = ISO_DATE_RE.findall(t)
    if tokens:
        start = parse_iso_date(tokens[0])
        end = parse_iso_date(tokens[1] if len(tokens) > 1 else tokens[0])
        if start is None or end is None:
            return default_range(today)
        start, end = clamp_range(start, end)
        return DateRange(start_date=start, end_date=end)

    if re.search(r"\btoday\b", t):
        return DateRange(start_date=today, end_date=today)

    if re.search(r"\byesterday\b", t):
        y = add_days(today, -1)
        return DateRange(start_date=y, end_date=y)

    match = LAST_N_DAYS_RE.search(t)
    if match:
        n = max(1, min(MAX_RANGE_DAYS, int(match.group(1))))
        return DateRange(start_date=add_days(today, -(n - 1)), end_date=today)

    if "last 7" in t or "past week" in t or "last week" in t:
        return DateRange(start_date=add_days(today, -6), end_date=today)

    if "last 30" in t or "past month" in t:
        return DateRange(start_date=add_days(today, -29), end_date=today)

    if "this month" in t:
        return DateRange(start_date=start_of_month(today), end_date=today)

    if "last month" in t:
        last_month_end = add_days(start_of_month(today), -1)
        return DateRange(start_date=start_of_month(last_month_end), end_date=last_month_end)

    return default_range(today)
