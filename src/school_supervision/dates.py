"""Date parsing for the ISO-ish date strings stored on records."""

from datetime import date, datetime
from typing import Any, Optional, Union

DateLike = Union[date, datetime, str, None]


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a stored date into a ``date``.

    Accepts ``date``/``datetime`` objects, ``YYYY-MM-DD`` strings and full ISO
    timestamps (only the day is kept). Anything else gives None.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def within(value: Any, start: DateLike = None, end: DateLike = None) -> bool:
    """True if ``value`` lies in the inclusive [start, end] range.

    Open bounds are ignored. A value that cannot be parsed only passes when
    both bounds are open.
    """
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date is None and end_date is None:
        return True
    day = parse_date(value)
    if day is None:
        return False
    if start_date is not None and day < start_date:
        return False
    if end_date is not None and day > end_date:
        return False
    return True
