"""
Tenor string arithmetic (``1D``, ``2W``, ``3M``, ``5Y``, ``Spot``).
"""

import re
from datetime import date, datetime
from typing import Optional, Tuple, Union

from dateutil.relativedelta import relativedelta

from .calendars import Calendar, get_calendar
from .daycount import to_date

SPOT_TENORS = ("SPOT", "SPOTFX", "SPOT_FX")

_TENOR_PATTERN = re.compile(r"^\s*(\d+)\s*([DWMY])\s*$", re.IGNORECASE)


def is_spot_tenor(tenor: str) -> bool:
    """Check whether a tenor label denotes the spot point."""
    return tenor.strip().upper() in SPOT_TENORS


def parse_tenor(tenor: str) -> Tuple[int, str]:
    """Split a tenor string into (count, unit), e.g. '5Y' -> (5, 'Y')."""
    match = _TENOR_PATTERN.match(tenor)
    if match is None:
        raise ValueError(f"Unsupported tenor: {tenor}")
    return int(match.group(1)), match.group(2).upper()


def tenor_to_months(tenor: str) -> int:
    """Convert a month or year tenor to months."""
    count, unit = parse_tenor(tenor)
    if unit == "M":
        return count
    if unit == "Y":
        return count * 12
    raise ValueError(f"Tenor {tenor} is not a month or year tenor")


def tenor_to_relativedelta(tenor: str) -> relativedelta:
    """Convert a tenor string to a calendar offset."""
    count, unit = parse_tenor(tenor)
    if unit == "D":
        return relativedelta(days=count)
    if unit == "W":
        return relativedelta(weeks=count)
    if unit == "M":
        return relativedelta(months=count)
    return relativedelta(years=count)


def compute_maturity(
    reference_date: Union[date, datetime],
    tenor: str,
    calendar: Optional[Calendar] = None,
    spot_lag: int = 2,
) -> date:
    """Compute the maturity of a tenor quoted on ``reference_date``.

    The tenor runs from the spot date (``spot_lag`` business days after the
    reference date). Spot tenors mature on the spot date itself.
    """
    if calendar is None:
        calendar = get_calendar("TARGET")
    spot = calendar.add_business_days(to_date(reference_date), spot_lag)
    if is_spot_tenor(tenor):
        return spot
    count, unit = parse_tenor(tenor)
    return calendar.advance(spot, count, unit, end_of_month=unit in ("M", "Y"))


def roll_date(
    as_of: Union[date, datetime],
    shift: Union[int, str],
) -> date:
    """Roll a date forward by a number of days or by a tenor string."""
    start = to_date(as_of)
    if isinstance(shift, int):
        return start + relativedelta(days=shift)
    return start + tenor_to_relativedelta(shift)
