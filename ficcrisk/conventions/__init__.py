"""Market conventions: day counts, calendars and tenor arithmetic."""

from .calendars import Calendar, get_calendar
from .daycount import DayCountConvention, get_day_count_convention
from .tenors import (
    compute_maturity,
    is_spot_tenor,
    parse_tenor,
    roll_date,
    tenor_to_months,
)

__all__ = [
    "Calendar",
    "DayCountConvention",
    "compute_maturity",
    "get_calendar",
    "get_day_count_convention",
    "is_spot_tenor",
    "parse_tenor",
    "roll_date",
    "tenor_to_months",
]
