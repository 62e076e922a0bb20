"""
QuantLib-backed business calendars for tenor maturities and date rolls.
"""

from datetime import date, datetime
from typing import Union

import QuantLib as ql

from .daycount import to_ql_date, to_py_date

_TIME_UNITS = {
    "D": ql.Days,
    "W": ql.Weeks,
    "M": ql.Months,
    "Y": ql.Years,
}


class Calendar:
    """Business day calendar wrapping a QuantLib calendar."""

    def __init__(self, name: str, ql_calendar: ql.Calendar):
        self.name = name
        self._ql_calendar = ql_calendar

    def is_business_day(self, dt: Union[date, datetime]) -> bool:
        """Check if date is a business day."""
        return self._ql_calendar.isBusinessDay(to_ql_date(dt))

    def adjust(self, dt: Union[date, datetime], following: bool = True) -> date:
        """Roll a date onto a business day (modified following or preceding)."""
        convention = ql.ModifiedFollowing if following else ql.Preceding
        return to_py_date(self._ql_calendar.adjust(to_ql_date(dt), convention))

    def add_business_days(self, start_date: Union[date, datetime], days: int) -> date:
        """Add business days to a date."""
        result = self._ql_calendar.advance(to_ql_date(start_date), days, ql.Days)
        return to_py_date(result)

    def advance(
        self,
        start_date: Union[date, datetime],
        count: int,
        unit: str,
        end_of_month: bool = False,
    ) -> date:
        """Advance a date by ``count`` periods of ``unit`` (D/W/M/Y)."""
        ql_unit = _TIME_UNITS[unit.upper()]
        if ql_unit == ql.Days:
            # Day tenors count calendar days
            result = to_ql_date(start_date) + count
            return to_py_date(self._ql_calendar.adjust(result, ql.Following))
        result = self._ql_calendar.advance(
            to_ql_date(start_date),
            ql.Period(count, ql_unit),
            ql.ModifiedFollowing,
            end_of_month,
        )
        return to_py_date(result)

    def __str__(self) -> str:
        return self.name


TARGET = Calendar("TARGET", ql.TARGET())
WEEKEND_ONLY = Calendar("WEEKEND", ql.WeekendsOnly())
NULL_CALENDAR = Calendar("NONE", ql.NullCalendar())

CALENDARS = {
    "TARGET": TARGET,
    "EUR": TARGET,
    "WEEKEND": WEEKEND_ONLY,
    "NONE": NULL_CALENDAR,
}


def get_calendar(name: str) -> Calendar:
    """Get a calendar by name ("TARGET", "EUR", "WEEKEND" or "NONE")."""
    key = name.upper()
    if key not in CALENDARS:
        raise ValueError(
            f"Unknown calendar: {name}. Available: {list(CALENDARS.keys())}"
        )
    return CALENDARS[key]
