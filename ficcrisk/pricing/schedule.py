"""Annual-style payment schedules rolled back from maturity."""

from datetime import date
from typing import List

from dateutil.relativedelta import relativedelta


def payment_dates(start: date, maturity: date, frequency_months: int = 12) -> List[date]:
    """Payment dates after ``start`` up to ``maturity``, rolled back from maturity.

    A short front stub absorbs any remainder.
    """
    if maturity <= start:
        return []
    dates = [maturity]
    k = 1
    while True:
        d = maturity - relativedelta(months=frequency_months * k)
        if d <= start:
            break
        dates.append(d)
        k += 1
    dates.reverse()
    return dates
