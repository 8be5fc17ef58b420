"""Calendar-month arithmetic used by the schedule engine."""

from __future__ import annotations

from datetime import date, datetime

import pandas as pd
from dateutil.relativedelta import relativedelta


def to_date(value: object) -> date | None:
    """Coerce a date-like value to ``datetime.date``; None for blanks/NaT."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if pd.isna(value):
        return None
    dt = pd.to_datetime(value, errors="coerce")
    if pd.isna(dt):
        return None
    return dt.date()


def add_months(d: date, months: int) -> date:
    """
    Adds calendar months to a date.

    relativedelta clips to the last day of the month when the day does not
    exist (31 Jan + 1M -> 29 Feb in a leap year).
    """
    return d + relativedelta(months=int(months))


def start_of_month(d: date) -> date:
    return d.replace(day=1)


def end_of_month(d: date) -> date:
    return start_of_month(d) + relativedelta(months=1, days=-1)


def month_key(d: date | None) -> int | None:
    """YYYYMM integer key, e.g. 202405 for any day of May 2024."""
    if d is None:
        return None
    return d.year * 100 + d.month


def months_between(a: date, b: date) -> int:
    """Whole calendar months from a to b, ignoring the day of month."""
    return (b.year - a.year) * 12 + (b.month - a.month)


def same_month(a: date, b: date) -> bool:
    return a.year == b.year and a.month == b.month


def generate_cycle(
    anchor: date,
    end: date,
    interval_months: int,
    *,
    max_dates: int = 1_000,
) -> list[date]:
    """
    Dates anchor, anchor + n, anchor + 2n, ... (n = interval_months) up to and
    including end.

    Each date is offset from the anchor, not from the previous date, so the
    anchor's day of month is kept wherever the month allows it
    (31 Jan, 29 Feb, 31 Mar). This deliberately differs from chaining
    one-month steps off the previous date as the source workbook does
    (31 Jan, 29 Feb, 29 Mar).

    Raises ValueError when the cycle exceeds *max_dates*.
    """
    if interval_months <= 0:
        raise ValueError(f"interval_months must be > 0, received: {interval_months}")

    out: list[date] = []
    k = 0
    d = anchor
    while d <= end:
        out.append(d)
        k += 1
        if k > max_dates:
            raise ValueError(
                f"More than {max_dates} schedule dates from {anchor} to {end} "
                f"every {interval_months} months."
            )
        d = add_months(anchor, k * interval_months)
    return out
