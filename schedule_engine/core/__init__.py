"""Core domain helpers: calendar-month arithmetic and frequency labels."""

from schedule_engine.core._frequency import (
    frequency_instalment_count,
    is_known_frequency,
    normalise_frequency,
    resolve_interval_months,
)
from schedule_engine.core.calendar import (
    add_months,
    end_of_month,
    generate_cycle,
    month_key,
    months_between,
    same_month,
    start_of_month,
    to_date,
)

__all__ = [
    "add_months",
    "end_of_month",
    "frequency_instalment_count",
    "generate_cycle",
    "is_known_frequency",
    "month_key",
    "months_between",
    "normalise_frequency",
    "resolve_interval_months",
    "same_month",
    "start_of_month",
    "to_date",
]
