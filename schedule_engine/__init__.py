"""Premium payment schedule engine: policy events -> dated instalment rows."""

from schedule_engine.io import build_clean_base, read_policy_events, write_schedule
from schedule_engine.services import (
    ScheduleDataError,
    ScheduleIssue,
    ScheduleOptions,
    ScheduleRunResult,
    build_cohort_matrix,
    build_month_dimension,
    run_schedule,
)

__all__ = [
    "ScheduleDataError",
    "ScheduleIssue",
    "ScheduleOptions",
    "ScheduleRunResult",
    "build_clean_base",
    "build_cohort_matrix",
    "build_month_dimension",
    "read_policy_events",
    "run_schedule",
    "write_schedule",
]
