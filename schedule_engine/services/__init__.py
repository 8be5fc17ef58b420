from .alignment import aligned_start_date, resolve_alignment, upgrade_instalment_count
from .allocation import (
    allocate_base_instalments,
    allocate_upgrade_instalments,
    attach_instalment_counts,
    check_count_consistency,
    reconcile_base_instalments,
    split_amounts,
)
from .bounds import resolve_policy_bounds
from .cancellation import (
    attach_cancellation_dates,
    build_cancellation_lookup,
    classify_cancellation,
    classify_cancellation_status,
)
from .cohort import build_cohort_matrix, build_month_dimension
from .context import ScheduleContext
from .events import prepare_events
from .fields import AMOUNT_FIELDS, AmountField, amount_fields
from .frequency import resolve_frequency
from .issues import IssueLog, ScheduleDataError, ScheduleIssue, issues_to_frame
from .options import ScheduleOptions
from .pipeline import (
    EVENT_STAGES,
    ROW_STAGES,
    SCHEDULE_ROW_COLUMNS,
    ScheduleRunResult,
    run_schedule,
)
from .schedule_dates import add_month_keys, build_pay_dates, expand_pay_dates

__all__ = [
    "AMOUNT_FIELDS",
    "AmountField",
    "EVENT_STAGES",
    "IssueLog",
    "ROW_STAGES",
    "SCHEDULE_ROW_COLUMNS",
    "ScheduleContext",
    "ScheduleDataError",
    "ScheduleIssue",
    "ScheduleOptions",
    "ScheduleRunResult",
    "add_month_keys",
    "aligned_start_date",
    "allocate_base_instalments",
    "allocate_upgrade_instalments",
    "amount_fields",
    "attach_cancellation_dates",
    "attach_instalment_counts",
    "build_cancellation_lookup",
    "build_cohort_matrix",
    "build_month_dimension",
    "build_pay_dates",
    "check_count_consistency",
    "classify_cancellation",
    "classify_cancellation_status",
    "expand_pay_dates",
    "issues_to_frame",
    "prepare_events",
    "reconcile_base_instalments",
    "resolve_alignment",
    "resolve_frequency",
    "resolve_policy_bounds",
    "run_schedule",
    "split_amounts",
    "upgrade_instalment_count",
]
