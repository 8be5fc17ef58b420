"""
Cycle alignment for upgrade events.

An upgrade's extra premium rides the policy's existing payment cycle:
if the upgrade month sits on the cycle the effective date is kept (day
included), otherwise payments start at the next cycle date.
"""

from __future__ import annotations

from datetime import date

import pandas as pd

from schedule_engine.config import MAX_SCHEDULE_DATES_PER_EVENT, TRANSACTION_UPGRADE
from schedule_engine.core.calendar import add_months, generate_cycle, months_between, start_of_month
from schedule_engine.services.context import ScheduleContext
from schedule_engine.services.issues import ScheduleDataError


def reference_cycle(policy_start: date, policy_end: date, interval_months: int) -> list[date]:
    """Payment dates of the policy itself: start, start + n, ... <= end."""
    return generate_cycle(
        policy_start,
        policy_end,
        interval_months,
        max_dates=MAX_SCHEDULE_DATES_PER_EVENT,
    )


def is_aligned(policy_start: date, effective: date, interval_months: int) -> bool:
    return months_between(policy_start, effective) % interval_months == 0


def aligned_start_date(
    policy_start: date,
    policy_end: date,
    effective: date,
    interval_months: int,
) -> date:
    if is_aligned(policy_start, effective, interval_months):
        return effective

    for d in reference_cycle(policy_start, policy_end, interval_months):
        if d >= effective:
            return d
    # Upgrade after the last cycle date: keep the effective date.
    return effective


def upgrade_instalment_count(
    policy_start: date,
    policy_end: date,
    effective: date,
    interval_months: int,
) -> int:
    """
    Remaining cycle-aligned periods from the first aligned month on/after the
    upgrade month through the policy end month. Never below 1; annual
    upgrades are a single instalment.
    """
    if interval_months == 12:
        return 1

    eff_m = start_of_month(effective)
    start_m = start_of_month(policy_start)
    end_m = start_of_month(policy_end)

    rem = months_between(start_m, eff_m) % interval_months
    first_aligned_m = add_months(eff_m, (interval_months - rem) % interval_months)
    if first_aligned_m > end_m:
        return 1

    count = months_between(first_aligned_m, end_m) // interval_months + 1
    return max(count, 1)


def resolve_alignment(events: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    """Add ``aligned_start`` (Upgrade rows only) and ``pay_start`` (all rows)."""
    df = events.copy()
    aligned: list[date | None] = []
    pay_start: list[date] = []

    for row in df[
        ["policy_id", "record_id", "transaction_type", "policy_start_date", "policy_end_date",
         "event_effective_date", "interval_months"]
    ].itertuples(index=False):
        if row.transaction_type == TRANSACTION_UPGRADE:
            try:
                a = aligned_start_date(
                    row.policy_start_date,
                    row.policy_end_date,
                    row.event_effective_date,
                    int(row.interval_months),
                )
            except ValueError as exc:
                raise ScheduleDataError(
                    f"Cannot align record_id={row.record_id!r}, policy_id={row.policy_id!r}: {exc}"
                ) from exc
            aligned.append(a)
            pay_start.append(a)
        else:
            aligned.append(None)
            pay_start.append(row.event_effective_date)

    df["aligned_start"] = pd.Series(aligned, index=df.index, dtype=object)
    df["pay_start"] = pd.Series(pay_start, index=df.index, dtype=object)
    return df
