from __future__ import annotations

from datetime import date

import numpy as np
import pandas as pd

from schedule_engine.config import MAX_SCHEDULE_DATES_PER_EVENT, TRANSACTION_UPGRADE
from schedule_engine.core.calendar import generate_cycle, month_key
from schedule_engine.services.context import ScheduleContext
from schedule_engine.services.fields import AMOUNT_COLUMNS
from schedule_engine.services.issues import SEVERITY_ERROR, ScheduleDataError
from schedule_engine.services.options import (
    LATE_UPGRADE_ERROR,
    LATE_UPGRADE_LUMP_SUM,
)


def build_pay_dates(pay_start: date, policy_end: date, interval_months: int) -> list[date]:
    """PayStart, PayStart + n, PayStart + 2n, ... while <= policy_end (inclusive)."""
    if pay_start > policy_end:
        return []
    return generate_cycle(
        pay_start,
        policy_end,
        interval_months,
        max_dates=MAX_SCHEDULE_DATES_PER_EVENT,
    )


def _late_upgrade_dates(row, ctx: ScheduleContext, amount_total: float) -> list[date]:
    mode = ctx.options.late_upgrade_mode
    if mode == LATE_UPGRADE_LUMP_SUM:
        ctx.issues.add(
            "late_upgrade_lump_sum",
            f"Upgrade starts {row.pay_start} after policy end {row.policy_end_date}; "
            f"emitted as one lump-sum row on {row.policy_end_date}.",
            policy_id=row.policy_id,
            record_id=row.record_id,
        )
        return [row.policy_end_date]

    if mode == LATE_UPGRADE_ERROR:
        ctx.issues.add(
            "late_upgrade_rejected",
            f"Upgrade starts {row.pay_start} after policy end {row.policy_end_date}; "
            f"annual amount {amount_total:.2f} not scheduled.",
            policy_id=row.policy_id,
            record_id=row.record_id,
            severity=SEVERITY_ERROR,
        )
        return []

    ctx.issues.add(
        "late_upgrade_dropped",
        f"Upgrade starts {row.pay_start} after policy end {row.policy_end_date}; "
        f"annual amount {amount_total:.2f} dropped.",
        policy_id=row.policy_id,
        record_id=row.record_id,
    )
    return []


def expand_pay_dates(events: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    """One output row per scheduled payment date of each event (``pay_date``)."""
    df = events.reset_index(drop=True)
    amount_totals = df[list(AMOUNT_COLUMNS)].sum(axis=1, skipna=True) if not df.empty else pd.Series(dtype=float)

    per_event: list[list[date]] = []
    for i, row in enumerate(df.itertuples(index=False)):
        try:
            dates = build_pay_dates(row.pay_start, row.policy_end_date, int(row.interval_months))
        except ValueError as exc:
            raise ScheduleDataError(
                f"Cannot schedule record_id={row.record_id!r}, policy_id={row.policy_id!r}: {exc}"
            ) from exc
        if not dates and row.pay_start > row.policy_end_date:
            if row.transaction_type == TRANSACTION_UPGRADE:
                dates = _late_upgrade_dates(row, ctx, float(amount_totals.iloc[i]))
            else:
                ctx.issues.add(
                    "event_after_term",
                    f"{row.transaction_type or 'Event'} effective {row.pay_start} after policy end "
                    f"{row.policy_end_date}; no schedule rows.",
                    policy_id=row.policy_id,
                    record_id=row.record_id,
                )
        per_event.append(dates)

    counts = np.array([len(d) for d in per_event], dtype=np.int64)
    rows = df.loc[np.repeat(df.index.to_numpy(), counts)].reset_index(drop=True)
    rows["pay_date"] = pd.Series(
        [d for dates in per_event for d in dates],
        index=rows.index,
        dtype=object,
    )
    return rows


def add_month_keys(rows: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    """YYYYMM join keys for the payment month and the underwritten month."""
    df = rows.copy()
    df["payment_month_key"] = pd.array([month_key(d) for d in df["pay_date"]], dtype="Int64")
    df["underwritten_month_key"] = pd.array(
        [month_key(d) for d in df["policy_start_date"]], dtype="Int64"
    )
    return df
