from __future__ import annotations

from typing import Callable, Sequence

import numpy as np
import pandas as pd

from schedule_engine.config import (
    CANCELLATION_INSTALMENT_COUNT,
    TRANSACTION_CANCELLATION,
    TRANSACTION_NEW,
    TRANSACTION_RENEWAL,
    TRANSACTION_UPGRADE,
)
from schedule_engine.core._frequency import frequency_instalment_count
from schedule_engine.services.alignment import upgrade_instalment_count
from schedule_engine.services.context import ScheduleContext
from schedule_engine.services.fields import AMOUNT_FIELDS, AmountField
from schedule_engine.services.issues import SEVERITY_ERROR, SEVERITY_WARNING
from schedule_engine.services.options import MISSING_COUNT_ERROR, MISSING_COUNT_ZERO


_RECONCILE_TOLERANCE = 0.01


def event_instalment_count(transaction_type: str, payment_frequency: object) -> int | None:
    if transaction_type == TRANSACTION_CANCELLATION:
        return CANCELLATION_INSTALMENT_COUNT
    return frequency_instalment_count(payment_frequency)


def _event_keys(rows: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    return rows.drop_duplicates("record_id")[["record_id", *columns]]


def attach_instalment_counts(rows: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    """``instalment_count`` on every row and ``upgrade_instalment_count`` on Upgrade rows.

    Both are computed once per event (keyed by record_id) and mapped onto
    that event's rows.
    """
    df = rows.copy()
    events = _event_keys(
        df,
        ["policy_id", "transaction_type", "payment_frequency", "policy_start_date",
         "policy_end_date", "event_effective_date", "interval_months"],
    )

    counts: dict[str, int | None] = {}
    upgrade_counts: dict[str, int] = {}
    for ev in events.itertuples(index=False):
        count = event_instalment_count(ev.transaction_type, ev.payment_frequency)
        counts[ev.record_id] = count
        if count is None and ev.transaction_type != TRANSACTION_UPGRADE:
            _report_missing_count(ctx, ev.policy_id, ev.record_id, ev.payment_frequency)
        if ev.transaction_type == TRANSACTION_UPGRADE:
            upgrade_counts[ev.record_id] = upgrade_instalment_count(
                ev.policy_start_date,
                ev.policy_end_date,
                ev.event_effective_date,
                int(ev.interval_months),
            )

    df["instalment_count"] = pd.array([counts.get(r) for r in df["record_id"]], dtype="Int64")
    df["upgrade_instalment_count"] = pd.array(
        [upgrade_counts.get(r) for r in df["record_id"]], dtype="Int64"
    )
    return df


def _report_missing_count(ctx: ScheduleContext, policy_id, record_id, frequency) -> None:
    mode = ctx.options.missing_count_mode
    if mode == MISSING_COUNT_ZERO:
        outcome = "amounts set to 0"
    elif mode == MISSING_COUNT_ERROR:
        outcome = "amounts left null"
    else:
        outcome = "amounts propagate as null"
    ctx.issues.add(
        "missing_instalment_count",
        f"No instalment count for payment frequency {frequency!r}; {outcome}.",
        policy_id=policy_id,
        record_id=record_id,
        severity=SEVERITY_ERROR if mode == MISSING_COUNT_ERROR else SEVERITY_WARNING,
    )


def split_amounts(
    rows: pd.DataFrame,
    fields: Sequence[AmountField],
    counts: pd.Series,
    mask: pd.Series,
    target: Callable[[AmountField], str],
    *,
    zero_when_count_missing: bool = False,
) -> pd.DataFrame:
    """annual amount / count for every field, on rows selected by *mask*; NaN elsewhere."""
    denom = counts.to_numpy(dtype=float, na_value=np.nan)
    selected = mask.to_numpy(dtype=bool)
    out: dict[str, np.ndarray] = {}
    for f in fields:
        amount = f.read(rows).to_numpy(dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            values = amount / denom
        if zero_when_count_missing:
            values = np.where(np.isnan(denom) & ~np.isnan(amount), 0.0, values)
        out[target(f)] = np.where(selected, values, np.nan)
    return pd.DataFrame(out, index=rows.index)


def allocate_base_instalments(rows: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    """Annual amount / instalment_count, repeated on every row of a non-Upgrade event."""
    df = rows.copy()
    split = split_amounts(
        df,
        AMOUNT_FIELDS,
        df["instalment_count"],
        df["transaction_type"] != TRANSACTION_UPGRADE,
        lambda f: f.base_column,
        zero_when_count_missing=ctx.options.missing_count_mode == MISSING_COUNT_ZERO,
    )
    for col in split.columns:
        df[col] = split[col]
    return df


def allocate_upgrade_instalments(rows: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    """Annual upgrade amount / upgrade_instalment_count on Upgrade rows only."""
    df = rows.copy()
    split = split_amounts(
        df,
        AMOUNT_FIELDS,
        df["upgrade_instalment_count"],
        df["transaction_type"] == TRANSACTION_UPGRADE,
        lambda f: f.upgrade_column,
    )
    for col in split.columns:
        df[col] = split[col]
    return df


def reconcile_base_instalments(rows: pd.DataFrame) -> pd.DataFrame:
    """
    New/Renewal events scheduled from the policy start whose row count
    differs from instalment_count.

    One record per (event, field) with the summed base instalments against
    the annual amount; empty when every event reconciles.
    """
    columns = ["policy_id", "record_id", "row_count", "instalment_count", "field", "annual_amount", "scheduled_total"]
    if rows.empty:
        return pd.DataFrame(columns=columns)

    base_events = rows.loc[
        rows["transaction_type"].isin((TRANSACTION_NEW, TRANSACTION_RENEWAL))
        & (rows["pay_start"] == rows["policy_start_date"])
        & rows["instalment_count"].notna()
    ]
    records: list[dict] = []
    for record_id, group in base_events.groupby("record_id", sort=True):
        n_rows = len(group)
        count = int(group["instalment_count"].iloc[0])
        if n_rows == count:
            continue
        for f in AMOUNT_FIELDS:
            annual = f.read(group).iloc[0]
            total = float(group[f.base_column].sum(skipna=True))
            if pd.isna(annual):
                continue
            records.append(
                {
                    "policy_id": group["policy_id"].iloc[0],
                    "record_id": record_id,
                    "row_count": n_rows,
                    "instalment_count": count,
                    "field": f.base_column,
                    "annual_amount": float(annual),
                    "scheduled_total": total,
                }
            )
    return pd.DataFrame(records, columns=columns)


def check_count_consistency(rows: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    mismatches = reconcile_base_instalments(rows)
    if mismatches.empty:
        return rows

    for (policy_id, record_id), group in mismatches.groupby(["policy_id", "record_id"], sort=True):
        off = group.loc[(group["scheduled_total"] - group["annual_amount"]).abs() > _RECONCILE_TOLERANCE]
        detail = ", ".join(
            f"{r.field}: {r.scheduled_total:.2f} vs {r.annual_amount:.2f}" for r in off.itertuples(index=False)
        )
        ctx.issues.add(
            "instalment_count_mismatch",
            f"{int(group['row_count'].iloc[0])} schedule rows for instalment_count="
            f"{int(group['instalment_count'].iloc[0])}"
            + (f"; unreconciled {detail}" if detail else ""),
            policy_id=policy_id,
            record_id=record_id,
        )
    return rows
