from __future__ import annotations

import logging
from datetime import date

import pandas as pd

from schedule_engine.config import (
    STATUS_AFTER_CANCELLATION,
    STATUS_BEFORE_CANCELLATION,
    STATUS_IN_CANCELLATION_MONTH,
    STATUS_NO_CANCELLATION,
    STATUS_RENEWAL_CANCELLATION,
    TERM_MONTHS,
    TRANSACTION_CANCELLATION,
)
from schedule_engine.core.calendar import add_months, month_key, same_month
from schedule_engine.services.context import ScheduleContext
from schedule_engine.services.issues import IssueLog, SEVERITY_ERROR, ScheduleDataError
from schedule_engine.services.options import (
    DUPLICATE_CANCELLATION_LATEST,
    DUPLICATE_CANCELLATION_REJECT,
    ScheduleOptions,
)


logger = logging.getLogger(__name__)


def build_cancellation_lookup(
    events: pd.DataFrame,
    options: ScheduleOptions,
    issues: IssueLog,
) -> dict[str, date]:
    """policy_id -> effective date of that policy's Cancellation event.

    A policy is expected to carry at most one Cancellation. When it carries
    more, an error issue is recorded and ``duplicate_cancellation_mode``
    decides the date kept (or rejects the run).
    """
    cancels = events.loc[
        events["transaction_type"] == TRANSACTION_CANCELLATION,
        ["policy_id", "record_id", "event_effective_date"],
    ]
    lookup: dict[str, date] = {}
    if cancels.empty:
        return lookup

    for policy_id, group in cancels.groupby("policy_id", sort=True):
        dates = sorted(group["event_effective_date"].tolist())
        if len(group) > 1:
            record_ids = sorted(group["record_id"].astype(str).tolist())
            if options.duplicate_cancellation_mode == DUPLICATE_CANCELLATION_REJECT:
                raise ScheduleDataError(
                    f"Policy {policy_id!r} has {len(group)} Cancellation events: {record_ids}"
                )
            chosen = dates[-1] if options.duplicate_cancellation_mode == DUPLICATE_CANCELLATION_LATEST else dates[0]
            issues.add(
                "duplicate_cancellation",
                f"{len(group)} Cancellation events {record_ids}; using "
                f"{options.duplicate_cancellation_mode} date {chosen}.",
                policy_id=policy_id,
                severity=SEVERITY_ERROR,
            )
            lookup[str(policy_id)] = chosen
        else:
            lookup[str(policy_id)] = dates[0]

    logger.info("Cancellation lookup built for %d policies", len(lookup))
    return lookup


def attach_cancellation_dates(rows: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    df = rows.copy()
    lookup = ctx.cancellation_lookup
    cancel_dates = [lookup.get(p) for p in df["policy_id"]]
    df["cancellation_effective_date"] = pd.Series(cancel_dates, index=df.index, dtype=object)
    df["cancellation_effective_month_key"] = pd.array(
        [month_key(d) for d in cancel_dates], dtype="Int64"
    )
    return df


def renewal_month_key(policy_start: date) -> int:
    return month_key(add_months(policy_start, TERM_MONTHS))


def classify_cancellation(
    *,
    transaction_type: str,
    policy_start: date,
    pay_date: date,
    cancellation_date: date | None,
) -> str:
    """Relationship of one schedule row to its policy's cancellation.

    Rules, first match wins:
    1. the row's own event is a Cancellation dated in/after the renewal month
    2. no cancellation for the policy
    3. pay_date in the cancellation month
    4. pay_date after the cancellation date
    5. otherwise before the cancellation
    """
    if (
        transaction_type == TRANSACTION_CANCELLATION
        and cancellation_date is not None
        and month_key(cancellation_date) >= renewal_month_key(policy_start)
    ):
        return STATUS_RENEWAL_CANCELLATION
    if cancellation_date is None:
        return STATUS_NO_CANCELLATION
    if same_month(pay_date, cancellation_date):
        return STATUS_IN_CANCELLATION_MONTH
    if pay_date > cancellation_date:
        return STATUS_AFTER_CANCELLATION
    return STATUS_BEFORE_CANCELLATION


def classify_cancellation_status(rows: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    df = rows.copy()
    statuses = [
        classify_cancellation(
            transaction_type=row.transaction_type,
            policy_start=row.policy_start_date,
            pay_date=row.pay_date,
            cancellation_date=row.cancellation_effective_date,
        )
        for row in df[
            ["transaction_type", "policy_start_date", "pay_date", "cancellation_effective_date"]
        ].itertuples(index=False)
    ]
    df["cancellation_status"] = pd.Series(statuses, index=df.index, dtype=object)
    return df
