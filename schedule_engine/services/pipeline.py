"""
Payment schedule pipeline: policy events in, dated component-level
instalment rows out.

Stage order:
  prepare_events -> resolve_policy_bounds      (whole input)
  build_cancellation_lookup                    (whole input, policy level)
  EVENT_STAGES -> ROW_STAGES                   (per partition of policies)

The two whole-input steps are the only cross-policy dependencies; the
remaining stages are row-local and may run per partition in a process pool.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import os
from concurrent.futures import Executor, ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Sequence

import numpy as np
import pandas as pd

from schedule_engine.services.alignment import resolve_alignment
from schedule_engine.services.allocation import (
    allocate_base_instalments,
    allocate_upgrade_instalments,
    attach_instalment_counts,
    check_count_consistency,
)
from schedule_engine.services.bounds import resolve_policy_bounds
from schedule_engine.services.cancellation import (
    attach_cancellation_dates,
    build_cancellation_lookup,
    classify_cancellation_status,
)
from schedule_engine.services.context import ScheduleContext, Stage
from schedule_engine.services.events import prepare_events
from schedule_engine.services.fields import BASE_INSTALMENT_COLUMNS, UPGRADE_INSTALMENT_COLUMNS
from schedule_engine.services.frequency import resolve_frequency
from schedule_engine.services.issues import (
    IssueLog,
    ScheduleIssue,
    SEVERITY_ERROR,
    issues_to_frame,
)
from schedule_engine.services.options import ScheduleOptions
from schedule_engine.services.schedule_dates import add_month_keys, expand_pay_dates


logger = logging.getLogger(__name__)


SCHEDULE_ROW_COLUMNS = (
    "record_id",
    "policy_id",
    "transaction_type",
    "policy_start_date",
    "policy_end_date",
    "event_effective_date",
    "payment_frequency",
    "interval_months",
    "aligned_start",
    "pay_start",
    "pay_date",
    "payment_month_key",
    "underwritten_month_key",
    "cancellation_effective_date",
    "cancellation_effective_month_key",
    "cancellation_status",
    "instalment_count",
    "upgrade_instalment_count",
    *BASE_INSTALMENT_COLUMNS,
    *UPGRADE_INSTALMENT_COLUMNS,
)

SORT_KEYS = ["policy_id", "record_id", "pay_date"]

EVENT_STAGES: tuple[Stage, ...] = (
    resolve_frequency,
    resolve_alignment,
)

ROW_STAGES: tuple[Stage, ...] = (
    expand_pay_dates,
    add_month_keys,
    attach_cancellation_dates,
    classify_cancellation_status,
    attach_instalment_counts,
    allocate_base_instalments,
    allocate_upgrade_instalments,
    check_count_consistency,
)


@dataclass
class ScheduleRunResult:
    rows: pd.DataFrame
    issues: list[ScheduleIssue] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(i.severity == SEVERITY_ERROR for i in self.issues)

    def issues_frame(self) -> pd.DataFrame:
        return issues_to_frame(self.issues)


def apply_stages(table: pd.DataFrame, stages: Sequence[Stage], ctx: ScheduleContext) -> pd.DataFrame:
    for stage in stages:
        table = stage(table, ctx)
    return table


def empty_schedule_frame() -> pd.DataFrame:
    return pd.DataFrame({c: pd.Series(dtype=_column_dtype(c)) for c in SCHEDULE_ROW_COLUMNS})


def _column_dtype(column: str) -> Any:
    if column.endswith("_month_key") or column.endswith("instalment_count"):
        return "Int64"
    if column == "interval_months":
        return "int64"
    if column.startswith(("base_instalment_", "upgrade_instalment_")):
        return float
    return object


def finalise_rows(rows: pd.DataFrame) -> pd.DataFrame:
    """Persisted column layout, stable sort by policy_id, record_id, pay_date."""
    if rows.empty:
        return empty_schedule_frame()
    out = rows[list(SCHEDULE_ROW_COLUMNS)]
    out = out.sort_values(SORT_KEYS, kind="stable").reset_index(drop=True)
    return out


def expand_partition(
    events: pd.DataFrame,
    *,
    options: ScheduleOptions,
    cancellation_lookup: Mapping[str, date],
) -> tuple[pd.DataFrame, list[ScheduleIssue]]:
    """Run the row-local stages over a set of whole policies."""
    ctx = ScheduleContext(
        options=options,
        issues=IssueLog(),
        cancellation_lookup=cancellation_lookup,
    )
    table = apply_stages(events, EVENT_STAGES, ctx)
    rows = apply_stages(table, ROW_STAGES, ctx)
    return rows, list(ctx.issues)


def _issue_sort_key(issue: ScheduleIssue) -> tuple[str, str]:
    return (issue.policy_id or "", issue.record_id or "")


def partition_by_policy(events: pd.DataFrame, parts: int) -> list[pd.DataFrame]:
    """Contiguous chunks of sorted policy ids; a policy never spans two chunks."""
    policy_ids = np.array(sorted(events["policy_id"].unique()))
    chunks = [c for c in np.array_split(policy_ids, max(1, parts)) if len(c) > 0]
    return [events.loc[events["policy_id"].isin(c.tolist())].copy() for c in chunks]


def run_schedule(
    events: pd.DataFrame,
    *,
    options: ScheduleOptions | None = None,
    parallel: int = 0,
    executor: Executor | None = None,
) -> ScheduleRunResult:
    """
    Generates the payment schedule for a PolicyEvent table.

    Structural input failures raise ``ScheduleDataError``; every other data
    condition is collected as a ``ScheduleIssue`` on the result.

    When parallel > 0 (and there is more than one policy) the row-local
    stages run per partition of policies in a ProcessPoolExecutor, or in
    *executor* when given. Output is identical to the sequential path.
    """
    opts = options or ScheduleOptions()
    issues = IssueLog()

    prepared = prepare_events(events, issues)
    if prepared.empty:
        logger.info("No policy events supplied; empty schedule.")
        return ScheduleRunResult(rows=empty_schedule_frame(), issues=list(issues))

    bounded = resolve_policy_bounds(prepared, ScheduleContext(options=opts, issues=issues))
    lookup = build_cancellation_lookup(bounded, opts, issues)

    n_policies = bounded["policy_id"].nunique()
    if (parallel > 0 or executor is not None) and n_policies > 1:
        rows, partition_issues = _run_partitions(
            bounded,
            options=opts,
            cancellation_lookup=lookup,
            parallel=parallel,
            executor=executor,
        )
    else:
        rows, partition_issues = expand_partition(bounded, options=opts, cancellation_lookup=lookup)
    # Per-event issue order is stage order on both paths; group by event.
    issues.extend(sorted(partition_issues, key=_issue_sort_key))

    out = finalise_rows(rows)
    logger.info(
        "Schedule generated: %d events, %d policies, %d rows, %d issues",
        len(bounded), n_policies, len(out), len(issues),
    )
    return ScheduleRunResult(rows=out, issues=list(issues))


def _run_partitions(
    events: pd.DataFrame,
    *,
    options: ScheduleOptions,
    cancellation_lookup: Mapping[str, date],
    parallel: int,
    executor: Executor | None,
) -> tuple[pd.DataFrame, list[ScheduleIssue]]:
    from schedule_engine.workers import expand_schedule_partition

    parts = partition_by_policy(events, parallel or (os.cpu_count() or 1))
    own_pool = executor is None
    pool: Executor | None = None

    try:
        if own_pool:
            ctx = mp.get_context("spawn")  # safe on macOS (avoids fork-safety issues)
            pool = ProcessPoolExecutor(max_workers=min(parallel, len(parts)), mp_context=ctx)
        else:
            pool = executor

        futures = {
            pool.submit(
                expand_schedule_partition,
                part,
                options,
                dict(cancellation_lookup),
            ): idx
            for idx, part in enumerate(parts)
        }
        results: list[tuple[int, pd.DataFrame, list[ScheduleIssue]]] = []
        for fut in as_completed(futures):
            rows, part_issues = fut.result()
            results.append((futures[fut], rows, part_issues))
    finally:
        if own_pool and pool is not None:
            pool.shutdown(wait=True)

    # Gather in partition order for deterministic issue order.
    results.sort(key=lambda x: x[0])
    frames = [r for _, r, _ in results if not r.empty]
    issues = [i for _, _, part_issues in results for i in part_issues]
    rows = pd.concat(frames, ignore_index=True) if frames else pd.DataFrame(columns=list(SCHEDULE_ROW_COLUMNS))
    return rows, issues
