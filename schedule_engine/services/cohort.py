"""
Month dimension and underwritten-month x payment-month cohort matrix.

Both join to the schedule rows on YYYYMM keys (``payment_month_key``,
``underwritten_month_key``).
"""

from __future__ import annotations

import logging
from typing import Iterable

import pandas as pd

from schedule_engine.config import COMPONENTS, PRODUCT_COMPONENTS, STATUS_AFTER_CANCELLATION
from schedule_engine.core.calendar import add_months, month_key, start_of_month, to_date
from schedule_engine.services.fields import AmountField


logger = logging.getLogger(__name__)

MONTH_DIMENSION_COLUMNS = ("month_key", "month_start", "month_label", "fiscal_year")
DEFAULT_FY_START_MONTH = 4


def fiscal_year_label(d, fy_start_month: int = DEFAULT_FY_START_MONTH) -> str:
    """'FY25' for any month from April 2024 to March 2025 (fy_start_month=4)."""
    year = d.year + 1 if fy_start_month > 1 and d.month >= fy_start_month else d.year
    return f"FY{year % 100:02d}"


def build_month_dimension(start, end, *, fy_start_month: int = DEFAULT_FY_START_MONTH) -> pd.DataFrame:
    """One row per calendar month from start's month to end's month inclusive."""
    start_d = to_date(start)
    end_d = to_date(end)
    if start_d is None or end_d is None:
        raise ValueError(f"Month dimension needs two dates, received: {start!r}, {end!r}")
    if start_d > end_d:
        raise ValueError(f"Month dimension start {start_d} is after end {end_d}")
    if not 1 <= int(fy_start_month) <= 12:
        raise ValueError(f"fy_start_month must be in 1..12, received: {fy_start_month}")

    months = []
    current = start_of_month(start_d)
    last = start_of_month(end_d)
    while current <= last:
        months.append(current)
        current = add_months(current, 1)

    return pd.DataFrame(
        {
            "month_key": pd.array([month_key(m) for m in months], dtype="Int64"),
            "month_start": pd.Series(months, dtype=object),
            "month_label": [m.strftime("%b %y") for m in months],
            "fiscal_year": [fiscal_year_label(m, fy_start_month) for m in months],
        },
        columns=list(MONTH_DIMENSION_COLUMNS),
    )


def cohort_fields(component: str, products: Iterable[str] | None = None) -> list[AmountField]:
    if component not in COMPONENTS:
        raise ValueError(f"Unknown component {component!r}. Allowed: {sorted(COMPONENTS)}")

    selected = list(PRODUCT_COMPONENTS) if products is None else [str(p) for p in products]
    unknown = sorted(set(selected) - set(PRODUCT_COMPONENTS))
    if unknown:
        raise ValueError(f"Unknown products {unknown}. Allowed: {sorted(PRODUCT_COMPONENTS)}")

    fields = [
        AmountField(product=p, component=component)
        for p in selected
        if component in PRODUCT_COMPONENTS[p]
    ]
    if not fields:
        raise ValueError(f"No product in {selected} carries component {component!r}")
    return fields


def build_cohort_matrix(
    rows: pd.DataFrame,
    *,
    component: str = "premium",
    products: Iterable[str] | None = None,
    include_upgrades: bool = True,
    reattribute_cancellations: bool = False,
) -> pd.DataFrame:
    """
    Sum of instalments by underwritten month (index) x payment month (columns).

    Null amounts count as 0. With ``reattribute_cancellations`` every row in
    status "After Cancellation" is booked in its policy's cancellation month,
    so the post-cancellation remainder lands as one lump sum.
    """
    fields = cohort_fields(component, products)
    columns = [f.base_column for f in fields]
    if include_upgrades:
        columns += [f.upgrade_column for f in fields]

    empty = pd.DataFrame(dtype=float)
    empty.index.name = "underwritten_month_key"
    empty.columns.name = "payment_month_key"
    if rows.empty:
        return empty

    present = [c for c in columns if c in rows.columns]
    amount = rows[present].fillna(0.0).sum(axis=1) if present else pd.Series(0.0, index=rows.index)

    pay_key = rows["payment_month_key"].astype("Int64")
    if reattribute_cancellations:
        moved = (rows["cancellation_status"] == STATUS_AFTER_CANCELLATION) & rows[
            "cancellation_effective_month_key"
        ].notna()
        pay_key = pay_key.where(~moved, rows["cancellation_effective_month_key"].astype("Int64"))
        logger.debug("Re-attributed %d post-cancellation rows", int(moved.sum()))

    frame = pd.DataFrame(
        {
            "underwritten_month_key": rows["underwritten_month_key"].astype("int64"),
            "payment_month_key": pay_key.astype("int64"),
            "amount": amount.astype(float),
        }
    )
    matrix = (
        frame.groupby(["underwritten_month_key", "payment_month_key"])["amount"]
        .sum()
        .unstack(fill_value=0.0)
        .sort_index(axis=0)
        .sort_index(axis=1)
    )
    return matrix
