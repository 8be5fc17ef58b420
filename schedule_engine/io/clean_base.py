"""
Raw policy export -> clean PolicyEvent base.

One row per policy event is kept (New, Renewal, Upgrade, Cancellation of the
same policy stay separate); the schedule engine interprets them later.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import numpy as np
import pandas as pd

from schedule_engine.config import schedule_rules
from schedule_engine.config import source_mapping_template
from schedule_engine.core.calendar import add_months, end_of_month
from schedule_engine.io._utils import (
    blank_mask,
    error_if_invalid_parse,
    mapping_attr,
    mapping_attr_optional,
    norm_header,
    parse_numeric_column,
)
from schedule_engine.services.fields import AMOUNT_COLUMNS


logger = logging.getLogger(__name__)

_DATE_COLUMNS = ("policy_start_date", "cancellation_date", "effective_date")
_NUMERIC_COLUMNS = ("days_used", "days_paid", "annual_total_charge", *AMOUNT_COLUMNS)
_ZEROED_WHEN_FULLY_PAID = ("annual_total_charge", *AMOUNT_COLUMNS)
_ID_COLUMNS = ("record_id", "policy_id")

DERIVED_COLUMNS = ("event_effective_date", "policy_end_date")


def _build_rename_map(
    source_columns: list[str],
    columns_map: Mapping[str, str],
) -> dict[str, str]:
    norm_to_source: dict[str, str] = {}
    for col in source_columns:
        key = norm_header(col)
        if key in norm_to_source and norm_to_source[key] != col:
            raise ValueError(
                f"Ambiguous headers after normalization: '{norm_to_source[key]}' and '{col}'"
            )
        norm_to_source[key] = col

    rename: dict[str, str] = {}
    seen_canonical: dict[str, str] = {}

    for source_name, canonical_col in columns_map.items():
        lookup_key = norm_header(source_name)
        if lookup_key not in norm_to_source:
            continue

        source_col = norm_to_source[lookup_key]
        if canonical_col in seen_canonical and seen_canonical[canonical_col] != source_col:
            prev = seen_canonical[canonical_col]
            raise ValueError(
                f"Two source columns map to '{canonical_col}': '{prev}' and '{source_col}'"
            )

        rename[source_col] = canonical_col
        seen_canonical[canonical_col] = source_col

    return rename


def _id_to_text(series: pd.Series) -> pd.Series:
    """Identifier column as stripped text; whole floats from Excel lose their '.0'."""
    if pd.api.types.is_float_dtype(series):
        whole = series.dropna()
        if (whole == np.floor(whole)).all():
            series = series.astype("Int64")
    out = series.astype("string").str.strip()
    return out.astype(object).where(out.notna(), None)


def _check_required_not_null(
    df: pd.DataFrame,
    required_columns: list[str],
    *,
    row_offset: int,
) -> None:
    for col in required_columns:
        missing = blank_mask(df[col])
        if missing.any():
            rows = [int(i) + row_offset for i in df.index[missing][:10].tolist()]
            raise ValueError(f"Required column '{col}' empty in rows {rows}")


def derive_event_effective_date(df: pd.DataFrame) -> pd.Series:
    """
    Explicit effective_date when present; else cancellation_date when it is
    on/after policy_start_date; else policy_start_date.
    """
    start = df["policy_start_date"]
    cancel = df["cancellation_date"]
    use_cancel = cancel.notna() & (cancel >= start)
    derived = start.where(~use_cancel, cancel)
    return df["effective_date"].where(df["effective_date"].notna(), derived)


def derive_policy_end_date(start: pd.Series) -> pd.Series:
    """End of the month TERM_MONTHS - 1 months after the start (12-month term)."""
    months = schedule_rules.TERM_MONTHS - 1
    return pd.Series(
        [end_of_month(add_months(d, months)) for d in start],
        index=start.index,
        dtype=object,
    )


def build_clean_base(
    raw: pd.DataFrame,
    mapping_module: Any = None,
    *,
    row_offset: int = 2,
) -> pd.DataFrame:
    """
    Applies source -> canonical mapping and the clean-base business rules.

    Steps:
    1. Map headers through SOURCE_COLUMNS_MAP (canonical names are accepted too)
    2. Parse dates (DATE_DAYFIRST) and numbers; unparseable cells raise
    3. Drop rows starting before MIN_POLICY_START_DATE (when set)
    4. Fully paid (days_paid >= 365): annual_total_charge and every amount -> 0
    5. Derive event_effective_date and policy_end_date

    Optional mapping_module attributes:
    - DATE_DAYFIRST: bool (default True)
    - MIN_POLICY_START_DATE: date-like or None
    - DEFAULT_CANONICAL_VALUES: dict[canonical_column, value]
    """
    mapping_module = source_mapping_template if mapping_module is None else mapping_module

    required_columns = list(mapping_attr(mapping_module, "REQUIRED_CANONICAL_COLUMNS"))
    optional_columns = list(mapping_attr(mapping_module, "OPTIONAL_CANONICAL_COLUMNS"))
    source_columns_map = mapping_attr(mapping_module, "SOURCE_COLUMNS_MAP")

    date_dayfirst = bool(mapping_attr_optional(mapping_module, "DATE_DAYFIRST", True))
    min_start_raw = mapping_attr_optional(mapping_module, "MIN_POLICY_START_DATE", None)
    default_values_raw = mapping_attr_optional(mapping_module, "DEFAULT_CANONICAL_VALUES", {})

    if not isinstance(source_columns_map, Mapping):
        raise ValueError("SOURCE_COLUMNS_MAP must be a Mapping[source_column, canonical_column].")
    if not isinstance(default_values_raw, Mapping):
        raise ValueError("DEFAULT_CANONICAL_VALUES must be a Mapping[column, value].")
    default_values = {str(k): v for k, v in default_values_raw.items()}

    canonical_order = list(dict.fromkeys(required_columns + optional_columns))

    df = raw.dropna(how="all").copy()
    if df.empty:
        raise ValueError("Policy export is empty or has no valid rows.")

    # ── 1. Header mapping ──────────────────────────────────────────────
    columns_map = {**{c: c for c in canonical_order}, **dict(source_columns_map)}
    rename_map = _build_rename_map([str(c) for c in df.columns], columns_map)
    df.columns = [str(c) for c in df.columns]
    df = df.rename(columns=rename_map)

    missing_required = [c for c in required_columns if c not in df.columns and c not in default_values]
    if missing_required:
        reverse_map: dict[str, list[str]] = {}
        for source_col, canonical_col in source_columns_map.items():
            reverse_map.setdefault(canonical_col, []).append(source_col)
        details = {
            col: reverse_map.get(col, ["<no mapping defined>"])
            for col in missing_required
        }
        raise ValueError(
            "Missing required canonical columns after mapping: "
            f"{missing_required}. Expected in source: {details}"
        )

    for col in canonical_order:
        if col not in df.columns:
            df[col] = pd.NA
    for col in _DATE_COLUMNS + _NUMERIC_COLUMNS + ("payment_frequency",):
        if col not in df.columns:
            df[col] = pd.NA

    for col, value in default_values.items():
        if col not in df.columns:
            df[col] = value
            continue
        missing_mask = blank_mask(df[col])
        if missing_mask.any():
            df.loc[missing_mask, col] = value

    keep = list(dict.fromkeys(canonical_order + list(_DATE_COLUMNS) + list(_NUMERIC_COLUMNS) + ["payment_frequency"]))
    df = df[keep].copy()

    # ── 2. Parsing ─────────────────────────────────────────────────────
    _check_required_not_null(df, required_columns, row_offset=row_offset)

    for col in _ID_COLUMNS:
        df[col] = _id_to_text(df[col])

    for col in _DATE_COLUMNS:
        parsed = pd.to_datetime(df[col], dayfirst=date_dayfirst, errors="coerce")
        error_if_invalid_parse(df, col, parsed, "date", row_offset=row_offset)
        df[col] = parsed

    for col in _NUMERIC_COLUMNS:
        parsed = parse_numeric_column(df[col])
        error_if_invalid_parse(df, col, parsed, "number", row_offset=row_offset)
        df[col] = parsed.astype(float)

    df["transaction_type"] = df["transaction_type"].astype("string").str.strip().astype(object)
    df["payment_frequency"] = df["payment_frequency"].where(~blank_mask(df["payment_frequency"]), None)

    # ── 3. Start-date filter ───────────────────────────────────────────
    if min_start_raw is not None:
        min_start = pd.Timestamp(min_start_raw)
        early = df["policy_start_date"] < min_start
        if early.any():
            logger.info(
                "Dropping %d rows with policy_start_date < %s",
                int(early.sum()), min_start.date(),
            )
            df = df.loc[~early].copy()

    # ── 4. Fully paid ──────────────────────────────────────────────────
    fully_paid = df["days_paid"].fillna(-1) >= schedule_rules.FULLY_PAID_DAYS
    if fully_paid.any():
        df.loc[fully_paid, list(_ZEROED_WHEN_FULLY_PAID)] = 0.0
        logger.info("Zeroed amounts on %d fully paid rows", int(fully_paid.sum()))

    # ── 5. Derived dates ───────────────────────────────────────────────
    df["event_effective_date"] = derive_event_effective_date(df)
    for col in _DATE_COLUMNS + ("event_effective_date",):
        df[col] = pd.Series(
            [None if pd.isna(v) else v.date() for v in df[col]],
            index=df.index,
            dtype=object,
        )
    df["policy_end_date"] = derive_policy_end_date(df["policy_start_date"])

    out = df[keep + list(DERIVED_COLUMNS)].reset_index(drop=True)
    logger.info("Clean base built: %d policy events", len(out))
    return out
