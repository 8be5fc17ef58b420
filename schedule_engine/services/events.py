from __future__ import annotations

import re

import pandas as pd

from schedule_engine.config.schedule_rules import (
    KNOWN_TRANSACTION_TYPES,
    TRANSACTION_TYPE_ALIASES,
)
from schedule_engine.services.fields import AMOUNT_FIELDS
from schedule_engine.services.issues import IssueLog, SEVERITY_ERROR, ScheduleDataError


POLICY_EVENT_REQUIRED_COLUMNS = (
    "record_id",
    "policy_id",
    "transaction_type",
    "policy_start_date",
    "policy_end_date",
    "event_effective_date",
)

POLICY_EVENT_OPTIONAL_COLUMNS = ("payment_frequency",)

_EVENT_DATE_COLUMNS = ("policy_start_date", "policy_end_date", "event_effective_date")

# ISO timestamp; only the calendar date as written is kept.
_ISO_DATETIME_RE = re.compile(r"^\s*(\d{4}-\d{2}-\d{2})[T ]")


def ensure_required_columns(df: pd.DataFrame, required: tuple[str, ...], label: str) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ScheduleDataError(f"Missing required columns for {label}: {missing}")


def _record_ref(df: pd.DataFrame, mask: pd.Series) -> object:
    idx = df.index[mask][0]
    return df.at[idx, "record_id"] if "record_id" in df.columns else "<missing>"


def _blank_mask(s: pd.Series) -> pd.Series:
    blank = s.isna()
    if s.dtype == object or pd.api.types.is_string_dtype(s):
        blank = blank | s.astype(str).str.strip().isin({"", "nan", "None", "<NA>"})
    return blank


def _iso_date_part(value: object) -> object:
    if isinstance(value, str):
        m = _ISO_DATETIME_RE.match(value)
        if m:
            return m.group(1)
    return value


def parse_event_dates(raw: pd.Series) -> pd.Series:
    """ISO date strings of any precision, date and datetime objects -> datetime64; NaT when invalid."""
    return pd.to_datetime(raw.map(_iso_date_part), errors="coerce", format="ISO8601")


def normalise_transaction_type(value: object) -> str:
    if value is None or pd.isna(value):
        return ""
    token = str(value).strip()
    return TRANSACTION_TYPE_ALIASES.get(token.upper(), token)


def prepare_events(events: pd.DataFrame, issues: IssueLog) -> pd.DataFrame:
    """Validate and coerce a PolicyEvent table.

    Returns a copy with:
    - ``record_id``/``policy_id`` as stripped strings
    - ``transaction_type`` mapped to the canonical labels
    - the three date columns as ``datetime.date``
    - every amount column as float (blank -> NaN)

    Raises ``ScheduleDataError`` on structural failures (missing columns,
    blank identifiers, duplicated ``record_id``, null or unparseable dates),
    naming the first offending ``record_id``. A non-numeric amount is an
    ``invalid_amount`` error issue on its event; the cell becomes NaN.
    """
    ensure_required_columns(events, POLICY_EVENT_REQUIRED_COLUMNS, "policy events")
    df = events.reset_index(drop=True).copy()

    for col in POLICY_EVENT_OPTIONAL_COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA

    # ── 1. Identifiers ─────────────────────────────────────────────────
    for col in ("record_id", "policy_id"):
        blank = _blank_mask(df[col])
        if blank.any():
            raise ScheduleDataError(
                f"Required value is empty in {col!r} for record_id={_record_ref(df, blank)!r}"
            )
        df[col] = df[col].astype(str).str.strip()

    dup = df["record_id"].duplicated(keep=False)
    if dup.any():
        dups = sorted(df.loc[dup, "record_id"].unique().tolist())[:10]
        raise ScheduleDataError(f"Duplicated record_id values: {dups}")

    # ── 2. Dates ───────────────────────────────────────────────────────
    for col in _EVENT_DATE_COLUMNS:
        raw = df[col]
        parsed = parse_event_dates(raw)
        bad = parsed.isna()
        if bad.any():
            idx = df.index[bad][0]
            raise ScheduleDataError(
                f"Null or invalid date in {col!r} for record_id={df.at[idx, 'record_id']!r}, "
                f"policy_id={df.at[idx, 'policy_id']!r}: {raw.at[idx]!r}"
            )
        df[col] = parsed.dt.date.values

    # ── 3. Transaction types ───────────────────────────────────────────
    df["transaction_type"] = df["transaction_type"].map(normalise_transaction_type)
    unknown = ~df["transaction_type"].isin(KNOWN_TRANSACTION_TYPES)
    for row in df.loc[unknown, ["policy_id", "record_id", "transaction_type"]].itertuples(index=False):
        issues.add(
            "unrecognised_transaction_type",
            f"Transaction type {row.transaction_type!r} scheduled as a base event.",
            policy_id=row.policy_id,
            record_id=row.record_id,
        )

    # ── 4. Amounts ─────────────────────────────────────────────────────
    for f in AMOUNT_FIELDS:
        col = f.source_column
        if col not in df.columns:
            df[col] = float("nan")
            continue
        raw = df[col]
        parsed = pd.to_numeric(raw, errors="coerce")
        bad = parsed.isna() & ~_blank_mask(raw)
        for idx in df.index[bad]:
            issues.add(
                "invalid_amount",
                f"Invalid number in {col!r}: {raw.at[idx]!r}; amount treated as null.",
                policy_id=df.at[idx, "policy_id"],
                record_id=df.at[idx, "record_id"],
                severity=SEVERITY_ERROR,
            )
        df[col] = parsed.astype(float)

    return df.reset_index(drop=True)
