"""Shared IO utilities for mapping access, header matching and vectorised parsing."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import numpy as np
import pandas as pd


def mapping_attr(mapping_module: Any, attr_name: str) -> Any:
    """Get a required attribute from a mapping module or dict; raises on missing."""
    if isinstance(mapping_module, Mapping):
        if attr_name not in mapping_module:
            raise ValueError(f"mapping_module sin clave requerida: {attr_name}")
        return mapping_module[attr_name]

    if not hasattr(mapping_module, attr_name):
        raise ValueError(f"mapping_module sin atributo requerido: {attr_name}")
    return getattr(mapping_module, attr_name)


def mapping_attr_optional(mapping_module: Any, attr_name: str, default: Any) -> Any:
    """Get an optional attribute from a mapping module or dict; returns default."""
    if isinstance(mapping_module, Mapping):
        return mapping_module.get(attr_name, default)
    return getattr(mapping_module, attr_name, default)


def norm_header(value: Any) -> str:
    """Normalise a column header for fuzzy matching (upper, strip whitespace/punctuation)."""
    s = str(value).strip().upper()
    return s.replace(" ", "").replace("_", "").replace("-", "")


def blank_mask(series: pd.Series) -> pd.Series:
    """True where a cell is NaN/None or whitespace-only."""
    return series.isna() | series.astype(str).str.strip().eq("")


def parse_numeric_column(series: pd.Series) -> pd.Series:
    """Vectorised numeric parser handling comma/dot ambiguity and currency noise."""
    s = series.astype(str).str.strip()
    s = s.str.replace(" ", "", regex=False).str.replace("£", "", regex=False)

    # Blank / NaN sentinels
    s = s.replace({"nan": "", "None": "", "none": "", "<NA>": "", "NaN": "", "NaT": ""})

    has_comma = s.str.contains(",", na=False)
    has_dot = s.str.contains(".", na=False, regex=False)
    has_both = has_comma & has_dot
    comma_last = s.str.rfind(",") > s.str.rfind(".")

    # European: 1.000,50 → 1000.50
    euro = has_both & comma_last
    s = s.where(~euro, s.str.replace(".", "", regex=False).str.replace(",", ".", regex=False))
    # UK/US: 1,000.50 → 1000.50
    us = has_both & ~comma_last
    s = s.where(~us, s.str.replace(",", "", regex=False))
    # Only comma: 3,25 → 3.25
    only_comma = has_comma & ~has_dot
    s = s.where(~only_comma, s.str.replace(",", ".", regex=False))

    s = s.replace({"": np.nan})
    return pd.to_numeric(s, errors="coerce")


def error_if_invalid_parse(
    df: pd.DataFrame,
    column: str,
    parsed: pd.Series,
    kind: str,
    *,
    row_offset: int,
) -> None:
    """Raise when a non-blank source cell failed to parse; names up to 10 rows."""
    raw = df[column]
    invalid = ~blank_mask(raw) & parsed.isna()
    if not invalid.any():
        return

    rows = [int(i) + row_offset for i in raw[invalid].index[:10].tolist()]
    values = sorted({str(v) for v in raw[invalid].head(10).tolist()})
    raise ValueError(
        f"Could not parse {kind} in column '{column}' for rows {rows}: {values}"
    )
