"""Schedule export to CSV or Parquet."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq


logger = logging.getLogger(__name__)

_SUPPORTED_SUFFIXES = {".csv", ".parquet"}


def write_schedule(rows: pd.DataFrame, path: str | Path) -> Path:
    """
    Writes schedule rows to *path*; the format follows the suffix.

    - .csv: ISO dates, empty cells for nulls, no index
    - .parquet: date columns as date32, nullable Int64 kept as int64 with nulls
    """
    out_path = Path(path)
    suffix = out_path.suffix.lower()
    if suffix not in _SUPPORTED_SUFFIXES:
        raise ValueError(
            f"Unsupported schedule output extension: {out_path.suffix!r}. "
            f"Allowed: {sorted(_SUPPORTED_SUFFIXES)}"
        )

    out_path.parent.mkdir(parents=True, exist_ok=True)
    if suffix == ".csv":
        rows.to_csv(out_path, index=False, date_format="%Y-%m-%d")
    else:
        table = pa.Table.from_pandas(rows, preserve_index=False)
        pq.write_table(table, out_path)

    logger.info("Wrote %d schedule rows to %s", len(rows), out_path)
    return out_path
