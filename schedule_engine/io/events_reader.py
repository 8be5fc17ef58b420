from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from schedule_engine.io._utils import norm_header
from schedule_engine.io.clean_base import build_clean_base


logger = logging.getLogger(__name__)

_DEFAULT_CSV_ENCODINGS = ("utf-8", "utf-8-sig", "cp1252", "latin-1")
_DEFAULT_CSV_DELIMITERS = (",", ";", "\t", "|")
_HEADER_SEARCH_LINES = 50


def _iter_csv_encodings(preferred_encoding: str | None) -> list[str]:
    # An explicit encoding is trusted; no fallbacks.
    if preferred_encoding:
        return [preferred_encoding]
    return list(_DEFAULT_CSV_ENCODINGS)


def _detect_delimiter_from_line(line: str) -> str:
    best = ","
    best_count = -1
    for delim in _DEFAULT_CSV_DELIMITERS:
        count = line.count(delim)
        if count > best_count:
            best = delim
            best_count = count
    return best


def _find_header_row_from_lines(lines: list[str], header_token: str) -> int | None:
    token = norm_header(header_token)
    for idx, line in enumerate(lines):
        if token in norm_header(line):
            return idx
    return None


def _load_csv_table(
    path: Path,
    *,
    delimiter: str | None,
    encoding: str | None,
    header_row: int | None,
    header_token: str | None,
) -> tuple[pd.DataFrame, int]:
    if header_row is None and not header_token:
        raise ValueError("For CSV you must specify header_row or header_token.")

    last_error: Exception | None = None

    for enc in _iter_csv_encodings(encoding):
        try:
            with open(path, encoding=enc) as fh:
                head_lines: list[str] = []
                for _ in range(_HEADER_SEARCH_LINES):
                    line = fh.readline()
                    if not line:
                        break
                    head_lines.append(line.rstrip("\n\r"))
        except UnicodeDecodeError as exc:
            last_error = exc
            continue

        resolved_header_row = 0 if header_row is None else int(header_row)
        if header_token:
            found = _find_header_row_from_lines(head_lines, header_token)
            if found is None:
                last_error = ValueError(
                    f"Could not find header_token='{header_token}' in {path}"
                )
                continue
            resolved_header_row = found

        if not head_lines:
            return pd.DataFrame(), resolved_header_row

        if resolved_header_row < 0 or resolved_header_row >= len(head_lines):
            last_error = ValueError(
                f"header_row out of range ({resolved_header_row}) in {path}"
            )
            continue

        resolved_delimiter = delimiter or _detect_delimiter_from_line(head_lines[resolved_header_row])
        try:
            # Identifiers stay text so leading zeros survive.
            df = pd.read_csv(
                path,
                sep=resolved_delimiter,
                header=resolved_header_row,
                encoding=enc,
                dtype=str,
                keep_default_na=True,
            )
        except (UnicodeDecodeError, pd.errors.ParserError) as exc:
            last_error = exc
            continue

        df = df.dropna(how="all")
        logger.debug(
            "Read %d rows from %s (encoding=%s, delimiter=%r, header_row=%d)",
            len(df), path.name, enc, resolved_delimiter, resolved_header_row,
        )
        return df, resolved_header_row

    if last_error is not None:
        raise ValueError(f"Could not read CSV '{path}': {last_error}") from last_error
    raise ValueError(f"Could not read CSV '{path}'.")


def read_tabular_raw(
    path: str | Path,
    *,
    file_type: str = "auto",
    sheet_name: str | int = 0,
    delimiter: str | None = None,
    encoding: str | None = None,
    header_row: int | None = 0,
    header_token: str | None = None,
) -> tuple[pd.DataFrame, int]:
    """
    Reads a CSV/Excel policy export in raw form (without mapping), returning:
    - DataFrame with non-empty rows
    - detected/used header row index
    """

    input_path = Path(path)
    if not input_path.exists():
        raise FileNotFoundError(f"Policy export does not exist: {input_path}")

    resolved_type = file_type.lower()
    if resolved_type == "auto":
        suffix = input_path.suffix.lower()
        if suffix in {".xls", ".xlsx", ".xlsm"}:
            resolved_type = "excel"
        elif suffix in {".csv", ".txt"}:
            resolved_type = "csv"
        else:
            raise ValueError(f"Unsupported extension for policy export: {input_path.suffix}")

    if resolved_type == "excel":
        resolved_header_row = 0 if header_row is None else int(header_row)
        df_raw = pd.read_excel(
            input_path,
            sheet_name=sheet_name,
            header=resolved_header_row,
            engine="openpyxl",
        )
    elif resolved_type == "csv":
        df_raw, resolved_header_row = _load_csv_table(
            input_path,
            delimiter=delimiter,
            encoding=encoding,
            header_row=header_row,
            header_token=header_token,
        )
    else:
        raise ValueError(f"Unsupported file_type: {file_type}")

    return df_raw.dropna(how="all"), resolved_header_row


def read_policy_events(
    path: str | Path,
    mapping_module: Any = None,
    *,
    file_type: str = "auto",
    sheet_name: str | int = 0,
    delimiter: str | None = None,
    encoding: str | None = None,
    header_row: int | None = 0,
    header_token: str | None = None,
) -> pd.DataFrame:
    """
    Reads a raw policy export (CSV/Excel) and returns the clean PolicyEvent base.

    Typical case with report metadata above the real header:
    header_token="PolicyID"
    """
    df_raw, resolved_header_row = read_tabular_raw(
        path,
        file_type=file_type,
        sheet_name=sheet_name,
        delimiter=delimiter,
        encoding=encoding,
        header_row=header_row,
        header_token=header_token,
    )
    return build_clean_base(df_raw, mapping_module, row_offset=resolved_header_row + 2)
