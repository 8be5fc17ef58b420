from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

import pandas as pd

from schedule_engine.io import read_policy_events, write_schedule
from schedule_engine.services import ScheduleDataError, ScheduleOptions, build_cohort_matrix, run_schedule
from schedule_engine.services.options import (
    _SUPPORTED_DUPLICATE_CANCELLATION_MODES,
    _SUPPORTED_LATE_UPGRADE_MODES,
    _SUPPORTED_MISSING_COUNT_MODES,
)


def _read_canonical_events(path: Path) -> pd.DataFrame:
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pd.read_parquet(path)
    if suffix == ".csv":
        return pd.read_csv(path, dtype={"record_id": str, "policy_id": str})
    raise ValueError(f"Unsupported extension for policy events: {path.suffix}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate the premium payment schedule from a policy event table."
    )
    parser.add_argument("input", help="Policy events (canonical .csv/.parquet, or raw export with --raw).")
    parser.add_argument(
        "--output",
        default=None,
        help="Schedule output (.csv or .parquet). Default: <input>_schedule.csv",
    )
    parser.add_argument(
        "--raw",
        action="store_true",
        help="Input is a raw policy export (.csv/.xlsx); build the clean base first.",
    )
    parser.add_argument(
        "--late-upgrade-mode",
        choices=sorted(_SUPPORTED_LATE_UPGRADE_MODES),
        default="drop",
    )
    parser.add_argument(
        "--duplicate-cancellation-mode",
        choices=sorted(_SUPPORTED_DUPLICATE_CANCELLATION_MODES),
        default="earliest",
    )
    parser.add_argument(
        "--missing-count-mode",
        choices=sorted(_SUPPORTED_MISSING_COUNT_MODES),
        default="null",
    )
    parser.add_argument(
        "--parallel",
        type=int,
        default=0,
        help="Worker processes for partitioned runs (0 = in-process).",
    )
    parser.add_argument(
        "--issues-output",
        default=None,
        help="Optional CSV with the data-quality issues of the run.",
    )
    parser.add_argument(
        "--cohort-output",
        default=None,
        help="Optional CSV with the underwritten x payment month premium matrix.",
    )
    parser.add_argument("--log-level", default="INFO")

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input)
    if not input_path.exists():
        raise FileNotFoundError(f"Input file does not exist: {input_path}")

    options = ScheduleOptions(
        late_upgrade_mode=args.late_upgrade_mode,
        duplicate_cancellation_mode=args.duplicate_cancellation_mode,
        missing_count_mode=args.missing_count_mode,
    )

    try:
        events = read_policy_events(input_path) if args.raw else _read_canonical_events(input_path)
        result = run_schedule(events, options=options, parallel=max(0, int(args.parallel)))
    except ScheduleDataError as exc:
        print(f"Schedule rejected: {exc}", file=sys.stderr)
        return 2
    except ValueError as exc:
        print(f"Cannot read policy events: {exc}", file=sys.stderr)
        return 2

    output = Path(args.output) if args.output else input_path.with_name(f"{input_path.stem}_schedule.csv")
    write_schedule(result.rows, output)

    if args.issues_output:
        result.issues_frame().to_csv(args.issues_output, index=False)
    if args.cohort_output:
        build_cohort_matrix(result.rows).to_csv(args.cohort_output)

    print("=== PREMIUM SCHEDULE ===")
    print(f"input: {input_path}")
    print(f"events: {len(events)}")
    print(f"policies: {result.rows['policy_id'].nunique()}")
    print(f"rows: {len(result.rows)}")
    print(f"output: {output.resolve()}")
    if result.issues:
        counts = result.issues_frame().groupby(["severity", "code"]).size()
        print()
        print("issues:")
        for (severity, code), n in counts.items():
            print(f" - {severity} {code}: {n}")
    return 1 if result.has_errors else 0


if __name__ == "__main__":
    sys.exit(main())
