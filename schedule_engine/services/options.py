from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping


LATE_UPGRADE_DROP = "drop"
LATE_UPGRADE_LUMP_SUM = "lump_sum"
LATE_UPGRADE_ERROR = "error"
_SUPPORTED_LATE_UPGRADE_MODES = {LATE_UPGRADE_DROP, LATE_UPGRADE_LUMP_SUM, LATE_UPGRADE_ERROR}

DUPLICATE_CANCELLATION_EARLIEST = "earliest"
DUPLICATE_CANCELLATION_LATEST = "latest"
DUPLICATE_CANCELLATION_REJECT = "reject"
_SUPPORTED_DUPLICATE_CANCELLATION_MODES = {
    DUPLICATE_CANCELLATION_EARLIEST,
    DUPLICATE_CANCELLATION_LATEST,
    DUPLICATE_CANCELLATION_REJECT,
}

MISSING_COUNT_NULL = "null"
MISSING_COUNT_ZERO = "zero"
MISSING_COUNT_ERROR = "error"
_SUPPORTED_MISSING_COUNT_MODES = {MISSING_COUNT_NULL, MISSING_COUNT_ZERO, MISSING_COUNT_ERROR}


@dataclass(frozen=True)
class ScheduleOptions:
    """
    Run-level switches for the three data conditions the source rules leave open.

    - late_upgrade_mode: upgrade whose start falls after the policy end.
      "drop" emits no rows, "lump_sum" emits one row on policy_end_date,
      "error" reports an error issue and emits no rows.
    - duplicate_cancellation_mode: more than one Cancellation per policy.
      "earliest"/"latest" pick that date, "reject" fails the run.
    - missing_count_mode: event without an instalment count.
      "null" propagates null amounts, "zero" writes 0.0, "error" reports
      an error issue and leaves amounts null.

    Every mode records an issue; defaults reproduce the source behaviour.
    """

    late_upgrade_mode: str = LATE_UPGRADE_DROP
    duplicate_cancellation_mode: str = DUPLICATE_CANCELLATION_EARLIEST
    missing_count_mode: str = MISSING_COUNT_NULL

    def __post_init__(self) -> None:
        _check_mode("late_upgrade_mode", self.late_upgrade_mode, _SUPPORTED_LATE_UPGRADE_MODES)
        _check_mode(
            "duplicate_cancellation_mode",
            self.duplicate_cancellation_mode,
            _SUPPORTED_DUPLICATE_CANCELLATION_MODES,
        )
        _check_mode("missing_count_mode", self.missing_count_mode, _SUPPORTED_MISSING_COUNT_MODES)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> "ScheduleOptions":
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown schedule options: {unknown}. Allowed: {sorted(known)}")
        return cls(**{k: str(v).strip().lower() for k, v in values.items() if v is not None})


def _check_mode(field_name: str, value: str, allowed: set[str]) -> None:
    if value not in allowed:
        raise ValueError(
            f"Invalid value in {field_name!r}: {value!r}. Allowed: {sorted(allowed)}"
        )
