"""Payment frequency label parsing."""

from __future__ import annotations

from schedule_engine.config.schedule_rules import (
    DEFAULT_INTERVAL_MONTHS,
    FREQUENCY_INSTALMENT_COUNTS,
    FREQUENCY_INTERVAL_MONTHS,
)


def normalise_frequency(value: object) -> str | None:
    """Lower-case, trimmed frequency label; None if blank/NaN."""
    if value is None:
        return None
    if isinstance(value, float) and (value != value):  # NaN
        return None
    token = str(value).strip().lower()
    if token == "" or token in {"nan", "none", "<na>"}:
        return None
    return token


def is_known_frequency(value: object) -> bool:
    return normalise_frequency(value) in FREQUENCY_INTERVAL_MONTHS


def resolve_interval_months(value: object) -> int:
    """Map a frequency label ('monthly', 'Quarterly ', ...) to months per instalment.

    Unrecognised or blank labels default to monthly; callers that care
    should check ``is_known_frequency`` and report the default.
    """
    token = normalise_frequency(value)
    if token is None:
        return DEFAULT_INTERVAL_MONTHS
    return FREQUENCY_INTERVAL_MONTHS.get(token, DEFAULT_INTERVAL_MONTHS)


def frequency_instalment_count(value: object) -> int | None:
    """Instalments per year for a frequency label; None when the label is unknown."""
    token = normalise_frequency(value)
    if token is None:
        return None
    return FREQUENCY_INSTALMENT_COUNTS.get(token)
