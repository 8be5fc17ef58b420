from .clean_base import build_clean_base
from .events_reader import read_policy_events, read_tabular_raw
from .schedule_writer import write_schedule

__all__ = [
    "build_clean_base",
    "read_policy_events",
    "read_tabular_raw",
    "write_schedule",
]
