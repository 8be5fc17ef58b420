from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Mapping

import pandas as pd

from schedule_engine.services.issues import IssueLog
from schedule_engine.services.options import ScheduleOptions


@dataclass
class ScheduleContext:
    """State handed explicitly to every stage of one run.

    ``cancellation_lookup`` is filled by the policy-level barrier before the
    row stages run; stages read it, never rebuild it.
    """

    options: ScheduleOptions = field(default_factory=ScheduleOptions)
    issues: IssueLog = field(default_factory=IssueLog)
    cancellation_lookup: Mapping[str, date] = field(default_factory=dict)


Stage = Callable[[pd.DataFrame, ScheduleContext], pd.DataFrame]
