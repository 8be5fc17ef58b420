from __future__ import annotations

import pandas as pd

from schedule_engine.core._frequency import is_known_frequency, resolve_interval_months
from schedule_engine.services.context import ScheduleContext


def resolve_frequency(events: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    """Add ``interval_months`` (1, 3 or 12); unknown labels default to monthly."""
    df = events.copy()
    df["interval_months"] = df["payment_frequency"].map(resolve_interval_months).astype("int64")

    unknown = ~df["payment_frequency"].map(is_known_frequency).astype(bool)
    for row in df.loc[unknown, ["policy_id", "record_id", "payment_frequency"]].itertuples(index=False):
        ctx.issues.add(
            "unrecognised_frequency",
            f"Payment frequency {row.payment_frequency!r} not recognised; scheduled monthly.",
            policy_id=row.policy_id,
            record_id=row.record_id,
        )
    return df
