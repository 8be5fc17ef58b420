from __future__ import annotations

import logging

import pandas as pd

from schedule_engine.services.context import ScheduleContext


logger = logging.getLogger(__name__)


def resolve_policy_bounds(events: pd.DataFrame, ctx: ScheduleContext) -> pd.DataFrame:
    """One term window per policy: earliest start and latest end across its events."""
    df = events.copy()
    if df.empty:
        return df

    start_ts = pd.to_datetime(df["policy_start_date"])
    end_ts = pd.to_datetime(df["policy_end_date"])
    start = start_ts.groupby(df["policy_id"], sort=False).transform("min").dt.date
    end = end_ts.groupby(df["policy_id"], sort=False).transform("max").dt.date

    changed = (start != df["policy_start_date"]) | (end != df["policy_end_date"])
    if changed.any():
        logger.info(
            "Harmonised policy bounds on %d event rows across %d policies",
            int(changed.sum()),
            int(df.loc[changed, "policy_id"].nunique()),
        )

    df["policy_start_date"] = start.values
    df["policy_end_date"] = end.values

    inverted = df["policy_end_date"] < df["policy_start_date"]
    for row in df.loc[inverted, ["policy_id", "record_id"]].itertuples(index=False):
        ctx.issues.add(
            "policy_end_before_start",
            "policy_end_date is earlier than policy_start_date; no schedule dates fit the term.",
            policy_id=row.policy_id,
            record_id=row.record_id,
        )
    return df
