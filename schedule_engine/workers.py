"""
Picklable worker functions for ProcessPoolExecutor.

Defined at module level in a dedicated module so that child processes only
import the engine, not the FastAPI app (which would re-run app = FastAPI(),
add_middleware, etc. on every spawn).
"""
from __future__ import annotations

import pandas as pd


def warmup() -> None:
    """
    Pre-import the engine modules so that subsequent task calls in this
    worker process incur zero import overhead.
    Called once per worker during server startup (lifespan).
    """
    import schedule_engine.services.pipeline  # noqa: F401


def expand_schedule_partition(events: pd.DataFrame, options, cancellation_lookup: dict):
    """Row-local schedule stages for one partition of whole policies."""
    from schedule_engine.services.pipeline import expand_partition

    return expand_partition(
        events,
        options=options,
        cancellation_lookup=cancellation_lookup,
    )
