"""
Global mutable state shared across the application.

Modules access it via ``import schedule_api.state as state`` and then
``state._executor`` so that rebinding in the lifespan function is visible
everywhere.
"""

from __future__ import annotations

from concurrent.futures import ProcessPoolExecutor

# Persistent process pool – created at startup in main._lifespan() when
# PREMIUM_SCHEDULE_WORKERS > 0.
_executor: ProcessPoolExecutor | None = None
