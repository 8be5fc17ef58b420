"""Service settings read from the environment at import time."""

from __future__ import annotations

import os

# Dev frontends on common Vite/React ports.
DEFAULT_CORS_ORIGINS = (
    "http://localhost:8080",
    "http://127.0.0.1:8080",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


def _split_origins(raw: str | None) -> list[str]:
    if not raw:
        return list(DEFAULT_CORS_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


# Comma-separated origin whitelist, e.g. "https://reports.example.com,http://localhost:3000"
CORS_ORIGINS: list[str] = _split_origins(os.environ.get("PREMIUM_SCHEDULE_CORS_ORIGINS"))

# Process pool size for partitioned schedule runs; 0 runs requests in-process.
SCHEDULE_WORKERS: int = int(os.environ.get("PREMIUM_SCHEDULE_WORKERS", "0") or 0)

# Upload formats accepted by POST /api/schedule/upload.
UPLOAD_SUFFIXES = (".csv", ".xlsx", ".xls", ".xlsm")
