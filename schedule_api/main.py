"""
Premium schedule service – FastAPI wrapper around schedule_engine.

Endpoints:
  GET  /api/health            → liveness
  POST /api/schedule          → canonical events (JSON) → schedule rows + issues
  POST /api/schedule/upload   → raw CSV/Excel export → clean base → schedule
  POST /api/cohort            → canonical events → underwritten x payment month matrix

Structural input failures (missing columns, bad dates, duplicate record ids,
invalid options) come back as HTTP 400 with the engine's message. Data
conditions that do not stop a run travel in ``issues``.
"""

from __future__ import annotations

import json
import logging
import multiprocessing as mp
import tempfile
from concurrent.futures import ProcessPoolExecutor, wait as _cf_wait
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Any

import pandas as pd
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

import schedule_api.state as state
from schedule_api.config import CORS_ORIGINS, SCHEDULE_WORKERS, UPLOAD_SUFFIXES
from schedule_api.schemas import (
    CohortRequest,
    CohortResponse,
    PolicyEventIn,
    ScheduleIssueOut,
    ScheduleRequest,
    ScheduleResponse,
)
from schedule_engine.io import read_policy_events
from schedule_engine.services import (
    ScheduleOptions,
    ScheduleRunResult,
    build_cohort_matrix,
    run_schedule,
)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """
    Pre-warm the process pool before accepting requests.

    Only when PREMIUM_SCHEDULE_WORKERS > 0; otherwise every request runs
    in-process.
    """
    if SCHEDULE_WORKERS > 0:
        import schedule_engine.workers as _workers

        ctx = mp.get_context("spawn")
        state._executor = ProcessPoolExecutor(max_workers=SCHEDULE_WORKERS, mp_context=ctx)
        _cf_wait([state._executor.submit(_workers.warmup) for _ in range(SCHEDULE_WORKERS)])
        logger.info("Schedule process pool ready (%d workers)", SCHEDULE_WORKERS)
    yield
    if state._executor is not None:
        state._executor.shutdown(wait=True)
        state._executor = None


app = FastAPI(title="Premium Schedule", lifespan=_lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Helpers ─────────────────────────────────────────────────────────────────

def _options_or_400(values: dict[str, Any]) -> ScheduleOptions:
    try:
        return ScheduleOptions.from_mapping(values)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _events_frame(req: ScheduleRequest) -> pd.DataFrame:
    if not req.events:
        return pd.DataFrame(columns=list(PolicyEventIn.model_fields))
    return pd.DataFrame([e.model_dump() for e in req.events])


def _run_or_400(events: pd.DataFrame, options: ScheduleOptions) -> ScheduleRunResult:
    # ScheduleDataError is a ValueError
    try:
        return run_schedule(events, options=options, executor=state._executor)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _rows_to_records(rows: pd.DataFrame) -> list[dict[str, Any]]:
    """JSON-safe records: ISO dates, null for NaN/NA."""
    out = rows.copy()
    for col in out.columns:
        if out[col].dtype == object:
            out[col] = [v.isoformat() if isinstance(v, date) else v for v in out[col]]
    return json.loads(out.to_json(orient="records"))


def _issues_out(result: ScheduleRunResult) -> list[ScheduleIssueOut]:
    return [ScheduleIssueOut(**i.to_dict()) for i in result.issues]


def _schedule_response(result: ScheduleRunResult) -> ScheduleResponse:
    return ScheduleResponse(
        row_count=len(result.rows),
        rows=_rows_to_records(result.rows),
        issues=_issues_out(result),
        has_errors=result.has_errors,
    )


# ── Routes ──────────────────────────────────────────────────────────────────

@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/schedule", response_model=ScheduleResponse)
def generate_schedule(req: ScheduleRequest) -> ScheduleResponse:
    options = _options_or_400(req.options.model_dump())
    result = _run_or_400(_events_frame(req), options)
    return _schedule_response(result)


@app.post("/api/schedule/upload", response_model=ScheduleResponse)
async def upload_schedule(
    file: UploadFile = File(...),
    late_upgrade_mode: str = Form("drop"),
    duplicate_cancellation_mode: str = Form("earliest"),
    missing_count_mode: str = Form("null"),
) -> ScheduleResponse:
    filename = file.filename or ""
    suffix = Path(filename).suffix.lower()
    if suffix not in UPLOAD_SUFFIXES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type {suffix or '<none>'}. Allowed: {list(UPLOAD_SUFFIXES)}",
        )

    options = _options_or_400(
        {
            "late_upgrade_mode": late_upgrade_mode,
            "duplicate_cancellation_mode": duplicate_cancellation_mode,
            "missing_count_mode": missing_count_mode,
        }
    )
    content = await file.read()

    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / f"upload{suffix}"
        path.write_bytes(content)
        try:
            events = read_policy_events(path)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=f"Cannot read policy export: {exc}") from exc

    logger.info("Upload %s: %d policy events", filename, len(events))
    result = _run_or_400(events, options)
    return _schedule_response(result)


@app.post("/api/cohort", response_model=CohortResponse)
def cohort_matrix(req: CohortRequest) -> CohortResponse:
    options = _options_or_400(req.options.model_dump())
    result = _run_or_400(_events_frame(req), options)
    try:
        matrix = build_cohort_matrix(
            result.rows,
            component=req.component,
            products=req.products,
            include_upgrades=req.include_upgrades,
            reattribute_cancellations=req.reattribute_cancellations,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return CohortResponse(
        underwritten_month_keys=[int(k) for k in matrix.index],
        payment_month_keys=[int(k) for k in matrix.columns],
        values=[[float(v) for v in row] for row in matrix.to_numpy()],
        issues=_issues_out(result),
    )
