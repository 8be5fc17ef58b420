"""Pydantic models defining the REST contract of the schedule service."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ── Requests ────────────────────────────────────────────────────────────────

class PolicyEventIn(BaseModel):
    """
    One canonical policy event. Amount columns (``product_a_premium``,
    ``product_b_tax``, ...) travel as extra fields.

    Dates are ISO strings; parsing happens in the engine so that a bad date
    is reported with its record_id as a 400, not a generic 422.
    """
    model_config = ConfigDict(extra="allow")

    record_id: str
    policy_id: str
    transaction_type: str
    policy_start_date: str | None = None
    policy_end_date: str | None = None
    event_effective_date: str | None = None
    payment_frequency: str | None = None


class ScheduleOptionsIn(BaseModel):
    late_upgrade_mode: str = "drop"
    duplicate_cancellation_mode: str = "earliest"
    missing_count_mode: str = "null"


class ScheduleRequest(BaseModel):
    events: list[PolicyEventIn]
    options: ScheduleOptionsIn = Field(default_factory=ScheduleOptionsIn)


class CohortRequest(ScheduleRequest):
    component: str = "premium"
    products: list[str] | None = None
    include_upgrades: bool = True
    reattribute_cancellations: bool = False


# ── Responses ───────────────────────────────────────────────────────────────

class ScheduleIssueOut(BaseModel):
    severity: str
    code: str
    policy_id: str | None = None
    record_id: str | None = None
    message: str


class ScheduleResponse(BaseModel):
    row_count: int
    rows: list[dict[str, Any]]
    issues: list[ScheduleIssueOut] = Field(default_factory=list)
    has_errors: bool = False


class CohortResponse(BaseModel):
    underwritten_month_keys: list[int]
    payment_month_keys: list[int]
    values: list[list[float]]
    issues: list[ScheduleIssueOut] = Field(default_factory=list)
