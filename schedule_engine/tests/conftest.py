"""Shared pytest fixtures and event builders for engine and API tests.

Provides:
- test_client: session-scoped FastAPI TestClient with lifespan handling
- make_event: one canonical PolicyEvent record with sensible defaults
- events_frame: DataFrame of canonical events
- SYNTHETIC_RAW_EXPORT_CSV: raw source export in the template's headers
"""

from __future__ import annotations

from datetime import date
from typing import Any

import pandas as pd
import pytest
from starlette.testclient import TestClient

from schedule_api.main import app


# ── TestClient ─────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def test_client():
    """Session-scoped TestClient; triggers app lifespan."""
    with TestClient(app) as client:
        yield client


# ── Canonical event builders ───────────────────────────────────────────────

POLICY_START = date(2024, 1, 1)
POLICY_END = date(2024, 12, 31)


def make_event(
    record_id: str = "R1",
    policy_id: str = "POL-9001",
    transaction_type: str = "New",
    *,
    policy_start_date: date = POLICY_START,
    policy_end_date: date = POLICY_END,
    event_effective_date: date | None = None,
    payment_frequency: str | None = "monthly",
    **amounts: float,
) -> dict[str, Any]:
    """Canonical event; amounts as keyword args, e.g. product_a_premium=1200.0."""
    return {
        "record_id": record_id,
        "policy_id": policy_id,
        "transaction_type": transaction_type,
        "policy_start_date": policy_start_date,
        "policy_end_date": policy_end_date,
        "event_effective_date": event_effective_date or policy_start_date,
        "payment_frequency": payment_frequency,
        **amounts,
    }


def events_frame(*events: dict[str, Any]) -> pd.DataFrame:
    return pd.DataFrame(list(events))


def rows_for(rows: pd.DataFrame, record_id: str) -> pd.DataFrame:
    return rows.loc[rows["record_id"] == record_id].reset_index(drop=True)


def issue_codes(result) -> list[str]:
    return [i.code for i in result.issues]


# ── Raw export (source headers) ────────────────────────────────────────────
#
# Headers follow source_mapping_template.SOURCE_COLUMNS_MAP. Dates are
# day-first; amounts use a dot decimal separator.

SYNTHETIC_RAW_EXPORT_CSV = """\
RecordID,PolicyID,TransactionType,PolicyStartDate,CancellationDate,DaysUsed,DaysPaid,PaymentFrequency,AnnualTotalCharge,ProductA_Premium,ProductA_TaxAmount,ProductA_Commission,ProductA_AdminFee,ProductB_Premium,ProductB_TaxAmount,ProductB_Commission,ProductC_Premium,ProductC_TaxAmount,ProductC_Commission,ProductC_AdminFee
1,POL-1,New,01/01/2024,,30,30,monthly,1300,1200,100,0,0,,,,,,,
2,POL-1,Cancellation,01/01/2024,10/09/2024,253,253,monthly,1300,1200,100,0,0,,,,,,,
3,POL-2,New,15/03/2024,,400,400,quarterly,500,400,100,0,0,,,,,,,
4,POL-3,Renewal,01/02/2024,15/01/2024,10,10,annual,240,,,,,200,40,0,,,,
"""
