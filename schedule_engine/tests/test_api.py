"""HTTP contract of the schedule service (FastAPI TestClient)."""

from __future__ import annotations

from typing import Any

import pytest

from schedule_engine.tests.conftest import SYNTHETIC_RAW_EXPORT_CSV


def _event(record_id: str = "R1", **overrides: Any) -> dict[str, Any]:
    event = {
        "record_id": record_id,
        "policy_id": "POL-9001",
        "transaction_type": "New",
        "policy_start_date": "2024-01-01",
        "policy_end_date": "2024-12-31",
        "event_effective_date": "2024-01-01",
        "payment_frequency": "monthly",
        "product_a_premium": 1200.0,
        "product_a_tax": 100.0,
    }
    event.update(overrides)
    return event


class TestHealth:
    def test_health(self, test_client):
        resp = test_client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}


class TestSchedule:
    def test_monthly_new_policy(self, test_client):
        resp = test_client.post("/api/schedule", json={"events": [_event()]})
        assert resp.status_code == 200
        body = resp.json()

        assert body["row_count"] == 12
        assert body["has_errors"] is False
        first = body["rows"][0]
        assert first["pay_date"] == "2024-01-01"
        assert first["payment_month_key"] == 202401
        assert first["instalment_count"] == 12
        assert first["base_instalment_a_premium"] == 100.0
        assert first["cancellation_effective_date"] is None
        assert body["rows"][-1]["pay_date"] == "2024-12-01"

    def test_cancellation_issues_and_status(self, test_client):
        events = [
            _event(),
            _event(
                "R2",
                transaction_type="Cancellation",
                event_effective_date="2024-09-10",
                product_a_premium=-400.0,
                product_a_tax=None,
            ),
        ]
        resp = test_client.post("/api/schedule", json={"events": events})
        assert resp.status_code == 200
        rows = [r for r in resp.json()["rows"] if r["record_id"] == "R1"]
        statuses = {r["pay_date"]: r["cancellation_status"] for r in rows}
        assert statuses["2024-08-01"] == "Before Cancellation"
        assert statuses["2024-10-01"] == "After Cancellation"
        assert all(r["cancellation_effective_date"] == "2024-09-10" for r in rows)

    def test_bad_date_is_400_naming_record(self, test_client):
        resp = test_client.post(
            "/api/schedule", json={"events": [_event(policy_start_date="2024-13-45")]}
        )
        assert resp.status_code == 400
        assert "R1" in resp.json()["detail"]

    def test_duplicate_record_id_is_400(self, test_client):
        resp = test_client.post("/api/schedule", json={"events": [_event(), _event()]})
        assert resp.status_code == 400
        assert "Duplicated record_id" in resp.json()["detail"]

    def test_invalid_option_is_400(self, test_client):
        resp = test_client.post(
            "/api/schedule",
            json={"events": [_event()], "options": {"late_upgrade_mode": "sometimes"}},
        )
        assert resp.status_code == 400
        assert "late_upgrade_mode" in resp.json()["detail"]

    def test_missing_required_field_is_422(self, test_client):
        event = _event()
        del event["policy_id"]
        resp = test_client.post("/api/schedule", json={"events": [event]})
        assert resp.status_code == 422

    def test_iso_timestamps_mixed_with_dates(self, test_client):
        events = [
            _event(),
            _event(
                "R2",
                policy_id="POL-9002",
                policy_start_date="2024-02-01T00:00:00Z",
                policy_end_date="2025-01-31T00:00:00Z",
                event_effective_date="2024-02-01T00:00:00Z",
            ),
        ]
        resp = test_client.post("/api/schedule", json={"events": events})
        assert resp.status_code == 200
        r2 = [r for r in resp.json()["rows"] if r["record_id"] == "R2"]
        assert len(r2) == 12
        assert r2[0]["pay_date"] == "2024-02-01"

    def test_bad_amount_is_an_issue_not_a_400(self, test_client):
        events = [_event(), _event("R2", policy_id="POL-9002", product_a_premium="12O0")]
        resp = test_client.post("/api/schedule", json={"events": events})
        assert resp.status_code == 200
        body = resp.json()
        assert body["row_count"] == 24
        assert body["has_errors"] is True
        issue = next(i for i in body["issues"] if i["code"] == "invalid_amount")
        assert (issue["policy_id"], issue["record_id"]) == ("POL-9002", "R2")

    def test_runaway_term_is_400(self, test_client):
        resp = test_client.post(
            "/api/schedule", json={"events": [_event(policy_end_date="2110-12-31")]}
        )
        assert resp.status_code == 400
        assert "R1" in resp.json()["detail"]

    def test_empty_events(self, test_client):
        resp = test_client.post("/api/schedule", json={"events": []})
        assert resp.status_code == 200
        assert resp.json()["row_count"] == 0
        assert resp.json()["rows"] == []


class TestUpload:
    def test_csv_export(self, test_client):
        resp = test_client.post(
            "/api/schedule/upload",
            files={"file": ("export.csv", SYNTHETIC_RAW_EXPORT_CSV.encode("utf-8"), "text/csv")},
            data={"late_upgrade_mode": "drop"},
        )
        assert resp.status_code == 200
        body = resp.json()
        # 12 monthly + 4 cancellation (Sep..Dec) + 4 quarterly + 1 annual
        assert body["row_count"] == 21
        assert {r["policy_id"] for r in body["rows"]} == {"POL-1", "POL-2", "POL-3"}

    def test_unsupported_suffix(self, test_client):
        resp = test_client.post(
            "/api/schedule/upload",
            files={"file": ("export.json", b"{}", "application/json")},
        )
        assert resp.status_code == 400
        assert "Unsupported file type" in resp.json()["detail"]

    def test_unreadable_export(self, test_client):
        resp = test_client.post(
            "/api/schedule/upload",
            files={"file": ("export.csv", b"Foo,Bar\n1,2\n", "text/csv")},
        )
        assert resp.status_code == 400
        assert resp.json()["detail"].startswith("Cannot read policy export")


class TestCohort:
    def test_premium_matrix(self, test_client):
        resp = test_client.post("/api/cohort", json={"events": [_event()]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["underwritten_month_keys"] == [202401]
        assert body["payment_month_keys"] == [202400 + m for m in range(1, 13)]
        assert body["values"] == [[100.0] * 12]

    def test_tax_component(self, test_client):
        resp = test_client.post(
            "/api/cohort", json={"events": [_event()], "component": "tax"}
        )
        assert resp.status_code == 200
        assert sum(resp.json()["values"][0]) == pytest.approx(100.0)

    def test_unknown_component_is_400(self, test_client):
        resp = test_client.post(
            "/api/cohort", json={"events": [_event()], "component": "fees"}
        )
        assert resp.status_code == 400
