"""Contract tests for levy schedule, period and notice endpoints."""

from strata.api.deps import get_email_sender
from strata.main import app

SCHEDULE_BODY = {
    "budget_year_start": "2026-07-01",
    "budget_year_end": "2027-06-30",
    "admin_fund_total": "12000.00",
    "capital_works_fund_total": "4000.00",
    "frequency": "quarterly",
    "periods_per_year": 4,
}


def _schedules_url(scheme):
    return f"/api/schemes/{scheme.id}/levy-schedules"


class TestIdentityAndScoping:
    def test_missing_identity_is_unauthorized(self, client, scheme):
        response = client.get(_schedules_url(scheme))

        assert response.status_code == 401
        assert response.json() == {"error": {"code": "unauthorized", "message": "Unauthorized"}}

    def test_malformed_identity_is_unauthorized(self, client, scheme):
        response = client.get(_schedules_url(scheme), headers={"X-User-Id": "abc", "X-Organisation-Id": "1"})

        assert response.status_code == 401

    def test_other_organisation_scheme_not_found(self, client, scheme):
        response = client.get(_schedules_url(scheme), headers={"X-User-Id": "8", "X-Organisation-Id": "2"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestLevyScheduleEndpoints:
    def test_create_returns_periods(self, client, scheme, headers):
        response = client.post(_schedules_url(scheme), json=SCHEDULE_BODY, headers=headers)

        assert response.status_code == 201
        body = response.json()
        assert body["warning"] is None
        data = body["data"]
        assert data["admin_fund_total"] == "12000.00"
        assert data["created_by"] == 7
        assert [p["period_name"] for p in data["periods"]] == ["Q1 FY2027", "Q2 FY2027", "Q3 FY2027", "Q4 FY2027"]
        assert data["periods"][1]["due_date"] == "2026-10-01"

    def test_validation_message(self, client, scheme, headers):
        body = {**SCHEDULE_BODY, "periods_per_year": 3}

        response = client.post(_schedules_url(scheme), json=body, headers=headers)

        assert response.status_code == 400
        assert response.json() == {
            "error": {
                "code": "validation_error",
                "message": "Periods must be 1 (annual), 2 (half-yearly), 4 (quarterly), or 12 (monthly)",
            }
        }

    def test_nan_admin_total(self, client, scheme, headers):
        body = {**SCHEDULE_BODY, "admin_fund_total": "NaN"}

        response = client.post(_schedules_url(scheme), json=body, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Admin fund budget must be greater than zero"

    def test_end_before_start(self, client, scheme, headers):
        body = {**SCHEDULE_BODY, "budget_year_end": "2026-06-30"}

        response = client.post(_schedules_url(scheme), json=body, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Budget year end must be after start date"

    def test_bad_date_format(self, client, scheme, headers):
        body = {**SCHEDULE_BODY, "budget_year_start": "01/07/2026"}

        response = client.post(_schedules_url(scheme), json=body, headers=headers)

        assert response.json()["error"]["message"] == "Must be a valid date (YYYY-MM-DD)"

    def test_duplicate_is_conflict(self, client, scheme, headers):
        client.post(_schedules_url(scheme), json=SCHEDULE_BODY, headers=headers)

        response = client.post(_schedules_url(scheme), json=SCHEDULE_BODY, headers=headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "conflict"

    def test_delete_without_levies(self, client, scheme, schedule, headers):
        response = client.delete(f"{_schedules_url(scheme)}/{schedule.id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"deleted": True, "deactivated": False}
        assert client.get(_schedules_url(scheme), headers=headers).json()["data"] == []


class TestLevyCalculationEndpoints:
    def test_calculate_and_list_items(self, client, scheme, lots, schedule, headers):
        period_id = schedule.periods[0].id
        base = f"/api/schemes/{scheme.id}/levy-periods/{period_id}"

        response = client.post(f"{base}/calculate", headers=headers)

        assert response.status_code == 201
        assert response.json()["data"] == {"items_created": 4, "rounding_note": None}
        items = client.get(f"{base}/items", headers=headers).json()["data"]
        assert [item["total_levy_amount"] for item in items] == ["400.00", "800.00", "1200.00", "1600.00"]
        assert client.get(base, headers=headers).json()["data"]["status"] == "active"

    def test_calculate_without_lots(self, client, scheme, schedule, headers):
        response = client.post(
            f"/api/schemes/{scheme.id}/levy-periods/{schedule.periods[0].id}/calculate", headers=headers
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No active lots found for this scheme"

    def test_mark_overdue(self, client, scheme, lots, schedule, headers):
        client.post(f"/api/schemes/{scheme.id}/levy-periods/{schedule.periods[0].id}/calculate", headers=headers)

        response = client.post(
            f"/api/schemes/{scheme.id}/levy-items/mark-overdue", params={"as_of": "2026-07-02"}, headers=headers
        )

        assert response.json()["data"] == {"updated": 4}


class TestNoticeEndpoints:
    def test_generate_and_send_period_notices(self, client, scheme, lots, schedule, headers):
        base = f"/api/schemes/{scheme.id}/levy-periods/{schedule.periods[0].id}"
        client.post(f"{base}/calculate", headers=headers)

        generated = client.post(f"{base}/notices", headers=headers).json()["data"]
        sent = client.post(f"{base}/notices/send", headers=headers).json()["data"]

        assert (generated["succeeded"], generated["failed"]) == (4, 0)
        assert (sent["succeeded"], sent["failed"]) == (4, 0)
        statuses = [i["status"] for i in client.get(f"{base}/items", headers=headers).json()["data"]]
        assert statuses == ["sent"] * 4

    def test_send_before_generating_is_conflict(self, client, scheme, lots, schedule, headers):
        base = f"/api/schemes/{scheme.id}/levy-periods/{schedule.periods[0].id}"
        client.post(f"{base}/calculate", headers=headers)

        response = client.post(f"{base}/notices/send", headers=headers)

        assert response.status_code == 409

    def test_send_without_email_provider(self, client, scheme, lots, schedule, headers):
        base = f"/api/schemes/{scheme.id}/levy-periods/{schedule.periods[0].id}"
        client.post(f"{base}/calculate", headers=headers)
        item_id = client.get(f"{base}/items", headers=headers).json()["data"][0]["id"]
        app.dependency_overrides.pop(get_email_sender)

        response = client.post(f"/api/schemes/{scheme.id}/levy-items/{item_id}/notice/send", headers=headers)

        assert response.status_code == 502
        assert response.json()["error"] == {
            "code": "delivery_error",
            "message": "Email send failed: Email delivery is not configured",
        }
        item = client.get(f"{base}/items", headers=headers).json()["data"][0]
        assert item["status"] == "pending"
        assert item["notice_sent_at"] is None
