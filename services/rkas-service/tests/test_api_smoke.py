from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient
from main import app, get_data_access
from persistence.memory import InMemoryDataAccess


@pytest.fixture
def client():
    data_access = InMemoryDataAccess()
    app.dependency_overrides[get_data_access] = lambda: data_access
    yield TestClient(app)
    app.dependency_overrides.clear()


def _activity_payload(**overrides: Any) -> Dict[str, Any]:
    payload = {
        "activity_name": "Pengembangan Perpustakaan 2025",
        "field_of_activity": "Sarana Prasarana",
        "standard": "Standar Sarana dan Prasarana",
        "funding_source": "3.02.01",
        "year": 2025,
        "quarter_amounts": [5_000_000, 3_000_000, 2_000_000, 1_000_000],
    }
    payload.update(overrides)
    return payload


def test_health_route_reports_rkas_service(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["service"] == "rkas-service"
    assert payload["status"] == "ok"
    assert response.headers.get("x-request-id")


def test_request_id_header_is_echoed(client: TestClient) -> None:
    response = client.get("/health", headers={"x-request-id": "abc-123"})

    assert response.headers["x-request-id"] == "abc-123"


def test_periods_lists_quarters_and_months(client: TestClient) -> None:
    body = client.get("/periods").json()

    assert [quarter["value"] for quarter in body["quarters"]] == ["Q1", "Q2", "Q3", "Q4"]
    assert body["quarters"][3]["range"] == "Okt - Des"
    assert body["months"][2] == {"value": 3, "label": "Maret", "short": "Mar"}
    assert body["years"][0] == 2030


def test_activity_crud_flow(client: TestClient) -> None:
    created = client.post("/activities", json=_activity_payload())
    assert created.status_code == 201
    activity = created.json()
    assert activity["total"] == pytest.approx(11_000_000)

    patched = client.patch(f"/activities/{activity['id']}", json={"total": 9_000_000, "status": "approved"})
    assert patched.status_code == 200
    assert patched.json()["total"] == pytest.approx(9_000_000)

    fetched = client.get(f"/activities/{activity['id']}").json()
    assert fetched["status"] == "approved"

    deleted = client.delete(f"/activities/{activity['id']}")
    assert deleted.status_code == 204
    assert client.get(f"/activities/{activity['id']}").status_code == 404


def test_activity_validation_errors_list_fields(client: TestClient) -> None:
    response = client.post("/activities", json={"activity_name": "", "quarter_amounts": [1, 2]})

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "validation_failed"
    assert {"activity_name", "field_of_activity", "funding_source", "quarter_amounts"} <= set(body["fields"])


def test_activity_list_filters_and_paginates(client: TestClient) -> None:
    client.post("/activities", json=_activity_payload(activity_name="Lomba Sains", quarter_amounts=[0, 2, 0, 0]))
    client.post("/activities", json=_activity_payload(activity_name="Workshop Guru", quarter_amounts=[4, 0, 0, 0]))
    client.post("/activities", json=_activity_payload(activity_name="Studi Banding", quarter_amounts=[1, 1, 0, 0]))

    q1 = client.get("/activities", params={"period_type": "quarterly", "quarter": "TW1", "page_size": 1}).json()
    assert q1["total_items"] == 2
    assert q1["total_pages"] == 2
    assert [item["activity_name"] for item in q1["items"]] == ["Workshop Guru"]

    search = client.get("/activities", params={"search": "lomba"}).json()
    assert [item["activity_name"] for item in search["items"]] == ["Lomba Sains"]

    bad_quarter = client.get("/activities", params={"quarter": "Q9"})
    assert bad_quarter.status_code == 422


def test_activity_summary_counts_and_formats(client: TestClient) -> None:
    client.post("/activities", json=_activity_payload(status="approved"))
    client.post("/activities", json=_activity_payload(quarter_amounts=[1_000_000, 0, 0, 0]))

    body = client.get("/activities/summary").json()

    assert body["report"]["total_count"] == 2
    assert body["report"]["completion_percentage"] == pytest.approx(50.0)
    assert body["formatted"]["total_amount"] == "Rp 12.000.000"
    assert body["formatted"]["completion_percentage"] == "50,0%"


def test_allocation_flow_and_summary(client: TestClient) -> None:
    created = client.post(
        "/allocations",
        json={
            "activity": "Pengadaan Buku",
            "field_of_activity": "Sarana Prasarana",
            "allocated_budget": 100_000_000,
            "used_budget": 96_000_000,
            "period": {"period_type": "quarterly", "quarter": "Q2", "year": 2025},
        },
    )
    assert created.status_code == 201
    item = created.json()
    assert item["status"] == "over-budget"
    assert item["remaining_budget"] == pytest.approx(4_000_000)

    summary = client.get("/allocations/summary", params={"period_type": "monthly", "month": 5}).json()
    assert summary["totals"]["utilization_percentage"] == pytest.approx(96.0)
    assert summary["status_counts"]["over-budget"] == 1
    assert summary["formatted"]["utilization_percentage"] == "96,0%"

    other_quarter = client.get("/allocations", params={"period_type": "quarterly", "quarter": "Q3"}).json()
    assert other_quarter["total_items"] == 0

    patched = client.patch(f"/allocations/{item['id']}", json={"used_budget": 60_000_000})
    assert patched.json()["status"] == "on-track"


def test_reference_routes_and_conflict(client: TestClient) -> None:
    first = client.post("/reference/fields-of-activity", json={"code": "01", "name": "Kurikulum"})
    assert first.status_code == 201

    duplicate = client.post("/reference/fields-of-activity", json={"code": "01", "name": "Lain"})
    assert duplicate.status_code == 409
    assert duplicate.json()["fields"] == {"code": "Already in use."}

    listed = client.get("/reference/fields-of-activity").json()
    assert [record["code"] for record in listed] == ["01"]

    assert client.get("/reference/unknown-things").status_code == 404


def test_preferences_round_trip(client: TestClient) -> None:
    defaults = client.get("/preferences/user-1").json()
    assert defaults["period"]["period_type"] == "quarterly"
    assert defaults["last_used_page"] == "/rkas-kegiatan"

    saved = client.put("/preferences/user-1", json={"period_type": "monthly", "month": 7})
    assert saved.status_code == 200

    restored = client.get("/preferences/user-1").json()
    assert restored["period"]["period_type"] == "monthly"
    assert restored["period"]["month"] == 7
    assert restored["period"]["quarter"] == "Q1"


def test_dashboard_stats_empty_store(client: TestClient) -> None:
    body = client.get("/dashboard/stats").json()

    assert body["budget"]["planned"] == 0
    assert body["activities"]["total"] == 0
    assert body["by_quarter"] == {"Q1": 0.0, "Q2": 0.0, "Q3": 0.0, "Q4": 0.0}


def test_allocation_patch_rejects_null_allocated_budget(client: TestClient) -> None:
    created = client.post(
        "/allocations",
        json={"activity": "Pengadaan Buku", "field_of_activity": "Sarana Prasarana", "allocated_budget": 1_000_000},
    ).json()

    response = client.patch(f"/allocations/{created['id']}", json={"allocated_budget": None})

    assert response.status_code == 422
    assert "allocated_budget" in response.json()["fields"]
    assert client.get(f"/allocations/{created['id']}").json()["allocated_budget"] == pytest.approx(1_000_000)


def test_summaries_carry_period_label_and_amount(client: TestClient) -> None:
    client.post("/activities", json=_activity_payload())

    quarterly = client.get(
        "/activities/summary", params={"period_type": "quarterly", "quarter": "TW1", "year": 2025}
    ).json()
    assert quarterly["period_label"] == "Triwulan 1 (Jan - Mar) 2025"
    assert quarterly["period_amount"] == pytest.approx(5_000_000)
    assert quarterly["totals"]["total_allocated"] == pytest.approx(11_000_000)
    assert quarterly["formatted"]["period_amount"] == "Rp 5.000.000"

    unscoped = client.get("/activities/summary").json()
    assert unscoped["period_label"] == "Semua Periode"
    assert unscoped["period_amount"] == pytest.approx(11_000_000)

    allocations = client.get("/allocations/summary", params={"period_type": "monthly", "month": 3}).json()
    assert allocations["period_label"] == "Maret"


def test_audit_events_list_latest_mutations_first(client: TestClient) -> None:
    created = client.post("/activities", json=_activity_payload()).json()
    client.patch(f"/activities/{created['id']}", json={"status": "approved"})

    events = client.get("/audit-events").json()

    assert [event["action"] for event in events] == ["update", "create"]
    assert events[0]["record_id"] == created["id"]
    assert events[0]["collection"] == "activities"

    limited = client.get("/audit-events", params={"limit": 1}).json()
    assert [event["action"] for event in limited] == ["update"]

    assert client.get("/audit-events", params={"limit": 0}).status_code == 422
