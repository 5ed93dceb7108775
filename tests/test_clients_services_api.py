from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from domestik.core.auth import ensure_user_principal
from domestik.repositories.bookkeeping_repository import BookkeepingRepository


def _headers(subject: str, email: str, display_name: str) -> dict[str, str]:
    return {
        "X-Auth-Subject": subject,
        "X-Auth-Email": email,
        "X-Auth-Display-Name": display_name,
    }


OWNER = _headers("owner-1", "owner@test.local", "Owner")
OTHER = _headers("other-1", "other@test.local", "Other")


def _create_client(client: TestClient, headers: dict[str, str], name: str = "Maria Silva") -> str:
    response = client.post("/api/v1/clients", headers=headers, json={"name": name, "color": "#3B82F6"})
    assert response.status_code == 201
    return response.json()["id"]


def _create_service(
    client: TestClient,
    headers: dict[str, str],
    client_id: str,
    *,
    service_date: str,
    time_worked: float,
    hourly_rate: float,
) -> dict[str, object]:
    response = client.post(
        "/api/v1/services",
        headers=headers,
        json={
            "date": service_date,
            "client_id": client_id,
            "time_worked": time_worked,
            "hourly_rate": hourly_rate,
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_me_reports_write_access(client: TestClient) -> None:
    response = client.get("/api/v1/me", headers=OWNER)

    assert response.status_code == 200
    body = response.json()
    assert body["email"] == "owner@test.local"
    assert body["is_admin"] is True
    assert body["view_only"] is False


def test_client_create_trims_name_and_defaults_color(client: TestClient) -> None:
    response = client.post("/api/v1/clients", headers=OWNER, json={"name": "  Ana Costa  "})

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "Ana Costa"
    assert body["color"] == "#10B981"
    assert body["archived"] is False


def test_client_create_rejects_invalid_input(client: TestClient) -> None:
    response = client.post("/api/v1/clients", headers=OWNER, json={"name": "A", "color": "blue"})

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["message"] == "Validation failed."
    assert "Name must be at least 2 characters" in detail["errors"]
    assert "Invalid color format" in detail["errors"]


def test_client_update_changes_name_and_color(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)

    response = client.patch(
        f"/api/v1/clients/{client_id}",
        headers=OWNER,
        json={"name": "Maria S.", "color": "#EF4444"},
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Maria S."
    assert response.json()["color"] == "#EF4444"


def test_archive_is_idempotent_and_hides_client_from_active_list(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)

    first = client.post(f"/api/v1/clients/{client_id}/archive", headers=OWNER)
    second = client.post(f"/api/v1/clients/{client_id}/archive", headers=OWNER)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["archived"] is True

    active = client.get("/api/v1/clients", headers=OWNER).json()["items"]
    everything = client.get("/api/v1/clients?include_archived=true", headers=OWNER).json()["items"]
    assert active == []
    assert [row["id"] for row in everything] == [client_id]


def test_archived_client_keeps_history_but_rejects_new_services(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)
    created = _create_service(
        client, OWNER, client_id, service_date="2024-03-05", time_worked=4, hourly_rate=25
    )
    client.post(f"/api/v1/clients/{client_id}/archive", headers=OWNER)

    history = client.get("/api/v1/services", headers=OWNER).json()["items"]
    assert [row["id"] for row in history] == [created["id"]]
    assert history[0]["client"]["name"] == "Maria Silva"
    assert history[0]["client"]["archived"] is True

    rejected = client.post(
        "/api/v1/services",
        headers=OWNER,
        json={"date": "2024-03-06", "client_id": client_id, "time_worked": 2, "hourly_rate": 25},
    )
    assert rejected.status_code == 404
    assert rejected.json()["detail"] == "Not found or access denied."


def test_service_total_is_computed_from_hours_and_rate(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)

    created = _create_service(
        client, OWNER, client_id, service_date="2024-03-05", time_worked=2.5, hourly_rate=15
    )

    assert created["total"] == 37.5
    assert created["date"] == "2024-03-05"
    assert created["client_id"] == client_id


def test_service_with_mismatched_total_is_rejected(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)

    response = client.post(
        "/api/v1/services",
        headers=OWNER,
        json={
            "date": "2024-03-05",
            "client_id": client_id,
            "time_worked": 2,
            "hourly_rate": 15,
            "total": 99,
        },
    )

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == ["Total must equal hours multiplied by rate"]


def test_service_validation_reports_every_rule(client: TestClient) -> None:
    response = client.post(
        "/api/v1/services",
        headers=OWNER,
        json={"date": "05/03/2024", "client_id": "", "time_worked": 0.25, "hourly_rate": 2000},
    )

    assert response.status_code == 422
    errors = response.json()["detail"]["errors"]
    assert "Invalid date format (YYYY-MM-DD)" in errors
    assert "Please select a client" in errors
    assert "Minimum 0.5 hours" in errors
    assert "Rate seems too high" in errors


def test_service_update_recomputes_total(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)
    created = _create_service(
        client, OWNER, client_id, service_date="2024-03-05", time_worked=2, hourly_rate=20
    )

    response = client.patch(f"/api/v1/services/{created['id']}", headers=OWNER, json={"time_worked": 3})

    assert response.status_code == 200
    assert response.json()["time_worked"] == 3
    assert response.json()["total"] == 60


def test_service_delete_removes_row(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)
    created = _create_service(
        client, OWNER, client_id, service_date="2024-03-05", time_worked=2, hourly_rate=20
    )

    deleted = client.delete(f"/api/v1/services/{created['id']}", headers=OWNER)
    missing = client.get(f"/api/v1/services/{created['id']}", headers=OWNER)

    assert deleted.status_code == 204
    assert missing.status_code == 404


def test_history_filters_and_sorting(client: TestClient) -> None:
    maria = _create_client(client, OWNER, "Maria Silva")
    ana = _create_client(client, OWNER, "Ana Costa")
    _create_service(client, OWNER, maria, service_date="2024-03-01", time_worked=4, hourly_rate=25)
    _create_service(client, OWNER, ana, service_date="2024-03-10", time_worked=2, hourly_rate=25)
    _create_service(client, OWNER, maria, service_date="2024-04-02", time_worked=1, hourly_rate=20)

    march = client.get(
        "/api/v1/services",
        headers=OWNER,
        params={"start_date": "2024-03-01", "end_date": "2024-03-31", "sort_by": "value", "order": "asc"},
    ).json()
    assert [row["total"] for row in march["items"]] == [50, 100]
    assert march["total"] == 150

    by_client = client.get(
        "/api/v1/services",
        headers=OWNER,
        params={"client_id": maria, "min_value": 30},
    ).json()
    assert [row["total"] for row in by_client["items"]] == [100]

    by_name = client.get("/api/v1/services", headers=OWNER, params={"sort_by": "client", "order": "asc"}).json()
    assert by_name["items"][0]["client_id"] == ana


def test_unknown_sort_key_is_rejected(client: TestClient) -> None:
    response = client.get("/api/v1/services", headers=OWNER, params={"sort_by": "hours"})

    assert response.status_code == 422


def test_other_users_rows_are_not_visible(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)
    created = _create_service(
        client, OWNER, client_id, service_date="2024-03-05", time_worked=2, hourly_rate=20
    )

    assert client.get("/api/v1/services", headers=OTHER).json()["items"] == []
    assert client.get("/api/v1/clients", headers=OTHER).json()["items"] == []

    foreign_read = client.get(f"/api/v1/services/{created['id']}", headers=OTHER)
    foreign_archive = client.post(f"/api/v1/clients/{client_id}/archive", headers=OTHER)
    foreign_service = client.post(
        "/api/v1/services",
        headers=OTHER,
        json={"date": "2024-03-06", "client_id": client_id, "time_worked": 2, "hourly_rate": 20},
    )
    assert foreign_read.status_code == 404
    assert foreign_archive.status_code == 404
    assert foreign_service.status_code == 404
    assert foreign_service.json()["detail"] == "Not found or access denied."


def test_view_only_account_can_read_but_not_write(client: TestClient, db_session: Session) -> None:
    ensure_user_principal(
        db_session,
        subject="viewer-1",
        email="viewer@test.local",
        display_name="Viewer",
        is_admin=False,
    )
    viewer = _headers("viewer-1", "viewer@test.local", "Viewer")

    me = client.get("/api/v1/me", headers=viewer)
    listing = client.get("/api/v1/clients", headers=viewer)
    write = client.post("/api/v1/clients", headers=viewer, json={"name": "Maria Silva"})

    assert me.json()["view_only"] is True
    assert listing.status_code == 200
    assert write.status_code == 403
    assert write.json()["detail"] == "Your account is in view-only mode."


def test_storage_failure_returns_generic_error(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_add(self: BookkeepingRepository, row: object) -> object:
        raise OperationalError("INSERT INTO clients", {}, Exception("connection lost"))

    monkeypatch.setattr(BookkeepingRepository, "add_client", broken_add)

    response = client.post("/api/v1/clients", headers=OWNER, json={"name": "Maria Silva"})

    assert response.status_code == 503
    assert response.json()["detail"] == "An error occurred. Please try again."
    assert client.get("/api/v1/clients", headers=OWNER).json()["items"] == []


def test_hours_and_rate_are_stored_with_two_decimals(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    client_id = _create_client(client, OWNER)

    created = _create_service(
        client, OWNER, client_id, service_date="2024-03-05", time_worked=1.333, hourly_rate=12.345
    )
    fetched = client.get(f"/api/v1/services/{created['id']}", headers=OWNER).json()

    for body in (created, fetched):
        assert (body["time_worked"], body["hourly_rate"], body["total"]) == (1.33, 12.35, 16.43)
    assert "stores total" not in caplog.text


def test_rate_rounding_to_zero_is_rejected(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)

    response = client.post(
        "/api/v1/services",
        headers=OWNER,
        json={"date": "2024-03-05", "client_id": client_id, "time_worked": 1, "hourly_rate": 0.004},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["errors"] == ["Rate must be greater than 0"]


def test_caller_total_is_checked_against_stored_precision(client: TestClient) -> None:
    client_id = _create_client(client, OWNER)

    response = client.post(
        "/api/v1/services",
        headers=OWNER,
        json={
            "date": "2024-03-05",
            "client_id": client_id,
            "time_worked": 1.333,
            "hourly_rate": 12.345,
            "total": 16.43,
        },
    )

    assert response.status_code == 201
    assert response.json()["total"] == 16.43
