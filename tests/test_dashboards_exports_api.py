from __future__ import annotations

from datetime import date

from fastapi.testclient import TestClient


def _headers(subject: str, email: str, display_name: str) -> dict[str, str]:
    return {
        "X-Auth-Subject": subject,
        "X-Auth-Email": email,
        "X-Auth-Display-Name": display_name,
    }


OWNER = _headers("owner-1", "owner@test.local", "Owner")


def _seed_march(client: TestClient) -> tuple[str, str]:
    maria = client.post("/api/v1/clients", headers=OWNER, json={"name": "Maria Silva", "color": "#3B82F6"})
    ana = client.post("/api/v1/clients", headers=OWNER, json={"name": "Ana Costa"})
    assert maria.status_code == 201
    assert ana.status_code == 201
    maria_id = maria.json()["id"]
    ana_id = ana.json()["id"]

    for service_date, client_id, hours, rate in [
        ("2024-03-01", maria_id, 4, 25),
        ("2024-03-08", maria_id, 2, 50),
        ("2024-02-15", ana_id, 2, 20),
        ("2023-03-10", ana_id, 1, 30),
    ]:
        response = client.post(
            "/api/v1/services",
            headers=OWNER,
            json={"date": service_date, "client_id": client_id, "time_worked": hours, "hourly_rate": rate},
        )
        assert response.status_code == 201, response.text
    return maria_id, ana_id


def test_month_dashboard_stats_and_client_rollup(client: TestClient) -> None:
    maria_id, ana_id = _seed_march(client)

    response = client.get("/api/v1/dashboard", headers=OWNER, params={"month": "2024-03"})

    assert response.status_code == 200
    body = response.json()
    assert body["month"] == "2024-03"
    assert body["stats"] == {"monthly_earnings": 200, "total_hours": 6, "service_count": 2}
    rollups = {row["client_id"]: row for row in body["clients"]}
    assert (rollups[maria_id]["total"], rollups[maria_id]["hours"], rollups[maria_id]["count"]) == (200, 6, 2)
    assert rollups[maria_id]["name"] == "Maria Silva"
    assert rollups[ana_id]["count"] == 0


def test_empty_month_dashboard(client: TestClient) -> None:
    response = client.get("/api/v1/dashboard", headers=OWNER, params={"month": "2020-01"})

    assert response.status_code == 200
    assert response.json()["stats"] == {"monthly_earnings": 0, "total_hours": 0, "service_count": 0}


def test_invalid_month_is_rejected(client: TestClient) -> None:
    assert client.get("/api/v1/dashboard", headers=OWNER, params={"month": "2024-13"}).status_code == 422
    assert client.get("/api/v1/dashboard", headers=OWNER, params={"month": "March"}).status_code == 422


def test_yearly_evolution_for_past_year(client: TestClient) -> None:
    _seed_march(client)

    response = client.get("/api/v1/dashboard/evolution", headers=OWNER, params={"year": 2024, "locale": "pt"})

    assert response.status_code == 200
    body = response.json()
    assert body["labels"][2] == "Março"
    assert body["current_year"][1] == 40
    assert body["current_year"][2] == 200
    assert body["previous_year"][2] == 30
    assert body["month_over_month"][0] == 0
    assert body["month_over_month"][2] == 160
    assert len(body["month_over_month"]) == 12
    if date.today().year > 2024:
        assert body["month_over_month"][3] == -200


def test_csv_export_for_month(client: TestClient) -> None:
    _seed_march(client)

    response = client.get(
        "/api/v1/exports/services",
        headers=OWNER,
        params={"format": "csv", "month": "2024-03", "sort_by": "value", "order": "asc"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert response.headers["content-disposition"] == 'attachment; filename="Domestik_March_2024_Report.csv"'
    lines = response.text.splitlines()
    assert lines[0] == "Date,Client,Hours,Rate/Hr,Total"
    assert lines[1:3] == ["2024-03-01,Maria Silva,4,25,$100.00", "2024-03-08,Maria Silva,2,50,$100.00"]
    assert lines[-1] == ",,,TOTAL,$200.00"


def test_html_export_in_portuguese(client: TestClient) -> None:
    _seed_march(client)

    response = client.get(
        "/api/v1/exports/services",
        headers=OWNER,
        params={"format": "html", "month": "2024-03", "locale": "pt", "min_value": 50},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Relatório Mensal - Março 2024" in response.text
    assert "Valor Mín.: €50.00" in response.text
    assert "De: 2024-03-01" not in response.text


def test_xlsx_export(client: TestClient) -> None:
    _seed_march(client)

    response = client.get("/api/v1/exports/services", headers=OWNER, params={"format": "xlsx", "month": "2024-03"})

    assert response.status_code == 200
    assert response.headers["content-disposition"].endswith('filename="Domestik_March_2024_Report.xlsx"')
    assert response.content[:2] == b"PK"


def test_unknown_export_format_is_rejected(client: TestClient) -> None:
    response = client.get("/api/v1/exports/services", headers=OWNER, params={"format": "pdf"})

    assert response.status_code == 422


def test_client_export_csv_and_html(client: TestClient) -> None:
    maria_id, _ = _seed_march(client)

    csv_response = client.get(f"/api/v1/exports/clients/{maria_id}", headers=OWNER, params={"format": "csv"})
    html_response = client.get(f"/api/v1/exports/clients/{maria_id}", headers=OWNER, params={"format": "html"})

    assert csv_response.status_code == 200
    assert "Domestik_Maria_Silva_Report.csv" in csv_response.headers["content-disposition"]
    assert ",TOTAL,,$200.00" in csv_response.text.splitlines()
    assert html_response.status_code == 200
    assert "#3B82F6" in html_response.text


def test_client_export_with_non_ascii_name(client: TestClient) -> None:
    created = client.post("/api/v1/clients", headers=OWNER, json={"name": "João Gonçalves"})
    client_id = created.json()["id"]

    response = client.get(f"/api/v1/exports/clients/{client_id}", headers=OWNER, params={"format": "csv"})

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert 'filename="Domestik_Jo_o_Gon_alves_Report.csv"' in disposition
    assert "filename*=UTF-8''Domestik_Jo%C3%A3o_Gon%C3%A7alves_Report.csv" in disposition


def test_client_export_for_foreign_client_is_hidden(client: TestClient) -> None:
    maria_id, _ = _seed_march(client)
    other = _headers("other-1", "other@test.local", "Other")

    response = client.get(f"/api/v1/exports/clients/{maria_id}", headers=other)

    assert response.status_code == 404


def test_yearly_evolution_includes_localized_legend(client: TestClient) -> None:
    response = client.get("/api/v1/dashboard/evolution", headers=OWNER, params={"year": 2024, "locale": "en"})

    assert response.status_code == 200
    assert response.json()["legend"] == {
        "title": "Monthly Evolution",
        "current_year": "This Year",
        "previous_year": "Last Year",
        "month_over_month": "Month-over-Month Change",
    }


def test_client_export_honours_period_filters(client: TestClient) -> None:
    maria_id, _ = _seed_march(client)

    response = client.get(
        f"/api/v1/exports/clients/{maria_id}",
        headers=OWNER,
        params={"format": "html", "locale": "pt", "start_date": "2024-03-05"},
    )

    assert response.status_code == 200
    assert "De: 2024-03-05" in response.text
    assert "2024-03-01" not in response.text
    assert "Horas Totais" in response.text
    assert "€100.00" in response.text


def test_month_export_keeps_user_bounds_on_month_edges(client: TestClient) -> None:
    _seed_march(client)

    response = client.get(
        "/api/v1/exports/services",
        headers=OWNER,
        params={"format": "html", "month": "2024-03", "start_date": "2024-03-01", "end_date": "2024-04-15"},
    )

    assert response.status_code == 200
    assert "From: 2024-03-01" in response.text
    assert "To: 2024-03-31" in response.text
