import pytest
from fastapi.testclient import TestClient

from backoffice.errors import AuthoritativeStoreError
from backoffice.main import app, get_engine
from backoffice.schemas import CostLineItem


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_get_schedule_generates_and_orders_rows(client, backoffice):
    response = client.get("/api/bookings/7/schedule/transport")

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "transport"
    assert [row["name"] for row in body["rows"]][:2] == ["Tashkent City Tour", "Hotel-Vokzal"]
    assert body["rows"][0]["date"] == "2025-09-22"
    assert len(backoffice.rows[(7, "transport")]) == 5


def test_regenerate_without_body_is_a_noop_on_existing_rows(client, backoffice):
    first = client.get("/api/bookings/7/schedule/transport").json()["rows"]

    response = client.post("/api/bookings/7/schedule/transport/regenerate")

    assert response.status_code == 200
    assert [r["id"] for r in response.json()["rows"]] == [r["id"] for r in first]


def test_regenerate_with_reload(client, backoffice):
    first = client.get("/api/bookings/7/schedule/transport").json()["rows"]

    response = client.post("/api/bookings/7/schedule/transport/regenerate", json={"reload": True})

    assert response.status_code == 200
    assert {r["id"] for r in response.json()["rows"]}.isdisjoint({r["id"] for r in first})


def test_update_notes_accepts_itinerary_alias(client):
    rows = client.get("/api/bookings/7/schedule/transport").json()["rows"]

    response = client.put(
        f"/api/bookings/7/schedule/transport/{rows[2]['id']}/notes",
        json={"itinerary": "Registan, Gur-e-Amir"},
    )

    assert response.status_code == 200
    assert response.json()["row"]["notes"] == "Registan, Gur-e-Amir"


def test_delete_row_and_missing_row(client):
    rows = client.get("/api/bookings/7/schedule/transport").json()["rows"]

    deleted = client.delete(f"/api/bookings/7/schedule/transport/{rows[0]['id']}")
    missing = client.delete(f"/api/bookings/7/schedule/transport/{rows[0]['id']}")

    assert deleted.status_code == 200
    assert missing.status_code == 404
    assert "error" in missing.json()


def test_unknown_booking_is_404(client):
    response = client.get("/api/bookings/999/price")

    assert response.status_code == 404
    assert response.json() == {"error": "Booking 999 not found"}


def test_unknown_kind_is_rejected(client):
    response = client.get("/api/bookings/7/schedule/flights")

    assert response.status_code == 422


def test_price_and_rooms(client, backoffice):
    backoffice.set_line_items("ER", "4", "meal", [CostLineItem(unit_count=5, unit_price=20)])

    price = client.get("/api/bookings/7/price").json()
    rooms = client.get("/api/bookings/7/rooms").json()

    assert price == {"tier_id": "4", "total_price": 100.0, "single_room_surcharge": 0.0}
    assert rooms["headcount"] == 2
    assert rooms["breakdown"] == {"double_rooms": 0, "twin_rooms": 0, "single_rooms": 2}


def test_save_as_template(client, backoffice):
    client.get("/api/bookings/7/schedule/transport")

    response = client.post("/api/bookings/7/schedule/transport/save-as-template")

    assert response.status_code == 200
    assert response.json()["template"]["tour_type_code"] == "ER"
    assert len(backoffice.templates[("ER", "transport")].entries) == 5


def test_save_empty_schedule_as_template_is_400(client):
    response = client.post("/api/bookings/7/schedule/hotel/save-as-template")

    assert response.status_code == 400


def test_store_failure_is_502(client, backoffice, monkeypatch):
    async def boom(booking_id):
        raise AuthoritativeStoreError("GET /bookings/7/tourists failed with status 503")

    monkeypatch.setattr(backoffice, "get_roster", boom)

    response = client.get("/api/bookings/7/rooms")

    assert response.status_code == 502
    assert "503" in response.json()["error"]


def test_rooms_without_roster_uses_booking_pax(client, backoffice):
    backoffice.rosters[7] = []

    rooms = client.get("/api/bookings/7/rooms").json()

    assert rooms["headcount"] == 4
    assert rooms["extra_nights"] == {"single_nights": 0, "double_nights": 0}
