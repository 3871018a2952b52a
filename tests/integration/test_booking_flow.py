def _headers(user_id):
    return {"X-User-Id": user_id}


def _seed_train(client, total_seats=2, fare="100.00", origin="New Delhi", destination="Mumbai Central"):
    payload = {
        "name": f"{origin} - {destination} Express",
        "origin": origin,
        "destination": destination,
        "departure_time": "08:30:00",
        "arrival_time": "16:45:00",
        "total_seats": total_seats,
        "fare": fare,
    }
    response = client.post("/trains", json=payload)
    assert response.status_code == 201
    return response.json()


def test_booking_flow(client):
    train = _seed_train(client, total_seats=2, fare="100.00")
    assert train["available_seats"] == 2
    assert train["fare"] == "100.00"

    response = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 2},
        headers=_headers("user1"),
    )
    assert response.status_code == 201
    first = response.json()
    assert first["fare"] == "200.00"
    assert first["status"] == "CONFIRMED"
    assert first["train_name"] == train["name"]
    assert first["origin"] == "New Delhi"
    assert first["destination"] == "Mumbai Central"
    assert client.get(f"/trains/{train['id']}").json()["available_seats"] == 0

    response = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 1},
        headers=_headers("user1"),
    )
    assert response.status_code == 409
    assert response.json()["detail"]["available"] == 0
    assert response.json()["detail"]["requested"] == 1

    cancel_response = client.post(
        f"/reservations/{first['reservation_id']}/cancel",
        headers=_headers("user1"),
    )
    assert cancel_response.status_code == 200
    assert cancel_response.json()["status"] == "CANCELLED"
    assert client.get(f"/trains/{train['id']}").json()["available_seats"] == 2

    response = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 1},
        headers=_headers("user1"),
    )
    assert response.status_code == 201
    assert response.json()["fare"] == "100.00"
    assert client.get(f"/trains/{train['id']}").json()["available_seats"] == 1


def test_cancel_twice_returns_400(client):
    train = _seed_train(client, total_seats=3)
    booking = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 1},
        headers=_headers("user1"),
    ).json()

    url = f"/reservations/{booking['reservation_id']}/cancel"
    assert client.post(url, headers=_headers("user1")).status_code == 200

    second = client.post(url, headers=_headers("user1"))
    assert second.status_code == 400
    assert "already cancelled" in second.json()["detail"]
    assert client.get(f"/trains/{train['id']}").json()["available_seats"] == 3


def test_cannot_touch_another_users_reservation(client):
    train = _seed_train(client, total_seats=3)
    booking = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 1},
        headers=_headers("alice"),
    ).json()

    cancel = client.post(
        f"/reservations/{booking['reservation_id']}/cancel",
        headers=_headers("bob"),
    )
    fetch = client.get(f"/reservations/{booking['reservation_id']}", headers=_headers("bob"))

    assert cancel.status_code == 404
    assert fetch.status_code == 404
    assert client.get("/reservations", headers=_headers("bob")).json() == []


def test_reservation_requires_user_header(client):
    train = _seed_train(client)

    response = client.post("/reservations", json={"train_id": train["id"], "seat_count": 1})

    assert response.status_code == 401


def test_invalid_seat_count_is_rejected(client):
    train = _seed_train(client)

    response = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 0},
        headers=_headers("user1"),
    )

    assert response.status_code == 422


def test_unknown_train_is_404(client):
    response = client.post(
        "/reservations",
        json={"train_id": "missing", "seat_count": 1},
        headers=_headers("user1"),
    )

    assert response.status_code == 404
    assert client.get("/trains/missing").status_code == 404


def test_search_hides_sold_out_trains(client):
    open_train = _seed_train(client, total_seats=5, origin="Mumbai", destination="Goa")
    sold_out = _seed_train(client, total_seats=0, origin="Mumbai", destination="Ahmedabad")

    listed = {item["id"] for item in client.get("/trains").json()}
    searched = client.get("/trains/search", params={"source": "mumbai"}).json()
    by_destination = client.get("/trains/search", params={"destination": "GOA"}).json()

    assert listed == {open_train["id"], sold_out["id"]}
    assert [item["id"] for item in searched] == [open_train["id"]]
    assert [item["id"] for item in by_destination] == [open_train["id"]]


def test_user_and_admin_listings(client):
    train = _seed_train(client, total_seats=10, fare="1850.00")
    for user_id, seats in [("user1", 1), ("user2", 2), ("user1", 3)]:
        client.post(
            "/reservations",
            json={"train_id": train["id"], "seat_count": seats},
            headers=_headers(user_id),
        )

    mine = client.get("/reservations", headers=_headers("user1")).json()
    everyone = client.get("/admin/reservations").json()

    assert [item["seat_count"] for item in mine] == [3, 1]
    assert mine[0]["fare"] == "5550.00"
    assert [item["seat_count"] for item in everyone] == [3, 2, 1]
    assert {item["user_id"] for item in everyone} == {"user1", "user2"}


def test_fare_update_keeps_booked_amounts(client):
    train = _seed_train(client, total_seats=5, fare="100.00")
    booking = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 1},
        headers=_headers("user1"),
    ).json()

    updated = client.patch(f"/trains/{train['id']}/fare", json={"fare": "250.00"})
    assert updated.status_code == 200
    assert updated.json()["fare"] == "250.00"

    fetched = client.get(
        f"/reservations/{booking['reservation_id']}",
        headers=_headers("user1"),
    ).json()
    assert fetched["fare"] == "100.00"


def test_admin_key_is_enforced_when_configured(client, monkeypatch):
    monkeypatch.setenv("ADMIN_API_KEY", "secret")

    assert client.get("/admin/reservations").status_code == 403
    assert client.get("/admin/reservations", headers={"X-Admin-Key": "secret"}).status_code == 200


def test_health(client):
    assert client.get("/health").status_code == 200


def test_out_of_range_fare_is_rejected(client):
    payload = {
        "name": "Overpriced Express",
        "origin": "Mumbai",
        "destination": "Goa",
        "departure_time": "05:00:00",
        "arrival_time": "12:30:00",
        "total_seats": 10,
        "fare": "1E+30",
    }

    assert client.post("/trains", json=payload).status_code == 422
    assert client.post("/trains", json={**payload, "fare": "100.00", "total_seats": 10_001}).status_code == 422

    train = _seed_train(client)
    response = client.patch(f"/trains/{train['id']}/fare", json={"fare": "1E+30"})
    assert response.status_code == 422
    assert client.get(f"/trains/{train['id']}").json()["fare"] == "100.00"


def test_fare_update_on_unknown_train_is_404(client):
    response = client.patch("/trains/missing/fare", json={"fare": "10.00"})

    assert response.status_code == 404


def test_large_fares_book_without_overflow(client):
    train = _seed_train(client, total_seats=10_000, fare="9999999999.99")

    response = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 10_000},
        headers=_headers("user1"),
    )

    assert response.status_code == 201
    assert response.json()["fare"] == "99999999999900.00"


def test_timestamps_carry_utc_offset(client):
    train = _seed_train(client)
    booked = client.post(
        "/reservations",
        json={"train_id": train["id"], "seat_count": 1},
        headers=_headers("user1"),
    ).json()

    listed = client.get("/reservations", headers=_headers("user1")).json()
    fetched = client.get(f"/reservations/{booked['reservation_id']}", headers=_headers("user1")).json()

    assert booked["created_at"].endswith("+00:00")
    assert listed[0]["created_at"].endswith("+00:00")
    assert fetched["created_at"] == listed[0]["created_at"]
