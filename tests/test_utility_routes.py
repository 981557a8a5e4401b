"""Tests for health, version and maintenance routes."""

import time

import matchpoint


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}


def test_version(client):
    assert client.get("/api/version").get_json() == {"version": matchpoint.__version__}


def test_admin_reap(app, client):
    room_code = client.post("/api/rooms", json={"hostName": "Alice"}).get_json()["roomCode"]
    app.extensions["redis"].zadd("rooms:created_at", {room_code: time.time() - 3 * 3600})

    assert client.post("/api/admin/reap").get_json() == {"deleted": 0}
    response = client.post("/api/admin/reap", json={"maxAgeHours": 2})

    assert response.status_code == 200
    assert response.get_json() == {"deleted": 1}
    assert client.get(f"/api/rooms/{room_code}").status_code == 404


def test_admin_reap_rejects_non_positive_age(client):
    response = client.post("/api/admin/reap", json={"maxAgeHours": 0})
    assert response.status_code == 400
    assert response.get_json()["code"] == "invalid_payload"
