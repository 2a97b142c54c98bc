# tests/api/test_rooms_api.py
import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.exceptions import RoomStoreUnavailableError
from app.services.room_repository import get_room_repository

API = settings.API_V1_STR

@pytest.fixture
def players(make_user, auth_headers):
    ann = make_user("ann@example.com", "Ann")
    ben = make_user("ben@example.com", "Ben")
    return ann, ben, auth_headers(ann), auth_headers(ben)

def _create_room(client, headers, **body) -> str:
    response = client.post(f"{API}/rooms", json=body or None, headers=headers)
    assert response.status_code == 201
    return response.json()["room_code"]

def test_create_room(client: TestClient, players):
    ann, _, ann_h, _ = players
    code = _create_room(client, ann_h, max_rounds=2)

    status = client.get(f"{API}/rooms/{code}", headers=ann_h).json()
    room = status["room"]
    assert room["roomCode"] == code
    assert room["createdBy"] == ann.uid
    assert room["maxRounds"] == 2
    assert room["round"] == 1
    assert room["started"] is False
    assert [p["uid"] for p in room["players"]] == [ann.uid]
    assert status["is_creator"] and status["poll_interval_seconds"] == 2

def test_create_room_default_rounds(client: TestClient, players):
    _, _, ann_h, _ = players
    code = _create_room(client, ann_h)
    assert client.get(f"{API}/rooms/{code}", headers=ann_h).json()["room"]["maxRounds"] == 3

def test_full_lobby_flow(client: TestClient, players):
    ann, ben, ann_h, ben_h = players
    code = _create_room(client, ann_h)

    joined = client.post(f"{API}/rooms/{code.lower()}/join", headers=ben_h)
    assert joined.status_code == 200
    assert [p["uid"] for p in joined.json()["room"]["players"]] == [ann.uid, ben.uid]

    assert client.post(f"{API}/rooms/{code}/ready", json={"ready": True}, headers=ann_h).json()["all_ready"] is False
    status = client.post(f"{API}/rooms/{code}/ready", json={"ready": True}, headers=ben_h).json()
    assert status["all_ready"] is True
    assert status["can_start"] is False # Only the creator may start

    assert client.get(f"{API}/rooms/{code}/game", headers=ben_h).json()["redirect_to"] == "lobby"

    denied = client.post(f"{API}/rooms/{code}/start", headers=ben_h)
    assert denied.status_code == 403

    started = client.post(f"{API}/rooms/{code}/start", headers=ann_h)
    assert started.status_code == 200
    assert started.json()["room"]["started"] is True
    assert started.json()["redirect_to"] == "game"

    assert client.get(f"{API}/rooms/{code}", headers=ben_h).json()["redirect_to"] == "game"
    assert client.get(f"{API}/rooms/{code}/game", headers=ben_h).json()["redirect_to"] is None

def test_start_before_everyone_ready(client: TestClient, players):
    _, _, ann_h, ben_h = players
    code = _create_room(client, ann_h)
    client.post(f"{API}/rooms/{code}/join", headers=ben_h)
    client.post(f"{API}/rooms/{code}/ready", headers=ann_h)

    response = client.post(f"{API}/rooms/{code}/start", headers=ann_h)
    assert response.status_code == 403
    assert "ready" in response.json()["detail"]
    assert client.get(f"{API}/rooms/{code}", headers=ann_h).json()["room"]["started"] is False

def test_join_by_typed_code(client: TestClient, players):
    _, ben, ann_h, ben_h = players
    code = _create_room(client, ann_h)
    response = client.post(f"{API}/rooms/join", json={"room_code": f"  {code.lower()}  "}, headers=ben_h)
    assert response.status_code == 200
    assert response.json()["is_member"] is True

def test_unknown_and_malformed_codes(client: TestClient, players):
    _, _, ann_h, _ = players
    assert client.get(f"{API}/rooms/ZZZ999", headers=ann_h).status_code == 404
    assert client.post(f"{API}/rooms/ZZZ999/join", headers=ann_h).status_code == 404
    assert client.get(f"{API}/rooms/bad-code", headers=ann_h).status_code == 422
    assert client.post(f"{API}/rooms/join", json={"room_code": "12"}, headers=ann_h).status_code == 422

def test_room_full(client: TestClient, players, make_user, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "MAX_PLAYERS_PER_ROOM", 2)
    _, _, ann_h, ben_h = players
    code = _create_room(client, ann_h)
    client.post(f"{API}/rooms/{code}/join", headers=ben_h)

    late = make_user("late@example.com", "Late")
    assert client.post(f"{API}/rooms/{code}/join", headers=auth_headers(late)).status_code == 409

def test_store_outage_is_503(client: TestClient, players, mocker):
    _, _, ann_h, _ = players
    mocker.patch.object(get_room_repository(), "fetch", side_effect=RoomStoreUnavailableError())
    response = client.get(f"{API}/rooms/ABC123", headers=ann_h)
    assert response.status_code == 503

def test_rooms_require_auth(client: TestClient):
    assert client.post(f"{API}/rooms").status_code == 401

def test_scoreboard_before_game(client: TestClient, players):
    ann, ben, ann_h, ben_h = players
    code = _create_room(client, ann_h)
    client.post(f"{API}/rooms/{code}/join", headers=ben_h)

    scoreboard = client.get(f"{API}/rooms/{code}/scoreboard", headers=ann_h).json()
    assert scoreboard["finished"] is False
    assert [s["rank"] for s in scoreboard["standings"]] == [1, 1]
    assert scoreboard["winner_ids"] == []
