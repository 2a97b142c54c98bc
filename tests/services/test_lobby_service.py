# tests/services/test_lobby_service.py
import pytest

from app.core.exceptions import InvalidRoomCodeError, PermissionDeniedError, RoomFullError, RoomNotFoundError
from app.core.config import settings
from app.models.enums import RedirectTarget
from app.models.user import UserPublic
from app.services import lobby_service

def _user(uid: str, name: str | None = None) -> UserPublic:
    return UserPublic(id=abs(hash(uid)) % 10000, uid=uid, display_name=name or uid.upper(), is_active=True)

ANN, BEN, CAL = _user("ann"), _user("ben"), _user("cal")


def test_create_room_seats_creator(local_repository):
    room = lobby_service.create_room(local_repository, ANN, max_rounds=2)

    stored = local_repository.fetch(room.code)
    assert stored.creator_id == "ann"
    assert [p.id for p in stored.players] == ["ann"]
    assert stored.max_rounds == 2

def test_join_normalizes_typed_code(local_repository):
    room = lobby_service.create_room(local_repository, ANN)
    joined = lobby_service.join_room(local_repository, f"  {room.code.lower()} ", BEN)
    assert [p.id for p in joined.players] == ["ann", "ben"]

def test_join_rejects_bad_and_unknown_codes(local_repository):
    with pytest.raises(InvalidRoomCodeError):
        lobby_service.join_room(local_repository, "nope", BEN)
    with pytest.raises(RoomNotFoundError):
        lobby_service.join_room(local_repository, "ZZZ999", BEN)

def test_rejoin_keeps_position_score_and_ready(local_repository):
    room = lobby_service.create_room(local_repository, ANN)
    lobby_service.join_room(local_repository, room.code, BEN)
    lobby_service.set_ready(local_repository, room.code, ANN, True)

    rejoined = lobby_service.join_room(local_repository, room.code, _user("ann", "Ann Renamed"))

    assert [p.id for p in rejoined.players] == ["ann", "ben"]
    assert rejoined.players[0].display_name == "Ann Renamed"
    assert rejoined.players[0].is_ready is True

def test_join_full_room(local_repository, monkeypatch):
    monkeypatch.setattr(settings, "MAX_PLAYERS_PER_ROOM", 2)
    room = lobby_service.create_room(local_repository, ANN)
    lobby_service.join_room(local_repository, room.code, BEN)
    with pytest.raises(RoomFullError):
        lobby_service.join_room(local_repository, room.code, CAL)
    # Members can always re-join
    lobby_service.join_room(local_repository, room.code, BEN)

def test_start_requires_creator_and_everyone_ready(local_repository):
    room = lobby_service.create_room(local_repository, ANN)
    lobby_service.join_room(local_repository, room.code, BEN)
    lobby_service.set_ready(local_repository, room.code, ANN, True)

    with pytest.raises(PermissionDeniedError):
        lobby_service.start_game(local_repository, room.code, ANN) # Ben not ready
    lobby_service.set_ready(local_repository, room.code, BEN, True)
    with pytest.raises(PermissionDeniedError):
        lobby_service.start_game(local_repository, room.code, BEN) # Not the creator
    assert local_repository.fetch(room.code).started is False

    started = lobby_service.start_game(local_repository, room.code, ANN)
    assert started.started is True
    assert local_repository.fetch(room.code).started is True

def test_start_alone_is_rejected(local_repository):
    room = lobby_service.create_room(local_repository, ANN)
    lobby_service.set_ready(local_repository, room.code, ANN, True)
    with pytest.raises(PermissionDeniedError):
        lobby_service.start_game(local_repository, room.code, ANN)

def test_start_already_started_room_is_not_an_error(local_repository):
    room = lobby_service.create_room(local_repository, ANN)
    local_repository.patch(room.code, {"started": True})
    assert lobby_service.start_game(local_repository, room.code, BEN).started is True

def test_ready_toggle_ignored_after_start(local_repository):
    room = lobby_service.create_room(local_repository, ANN)
    local_repository.patch(room.code, {"started": True})
    lobby_service.set_ready(local_repository, room.code, ANN, True)
    assert local_repository.fetch(room.code).players[0].is_ready is False

def test_room_status_redirects(local_repository):
    room = lobby_service.create_room(local_repository, ANN)

    lobby_status = lobby_service.get_room_status(local_repository, room.code, ANN, view=RedirectTarget.LOBBY)
    assert lobby_status.redirect_to is None
    assert lobby_status.is_creator and lobby_status.is_member
    assert lobby_status.can_start is False
    assert lobby_status.poll_interval_seconds == 2

    game_status = lobby_service.get_room_status(local_repository, room.code, BEN, view=RedirectTarget.GAME)
    assert game_status.redirect_to == RedirectTarget.LOBBY
    assert not game_status.is_member

    local_repository.patch(room.code, {"started": True})
    assert lobby_service.get_room_status(local_repository, room.code, ANN, view=RedirectTarget.LOBBY).redirect_to == RedirectTarget.GAME
    assert lobby_service.get_room_status(local_repository, room.code, ANN, view=RedirectTarget.GAME).redirect_to is None
