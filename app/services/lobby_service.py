# app/services/lobby_service.py
import logging
from typing import Optional

from app.core.config import settings
from app.core.exceptions import PermissionDeniedError, RoomFullError, RoomNotFoundError
from app.models.enums import RedirectTarget
from app.models.room import Player, Room, RoomStatusResponse
from app.models.user import UserPublic
from app.services import roster
from app.services.room_repository import RoomRepository, normalize_room_code

logger = logging.getLogger("app.services.lobby_service")  # Logger for this module


def player_from_user(user: UserPublic) -> Player:
    return Player(id=user.uid, display_name=user.display_name, avatar_url=user.photo_url)


def require_room(repository: RoomRepository, room_code: str) -> Room:
    room = repository.fetch(room_code)
    if room is None:
        raise RoomNotFoundError(room_code)
    return room


def create_room(repository: RoomRepository, user: UserPublic, max_rounds: int | None = None) -> Room:
    """Creates a room and seats its creator as the first player."""
    room_code = repository.create(creator_id=user.uid, max_rounds=max_rounds)
    room = require_room(repository, room_code)
    roster.join(room, player_from_user(user))
    repository.upsert_members(room_code, room.players)
    return room


def join_room(repository: RoomRepository, raw_room_code: str | None, user: UserPublic) -> Room:
    """
    Normalizes the typed code and seats the user. Re-joining keeps the existing score and
    ready flag. Joining is allowed after the game has started.
    """
    room_code = normalize_room_code(raw_room_code)
    room = require_room(repository, room_code)

    existing = room.find_player(user.uid)
    player = player_from_user(user)
    if existing is not None:
        player.score = existing.score
        player.is_ready = existing.is_ready
    elif len(room.players) >= settings.MAX_PLAYERS_PER_ROOM:
        logger.warning(f"User {user.uid} rejected from full room {room_code} ({len(room.players)} players)")
        raise RoomFullError(f"Room {room_code} is full.")

    roster.join(room, player)
    repository.upsert_members(room_code, room.players)
    return room


def set_ready(repository: RoomRepository, room_code: str, user: UserPublic, ready: bool) -> Room:
    room = require_room(repository, room_code)
    if room.started or room.find_player(user.uid) is None:
        logger.debug(f"Ready toggle by {user.uid} in room {room_code} ignored (started={room.started}).")
        return room
    roster.set_ready(room, user.uid, ready)
    repository.upsert_members(room_code, room.players)
    return room


def start_game(repository: RoomRepository, room_code: str, user: UserPublic) -> Room:
    """
    Flips `started` once. Calling it on a started room returns the room unchanged so
    the caller can redirect to the game view.
    """
    room = require_room(repository, room_code)
    if room.started:
        logger.info(f"Start requested for room {room_code} which already started.")
        return room
    if room.creator_id != user.uid:
        raise PermissionDeniedError("Only the room creator can start the game.")
    if room.find_player(user.uid) is None:
        raise PermissionDeniedError("The room creator must be in the room to start the game.")
    if not roster.all_ready(room):
        raise PermissionDeniedError(
            f"All players must be ready to start (at least {settings.MIN_PLAYERS_TO_START} players)."
        )

    repository.patch(room_code, {"started": True, "round": 1})
    room.started = True
    room.round = 1
    logger.info(f"Room {room_code} started by {user.uid} with {len(room.players)} players")
    return room


def get_room_status(repository: RoomRepository, room_code: str, user: UserPublic, view: Optional[RedirectTarget] = None) -> RoomStatusResponse:
    """Snapshot for a polling lobby or game view, with the view the client should be on."""
    room = require_room(repository, room_code)
    is_member = room.find_player(user.uid) is not None
    is_creator = room.creator_id == user.uid
    everyone_ready = roster.all_ready(room)

    redirect_to = None
    if view == RedirectTarget.LOBBY and room.started:
        redirect_to = RedirectTarget.GAME
    elif view == RedirectTarget.GAME and not room.started:
        redirect_to = RedirectTarget.LOBBY

    return RoomStatusResponse(
        room=room,
        is_creator=is_creator,
        is_member=is_member,
        all_ready=everyone_ready,
        can_start=is_creator and is_member and everyone_ready and not room.started,
        redirect_to=redirect_to,
        poll_interval_seconds=settings.LOBBY_POLL_INTERVAL_SECONDS,
    )
