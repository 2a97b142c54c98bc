# app/services/roster.py
import logging

from app.core.config import settings
from app.models.room import Player, Room

logger = logging.getLogger("app.services.roster")  # Logger for this module


def join(room: Room, player: Player) -> Room:
    """
    Adds `player` to the roster, or replaces the entry with the same id in place.
    The only roster change still allowed once the game has started.
    """
    index = room.index_of(player.id)
    if index >= 0:
        room.players[index] = player
        logger.info(f"Player {player.id} re-joined room {room.code} at position {index}")
    else:
        room.players.append(player)
        logger.info(f"Player {player.id} ({player.display_name}) joined room {room.code}. Players: {len(room.players)}")
    return room


def set_ready(room: Room, player_id: str, ready: bool) -> Room:
    """No-op after the game has started or when the player is not in the room."""
    if room.started:
        logger.debug(f"Ignoring ready toggle for {player_id}, room {room.code} already started.")
        return room

    player = room.find_player(player_id)
    if player is None:
        logger.debug(f"Ignoring ready toggle for unknown player {player_id} in room {room.code}.")
        return room

    player.is_ready = ready
    logger.info(f"Player {player_id} in room {room.code} is {'ready' if ready else 'not ready'}")
    return room


def all_ready(room: Room) -> bool:
    """True iff at least MIN_PLAYERS_TO_START players are present and every one is ready."""
    if len(room.players) < settings.MIN_PLAYERS_TO_START:
        return False
    return all(p.is_ready for p in room.players)


def add_score(room: Room, player_id: str, delta: int) -> Room:
    if delta < 0:
        raise ValueError("Scores never decrease within a game.")
    player = room.find_player(player_id)
    if player is None:
        logger.warning(f"Cannot add {delta} points, player {player_id} not in room {room.code}.")
        return room

    player.score += delta
    logger.debug(f"Player {player_id} in room {room.code} now has {player.score} points (+{delta})")
    return room
