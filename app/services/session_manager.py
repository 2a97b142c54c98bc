# app/services/session_manager.py
import logging
from typing import Dict, Optional

from app.models.game import Scoreboard
from app.services.game_service import GameSessionController

logger = logging.getLogger("app.services.session_manager")  # Logger for this module

# In-memory registry, one controller per started room in this process.
active_sessions: Dict[str, GameSessionController] = {} # room_code -> controller
finished_scoreboards: Dict[str, Scoreboard] = {} # room_code -> final standings, kept after the session is gone


def get_session(room_code: str) -> Optional[GameSessionController]:
    return active_sessions.get(room_code)


def register_session(session: GameSessionController) -> GameSessionController:
    """Registers a loaded controller. If another connection registered one first, that one wins."""
    registered = active_sessions.setdefault(session.room_code, session)
    if registered is session:
        logger.info(f"Session registered for room {session.room_code}. Active sessions: {len(active_sessions)}")
    return registered


def cleanup_session(room_code: str):
    session = active_sessions.pop(room_code, None)
    if session is None:
        return
    session.shutdown()
    logger.info(f"Session for room {room_code} cleaned up (phase was {session.phase.value}). Active sessions: {len(active_sessions)}")


def cleanup_all():
    for room_code in list(active_sessions.keys()):
        cleanup_session(room_code)
    finished_scoreboards.clear()
