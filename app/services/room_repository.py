# app/services/room_repository.py
import logging
import random
import re
from typing import Any, Dict, List, Optional

from app.core.config import settings
from app.core.exceptions import InvalidRoomCodeError
from app.models.room import Player, Room
from app.services.room_store import RoomStore, build_room_store

logger = logging.getLogger("app.services.room_repository")  # Logger for this module

ROOM_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
ROOM_CODE_LENGTH = 6
ROOM_CODE_PATTERN = re.compile(r"^[A-Z0-9]{6}$")

_rng = random.SystemRandom()


def generate_room_code(rng: random.Random | None = None) -> str:
    """Six independent uniform draws from A-Z0-9. Collisions are not checked."""
    chooser = rng or _rng
    return "".join(chooser.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def normalize_room_code(raw_code: str | None) -> str:
    """Trims and uppercases user input, raising InvalidRoomCodeError if it is not a room code."""
    code = (raw_code or "").strip().upper()
    if not ROOM_CODE_PATTERN.match(code):
        raise InvalidRoomCodeError(raw_code or "")
    return code


class RoomRepository:
    def __init__(self, store: RoomStore):
        self.store = store

    def create(self, creator_id: str, max_rounds: int | None = None) -> str:
        room_code = generate_room_code()
        room = Room(
            code=room_code,
            players=[],
            creator_id=creator_id,
            round=1,
            max_rounds=max_rounds or settings.DEFAULT_MAX_ROUNDS,
            started=False,
        )
        self.store.put(room_code, room.to_document())
        logger.info(f"Room {room_code} created by {creator_id} (max rounds: {room.max_rounds})")
        return room_code

    def fetch(self, room_code: str) -> Optional[Room]:
        document = self.store.get(room_code)
        if document is None:
            return None
        return Room.from_document(document)

    def upsert_members(self, room_code: str, players: List[Player]) -> bool:
        """Replaces the full roster. The caller builds the complete list."""
        return self.patch(room_code, {"players": players})

    def patch(self, room_code: str, fields: Dict[str, Any]) -> bool:
        """
        Whole-field replace-merge: supplied fields overwrite, omitted fields keep their value.
        Returns False when the room does not exist.
        """
        if "code" in fields:
            raise ValueError("Room code cannot be patched.")
        unknown = set(fields) - set(Room.model_fields)
        if unknown:
            raise ValueError(f"Unknown room fields: {sorted(unknown)}")

        room = self.fetch(room_code)
        if room is None:
            logger.warning(f"Patch on missing room {room_code} ignored.")
            return False

        merged = room.model_dump()
        merged.update(fields)
        updated = Room.model_validate(merged)
        self.store.put(room_code, updated.to_document())
        logger.debug(f"Room {room_code} patched: {sorted(fields)}")
        return True


_repository: RoomRepository | None = None


def get_room_repository() -> RoomRepository:
    global _repository
    if _repository is None:
        _repository = RoomRepository(build_room_store())
    return _repository


def set_room_repository(repository: RoomRepository | None):
    """Swaps the process-wide repository (tests, alternate backends)."""
    global _repository
    _repository = repository
