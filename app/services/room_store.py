# app/services/room_store.py
"""
Document storage for rooms, keyed by room code.

Two interchangeable backends (SQL database, in-process memory) behind one interface,
plus a wrapper that degrades from the first to the second when the database is down.
"""
import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import RoomStoreUnavailableError
from app.crud import crud_room

logger = logging.getLogger("app.services.room_store")

RoomDocument = Dict[str, Any]


class RoomStore(ABC):
    name: str = "abstract"

    @abstractmethod
    def get(self, room_code: str) -> Optional[RoomDocument]:
        ...

    @abstractmethod
    def put(self, room_code: str, document: RoomDocument) -> None:
        """Replaces the whole document stored under room_code."""
        ...

    def exists(self, room_code: str) -> bool:
        return self.get(room_code) is not None


class LocalRoomStore(RoomStore):
    """Process-local documents. Every read and write is a deep copy so callers never share state."""
    name = "local"

    def __init__(self):
        self._documents: Dict[str, RoomDocument] = {}

    def get(self, room_code: str) -> Optional[RoomDocument]:
        document = self._documents.get(room_code)
        return copy.deepcopy(document) if document is not None else None

    def put(self, room_code: str, document: RoomDocument) -> None:
        self._documents[room_code] = copy.deepcopy(document)


class DatabaseRoomStore(RoomStore):
    name = "database"

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, room_code: str) -> Optional[RoomDocument]:
        db = self.session_factory()
        try:
            record = crud_room.get_room_record(db, room_code)
            return crud_room.room_record_to_document(record) if record else None
        except SQLAlchemyError as e:
            logger.error(f"Database error reading room {room_code}: {e}", exc_info=True)
            raise RoomStoreUnavailableError() from e
        finally:
            db.close()

    def put(self, room_code: str, document: RoomDocument) -> None:
        db = self.session_factory()
        try:
            crud_room.put_room_document(db, {**document, "roomCode": room_code})
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Database error writing room {room_code}: {e}", exc_info=True)
            raise RoomStoreUnavailableError() from e
        finally:
            db.close()


class FallbackRoomStore(RoomStore):
    """Serves from `primary`; when it is unreachable, serves the same call from `fallback`."""
    name = "fallback"

    def __init__(self, primary: RoomStore, fallback: RoomStore):
        self.primary = primary
        self.fallback = fallback

    def get(self, room_code: str) -> Optional[RoomDocument]:
        try:
            return self.primary.get(room_code)
        except RoomStoreUnavailableError:
            logger.warning(f"{self.primary.name} store unavailable, reading room {room_code} from {self.fallback.name} store")
            return self.fallback.get(room_code)

    def put(self, room_code: str, document: RoomDocument) -> None:
        try:
            self.primary.put(room_code, document)
        except RoomStoreUnavailableError:
            logger.warning(f"{self.primary.name} store unavailable, writing room {room_code} to {self.fallback.name} store")
            self.fallback.put(room_code, document)


def build_room_store(session_factory: Callable[[], Session] | None = None) -> RoomStore:
    """Picks the backend from settings."""
    if settings.ROOM_STORE_BACKEND == "local":
        return LocalRoomStore()

    if session_factory is None:
        from app.db.session import SessionLocal
        session_factory = SessionLocal

    database_store = DatabaseRoomStore(session_factory)
    if settings.ROOM_STORE_DEGRADE_TO_LOCAL:
        return FallbackRoomStore(database_store, LocalRoomStore())
    return database_store
