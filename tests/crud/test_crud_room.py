# tests/crud/test_crud_room.py
from sqlalchemy.orm import Session

from app.crud import crud_room
from app.models.room import Player, Room

def _document(**overrides) -> dict:
    room = Room(code="ABC123", creator_id="p1", players=[Player(id="p1", display_name="Ann")])
    document = room.to_document()
    document.update(overrides)
    return document

def test_put_room_document_inserts(db_session: Session):
    crud_room.put_room_document(db_session, _document())

    record = crud_room.get_room_record(db_session, "ABC123")
    assert record is not None
    assert record.created_by == "p1"
    assert record.players[0]["uid"] == "p1"
    assert record.started is False

def test_put_room_document_overwrites_whole_record(db_session: Session):
    crud_room.put_room_document(db_session, _document(currentWord="cat"))
    crud_room.put_room_document(db_session, _document(started=True, players=[]))

    document = crud_room.room_record_to_document(crud_room.get_room_record(db_session, "ABC123"))
    assert document["started"] is True
    assert document["players"] == []
    assert document["currentWord"] is None # Omitted on the second write, so overwritten

def test_room_record_to_document_uses_wire_names(db_session: Session):
    crud_room.put_room_document(db_session, _document(maxRounds=5))
    document = crud_room.room_record_to_document(crud_room.get_room_record(db_session, "ABC123"))

    assert set(document) == {"roomCode", "players", "currentDrawer", "currentWord", "round", "maxRounds", "started", "createdBy", "createdAt"}
    assert document["maxRounds"] == 5
    assert Room.from_document(document).max_rounds == 5

def test_get_missing_room_record(db_session: Session):
    assert crud_room.get_room_record(db_session, "ZZZ999") is None
