# app/crud/crud_room.py
import logging
from datetime import datetime
from typing import Any, Dict
from sqlalchemy.orm import Session
from app.schemas.room import RoomRecord

logger = logging.getLogger("app.crud.room")

def get_room_record(db: Session, room_code: str) -> RoomRecord | None:
    return db.query(RoomRecord).filter(RoomRecord.room_code == room_code).first()

def room_record_to_document(record: RoomRecord) -> Dict[str, Any]:
    created_at = record.created_at
    return {
        "roomCode": record.room_code,
        "players": list(record.players or []),
        "currentDrawer": record.current_drawer,
        "currentWord": record.current_word,
        "round": record.round,
        "maxRounds": record.max_rounds,
        "started": record.started,
        "createdBy": record.created_by,
        "createdAt": created_at.isoformat() if isinstance(created_at, datetime) else created_at,
    }

def put_room_document(db: Session, document: Dict[str, Any]) -> RoomRecord:
    """Inserts or fully overwrites the row for document["roomCode"]."""
    record = get_room_record(db, document["roomCode"])
    if record is None:
        record = RoomRecord(room_code=document["roomCode"])
        db.add(record)

    created_at = document.get("createdAt")
    if isinstance(created_at, str):
        created_at = datetime.fromisoformat(created_at)

    record.players = list(document.get("players") or [])
    record.current_drawer = document.get("currentDrawer")
    record.current_word = document.get("currentWord")
    record.round = document.get("round", 1)
    record.max_rounds = document.get("maxRounds", 3)
    record.started = bool(document.get("started", False))
    record.created_by = document["createdBy"]
    record.created_at = created_at
    db.commit()
    db.refresh(record)
    logger.debug(f"Room {record.room_code} written (players={len(record.players)}, round={record.round}, started={record.started})")
    return record
