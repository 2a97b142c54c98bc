# app/schemas/room.py
from sqlalchemy import Column, String, Integer, DateTime, Boolean, JSON
from app.db.base_class import Base

class RoomRecord(Base):
    """One row per room document. The whole row is overwritten on every write."""
    __tablename__ = "rooms"

    room_code = Column(String(6), primary_key=True, index=True)
    players = Column(JSON, nullable=False, default=list) # Ordered list of player dicts (uid, name, photoURL, score, isReady)
    # Advisory only, live round state is kept by the session controller
    current_drawer = Column(String, nullable=True)
    current_word = Column(String, nullable=True)
    round = Column(Integer, nullable=False, default=1)
    max_rounds = Column(Integer, nullable=False, default=3)
    started = Column(Boolean(), nullable=False, default=False)
    created_by = Column(String, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
