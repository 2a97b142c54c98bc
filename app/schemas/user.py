# app/schemas/user.py
from sqlalchemy import Column, String, Integer, DateTime, Boolean
from sqlalchemy.sql import func
from app.db.base_class import Base

class User(Base):
    id = Column(Integer, primary_key=True, index=True) # Internal DB ID, used as JWT subject
    uid = Column(String, unique=True, index=True, nullable=False) # Public player id carried inside rooms
    email = Column(String, unique=True, index=True, nullable=True) # Guests have no email
    display_name = Column(String, nullable=False, default="Anonymous Player")
    photo_url = Column(String, nullable=True)
    google_id = Column(String, unique=True, index=True, nullable=True)
    hashed_password = Column(String, nullable=True) # Null for Google and guest accounts
    is_guest = Column(Boolean(), default=False, nullable=False)
    is_active = Column(Boolean(), default=True)
    total_score = Column(Integer, default=0, nullable=False)
    games_played = Column(Integer, default=0, nullable=False)
    games_won = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login_at = Column(DateTime(timezone=True), onupdate=func.now(), default=func.now())
