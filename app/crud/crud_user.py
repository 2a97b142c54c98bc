# app/crud/crud_user.py
import logging
import time
import uuid
from sqlalchemy.orm import Session
from sqlalchemy.sql import func
from app.schemas.user import User
from app.models.user import UserCreateFromGoogle

logger = logging.getLogger("app.crud.user")  # Logger for this module

def _new_uid() -> str:
    return uuid.uuid4().hex

def get_user_by_uid(db: Session, uid: str) -> User | None:
    return db.query(User).filter(User.uid == uid).first()

def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.lower()).first()

def get_user_by_google_id(db: Session, google_id: str) -> User | None:
    return db.query(User).filter(User.google_id == google_id).first()

def create_user_with_password(db: Session, email: str, hashed_password: str, display_name: str | None) -> User:
    db_user = User(
        uid=_new_uid(),
        email=email.lower(),
        hashed_password=hashed_password,
        display_name=display_name or email.split("@")[0],
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    logger.info(f"Created new email user {db_user.uid} ({db_user.display_name})")
    return db_user

def create_user_from_google_info(db: Session, user_in: UserCreateFromGoogle, commit_db: bool = True) -> User:
    db_user = User(
        uid=_new_uid(),
        google_id=user_in.google_id,
        email=user_in.email.lower() if user_in.email else None,
        display_name=user_in.display_name or (user_in.email.split("@")[0] if user_in.email else "Anonymous Player"),
        photo_url=user_in.photo_url,
        is_active=True,
    )
    db.add(db_user)
    if commit_db:
        try:
            db.commit()
            db.refresh(db_user)
        except Exception as e:
            logger.exception(f"Error committing new user to DB: {e}")
            db.rollback()
            raise e
    else:
        db.flush()
        db.refresh(db_user)

    logger.info(f"Created new user with Google ID: {user_in.google_id}, display name: {db_user.display_name}")
    return db_user

def create_guest_user(db: Session, display_name: str | None = None) -> User:
    """Local mock identity. The uid carries a "mock_" prefix like the web client's demo users."""
    db_user = User(
        uid=f"mock_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}",
        display_name=display_name or "Demo User",
        is_guest=True,
        is_active=True,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    logger.info(f"Created guest user {db_user.uid} ({db_user.display_name})")
    return db_user

def update_user_login_info(db: Session, user: User) -> User:
    user.last_login_at = func.now()
    db.commit()
    db.refresh(user)

    logger.info(f"Updated login info for user: {user.display_name} (ID: {user.id})")
    return user

def record_game_result(db: Session, uid: str, final_score: int, won: bool) -> User | None:
    """Adds one finished game to a profile's aggregate stats."""
    user = get_user_by_uid(db, uid)
    if not user:
        logger.warning(f"No profile for player {uid}, skipping game result.")
        return None

    user.games_played = (user.games_played or 0) + 1
    user.total_score = (user.total_score or 0) + max(final_score, 0)
    if won:
        user.games_won = (user.games_won or 0) + 1
    db.commit()
    db.refresh(user)

    logger.info(f"Recorded game result for {uid}: score={final_score}, won={won}. Totals: {user.total_score} pts, {user.games_won}/{user.games_played} won")
    return user
