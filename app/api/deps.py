# app/api/deps.py
import logging
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer # We still use this for the "Bearer" scheme
from sqlalchemy.orm import Session

from app.core import security
from app.core.exceptions import (
    GameError, InvalidInputError, InvalidRoomCodeError, PermissionDeniedError,
    RoomFullError, RoomNotFoundError, RoomStoreUnavailableError,
)
from app.db.session import SessionLocal
from app.models.user import UserPublic
from app.crud import crud_user
from app.core.config import settings
from app.services.room_repository import RoomRepository, get_room_repository

logger = logging.getLogger("app.api.deps")  # Logger for this module

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_repository() -> RoomRepository:
    return get_room_repository()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

async def get_current_user_from_backend_jwt(
    token: str = Depends(oauth2_scheme), # Expects the backend-issued JWT
    db: Session = Depends(get_db)
) -> UserPublic:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = await security.verify_backend_token(token)
        uid: str | None = payload.get("sub") # Public player id

        if uid is None:
            raise credentials_exception

        user = crud_user.get_user_by_uid(db, uid=uid)
        if user is None:
            # A valid token for a user that no longer exists, or a token from another environment.
            logger.error(f"User {uid} from valid token not found in database.")
            raise HTTPException(status_code=404, detail="User from token not found")

        if not user.is_active:
            raise HTTPException(status_code=400, detail="Inactive user")

        return UserPublic.model_validate(user)
    except HTTPException as e:
        raise e
    except Exception as e:
        logger.exception(f"Unexpected error in get_current_user_from_backend_jwt: {e}")
        raise credentials_exception


get_current_active_user = get_current_user_from_backend_jwt


_ERROR_STATUS = {
    RoomNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidRoomCodeError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidInputError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    RoomFullError: status.HTTP_409_CONFLICT,
    RoomStoreUnavailableError: status.HTTP_503_SERVICE_UNAVAILABLE,
}

def http_error_from(error: GameError) -> HTTPException:
    """Maps a domain error onto the HTTP status the API reports for it."""
    status_code = _ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error(f"{type(error).__name__}: {error.message}")
    return HTTPException(status_code=status_code, detail=error.message)
