# app/api/users.py
import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.api import deps
from app.crud import crud_user
from app.models.user import UserProfile, UserPublic
from app.services import profile_service

logger = logging.getLogger("app.api.users")  # Logger for this module
router = APIRouter()


@router.get("/me/profile", response_model=UserProfile)
async def read_my_profile(
    current_user: UserPublic = Depends(deps.get_current_active_user),
    db: Session = Depends(deps.get_db)
):
    """Profile with lifetime stats and achievement progress."""
    db_user = crud_user.get_user_by_uid(db, uid=current_user.uid)
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")
    return profile_service.build_profile(db_user)
