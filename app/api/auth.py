# app/api/auth.py
import logging
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api import deps
from app.core.config import settings
from app.core.security import create_access_token, get_password_hash, verify_google_id_token, verify_password
from app.crud import crud_user
from app.models.user import (
    BackendToken, GoogleIdTokenRequest, GuestLoginRequest, LoginRequest, SignUpRequest,
    UserCreateFromGoogle, UserPublic,
)
from app.schemas.user import User

logger = logging.getLogger("app.api.auth")  # Logger for this module
router = APIRouter()


def _issue_token(user: User) -> BackendToken:
    access_token_expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    # 'sub' is the public player id, the same id used in room rosters
    access_token = create_access_token(data={"sub": user.uid}, expires_delta=access_token_expires_delta)
    return BackendToken(
        access_token=access_token,
        token_type="bearer",
        user=UserPublic.model_validate(user),
        expires_in=int(access_token_expires_delta.total_seconds()),
    )


@router.post("/signup", response_model=BackendToken, status_code=status.HTTP_201_CREATED)
async def sign_up(request_data: SignUpRequest, db: Session = Depends(deps.get_db)):
    if crud_user.get_user_by_email(db, email=request_data.email):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="An account with this email already exists.")

    try:
        user = crud_user.create_user_with_password(
            db,
            email=request_data.email,
            hashed_password=get_password_hash(request_data.password),
            display_name=request_data.display_name,
        )
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="An account with this email already exists.")

    logger.info(f"New email account {user.uid} signed up")
    return _issue_token(user)


@router.post("/login", response_model=BackendToken)
async def login(request_data: LoginRequest, db: Session = Depends(deps.get_db)):
    user = crud_user.get_user_by_email(db, email=request_data.email)
    if not user or not user.hashed_password or not verify_password(request_data.password, user.hashed_password):
        logger.warning(f"Failed login for {request_data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")

    user = crud_user.update_user_login_info(db, user=user)
    return _issue_token(user)


@router.post("/google/login", response_model=BackendToken)
async def login_with_google(token_request: GoogleIdTokenRequest, db: Session = Depends(deps.get_db)):
    """
    The web client sends the Google ID token from Google Sign-In.
    The profile is created on first sign-in, later sign-ins only refresh the login time.
    """
    try:
        google_payload = await verify_google_id_token(token_request.google_id_token)

        google_id = google_payload.get("sub")
        email = google_payload.get("email")
        if not google_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid Google token payload: missing sub."
            )

        user = crud_user.get_user_by_google_id(db, google_id=google_id)
        if not user:
            user_create_data = UserCreateFromGoogle(
                google_id=google_id,
                email=email,
                display_name=google_payload.get("name") or "Anonymous Player",
                photo_url=google_payload.get("picture"),
            )
            user = crud_user.create_user_from_google_info(db, user_in=user_create_data)
            logger.info(f"New user via Google Sign-In: {user.display_name} (Google ID: {google_id})")
        else:
            user = crud_user.update_user_login_info(db, user=user)
            logger.debug(f"User logged in via Google: {user.display_name} (Google ID: {google_id})")

        return _issue_token(user)

    except HTTPException as e:
        raise e
    except Exception as e:
        logger.exception(f"Error during Google sign-in: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An error occurred during Google sign-in processing."
        )


@router.post("/guest-login", response_model=BackendToken)
async def login_as_guest(request_data: GuestLoginRequest, db: Session = Depends(deps.get_db)):
    """Local mock identity for demo and development setups."""
    if not settings.ALLOW_GUEST_LOGIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Guest login is disabled.")
    user = crud_user.create_guest_user(db, display_name=request_data.display_name)
    return _issue_token(user)


@router.get("/me", response_model=UserPublic)
async def read_current_user(current_user: UserPublic = Depends(deps.get_current_active_user)):
    """Get the current authenticated identity."""
    return current_user
