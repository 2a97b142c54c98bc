# app/core/security.py
import logging
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from fastapi import HTTPException, status
from google.oauth2 import id_token
from google.auth.transport import requests as google_requests
import bcrypt

from app.core.config import settings

logger = logging.getLogger("app.core.security")  # Logger for this module
GOOGLE_REQUEST_SESSION = google_requests.Request() # Re-used for fetching Google's signing certs

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")

def get_password_hash(password: str) -> str:
    """Hashes a password using bcrypt. The salt is embedded in the returned hash."""
    hashed_bytes = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed_bytes.decode("utf-8")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plain password against a stored bcrypt hash."""
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


async def verify_google_id_token(token: str) -> dict:
    """
    Verifies a Google ID token issued to our web client.
    Returns the token claims (sub, email, name, picture, ...) or raises HTTPException.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate Google credentials",
        headers={"WWW-Authenticate": "Bearer error=\"invalid_token\""},
    )
    try:
        # Checks signature, expiry and audience
        idinfo = id_token.verify_oauth2_token(
            token, GOOGLE_REQUEST_SESSION, settings.GOOGLE_CLIENT_ID
        )

        if idinfo["iss"] not in GOOGLE_ISSUERS:
            logger.error(f"Invalid issuer in Google ID token: {idinfo['iss']}")
            raise ValueError("Wrong issuer.")

        return idinfo

    except ValueError as e:
        logger.warning(f"Google ID token rejected: {e}")
        raise credentials_exception
    except Exception as e:
        logger.exception(f"Unexpected error verifying Google ID Token: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error during Google token verification"
        )


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

async def verify_backend_token(token: str) -> dict:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate backend token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        # decode() also rejects expired tokens
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as e:
        logger.warning(f"JWTError during backend token verification: {e}")
        raise credentials_exception
    except Exception as e:
        logger.exception(f"Unexpected error verifying backend token: {e}")
        raise credentials_exception
