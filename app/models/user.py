# app/models/user.py
from typing import List, Optional
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime

class UserBase(BaseModel):
    email: EmailStr | None = None
    display_name: str = "Anonymous Player"
    photo_url: str | None = None

class UserCreateFromGoogle(UserBase): # Data extracted from the Google ID token
    google_id: str

class UserInDBBase(UserBase):
    id: int # Internal ID
    uid: str # Public player id
    is_guest: bool = False
    is_active: bool
    total_score: int = 0
    games_played: int = 0
    games_won: int = 0
    created_at: datetime | None = None
    last_login_at: datetime | None = None

    class Config:
        from_attributes = True

class UserPublic(UserInDBBase):
    pass

class SignUpRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    display_name: str | None = Field(default=None, max_length=40)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class GoogleIdTokenRequest(BaseModel):
    google_id_token: str

class GuestLoginRequest(BaseModel):
    display_name: str | None = Field(default=None, max_length=40)

class BackendToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserPublic | None = None
    expires_in: int

class Achievement(BaseModel):
    id: str
    name: str
    description: str
    unlocked: bool

class UserProfile(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: str
    photo_url: Optional[str] = None
    total_score: int
    games_played: int
    games_won: int
    games_lost: int
    win_rate: int # Percent, rounded
    average_score: int
    created_at: datetime | None = None
    achievements: List[Achievement]
