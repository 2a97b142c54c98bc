# app/core/config.py
import pathlib
import logging
from typing import List, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

logger = logging.getLogger("app.core.config")  # Logger for this module

BASE_DIR = pathlib.Path(__file__).resolve().parent.parent.parent

class Settings(BaseSettings):
    PROJECT_NAME: str = "Draw and Guess Backend"
    API_V1_STR: str = "/api/v1"
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'draw_and_guess.db'}"
    CORS_ORIGINS: List[str] = ["*"]

    GOOGLE_CLIENT_ID: str = "YOUR_GOOGLE_WEB_CLIENT_ID.apps.googleusercontent.com" # From Google Cloud Console
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    JWT_SECRET_KEY: str = "your-super-secret-and-long-random-string-for-jwt-CHANGE-THIS-IMMEDIATELY"
    JWT_ALGORITHM: str = "HS256"
    # Local mock identity, mirrors the demo-mode sign-in of the web client
    ALLOW_GUEST_LOGIN: bool = True

    # "database" keeps rooms in the SQL database, "local" keeps them in process memory
    ROOM_STORE_BACKEND: Literal["database", "local"] = "database"
    # When True, an unreachable database degrades to the in-process store instead of failing with 503
    ROOM_STORE_DEGRADE_TO_LOCAL: bool = False

    DEFAULT_MAX_ROUNDS: int = 3
    MIN_PLAYERS_TO_START: int = 2
    MAX_PLAYERS_PER_ROOM: int = 8

    # --- Round timing (seconds) ---
    ROUND_DURATION_SECONDS: int = 90
    ROUND_END_GRACE_SECONDS: float = 3
    GAME_COMPLETE_DELAY_SECONDS: float = 2
    ALL_GUESSED_DELAY_SECONDS: float = 1
    LOBBY_POLL_INTERVAL_SECONDS: float = 2
    TIMER_TICK_SECONDS: float = 1.0

    MIN_GUESS_AWARD: int = 10
    MAX_CHAT_MESSAGE_LENGTH: int = 200

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

@lru_cache()
def get_settings():
    settings_instance = Settings()
    logger.info(f"Room store backend: {settings_instance.ROOM_STORE_BACKEND} (degrade to local: {settings_instance.ROOM_STORE_DEGRADE_TO_LOCAL})")
    return settings_instance

settings = get_settings()
