# tests/conftest.py
import pytest
import logging
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.api.deps import get_db
from app.core.config import settings
from app.core.security import create_access_token
from app.crud import crud_user
from app.services.room_repository import RoomRepository, set_room_repository
from app.services.room_store import LocalRoomStore

SQLALCHEMY_DATABASE_URL_TEST = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL_TEST,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(autouse=True)
def setup_test_db():
    """Fresh tables for every test. The in-memory database is shared through StaticPool."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

def override_get_db():
    """Dependency override for test database sessions."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

@pytest.fixture(scope="function")
def db_session():
    session = TestingSessionLocal()
    yield session
    session.close()

@pytest.fixture
def session_factory():
    return TestingSessionLocal

@pytest.fixture(scope="module")
def client() -> TestClient:
    """Provides a TestClient for making API requests."""
    return TestClient(app)

@pytest.fixture
def local_repository() -> RoomRepository:
    return RoomRepository(LocalRoomStore())

@pytest.fixture(autouse=True)
def reset_in_memory_state(local_repository, monkeypatch):
    """Clears in-memory state before each test and points the app at an in-process room store."""
    from app.services import session_manager
    from app.api import websockets
    from app.api.monitoring import api_stats

    set_room_repository(local_repository)
    monkeypatch.setattr(websockets, "db_session_factory", TestingSessionLocal)
    session_manager.cleanup_all()
    websockets.game_manager.active_connections.clear()
    websockets.active_transition_tasks.clear()
    api_stats.update({"total_requests": 0, "errors_5xx": 0})
    yield
    session_manager.cleanup_all()
    websockets.game_manager.active_connections.clear()
    set_room_repository(None)

@pytest.fixture
def fast_rounds(monkeypatch):
    """Shrinks every round timing so full games run in well under a second."""
    monkeypatch.setattr(settings, "ROUND_DURATION_SECONDS", 3)
    monkeypatch.setattr(settings, "TIMER_TICK_SECONDS", 0.01)
    monkeypatch.setattr(settings, "ROUND_END_GRACE_SECONDS", 0.01)
    monkeypatch.setattr(settings, "ALL_GUESSED_DELAY_SECONDS", 0.01)
    monkeypatch.setattr(settings, "GAME_COMPLETE_DELAY_SECONDS", 0.01)

@pytest.fixture
def make_user(db_session: Session):
    """Factory for stored email users."""
    def _make(email: str, display_name: str):
        return crud_user.create_user_with_password(db_session, email=email, hashed_password="not-a-real-hash", display_name=display_name)
    return _make

@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {create_access_token({'sub': user.uid})}"}
    return _headers

@pytest.fixture
def token_for():
    def _token(user) -> str:
        return create_access_token({"sub": user.uid})
    return _token

def pytest_configure(config):
    """
    Hook to configure logging levels before tests are run.
    This silences noisy third-party libraries.
    """
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
