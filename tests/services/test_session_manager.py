# tests/services/test_session_manager.py
from app.models.room import Player
from app.services import session_manager
from app.services.game_service import GameSessionController

def _loaded_session(repository) -> GameSessionController:
    code = repository.create(creator_id="a")
    repository.upsert_members(code, [Player(id="a", display_name="A"), Player(id="b", display_name="B")])
    repository.patch(code, {"started": True})
    session = GameSessionController(code, repository=repository)
    session.load()
    return session

def test_register_is_first_wins(local_repository):
    first = _loaded_session(local_repository)
    second = GameSessionController(first.room_code, repository=local_repository)

    assert session_manager.register_session(first) is first
    assert session_manager.register_session(second) is first
    assert session_manager.get_session(first.room_code) is first

def test_cleanup_removes_session(local_repository, mocker):
    session = _loaded_session(local_repository)
    session_manager.register_session(session)
    shutdown = mocker.spy(session, "shutdown")

    session_manager.cleanup_session(session.room_code)

    assert session_manager.get_session(session.room_code) is None
    shutdown.assert_called_once()
    session_manager.cleanup_session(session.room_code) # Unknown rooms are ignored
