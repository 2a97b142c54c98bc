# app/api/rooms.py
import logging
from fastapi import APIRouter, Depends, status

from app.api import deps
from app.core.exceptions import GameError
from app.models.enums import RedirectTarget
from app.models.game import Scoreboard
from app.models.room import CreateRoomRequest, CreateRoomResponse, JoinRoomRequest, ReadyRequest, RoomStatusResponse
from app.models.user import UserPublic
from app.services import lobby_service, session_manager
from app.services.game_service import build_scoreboard
from app.services.room_repository import RoomRepository, normalize_room_code

logger = logging.getLogger("app.api.rooms")  # Logger for this module
router = APIRouter()


@router.post("", response_model=CreateRoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    request_data: CreateRoomRequest | None = None,
    current_user: UserPublic = Depends(deps.get_current_active_user),
    repository: RoomRepository = Depends(deps.get_repository),
):
    """Creates a room with the caller as creator and first player."""
    try:
        room = lobby_service.create_room(repository, current_user, max_rounds=request_data.max_rounds if request_data else None)
    except GameError as e:
        raise deps.http_error_from(e)
    return CreateRoomResponse(room_code=room.code)


@router.get("/{room_code}", response_model=RoomStatusResponse)
async def get_lobby_status(
    room_code: str,
    current_user: UserPublic = Depends(deps.get_current_active_user),
    repository: RoomRepository = Depends(deps.get_repository),
):
    """Polled by the lobby view. Once the game has started, `redirect_to` is "game"."""
    try:
        return lobby_service.get_room_status(repository, normalize_room_code(room_code), current_user, view=RedirectTarget.LOBBY)
    except GameError as e:
        raise deps.http_error_from(e)


@router.get("/{room_code}/game", response_model=RoomStatusResponse)
async def get_game_entry_status(
    room_code: str,
    current_user: UserPublic = Depends(deps.get_current_active_user),
    repository: RoomRepository = Depends(deps.get_repository),
):
    """Checked by the game view before opening its socket. Not started yet means `redirect_to` is "lobby"."""
    try:
        return lobby_service.get_room_status(repository, normalize_room_code(room_code), current_user, view=RedirectTarget.GAME)
    except GameError as e:
        raise deps.http_error_from(e)


@router.post("/{room_code}/join", response_model=RoomStatusResponse)
async def join_room(
    room_code: str,
    current_user: UserPublic = Depends(deps.get_current_active_user),
    repository: RoomRepository = Depends(deps.get_repository),
):
    try:
        room = lobby_service.join_room(repository, room_code, current_user)
        return lobby_service.get_room_status(repository, room.code, current_user, view=RedirectTarget.LOBBY)
    except GameError as e:
        raise deps.http_error_from(e)


@router.post("/join", response_model=RoomStatusResponse)
async def join_room_by_code(
    request_data: JoinRoomRequest,
    current_user: UserPublic = Depends(deps.get_current_active_user),
    repository: RoomRepository = Depends(deps.get_repository),
):
    """Join with the code typed into the dashboard (any case, surrounding spaces allowed)."""
    try:
        room = lobby_service.join_room(repository, request_data.room_code, current_user)
        return lobby_service.get_room_status(repository, room.code, current_user, view=RedirectTarget.LOBBY)
    except GameError as e:
        raise deps.http_error_from(e)


@router.post("/{room_code}/ready", response_model=RoomStatusResponse)
async def set_ready(
    room_code: str,
    request_data: ReadyRequest | None = None,
    current_user: UserPublic = Depends(deps.get_current_active_user),
    repository: RoomRepository = Depends(deps.get_repository),
):
    try:
        code = normalize_room_code(room_code)
        lobby_service.set_ready(repository, code, current_user, request_data.ready if request_data else True)
        return lobby_service.get_room_status(repository, code, current_user, view=RedirectTarget.LOBBY)
    except GameError as e:
        raise deps.http_error_from(e)


@router.post("/{room_code}/start", response_model=RoomStatusResponse)
async def start_game(
    room_code: str,
    current_user: UserPublic = Depends(deps.get_current_active_user),
    repository: RoomRepository = Depends(deps.get_repository),
):
    """Creator only, once every player is ready. The round loop begins when the game sockets connect."""
    try:
        code = normalize_room_code(room_code)
        lobby_service.start_game(repository, code, current_user)
        return lobby_service.get_room_status(repository, code, current_user, view=RedirectTarget.LOBBY)
    except GameError as e:
        raise deps.http_error_from(e)


@router.get("/{room_code}/scoreboard", response_model=Scoreboard)
async def get_scoreboard(
    room_code: str,
    current_user: UserPublic = Depends(deps.get_current_active_user),
    repository: RoomRepository = Depends(deps.get_repository),
):
    """Final standings once the game is over, current standings before that."""
    try:
        code = normalize_room_code(room_code)
        finished = session_manager.finished_scoreboards.get(code)
        if finished is not None:
            return finished
        session = session_manager.get_session(code)
        if session is not None and session.room is not None:
            return session.scoreboard()
        room = lobby_service.require_room(repository, code)
        return build_scoreboard(room, finished=room.finished)
    except GameError as e:
        raise deps.http_error_from(e)
