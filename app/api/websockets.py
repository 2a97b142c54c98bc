# app/api/websockets.py
import logging
import asyncio
from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, Depends, status, Query
from pydantic import ValidationError
from starlette.websockets import WebSocketState
from sqlalchemy.orm import Session
from typing import Awaitable, Callable, Dict, List

from app.api import deps
from app.core.config import settings
from app.core.exceptions import InvalidRoomCodeError, RoomNotFoundError, RoomStoreUnavailableError
from app.db.session import SessionLocal
from app.models.enums import GamePhase, RedirectTarget, RoundEndReason
from app.models.game import PlayerAction
from app.services import game_service, session_manager
from app.services.game_service import GameEvent, GameSessionController
from app.services.room_repository import normalize_room_code

logger = logging.getLogger("app.api.websockets")  # Logger for this module
router = APIRouter()

# Pending delayed transitions (grace period, scoreboard delay) per room.
# Kept out of the controller so it stays free of asyncio.Task objects.
active_transition_tasks: Dict[str, asyncio.Task] = {}

# Session factory for background work that runs outside a request
db_session_factory: Callable[[], Session] = SessionLocal


def _schedule_transition(room_code: str, delay_seconds: float, transition: Callable[[str], Awaitable[None]]):
    """Runs `transition(room_code)` after `delay_seconds`, replacing any pending transition for the room."""
    existing = active_transition_tasks.get(room_code)
    if existing and not existing.done() and existing is not asyncio.current_task():
        logger.warning(f"R:{room_code} - Replacing a pending transition that had not run yet.")
        existing.cancel()

    async def _run():
        try:
            await asyncio.sleep(delay_seconds)
            await transition(room_code)
        except asyncio.CancelledError:
            logger.debug(f"R:{room_code} - Pending transition {transition.__name__} cancelled.")
            raise
        except Exception as e:
            logger.exception(f"R:{room_code} - Error in transition {transition.__name__}: {e}")
        finally:
            if active_transition_tasks.get(room_code) is asyncio.current_task():
                del active_transition_tasks[room_code]

    active_transition_tasks[room_code] = asyncio.create_task(_run())


def _cancel_transition(room_code: str):
    task = active_transition_tasks.pop(room_code, None)
    if task is not None and not task.done() and task is not asyncio.current_task():
        task.cancel()
        logger.info(f"R:{room_code} - Pending transition cancelled.")


async def _dispatch(room_code: str, events: List[GameEvent]):
    for event in events:
        await game_manager._send_event(event, room_code)


def _start_round_timer(session: GameSessionController):
    room_code = session.room_code

    async def on_tick():
        events = session.tick()
        await _dispatch(room_code, events)
        if session.phase == GamePhase.ROUND_ENDING:
            _schedule_transition(room_code, settings.ROUND_END_GRACE_SECONDS, _advance_after_grace)

    session.timer.start(on_tick)


async def _end_round_all_guessed(room_code: str):
    session = session_manager.get_session(room_code)
    if session is None:
        return
    events = session.end_round(RoundEndReason.ALL_GUESSED)
    await _dispatch(room_code, events)
    if session.phase == GamePhase.ROUND_ENDING:
        _schedule_transition(room_code, settings.ROUND_END_GRACE_SECONDS, _advance_after_grace)


async def _advance_after_grace(room_code: str):
    session = session_manager.get_session(room_code)
    if session is None:
        logger.info(f"R:{room_code} - Session gone before the next turn. Nothing to advance.")
        return
    events = session.advance()
    await _dispatch(room_code, events)

    if session.phase == GamePhase.ROUND_ACTIVE:
        _start_round_timer(session)
    elif session.phase == GamePhase.GAME_COMPLETE:
        _schedule_transition(room_code, settings.GAME_COMPLETE_DELAY_SECONDS, _show_scoreboard)


async def _show_scoreboard(room_code: str):
    session = session_manager.get_session(room_code)
    if session is None:
        return
    events = session.complete()
    if not events:
        return
    scoreboard = session.scoreboard()
    session_manager.finished_scoreboards[room_code] = scoreboard

    db = db_session_factory()
    try:
        game_service.record_final_standings(db, scoreboard)
    finally:
        db.close() # Ensure DB session is closed

    await _dispatch(room_code, events)


def _cleanup_room(room_code: str):
    _cancel_transition(room_code)
    session_manager.cleanup_session(room_code)


class GameConnectionManager:
	def __init__(self):
		# room_code -> player uid -> WebSocket
		self.active_connections: Dict[str, Dict[str, WebSocket]] = {}

	async def connect(self, websocket: WebSocket, room_code: str, player_id: str):
		if room_code not in self.active_connections:
			self.active_connections[room_code] = {}
		# Check if player is already connected
		if player_id in self.active_connections[room_code]:
			logger.info(f"Player {player_id} reconnected to room {room_code}, closing old connection.")
			old_connection = self.active_connections[room_code].pop(player_id)
			try:
				await old_connection.close(code=status.WS_1001_GOING_AWAY, reason="New connection established")
			except Exception as e:
				logger.exception(f"Error closing old websocket for {player_id}: {e}")
		self.active_connections[room_code][player_id] = websocket
		logger.info(f"Player {player_id} connected to room {room_code}. Current players: {list(self.active_connections[room_code].keys())}")

	def disconnect(self, room_code: str, player_id: str, websocket: WebSocket | None = None):
		connections = self.active_connections.get(room_code)
		if not connections or player_id not in connections:
			return
		if websocket is not None and connections[player_id] is not websocket:
			return # A newer connection replaced this one
		del connections[player_id]
		logger.info(f"Player {player_id} removed from active connections for room {room_code}")
		if not connections:
			logger.info(f"Room {room_code} has no players left, removing from active connections.")
			del self.active_connections[room_code]
			_cleanup_room(room_code) # Clean up the session too

	def connection_count(self) -> int:
		return sum(len(conns) for conns in self.active_connections.values())

	async def _send_event(self, event: GameEvent, room_code: str):
		"""Helper to dispatch a GameEvent."""
		if event.broadcast:
			logger.debug(f"Broadcasting event {event.type} to room {room_code} (exclude: {event.exclude_player_id})")
			await self.broadcast_to_room(room_code, event.to_dict(), exclude_player_id=event.exclude_player_id)
		elif event.target_player_id is not None:
			logger.debug(f"Sending event {event.type} to player {event.target_player_id} in room {room_code}")
			await self.send_to_player(room_code, event.target_player_id, event.to_dict())

	async def broadcast_to_room(self, room_code: str, message: dict, exclude_player_id: str | None = None):
		if room_code in self.active_connections:
			tasks = []
			for player_id, connection in list(self.active_connections[room_code].items()):
				if player_id != exclude_player_id:
					tasks.append(self._send_json_safe(connection, message, player_id, room_code))
			if tasks:
				await asyncio.gather(*tasks)

	async def send_to_player(self, room_code: str, player_id: str, message: dict):
		if room_code in self.active_connections and player_id in self.active_connections[room_code]:
			connection = self.active_connections[room_code][player_id]
			await self._send_json_safe(connection, message, player_id, room_code)

	async def _send_json_safe(self, connection: WebSocket, message: dict, player_id: str, room_code: str):
		try:
			if connection.client_state == WebSocketState.CONNECTED:
				await connection.send_json(message)
			else: # Connection closed before sending
				logger.warning(f"WS for P:{player_id} R:{room_code} was already closed before sending {message.get('type')}. Disconnecting from manager.")
				self.disconnect(room_code, player_id, connection)
		except Exception as e:
			logger.exception(f"Error sending message to {player_id} in room {room_code}: {e}. Disconnecting.")
			self.disconnect(room_code, player_id, connection)

game_manager = GameConnectionManager()


async def _reject(websocket: WebSocket, event: GameEvent, close_code: int):
	"""Accepts only to deliver one event, then closes."""
	await websocket.accept()
	await websocket.send_json(event.to_dict())
	await websocket.close(code=close_code, reason=event.payload.get("message", event.type))


async def _handle_action(session: GameSessionController, player_id: str, action: PlayerAction):
	room_code = session.room_code
	payload = action.payload or {}

	if action.action_type == "guess":
		result, events = session.submit_guess(player_id, str(payload.get("text", "")))
		await _dispatch(room_code, events)
		if result.round_complete:
			logger.info(f"R:{room_code} - Every guesser found the word. Ending the round shortly.")
			_schedule_transition(room_code, settings.ALL_GUESSED_DELAY_SECONDS, _end_round_all_guessed)

	elif action.action_type in ("draw", "clear_canvas"):
		if not session.is_drawing(player_id):
			await game_manager.send_to_player(room_code, player_id, GameEvent(
				"error_message_to_player", {"message": "Only the drawer can draw."}, target_player_id=player_id).to_dict())
			return
		# Strokes are relayed verbatim, never stored
		await game_manager._send_event(GameEvent(action.action_type, payload, broadcast=True, exclude_player_id=player_id), room_code)

	elif action.action_type == "request_state":
		await game_manager._send_event(session.state_event_for(player_id), room_code)

	else:
		logger.warning(f"R:{room_code} - Unknown action '{action.action_type}' from P:{player_id}")
		await game_manager.send_to_player(room_code, player_id, GameEvent(
			"error_message_to_player", {"message": f"Unknown action: {action.action_type}"}, target_player_id=player_id).to_dict())


@router.websocket("/ws/game/{room_code}")
async def game_websocket_endpoint(
	websocket: WebSocket,
	room_code: str,
	token: str = Query(..., description="User's JWT for authentication"), # Authenticate via JWT
	db: Session = Depends(deps.get_db)
):
	try:
		current_user = await deps.get_current_user_from_backend_jwt(token=token, db=db)
		player_id = current_user.uid
		logger.info(f"WS Connection attempt: P:{player_id} for R:{room_code}")
	except HTTPException as auth_exc:
		logger.warning(f"WS Auth failed for R:{room_code}: {auth_exc.detail}")
		await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=f"Authentication failed: {auth_exc.detail}")
		return

	try:
		room_code = normalize_room_code(room_code)
	except InvalidRoomCodeError as e:
		await _reject(websocket, GameEvent("room_not_found", {"message": e.message, "redirect_to": RedirectTarget.DASHBOARD.value}), status.WS_1008_POLICY_VIOLATION)
		return

	session = session_manager.get_session(room_code)
	if session is None:
		candidate = GameSessionController(room_code)
		try:
			room = candidate.load()
		except RoomNotFoundError as e:
			logger.warning(f"R:{room_code} not found. Closing WS for P:{player_id}.")
			await _reject(websocket, GameEvent("room_not_found", {"message": e.message, "redirect_to": RedirectTarget.DASHBOARD.value}), status.WS_1008_POLICY_VIOLATION)
			return
		except RoomStoreUnavailableError as e:
			await _reject(websocket, GameEvent("error_message_to_player", {"message": e.message}), status.WS_1011_INTERNAL_ERROR)
			return

		if not room.started:
			logger.info(f"R:{room_code} has not started. Redirecting P:{player_id} to the lobby.")
			await _reject(websocket, GameEvent("redirect", {"to": RedirectTarget.LOBBY.value, "message": "The game has not started yet."}), status.WS_1000_NORMAL_CLOSURE)
			return

		finished = session_manager.finished_scoreboards.get(room_code)
		if finished is not None or room.finished:
			logger.info(f"R:{room_code} game is already complete. Sending the final scoreboard to P:{player_id}.")
			scoreboard = finished if finished is not None else game_service.build_scoreboard(room, finished=True)
			await _reject(websocket, GameEvent("show_scoreboard", scoreboard.model_dump(mode="json")), status.WS_1000_NORMAL_CLOSURE)
			return
		session = session_manager.register_session(candidate)

	room = session.refresh_room() # Picks up players who joined after the start
	if room is None or room.find_player(player_id) is None:
		logger.warning(f"P:{player_id} is not a player in R:{room_code}. Closing WS.")
		await _reject(websocket, GameEvent("error_message_to_player", {"message": "You are not a player in this room."}), status.WS_1008_POLICY_VIOLATION)
		return

	await websocket.accept()
	await game_manager.connect(websocket, room_code, player_id)

	try:
		if session.phase == GamePhase.LOBBY:
			start_events = session.begin()
			await _dispatch(room_code, start_events)
			if session.phase == GamePhase.ROUND_ACTIVE:
				_start_round_timer(session)
		await game_manager._send_event(session.state_event_for(player_id), room_code)

		# Main loop for receiving player actions
		while True:
			data = await websocket.receive_json()
			try:
				action = PlayerAction.model_validate(data)
			except ValidationError:
				logger.warning(f"R:{room_code} - Malformed message from P:{player_id}: {data!r}")
				await game_manager.send_to_player(room_code, player_id, GameEvent(
					"error_message_to_player", {"message": "Malformed action."}, target_player_id=player_id).to_dict())
				continue
			await _handle_action(session, player_id, action)

	except WebSocketDisconnect:
		logger.info(f"WS Disconnected: P:{player_id} R:{room_code}")
	except Exception as e:
		logger.exception(f"Unexpected error in WS R:{room_code} P:{player_id}: {type(e).__name__} - {e}")
		if websocket.client_state == WebSocketState.CONNECTED:
			try:
				await websocket.send_json({"type": "error_message_to_player", "payload": {"message": f"Internal server error: {type(e).__name__}"}})
			except Exception as send_e:
				logger.debug(f"Could not report error to P:{player_id}: {send_e}")
	finally:
		if websocket.client_state != WebSocketState.DISCONNECTED:
			try:
				await websocket.close(code=status.WS_1001_GOING_AWAY)
			except RuntimeError as re:
				logger.debug(f"RuntimeError closing WS (P:{player_id} R:{room_code}) in finally: {re}")
		game_manager.disconnect(room_code, player_id, websocket)
