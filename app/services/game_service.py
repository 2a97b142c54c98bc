# app/services/game_service.py
import logging
import random
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Dict, Any, Tuple, List, Literal, Optional

from app.core.exceptions import RoomNotFoundError, RoomStoreUnavailableError
from app.crud import crud_user
from app.models.enums import GamePhase, MessageKind, RoundEndReason
from app.models.game import ChatMessage, GameRoundState, GameStateView, GuessResult, PlayerStanding, Scoreboard
from app.models.room import Room
from app.services import guess_evaluator, word_selector
from app.services.room_repository import RoomRepository, get_room_repository
from app.services.round_timer import RoundTimer
from app.services.turn_scheduler import TurnScheduler

logger = logging.getLogger("app.services.game_service")  # Logger for this module

# Event types the session controller can emit
GameEventType = Literal[
    "game_state",
    "round_started",
    "secret_word",
    "timer_tick",
    "chat_message",
    "correct_guess",
    "round_ended",
    "clear_canvas",
    "game_complete",
    "show_scoreboard",
    "draw",
    "redirect",
    "room_not_found",
    "error_message_to_player",
]

class GameEvent:
    def __init__(self, event_type: GameEventType, payload: Dict[str, Any], target_player_id: str | None = None, broadcast: bool = False, exclude_player_id: str | None = None):
        self.type = event_type
        self.payload = payload
        self.target_player_id = target_player_id
        self.broadcast = broadcast
        self.exclude_player_id = exclude_player_id # For broadcasts

    def to_dict(self): # For sending over WebSocket
        return {"type": self.type, "payload": self.payload}

    def __repr__(self):
        return f"GameEvent({self.type!r}, target={self.target_player_id!r}, broadcast={self.broadcast})"


def build_scoreboard(room: Room, finished: bool) -> Scoreboard:
    """Standings by score (ties keep roster order and share a rank). Winners only once finished."""
    ordered = sorted(room.players, key=lambda p: p.score, reverse=True)
    top_score = ordered[0].score if ordered else 0
    winner_ids = [p.id for p in ordered if p.score == top_score] if finished and top_score > 0 else []

    standings = []
    for player in ordered:
        rank = 1 + sum(1 for other in room.players if other.score > player.score)
        standings.append(PlayerStanding(
            rank=rank,
            player_id=player.id,
            display_name=player.display_name,
            avatar_url=player.avatar_url,
            score=player.score,
            is_winner=player.id in winner_ids,
        ))
    return Scoreboard(
        room_code=room.code,
        round=min(room.round, room.max_rounds),
        max_rounds=room.max_rounds,
        finished=finished,
        standings=standings,
        winner_ids=winner_ids,
    )


def record_final_standings(db: Session, scoreboard: Scoreboard):
    """Folds a finished game into every participant's profile."""
    for standing in scoreboard.standings:
        try:
            crud_user.record_game_result(
                db, uid=standing.player_id, final_score=standing.score,
                won=standing.player_id in scoreboard.winner_ids,
            )
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception(f"Error recording game result for {standing.player_id} in room {scoreboard.room_code}: {e}")


def _players_payload(room: Room) -> List[Dict[str, Any]]:
    return [p.model_dump(by_alias=True, include={"id", "display_name", "avatar_url", "score"}) for p in room.players]


class GameSessionController:
    """
    Runs the round lifecycle for one room: RoundActive -> RoundEnding -> next turn or GameComplete.

    Every method is synchronous and returns the GameEvents it produced. Scheduling
    (timer ticks, grace delays) is done by the caller, see app.api.websockets.
    """

    def __init__(self, room_code: str, repository: RoomRepository | None = None, rng: random.Random | None = None, round_duration_seconds: int | None = None):
        self.room_code = room_code
        self.repository = repository or get_room_repository()
        self.rng = rng
        self.timer = RoundTimer(duration_seconds=round_duration_seconds, label=room_code)
        self.state = GameRoundState(room_code=room_code, time_left_seconds=self.timer.duration_seconds)
        self.room: Optional[Room] = None
        self.scheduler: Optional[TurnScheduler] = None

    # --- Room snapshot ---

    def load(self) -> Room:
        """Fetches the room. Raises RoomNotFoundError / RoomStoreUnavailableError."""
        room = self.repository.fetch(self.room_code)
        if room is None:
            raise RoomNotFoundError(self.room_code)
        self.room = room
        return room

    def refresh_room(self) -> Room:
        """Re-reads the latest snapshot. Keeps the local copy if the store cannot be read."""
        try:
            latest = self.repository.fetch(self.room_code)
        except RoomStoreUnavailableError:
            logger.error(f"Room {self.room_code}: store unavailable, continuing with local snapshot.")
            return self.room
        if latest is None:
            logger.error(f"Room {self.room_code} disappeared from the store, continuing with local snapshot.")
            return self.room
        self.room = latest
        return latest

    def _persist(self, fields: Dict[str, Any]) -> bool:
        try:
            return self.repository.patch(self.room_code, fields)
        except RoomStoreUnavailableError:
            logger.error(f"Room {self.room_code}: could not persist {sorted(fields)}, store unavailable.")
            return False

    # --- Derived state ---

    @property
    def phase(self) -> GamePhase:
        return self.scheduler.phase if self.scheduler else GamePhase.LOBBY

    @property
    def round(self) -> int:
        if self.scheduler:
            return min(self.scheduler.round, self.scheduler.max_rounds)
        return self.room.round if self.room else 1

    @property
    def max_rounds(self) -> int:
        return self.room.max_rounds if self.room else 1

    @property
    def current_drawer(self):
        if not self.room or not self.state.current_drawer_id:
            return None
        return self.room.find_player(self.state.current_drawer_id)

    def is_drawing(self, player_id: str) -> bool:
        return self.phase == GamePhase.ROUND_ACTIVE and self.state.current_drawer_id == player_id

    def has_guessed(self, player_id: str) -> bool:
        return player_id in self.state.guessed_player_ids

    def view_for(self, player_id: str) -> GameStateView:
        drawer = self.current_drawer
        word_revealed = self.phase in (GamePhase.ROUND_ENDING, GamePhase.GAME_COMPLETE)
        can_see_word = word_revealed or self.is_drawing(player_id)
        return GameStateView(
            room_code=self.room_code,
            phase=self.phase,
            round=self.round,
            max_rounds=self.max_rounds,
            current_drawer_id=drawer.id if drawer else None,
            current_drawer_name=drawer.display_name if drawer else None,
            is_local_player_drawing=self.is_drawing(player_id),
            has_local_player_guessed=self.has_guessed(player_id),
            time_left_seconds=self.state.time_left_seconds,
            word=self.state.current_word if can_see_word else None,
            word_length=len(self.state.current_word) if self.state.current_word else None,
            players=_players_payload(self.room) if self.room else [],
            messages=list(self.state.messages),
        )

    def state_event_for(self, player_id: str) -> GameEvent:
        return GameEvent("game_state", self.view_for(player_id).model_dump(mode="json"), target_player_id=player_id)

    # --- Transitions ---

    def begin(self) -> List[GameEvent]:
        """Lobby -> RoundActive with players[0] drawing the persisted round (1 for a new game). Idempotent."""
        if self.scheduler is not None:
            return []
        room = self.room or self.load()
        if not room.started:
            logger.warning(f"Room {self.room_code}: begin() called before the game was started.")
            return []
        if room.finished:
            logger.warning(f"Room {self.room_code}: game already complete, not replaying it.")
            return []
        if not room.players:
            logger.error(f"Room {self.room_code} started without players, cannot begin.")
            return []

        self.scheduler = TurnScheduler(room.max_rounds)
        first_index = self.scheduler.start(room.round)
        logger.info(f"Room {self.room_code}: game begins with {len(room.players)} players in round {room.round}/{room.max_rounds}")
        return self._start_turn(first_index)

    def _start_turn(self, drawer_index: int) -> List[GameEvent]:
        drawer = self.room.players[drawer_index]
        self.state.current_drawer_id = drawer.id
        self.state.current_word = word_selector.pick(self.rng)
        self.state.time_left_seconds = self.timer.reset()
        self.state.guessed_player_ids.clear()
        self.state.last_round_end_reason = None

        announcement = ChatMessage(sender_name="System", text=f"{drawer.display_name} is drawing now!", kind=MessageKind.SYSTEM)
        self.state.messages.append(announcement)
        logger.info(f"Room {self.room_code}: round {self.round}/{self.max_rounds}, {drawer.id} draws '{self.state.current_word}'")

        round_payload = {
            "round": self.round,
            "max_rounds": self.max_rounds,
            "current_drawer_id": drawer.id,
            "current_drawer_name": drawer.display_name,
            "time_left_seconds": self.state.time_left_seconds,
            "word_length": len(self.state.current_word),
        }
        return [
            GameEvent("round_started", round_payload, broadcast=True),
            GameEvent("chat_message", announcement.model_dump(mode="json"), broadcast=True),
            GameEvent("clear_canvas", {"round": self.round}, target_player_id=drawer.id),
            GameEvent("secret_word", {"word": self.state.current_word}, target_player_id=drawer.id),
        ]

    def tick(self) -> List[GameEvent]:
        """One timer second. Reaching zero ends the round immediately."""
        if self.phase != GamePhase.ROUND_ACTIVE:
            return []
        reached_zero = self.timer.tick()
        self.state.time_left_seconds = self.timer.time_left
        events = [GameEvent("timer_tick", {"time_left_seconds": self.state.time_left_seconds}, broadcast=True)]
        if reached_zero:
            events.extend(self.end_round(RoundEndReason.TIMER_EXPIRED))
        return events

    def submit_guess(self, player_id: str, text: str) -> Tuple[GuessResult, List[GameEvent]]:
        if self.phase != GamePhase.ROUND_ACTIVE:
            result = GuessResult(accepted=False, reason="No round in progress.")
            return result, [GameEvent("error_message_to_player", {"message": result.reason}, target_player_id=player_id)]

        room = self.refresh_room()
        result = guess_evaluator.submit(self.state, room, player_id, text)
        if not result.accepted:
            logger.debug(f"Room {self.room_code}: guess from {player_id} rejected ({result.reason})")
            return result, [GameEvent("error_message_to_player", {"message": result.reason}, target_player_id=player_id)]

        events = [GameEvent("chat_message", self.state.messages[-1].model_dump(mode="json"), broadcast=True)]
        if result.correct:
            if not self._persist({"players": room.players}):
                events.append(GameEvent("error_message_to_player", {"message": "Your points could not be saved right now."}, target_player_id=player_id))
            events.append(GameEvent("correct_guess", {
                "player_id": player_id,
                "points": result.points_awarded,
                "players": _players_payload(room),
                "round_complete": result.round_complete,
            }, broadcast=True))
        return result, events

    def end_round(self, reason: RoundEndReason) -> List[GameEvent]:
        """RoundActive -> RoundEnding, revealing the word. No-op in any other phase."""
        if self.scheduler is None or not self.scheduler.end_round():
            return []
        self.timer.cancel()
        self.state.last_round_end_reason = reason

        reveal = ChatMessage(sender_name="System", text=f"The word was: {self.state.current_word}", kind=MessageKind.SYSTEM)
        self.state.messages.append(reveal)
        logger.info(f"Room {self.room_code}: round {self.round} turn of {self.state.current_drawer_id} ended ({reason.value})")
        return [
            GameEvent("round_ended", {
                "reason": reason.value,
                "word": self.state.current_word,
                "round": self.round,
                "guessed_player_ids": sorted(self.state.guessed_player_ids),
                "players": _players_payload(self.room),
            }, broadcast=True),
            GameEvent("chat_message", reveal.model_dump(mode="json"), broadcast=True),
        ]

    def advance(self) -> List[GameEvent]:
        """RoundEnding -> next drawer's turn, or GameComplete once the last round wraps."""
        if self.phase != GamePhase.ROUND_ENDING:
            return []
        room = self.refresh_room()
        turn = self.scheduler.advance(len(room.players))

        if turn.game_complete:
            self.timer.cancel()
            self._persist({"round": turn.round}) # Marks the room finished
            room.round = turn.round
            logger.info(f"Room {self.room_code}: game complete")
            return [GameEvent("game_complete", {"max_rounds": self.max_rounds, "players": _players_payload(room)}, broadcast=True)]

        if turn.round_incremented:
            self._persist({"round": turn.round})
            room.round = turn.round
        return self._start_turn(turn.drawer_index)

    def scoreboard(self) -> Scoreboard:
        return build_scoreboard(self.room, finished=self.phase == GamePhase.GAME_COMPLETE)

    def complete(self) -> List[GameEvent]:
        """Hands the final standings to whoever displays the scoreboard."""
        if self.phase != GamePhase.GAME_COMPLETE:
            return []
        scoreboard = self.scoreboard()
        return [GameEvent("show_scoreboard", scoreboard.model_dump(mode="json"), broadcast=True)]

    def shutdown(self):
        self.timer.cancel()
