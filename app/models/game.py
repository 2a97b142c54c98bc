# app/models/game.py
import time
import uuid
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional, Set

from app.models.enums import GamePhase, MessageKind, RoundEndReason

class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    sender_id: Optional[str] = None # None for system messages
    sender_name: str
    text: str
    kind: MessageKind = MessageKind.CHAT
    created_at: float = Field(default_factory=time.time)

class GameRoundState(BaseModel):
    """Ephemeral round state owned by the session controller. Never persisted."""
    room_code: str
    current_drawer_id: Optional[str] = None
    current_word: Optional[str] = None
    time_left_seconds: int = 90
    guessed_player_ids: Set[str] = Field(default_factory=set) # Cleared every round
    messages: List[ChatMessage] = Field(default_factory=list) # Append-only for the whole game
    last_round_end_reason: Optional[RoundEndReason] = None

class GuessResult(BaseModel):
    accepted: bool
    correct: bool = False
    points_awarded: int = 0
    round_complete: bool = False # Every eligible guesser has now guessed
    reason: Optional[str] = None # Why a guess was rejected

class PlayerStanding(BaseModel):
    rank: int
    player_id: str
    display_name: str
    avatar_url: Optional[str] = None
    score: int
    is_winner: bool = False

class Scoreboard(BaseModel):
    room_code: str
    round: int
    max_rounds: int
    finished: bool
    standings: List[PlayerStanding]
    winner_ids: List[str]

class GameStateView(BaseModel):
    """Per-participant projection of the session, sent over the game socket."""
    room_code: str
    phase: GamePhase
    round: int
    max_rounds: int
    current_drawer_id: Optional[str] = None
    current_drawer_name: Optional[str] = None
    is_local_player_drawing: bool = False
    has_local_player_guessed: bool = False
    time_left_seconds: int
    word: Optional[str] = None # Only the drawer sees it during a round, everyone once it is revealed
    word_length: Optional[int] = None
    players: List[Dict[str, Any]] = []
    messages: List[ChatMessage] = []

class PlayerAction(BaseModel):
    action_type: str # "guess", "draw", "clear_canvas"
    payload: Dict[str, Any] | None = None # e.g. {"text": "cat"}
