# app/models/room.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from app.models.enums import RedirectTarget


class Player(BaseModel):
    """A roster entry. Serialized with the persisted document's field names (uid, name, photoURL, ...)."""
    id: str = Field(alias="uid")
    display_name: str = Field(alias="name")
    avatar_url: Optional[str] = Field(default=None, alias="photoURL")
    score: int = Field(default=0, ge=0)
    is_ready: bool = Field(default=False, alias="isReady")

    class Config:
        populate_by_name = True


class Room(BaseModel):
    code: str = Field(alias="roomCode", min_length=6, max_length=6)
    players: List[Player] = Field(default_factory=list) # Order defines the drawing rotation
    creator_id: str = Field(alias="createdBy")
    round: int = Field(default=1, ge=1)
    max_rounds: int = Field(default=3, ge=1, alias="maxRounds")
    started: bool = False
    current_drawer: Optional[str] = Field(default=None, alias="currentDrawer")
    current_word: Optional[str] = Field(default=None, alias="currentWord")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="createdAt")

    class Config:
        populate_by_name = True

    @property
    def finished(self) -> bool:
        """A completed game stores round = maxRounds + 1."""
        return self.started and self.round > self.max_rounds

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Room":
        return cls.model_validate(document)

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def index_of(self, player_id: str) -> int:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        return -1


class CreateRoomRequest(BaseModel):
    max_rounds: Optional[int] = Field(default=None, ge=1, le=10, description="Total rounds, defaults to the server setting.")

class CreateRoomResponse(BaseModel):
    room_code: str

class JoinRoomRequest(BaseModel):
    room_code: Optional[str] = None # Raw user input, normalized server-side

class ReadyRequest(BaseModel):
    ready: bool = True

class RoomStatusResponse(BaseModel):
    """What the lobby/game views poll. `redirect_to` tells the client to switch views."""
    room: Room
    is_creator: bool
    is_member: bool
    all_ready: bool
    can_start: bool
    redirect_to: Optional[RedirectTarget] = None
    poll_interval_seconds: float
