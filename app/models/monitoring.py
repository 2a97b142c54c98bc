from pydantic import BaseModel
from typing import Dict

class ApiStats(BaseModel):
    total_requests: int
    errors_5xx: int
    error_rate_5xx_percent: float

class LiveStats(BaseModel):
    active_sessions: int
    sessions_by_phase: Dict[str, int]
    players_in_sessions: int
    concurrent_websockets: int
    pending_transitions: int
    api: ApiStats
