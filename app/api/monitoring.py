# app/api/monitoring.py
import logging
from collections import Counter
from fastapi import APIRouter

from app.api import websockets
from app.models.monitoring import ApiStats, LiveStats
from app.services import session_manager

logger = logging.getLogger("app.api.monitoring")
router = APIRouter()

# Updated by the HTTP metrics middleware in app.main
api_stats = {"total_requests": 0, "errors_5xx": 0}


@router.get("/live", response_model=LiveStats)
async def get_live_stats():
    """In-process counters for the running game sessions and the HTTP API."""
    sessions = list(session_manager.active_sessions.values())
    phases = Counter(session.phase.value for session in sessions)
    total = api_stats["total_requests"]
    error_rate = (api_stats["errors_5xx"] / total * 100) if total > 0 else 0

    return LiveStats(
        active_sessions=len(sessions),
        sessions_by_phase=dict(phases),
        players_in_sessions=sum(len(session.room.players) for session in sessions if session.room),
        concurrent_websockets=websockets.game_manager.connection_count(),
        pending_transitions=sum(1 for task in websockets.active_transition_tasks.values() if not task.done()),
        api=ApiStats(
            total_requests=total,
            errors_5xx=api_stats["errors_5xx"],
            error_rate_5xx_percent=round(error_rate, 2),
        ),
    )
