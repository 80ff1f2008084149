"""
Health check endpoints for production deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (can the app accept players?)
- /metrics - Room and connection counts for monitoring
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from game import GamePhase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Service references (set during app initialization)
_room_manager = None
_connections = None


def set_health_dependencies(room_manager=None, connections=None):
    """Set dependencies for health checks."""
    global _room_manager, _connections
    _room_manager = room_manager
    _connections = connections


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    This endpoint should always return 200 if the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - is the room registry wired up?

    Returns 503 until the application lifespan has set dependencies.
    """
    ready = _room_manager is not None
    return JSONResponse(
        content={
            "status": "ok" if ready else "starting",
            "checks": {"room_manager": {"status": "ok" if ready else "not_configured"}},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        status_code=200 if ready else 503,
    )


@router.get("/metrics")
async def metrics():
    """Expose room, player and connection counts."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = list(_room_manager.rooms.values())
        by_state = {phase.value: 0 for phase in GamePhase}
        for room in rooms:
            by_state[room.state.value] += 1
        metrics_data.update({
            "active_rooms": len(rooms),
            "total_players": sum(len(r.players) for r in rooms),
            "rooms_by_state": by_state,
            "games_in_progress": by_state[GamePhase.PLAYING.value],
        })

    if _connections is not None:
        metrics_data["connected_websockets"] = len(_connections)

    return metrics_data
