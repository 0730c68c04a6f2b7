"""
Health check endpoints for deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (is the room registry wired up?)
- /metrics - Room and connection counts for monitoring
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from room import RoomManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Set during app initialization
_room_manager: Optional[RoomManager] = None


def set_health_dependencies(room_manager: Optional[RoomManager] = None) -> None:
    """Set dependencies for health checks."""
    global _room_manager
    _room_manager = room_manager


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    Always returns 200 while the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - can the app accept room connections?

    Returns 503 until the room manager has been registered.
    """
    ready = _room_manager is not None
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "starting",
            "checks": {"rooms": {"status": "ok" if ready else "not_configured"}},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get("/metrics")
async def metrics():
    """Expose room metrics for dashboards and alerting."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = _room_manager.rooms.values()
        metrics_data.update({
            "active_rooms": sum(1 for r in rooms if not r.is_empty()),
            "total_rooms": len(_room_manager.rooms),
            "total_players": sum(r.player_count() for r in rooms),
            "connected_websockets": _room_manager.connection_count(),
            "games_in_progress": sum(1 for r in rooms if r.state.game_started),
        })

    return metrics_data
