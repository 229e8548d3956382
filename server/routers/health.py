"""
Health check endpoints for production deployment.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (can the app handle requests?)
- /metrics - Application metrics for monitoring
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from game import GamePhase

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Server context (set during app initialization)
_server = None


def set_health_dependencies(server=None):
    """Set dependencies for health checks."""
    global _server
    _server = server


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
    Readiness check - can the app handle requests?

    Returns 503 until the server context is wired up.
    """
    ready = _server is not None
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ok" if ready else "starting",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


@router.get("/metrics")
async def metrics():
    """
    Expose application metrics for monitoring.

    Returns operational metrics useful for dashboards and alerting.
    """
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _server is not None:
        rooms = list(_server.room_manager.rooms.values())
        metrics_data.update({
            "active_sessions": len(rooms),
            "sessions_in_progress": sum(
                1 for r in rooms if r.game.phase == GamePhase.IN_PROGRESS
            ),
            "connected_players": sum(r.attached_count() for r in rooms),
            "waiting_players": _server.matchmaking.queue_size(),
            "tracked_players": _server.stats.player_count(),
        })

    return metrics_data
