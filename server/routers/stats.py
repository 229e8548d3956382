"""
Stats and Leaderboard API router for the Durak game.

Provides public read-only endpoints for player stats, unlocked
achievements, the achievement catalog and the leaderboard.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from services.stats_service import StatsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stats", tags=["stats"])


# =============================================================================
# Response Models
# =============================================================================


class PlayerStatsResponse(BaseModel):
    """Player statistics response."""
    name: str
    games_played: int
    wins: int
    losses: int
    win_rate: float
    current_streak: int
    best_streak: int
    last_game_won: bool
    achievements: list[str]


class AchievementResponse(BaseModel):
    """Achievement definition response."""
    id: str
    name: str
    description: str
    icon: str


class LeaderboardEntryResponse(BaseModel):
    """Single leaderboard entry."""
    rank: int
    name: str
    games_played: int
    wins: int
    win_rate: float
    current_streak: int
    best_streak: int
    achievements: list[str]


class LeaderboardResponse(BaseModel):
    """Leaderboard response."""
    entries: list[LeaderboardEntryResponse]
    min_games: int


# =============================================================================
# Dependencies
# =============================================================================

# Set by main.py during startup
_stats_service: Optional[StatsService] = None


def set_stats_service(service: StatsService) -> None:
    """Set the stats service instance (called from main.py)."""
    global _stats_service
    _stats_service = service


def get_stats_service_dep() -> StatsService:
    """Dependency to get stats service."""
    if _stats_service is None:
        raise HTTPException(status_code=503, detail="Stats service not initialized")
    return _stats_service


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(service: StatsService = Depends(get_stats_service_dep)):
    """Current top players by win rate."""
    return LeaderboardResponse(
        entries=[
            LeaderboardEntryResponse(**entry.to_dict())
            for entry in service.get_leaderboard()
        ],
        min_games=service.leaderboard_config.min_games,
    )


@router.get("/achievements", response_model=list[AchievementResponse])
async def get_achievements(service: StatsService = Depends(get_stats_service_dep)):
    """The full achievement catalog."""
    return [AchievementResponse(**a.to_dict()) for a in service.get_achievements()]


@router.get("/players/{name}", response_model=PlayerStatsResponse)
async def get_player_stats(name: str, service: StatsService = Depends(get_stats_service_dep)):
    """Stats for a display name (empty record if never played)."""
    stats = service.get_player_stats(name)
    return PlayerStatsResponse(
        name=name,
        achievements=[a.id for a in service.get_player_achievements(name)],
        **stats.to_dict(),
    )


@router.get("/players/{name}/achievements", response_model=list[AchievementResponse])
async def get_player_achievements(name: str, service: StatsService = Depends(get_stats_service_dep)):
    """Achievements unlocked by a display name."""
    return [AchievementResponse(**a.to_dict()) for a in service.get_player_achievements(name)]
