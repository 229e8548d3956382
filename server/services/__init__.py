"""Services package for Durak matchmaking and stats."""

from .matchmaking import MatchmakingService, MatchmakingConfig, JoinResult
from .stats_service import StatsService, PlayerStats, Achievement, LeaderboardEntry

__all__ = [
    "MatchmakingService",
    "MatchmakingConfig",
    "JoinResult",
    "StatsService",
    "PlayerStats",
    "Achievement",
    "LeaderboardEntry",
]
