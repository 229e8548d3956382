"""
Centralized configuration for the Durak game server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.rules.hand_size)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_float(key: str, default: float = 0.0) -> float:
    """Get float environment variable."""
    try:
        return float(os.environ.get(key, str(default)))
    except ValueError:
        return default


@dataclass
class RulesConfig:
    """Per-session rule constants."""
    hand_size: int = 6
    # Loser hand size at the end of a game that makes it a "perfect" win
    perfect_game_hand_size: int = 10
    # Largest hand the winner held during the game that makes it a comeback
    comeback_hand_size: int = 10


@dataclass
class LeaderboardConfig:
    """Leaderboard qualification and ordering."""
    min_games: int = 5
    size: int = 10
    tie_epsilon: float = 0.1


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Session settings
    SESSION_RETIRE_DELAY_SECONDS: float = 5.0
    DUPLICATE_JOIN_POLICY: str = "ignore"  # "ignore" or "reject"
    MAX_NAME_LENGTH: int = 32
    CHAT_MAX_LENGTH: int = 500

    rules: RulesConfig = field(default_factory=RulesConfig)
    leaderboard: LeaderboardConfig = field(default_factory=LeaderboardConfig)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        join_policy = get_env("DUPLICATE_JOIN_POLICY", "ignore").lower()
        if join_policy not in ("ignore", "reject"):
            join_policy = "ignore"

        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            SESSION_RETIRE_DELAY_SECONDS=get_env_float("SESSION_RETIRE_DELAY_SECONDS", 5.0),
            DUPLICATE_JOIN_POLICY=join_policy,
            MAX_NAME_LENGTH=get_env_int("MAX_NAME_LENGTH", 32),
            CHAT_MAX_LENGTH=get_env_int("CHAT_MAX_LENGTH", 500),
            rules=RulesConfig(
                hand_size=get_env_int("HAND_SIZE", 6),
                perfect_game_hand_size=get_env_int("PERFECT_GAME_HAND_SIZE", 10),
                comeback_hand_size=get_env_int("COMEBACK_HAND_SIZE", 10),
            ),
            leaderboard=LeaderboardConfig(
                min_games=get_env_int("LEADERBOARD_MIN_GAMES", 5),
                size=get_env_int("LEADERBOARD_SIZE", 10),
                tie_epsilon=get_env_float("LEADERBOARD_TIE_EPSILON", 0.1),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()
