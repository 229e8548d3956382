"""
Stats service for Durak leaderboards and achievements.

Keeps a per-display-name record of results, evaluates achievement
unlocks after every recorded game and maintains the leaderboard
snapshot. All state lives in process memory.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from functools import cmp_to_key
from dataclasses import asdict, dataclass, field
from typing import Optional, List

from config import LeaderboardConfig
from constants import (
    ACHIEVEMENT_CATALOG,
    MASTER_MIN_GAMES,
    MASTER_WIN_RATE,
    STREAK_THRESHOLDS,
    VETERAN_GAMES,
)

logger = logging.getLogger(__name__)


def _percent(part: int, whole: int) -> float:
    """Percentage to one decimal place, halves rounded up."""
    return float(Decimal(part / whole * 100).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


@dataclass
class PlayerStats:
    """Running record for one display name."""
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    current_streak: int = 0
    best_streak: int = 0
    last_game_won: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Achievement:
    """Achievement definition."""
    id: str
    name: str
    description: str
    icon: str

    def to_dict(self) -> dict:
        return asdict(self)


ACHIEVEMENTS: dict[str, Achievement] = {
    entry["id"]: Achievement(**entry) for entry in ACHIEVEMENT_CATALOG
}


@dataclass
class GameResult:
    """Per-game flags that feed achievement checks."""
    won: bool
    perfect_game: bool = False
    comeback_win: bool = False


@dataclass
class LeaderboardEntry:
    """Single entry on the leaderboard."""
    rank: int
    name: str
    games_played: int
    wins: int
    win_rate: float
    current_streak: int
    best_streak: int
    achievements: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


class StatsService:
    """
    Player statistics, achievements and leaderboard.

    Provides methods for:
    - Recording a finished game for a player
    - Querying player stats and unlocked achievements
    - Reading the current leaderboard
    """

    def __init__(self, leaderboard_config: Optional[LeaderboardConfig] = None):
        """
        Initialize stats service.

        Args:
            leaderboard_config: Qualification and ordering rules.
        """
        self.leaderboard_config = leaderboard_config or LeaderboardConfig()
        self._stats: dict[str, PlayerStats] = {}
        self._achievements: dict[str, List[Achievement]] = {}
        self._leaderboard: List[LeaderboardEntry] = []

    # -------------------------------------------------------------------------
    # Stats Queries
    # -------------------------------------------------------------------------

    def get_player_stats(self, name: str) -> PlayerStats:
        """
        Get the record for a display name, creating an empty one if needed.

        Args:
            name: Display name.

        Returns:
            The player's PlayerStats.
        """
        if name not in self._stats:
            self._stats[name] = PlayerStats()
        return self._stats[name]

    def get_player_achievements(self, name: str) -> List[Achievement]:
        """Achievements unlocked by a display name, in unlock order."""
        return list(self._achievements.get(name, []))

    def get_leaderboard(self) -> List[LeaderboardEntry]:
        """Current leaderboard snapshot."""
        return list(self._leaderboard)

    def get_achievements(self) -> List[Achievement]:
        """The full achievement catalog."""
        return list(ACHIEVEMENTS.values())

    def player_count(self) -> int:
        return len(self._stats)

    # -------------------------------------------------------------------------
    # Game Processing
    # -------------------------------------------------------------------------

    def record_result(
        self,
        name: str,
        won: bool,
        perfect_game: bool = False,
        comeback_win: bool = False,
    ) -> List[Achievement]:
        """
        Record a finished game for a player.

        Args:
            name: Display name.
            won: Whether the player won.
            perfect_game: The opponent was left holding a huge hand.
            comeback_win: The player came back from a huge hand.

        Returns:
            Achievements unlocked by this game (empty if none).
        """
        stats = self.get_player_stats(name)
        stats.games_played += 1

        if won:
            stats.wins += 1
            stats.current_streak += 1
            stats.best_streak = max(stats.best_streak, stats.current_streak)
            stats.last_game_won = True
        else:
            stats.losses += 1
            stats.current_streak = 0
            stats.last_game_won = False

        stats.win_rate = _percent(stats.wins, stats.games_played)

        result = GameResult(won=won, perfect_game=perfect_game, comeback_win=comeback_win)
        new_achievements = self._check_achievements(name, stats, result)

        self.refresh_leaderboard()

        logger.debug(
            f"Recorded {'win' if won else 'loss'} for {name}: "
            f"{stats.wins}/{stats.games_played}, streak={stats.current_streak}"
        )
        if new_achievements:
            logger.info(f"{name} unlocked {[a.id for a in new_achievements]}")

        return new_achievements

    @staticmethod
    def _qualifying_ids(stats: PlayerStats, result: GameResult) -> List[str]:
        """Achievement ids whose conditions hold after this game, in catalog order."""
        qualifying = []
        if result.won and stats.wins == 1:
            qualifying.append("first_win")
        for achievement_id, threshold in STREAK_THRESHOLDS.items():
            if stats.current_streak >= threshold:
                qualifying.append(achievement_id)
        if stats.games_played >= VETERAN_GAMES:
            qualifying.append("veteran")
        if stats.games_played >= MASTER_MIN_GAMES and stats.win_rate >= MASTER_WIN_RATE:
            qualifying.append("master")
        if result.won and result.perfect_game:
            qualifying.append("perfectionist")
        if result.won and result.comeback_win:
            qualifying.append("comeback")
        return qualifying

    def _check_achievements(
        self,
        name: str,
        stats: PlayerStats,
        result: GameResult,
    ) -> List[Achievement]:
        """Unlock newly qualifying achievements for a player."""
        unlocked = self._achievements.setdefault(name, [])
        earned_ids = {a.id for a in unlocked}

        new_achievements = [
            ACHIEVEMENTS[achievement_id]
            for achievement_id in self._qualifying_ids(stats, result)
            if achievement_id not in earned_ids
        ]
        unlocked.extend(new_achievements)
        return new_achievements

    # -------------------------------------------------------------------------
    # Leaderboard
    # -------------------------------------------------------------------------

    def refresh_leaderboard(self) -> List[LeaderboardEntry]:
        """
        Recompute the leaderboard from the current records.

        Players need a minimum number of games to qualify. Ordering is by
        win rate, with near-equal rates ranked by games played.
        """
        cfg = self.leaderboard_config
        qualified = [
            (name, stats) for name, stats in self._stats.items()
            if stats.games_played >= cfg.min_games
        ]

        def _compare(a, b) -> int:
            (_, sa), (_, sb) = a, b
            if abs(sa.win_rate - sb.win_rate) < cfg.tie_epsilon:
                return sb.games_played - sa.games_played
            return -1 if sa.win_rate > sb.win_rate else 1

        ordered = sorted(qualified, key=cmp_to_key(_compare))

        self._leaderboard = [
            LeaderboardEntry(
                rank=i + 1,
                name=name,
                games_played=stats.games_played,
                wins=stats.wins,
                win_rate=stats.win_rate,
                current_streak=stats.current_streak,
                best_streak=stats.best_streak,
                achievements=[a.id for a in self._achievements.get(name, [])],
            )
            for i, (name, stats) in enumerate(ordered[:cfg.size])
        ]
        return self.get_leaderboard()

