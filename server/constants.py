"""
Card and achievement constants for Durak.

This module is the single source of truth for rank values and the
achievement catalog.

Durak uses a stripped 36-card deck:
    - Ranks 6 through Ace in four suits
    - Numeric value 6..14 (J=11, Q=12, K=13, A=14)
    - Values only order cards within a suit; the trump suit beats any
      other suit regardless of value
"""

# =============================================================================
# Card Values - Single Source of Truth
# =============================================================================

RANK_VALUES: dict[str, int] = {
    '6': 6,
    '7': 7,
    '8': 8,
    '9': 9,
    '10': 10,
    'J': 11,
    'Q': 12,
    'K': 13,
    'A': 14,
}

SUIT_SYMBOLS: dict[str, str] = {
    "hearts": "♥",
    "diamonds": "♦",
    "clubs": "♣",
    "spades": "♠",
}

PLAYERS_PER_GAME = 2


# =============================================================================
# Achievement Catalog
# =============================================================================

# Ordered; evaluation and reporting follow this order.
ACHIEVEMENT_CATALOG: tuple[dict[str, str], ...] = (
    {
        "id": "first_win",
        "name": "First Victory",
        "description": "Win your first game",
        "icon": "🏆",
    },
    {
        "id": "streak_3",
        "name": "Hat Trick",
        "description": "Win 3 games in a row",
        "icon": "🔥",
    },
    {
        "id": "streak_5",
        "name": "Unstoppable",
        "description": "Win 5 games in a row",
        "icon": "⚡",
    },
    {
        "id": "veteran",
        "name": "Veteran",
        "description": "Play 50 games",
        "icon": "🎖️",
    },
    {
        "id": "master",
        "name": "Master",
        "description": "Reach an 80% win rate over at least 20 games",
        "icon": "👑",
    },
    {
        "id": "perfectionist",
        "name": "Perfectionist",
        "description": "Win while your opponent is left holding a huge hand",
        "icon": "💎",
    },
    {
        "id": "comeback",
        "name": "Comeback King",
        "description": "Win a game after holding 10+ cards",
        "icon": "🔄",
    },
)

STREAK_THRESHOLDS: dict[str, int] = {
    "streak_3": 3,
    "streak_5": 5,
}
VETERAN_GAMES = 50
MASTER_MIN_GAMES = 20
MASTER_WIN_RATE = 80.0
