"""
Game logic for two-player Durak.

This module implements the authoritative rules engine for a Durak session:
card/deck model, player hands, the attack/defense table, role rotation
and termination.

Durak Rules Summary:
    - 36-card deck (6 through Ace), each player is dealt 6 cards
    - The suit of the bottom card of the remaining deck is trump
    - The attacker plays cards; the first attack is free, later attacks
      must match a rank already on the table
    - The defender beats each attack with a higher card of the same suit
      or any trump (unless the attack itself is trump)
    - If every attack is beaten the defender becomes the next attacker,
      otherwise the defender picks up the whole table
    - Hands are refilled to 6 from the deck, attacker first
    - Once the deck is empty, whoever runs out of cards wins; the player
      left holding cards is the durak (fool)

Table Layout:
    [attack 0 / defense 0] [attack 1 / defense 1] ...

    A pair with no defense card yet is "open".
"""

import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from constants import RANK_VALUES, SUIT_SYMBOLS, PLAYERS_PER_GAME


class Suit(Enum):
    """Card suits."""

    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"


class Rank(Enum):
    """Card ranks of the 36-card Durak deck."""

    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"


@dataclass(frozen=True)
class Card:
    """
    An immutable playing card.

    The numeric value is derived from the rank and is never taken from
    client input.

    Attributes:
        suit: The card's suit.
        rank: The card's rank (6 through A).
    """

    suit: Suit
    rank: Rank

    @property
    def value(self) -> int:
        """Ordering value within a suit (6..14)."""
        return RANK_VALUES[self.rank.value]

    def to_dict(self) -> dict:
        """
        Convert card to dictionary for JSON serialization.

        Returns:
            Dict with suit, rank and value.
        """
        return {
            "suit": self.suit.value,
            "rank": self.rank.value,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, data) -> Optional["Card"]:
        """
        Parse a card from client JSON.

        Only suit and rank are read; any supplied value is ignored.

        Args:
            data: Dict with "suit" and "rank" keys.

        Returns:
            The Card, or None if the payload does not name a real card.
        """
        if not isinstance(data, dict):
            return None
        try:
            return cls(Suit(data.get("suit")), Rank(str(data.get("rank"))))
        except ValueError:
            return None

    def __str__(self) -> str:
        return f"{self.rank.value}{SUIT_SYMBOLS[self.suit.value]}"


def beats(defense: Card, attack: Card, trump_suit: Optional[Suit]) -> bool:
    """
    Check whether a defense card beats an attack card.

    Args:
        defense: Card played by the defender.
        attack: Card being defended against.
        trump_suit: The session's trump suit.

    Returns:
        True for a higher card of the same suit, or a trump against a
        non-trump. Cards of two different non-trump suits never beat
        each other.
    """
    if defense.suit == attack.suit:
        return defense.value > attack.value
    return defense.suit == trump_suit and attack.suit != trump_suit


def build_shuffled_deck(rng: Optional[random.Random] = None) -> list[Card]:
    """
    Build all 36 cards and apply a Fisher-Yates shuffle.

    Args:
        rng: Random source. Defaults to the module-level generator.

    Returns:
        The shuffled cards. The end of the list is the top of the deck.
    """
    rng = rng or random.Random()
    cards = [Card(suit, rank) for suit in Suit for rank in Rank]
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randint(0, i)
        cards[i], cards[j] = cards[j], cards[i]
    return cards


class Deck:
    """
    The session's draw pile.

    Cards are drawn from the top (end of the list). The bottom card is
    the face-up trump card and is the last one to be dealt.

    The deck can be initialized with a seed for deterministic shuffling.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        """
        Initialize a new shuffled deck.

        Args:
            seed: Optional random seed for a deterministic shuffle.
                  If None, a random seed is generated and stored.
        """
        self.seed: int = seed if seed is not None else random.randint(0, 2**31 - 1)
        self.cards: list[Card] = build_shuffled_deck(random.Random(self.seed))

    def draw(self) -> Optional[Card]:
        """
        Draw the top card from the deck.

        Returns:
            The drawn Card, or None if deck is empty.
        """
        if self.cards:
            return self.cards.pop()
        return None

    def cards_remaining(self) -> int:
        """Return the number of cards left in the deck."""
        return len(self.cards)

    def bottom_card(self) -> Optional[Card]:
        """Return the face-up bottom card, if any cards remain."""
        if self.cards:
            return self.cards[0]
        return None


@dataclass
class TablePair:
    """
    One attack on the table and its (optional) defense.

    Once a defense card is set it is never removed; the whole table is
    cleared at the end of the turn instead.
    """

    attack_card: Card
    defense_card: Optional[Card] = None

    @property
    def is_open(self) -> bool:
        return self.defense_card is None

    def cards(self) -> list[Card]:
        """All cards in this pair."""
        if self.defense_card is None:
            return [self.attack_card]
        return [self.attack_card, self.defense_card]

    def to_dict(self) -> dict:
        return {
            "attack": self.attack_card.to_dict(),
            "defense": self.defense_card.to_dict() if self.defense_card else None,
        }


@dataclass
class Player:
    """
    A participant in a Durak session.

    Attributes:
        id: Opaque connection identity.
        name: Display name.
        hand: Cards currently held.
        connected: False once the participant has disconnected.
        cards_received: Cards dealt or picked up over the whole session.
        max_hand_size: Largest hand held at any point in the session.
    """

    id: str
    name: str
    hand: list[Card] = field(default_factory=list)
    connected: bool = True
    cards_received: int = 0
    max_hand_size: int = 0

    def has_card(self, card: Card) -> bool:
        return card in self.hand

    def take_cards(self, cards: list[Card]) -> None:
        """Add cards to the hand (dealt or picked up)."""
        self.hand.extend(cards)
        self.cards_received += len(cards)
        self.max_hand_size = max(self.max_hand_size, len(self.hand))

    def play_card(self, card: Card) -> None:
        """Remove a card from the hand."""
        self.hand.remove(card)


class GamePhase(Enum):
    """
    Session lifecycle.

    FORMING -> DEALING -> IN_PROGRESS -> ENDED
    """

    FORMING = "forming"
    DEALING = "dealing"
    IN_PROGRESS = "in_progress"
    ENDED = "ended"


class EndReason(str, Enum):
    """Why a session ended."""

    NORMAL = "normal"
    OPPONENT_DISCONNECTED = "opponent_disconnected"


@dataclass
class GameOptions:
    """
    Rule constants for a session.

    Attributes:
        hand_size: Cards each player is dealt and refilled to.
        perfect_game_hand_size: Loser's final hand size that marks a perfect win.
        comeback_hand_size: Largest winner hand that marks a comeback win.
    """

    hand_size: int = 6
    perfect_game_hand_size: int = 10
    comeback_hand_size: int = 10

    @classmethod
    def from_config(cls, rules) -> "GameOptions":
        """Create options from a config.RulesConfig."""
        return cls(
            hand_size=rules.hand_size,
            perfect_game_hand_size=rules.perfect_game_hand_size,
            comeback_hand_size=rules.comeback_hand_size,
        )


@dataclass(frozen=True)
class GameOutcome:
    """
    Result of a finished session, computed once by the Game.

    winner_id and loser_id are both None for a draw.
    """

    reason: EndReason
    winner_id: Optional[str] = None
    loser_id: Optional[str] = None
    perfect_game: bool = False
    comeback_win: bool = False
    final_hand_sizes: dict = field(default_factory=dict)

    @property
    def is_draw(self) -> bool:
        return self.winner_id is None

    def to_dict(self) -> dict:
        return {
            "reason": self.reason.value,
            "winner_id": self.winner_id,
            "loser_id": self.loser_id,
            "draw": self.is_draw,
            "perfect_game": self.perfect_game,
            "comeback_win": self.comeback_win,
            "final_hand_sizes": dict(self.final_hand_sizes),
        }


class Game:
    """
    Authoritative state for one Durak session.

    All mutating operations validate the acting player and return False
    (without changing anything) for illegal moves. Callers serialize
    access per game.

    Attributes:
        game_id: Unique session identifier.
        players: The two participants, in seating order.
        deck: Remaining draw pile.
        trump_suit: Fixed once dealing completes.
        table: Current attack/defense pairs.
        attacker_idx: Index of the attacking player.
        defender_idx: Index of the defending player.
        phase: Current lifecycle phase.
        outcome: Set exactly once when the session ends.
    """

    def __init__(
        self,
        game_id: Optional[str] = None,
        options: Optional[GameOptions] = None,
        seed: Optional[int] = None,
    ) -> None:
        self.game_id: str = game_id or f"game_{uuid.uuid4().hex[:12]}"
        self.options: GameOptions = options or GameOptions()
        self.seed = seed
        self.players: list[Player] = []
        self.deck: Optional[Deck] = None
        self.trump_suit: Optional[Suit] = None
        self.trump_card: Optional[Card] = None
        self.table: list[TablePair] = []
        self.attacker_idx: int = 0
        self.defender_idx: int = 1
        self.phase: GamePhase = GamePhase.FORMING
        self.outcome: Optional[GameOutcome] = None

    # -------------------------------------------------------------------------
    # Players
    # -------------------------------------------------------------------------

    def add_player(self, player_id: str, name: str) -> bool:
        """
        Seat a player while the session is forming.

        Returns:
            True if seated, False if the session is full or already started.
        """
        if self.phase != GamePhase.FORMING or len(self.players) >= PLAYERS_PER_GAME:
            return False
        if self.get_player(player_id):
            return False
        self.players.append(Player(id=player_id, name=name))
        return True

    def get_player(self, player_id: str) -> Optional[Player]:
        """Find a player by ID, or None if not seated."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def player_index(self, player_id: str) -> int:
        """Seat index of a player, or -1."""
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return -1

    def get_opponent(self, player_id: str) -> Optional[Player]:
        """The other seated player."""
        for player in self.players:
            if player.id != player_id:
                return player
        return None

    @property
    def attacker(self) -> Player:
        return self.players[self.attacker_idx]

    @property
    def defender(self) -> Player:
        return self.players[self.defender_idx]

    @property
    def started(self) -> bool:
        return self.phase in (GamePhase.IN_PROGRESS, GamePhase.ENDED)

    @property
    def ended(self) -> bool:
        return self.phase == GamePhase.ENDED

    @property
    def winner_id(self) -> Optional[str]:
        return self.outcome.winner_id if self.outcome else None

    def deck_size(self) -> int:
        return self.deck.cards_remaining() if self.deck else 0

    # -------------------------------------------------------------------------
    # Dealing
    # -------------------------------------------------------------------------

    def start_game(self) -> bool:
        """
        Deal the opening hands and fix the trump suit.

        Returns:
            True if the game started, False if not exactly two players are
            seated or the game already started.
        """
        if self.phase != GamePhase.FORMING or len(self.players) != PLAYERS_PER_GAME:
            return False

        self.phase = GamePhase.DEALING
        self.deck = Deck(seed=self.seed)

        for _ in range(self.options.hand_size):
            for player in self.players:
                player.take_cards([self.deck.draw()])

        self.trump_card = self.deck.bottom_card()
        self.trump_suit = self.trump_card.suit if self.trump_card else None
        self.attacker_idx = 0
        self.defender_idx = self._next_defender_idx(self.attacker_idx, self.attacker_idx)
        self.phase = GamePhase.IN_PROGRESS
        return True

    def _replenish(self) -> None:
        """Refill hands up to hand_size from the deck, attacker first."""
        for idx in (self.attacker_idx, self.defender_idx):
            player = self.players[idx]
            while len(player.hand) < self.options.hand_size and self.deck.cards_remaining() > 0:
                player.take_cards([self.deck.draw()])

    def _next_defender_idx(self, after_idx: int, attacker_idx: int) -> int:
        """
        Next seat after `after_idx` that is not the attacker.

        Returns:
            Seat index of the new defender.
        """
        count = len(self.players)
        for step in range(1, count + 1):
            candidate = (after_idx + step) % count
            if candidate != attacker_idx:
                return candidate
        raise RuntimeError("No eligible defender")

    # -------------------------------------------------------------------------
    # Table actions
    # -------------------------------------------------------------------------

    def table_ranks(self) -> set[Rank]:
        """Every rank currently on the table, attack or defense side."""
        return {card.rank for pair in self.table for card in pair.cards()}

    def can_attack(self, player_id: str, card: Card) -> bool:
        """Check whether `player_id` may attack with `card` right now."""
        if self.phase != GamePhase.IN_PROGRESS:
            return False
        idx = self.player_index(player_id)
        if idx == -1 or idx != self.attacker_idx:
            return False
        if not self.players[idx].has_card(card):
            return False
        return not self.table or card.rank in self.table_ranks()

    def attack(self, player_id: str, card: Card) -> bool:
        """
        Place an attack card on the table.

        Args:
            player_id: Acting player.
            card: Card to attack with.

        Returns:
            True if the attack was accepted.
        """
        if not self.can_attack(player_id, card):
            return False

        self.attacker.play_card(card)
        self.table.append(TablePair(attack_card=card))
        return True

    def can_defend(self, player_id: str, attack_index: int, card: Card) -> bool:
        """Check whether `player_id` may cover table[attack_index] with `card`."""
        if self.phase != GamePhase.IN_PROGRESS:
            return False
        idx = self.player_index(player_id)
        if idx == -1 or idx != self.defender_idx:
            return False
        if isinstance(attack_index, bool) or not isinstance(attack_index, int):
            return False
        if not 0 <= attack_index < len(self.table):
            return False
        pair = self.table[attack_index]
        if not pair.is_open:
            return False
        if not self.players[idx].has_card(card):
            return False
        return beats(card, pair.attack_card, self.trump_suit)

    def defend(self, player_id: str, attack_index: int, card: Card) -> bool:
        """
        Cover an open attack.

        Args:
            player_id: Acting player.
            attack_index: Index of the pair on the table.
            card: Card to defend with.

        Returns:
            True if the defense was accepted.
        """
        if not self.can_defend(player_id, attack_index, card):
            return False

        self.defender.play_card(card)
        self.table[attack_index].defense_card = card
        return True

    def all_defended(self) -> bool:
        return all(not pair.is_open for pair in self.table)

    def end_turn(self, player_id: str) -> bool:
        """
        Close the current turn.

        Either seated player may end the turn. If every attack was beaten
        the roles swap; otherwise the defender picks up the whole table and
        the attacker attacks again. Hands are then refilled and the end of
        the game is checked.

        Returns:
            True if the turn was ended.
        """
        if self.phase != GamePhase.IN_PROGRESS or self.player_index(player_id) == -1:
            return False

        if self.all_defended():
            self.table = []
            self.attacker_idx, self.defender_idx = self.defender_idx, self.attacker_idx
        else:
            taken = [card for pair in self.table for card in pair.cards()]
            self.defender.take_cards(taken)
            self.table = []
            self.defender_idx = self._next_defender_idx(self.defender_idx, self.attacker_idx)

        self._replenish()
        self._check_game_end()
        return True

    # -------------------------------------------------------------------------
    # Termination
    # -------------------------------------------------------------------------

    def _check_game_end(self) -> None:
        """End the game once the deck is empty and a hand has run out."""
        if self.deck_size() > 0:
            return

        empty = [p for p in self.players if not p.hand]
        if not empty:
            return

        if len(empty) == len(self.players):
            self._finish(EndReason.NORMAL, winner=None, loser=None)
            return

        winner = empty[0]
        holding = [p for p in self.players if p.hand]
        loser = holding[0] if len(holding) == 1 else None
        self._finish(EndReason.NORMAL, winner=winner, loser=loser)

    def _finish(
        self,
        reason: EndReason,
        winner: Optional[Player],
        loser: Optional[Player],
    ) -> None:
        perfect = comeback = False
        if reason == EndReason.NORMAL and winner and loser:
            perfect = len(loser.hand) >= self.options.perfect_game_hand_size
            comeback = winner.max_hand_size >= self.options.comeback_hand_size

        self.phase = GamePhase.ENDED
        self.outcome = GameOutcome(
            reason=reason,
            winner_id=winner.id if winner else None,
            loser_id=loser.id if loser else None,
            perfect_game=perfect,
            comeback_win=comeback,
            final_hand_sizes={p.id: len(p.hand) for p in self.players},
        )

    def player_disconnected(self, player_id: str) -> Optional[GameOutcome]:
        """
        Mark a player as disconnected.

        If the game is still running the remaining player wins.

        Returns:
            The new outcome, or None if the game had already ended or the
            player is not seated here.
        """
        player = self.get_player(player_id)
        if not player:
            return None

        player.connected = False
        if self.phase == GamePhase.ENDED:
            return None

        remaining = self.get_opponent(player_id)
        self._finish(EndReason.OPPONENT_DISCONNECTED, winner=remaining, loser=player)
        return self.outcome

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def get_state(self, for_player_id: str) -> dict:
        """
        Get the session state from one player's perspective.

        Only the requesting player's own hand is revealed; opponents are
        reported by hand size.

        Args:
            for_player_id: The player who will receive this state.

        Returns:
            Dict suitable for JSON serialization.
        """
        idx = self.player_index(for_player_id)
        me = self.players[idx] if idx != -1 else None

        players_data = [
            {
                "id": p.id,
                "name": p.name,
                "hand_size": len(p.hand),
                "connected": p.connected,
            }
            for p in self.players
        ]

        return {
            "game_id": self.game_id,
            "phase": self.phase.value,
            "players": players_data,
            "player_hand": [c.to_dict() for c in me.hand] if me else [],
            "opponent_hand_size": len(self.get_opponent(for_player_id).hand)
            if me and self.get_opponent(for_player_id) else 0,
            "table": [pair.to_dict() for pair in self.table],
            "trump_suit": self.trump_suit.value if self.trump_suit else None,
            "trump_card": self.trump_card.to_dict() if self.trump_card else None,
            "deck_size": self.deck_size(),
            "current_attacker": self.attacker_idx,
            "current_defender": self.defender_idx,
            "game_started": self.started,
            "game_ended": self.ended,
            "winner": self.winner_id,
            "is_your_turn": idx in (self.attacker_idx, self.defender_idx) and not self.ended,
        }
