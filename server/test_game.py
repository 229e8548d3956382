"""
Test suite for Durak game rules.

Verifies the rules engine:
- Card values and wire format
- Deck construction and shuffle
- Beat rules (same suit, trump)
- Attack/defense legality
- End-of-turn role rotation and pick-up
- Replenishment and termination (durak rule, draw)
- Per-player state views

Run with: pytest test_game.py -v
"""

import random

import pytest

from game import (
    Card, Deck, Game, GameOptions, GamePhase, EndReason, TablePair,
    Suit, Rank, beats, build_shuffled_deck,
)


# =============================================================================
# Helpers
# =============================================================================

def card(rank: str, suit: str) -> Card:
    return Card(Suit(suit), Rank(rank))


def make_game(seed: int = 42, options: GameOptions = None) -> Game:
    """Create a started two-player game with a deterministic deck."""
    game = Game(game_id="test", options=options, seed=seed)
    game.add_player("a", "Alice")
    game.add_player("b", "Bob")
    game.start_game()
    return game


def set_hands(game: Game, hand_a, hand_b, trump=Suit.HEARTS, deck=None):
    """Replace the dealt hands (and optionally the deck) with known cards."""
    game.players[0].hand = list(hand_a)
    game.players[1].hand = list(hand_b)
    game.trump_suit = trump
    if deck is not None:
        game.deck.cards = list(deck)


FILLER_DECK = [card(r, "diamonds") for r in ("6", "7", "8", "9", "10", "J", "Q", "K", "A")]


# =============================================================================
# Card Model Tests
# =============================================================================

class TestCardValues:
    """Rank values run 6..14."""

    def test_number_ranks_face_value(self):
        assert card("6", "hearts").value == 6
        assert card("10", "hearts").value == 10

    def test_court_cards(self):
        assert card("J", "clubs").value == 11
        assert card("Q", "clubs").value == 12
        assert card("K", "clubs").value == 13
        assert card("A", "clubs").value == 14

    def test_cards_are_immutable(self):
        c = card("7", "clubs")
        with pytest.raises(Exception):
            c.rank = Rank.ACE

    def test_to_dict(self):
        assert card("Q", "spades").to_dict() == {"suit": "spades", "rank": "Q", "value": 12}

    def test_from_dict_ignores_client_value(self):
        parsed = Card.from_dict({"suit": "hearts", "rank": "A", "value": 3})
        assert parsed == card("A", "hearts")
        assert parsed.value == 14

    def test_from_dict_accepts_numeric_rank(self):
        assert Card.from_dict({"suit": "clubs", "rank": 10}) == card("10", "clubs")

    @pytest.mark.parametrize("payload", [
        {"suit": "stars", "rank": "A"},
        {"suit": "hearts", "rank": "2"},
        {"suit": "hearts"},
        "7C",
        None,
    ])
    def test_from_dict_rejects_bad_cards(self, payload):
        assert Card.from_dict(payload) is None


class TestDeck:

    def test_deck_is_full_permutation(self):
        cards = build_shuffled_deck()
        canonical = {Card(s, r) for s in Suit for r in Rank}
        assert len(cards) == 36
        assert len(set(cards)) == 36
        assert set(cards) == canonical

    def test_repeated_shuffles_differ(self):
        assert build_shuffled_deck() != build_shuffled_deck()

    def test_seeded_rng_is_deterministic(self):
        assert build_shuffled_deck(random.Random(7)) == build_shuffled_deck(random.Random(7))

    def test_deck_seed_reproducible(self):
        assert Deck(seed=5).cards == Deck(seed=5).cards

    def test_draw_until_empty(self):
        deck = Deck(seed=1)
        drawn = [deck.draw() for _ in range(36)]
        assert None not in drawn
        assert deck.cards_remaining() == 0
        assert deck.draw() is None
        assert deck.bottom_card() is None


# =============================================================================
# Beat Rules
# =============================================================================

class TestBeats:

    def test_higher_same_suit_beats(self):
        assert beats(card("9", "spades"), card("8", "spades"), Suit.HEARTS)

    def test_lower_same_suit_does_not_beat(self):
        assert not beats(card("6", "spades"), card("8", "spades"), Suit.HEARTS)

    def test_irreflexive(self):
        for c in build_shuffled_deck():
            assert not beats(c, c, Suit.HEARTS)

    def test_asymmetric_within_suit(self):
        for suit in Suit:
            for r1 in Rank:
                for r2 in Rank:
                    a, b = Card(suit, r1), Card(suit, r2)
                    assert not (beats(a, b, Suit.CLUBS) and beats(b, a, Suit.CLUBS))

    def test_low_trump_beats_non_trump_ace(self):
        assert beats(card("6", "hearts"), card("A", "spades"), Suit.HEARTS)

    def test_non_trump_never_beats_trump(self):
        assert not beats(card("A", "spades"), card("6", "hearts"), Suit.HEARTS)

    def test_different_non_trump_suits_never_beat(self):
        for r1 in Rank:
            for r2 in Rank:
                a, b = Card(Suit.CLUBS, r1), Card(Suit.SPADES, r2)
                assert not beats(a, b, Suit.HEARTS)
                assert not beats(b, a, Suit.HEARTS)

    def test_higher_trump_beats_lower_trump(self):
        assert beats(card("7", "hearts"), card("6", "hearts"), Suit.HEARTS)
        assert not beats(card("6", "hearts"), card("7", "hearts"), Suit.HEARTS)


class TestTablePair:

    def test_open_until_defended(self):
        pair = TablePair(attack_card=card("8", "spades"))
        assert pair.is_open
        assert pair.cards() == [card("8", "spades")]
        pair.defense_card = card("9", "spades")
        assert not pair.is_open
        assert pair.to_dict()["defense"]["rank"] == "9"


# =============================================================================
# Dealing
# =============================================================================

class TestDealing:

    def test_deal_six_each_and_fix_trump(self):
        game = make_game()
        assert game.phase == GamePhase.IN_PROGRESS
        assert [len(p.hand) for p in game.players] == [6, 6]
        assert game.deck_size() == 24
        assert game.trump_suit is not None
        assert game.trump_suit == game.deck.bottom_card().suit

    def test_trump_same_in_both_views(self):
        game = make_game()
        state_a = game.get_state("a")
        state_b = game.get_state("b")
        assert state_a["trump_suit"] == state_b["trump_suit"] == game.trump_suit.value
        assert state_a["deck_size"] == 24

    def test_no_card_duplicated_after_deal(self):
        game = make_game()
        everything = game.players[0].hand + game.players[1].hand + game.deck.cards
        assert len(everything) == 36
        assert len(set(everything)) == 36

    def test_roles_distinct(self):
        game = make_game()
        assert game.attacker_idx != game.defender_idx

    def test_cannot_start_with_one_player(self):
        game = Game()
        game.add_player("a", "Alice")
        assert game.start_game() is False
        assert game.phase == GamePhase.FORMING

    def test_third_player_rejected(self):
        game = Game()
        assert game.add_player("a", "Alice")
        assert game.add_player("b", "Bob")
        assert game.add_player("c", "Carol") is False

    def test_cannot_start_twice(self):
        game = make_game()
        assert game.start_game() is False


# =============================================================================
# Attack
# =============================================================================

class TestAttack:

    def test_first_attack_any_card(self):
        game = make_game()
        set_hands(game, [card("7", "clubs"), card("9", "diamonds")], [card("A", "spades")])

        assert game.attack("a", card("7", "clubs")) is True
        assert len(game.table) == 1
        assert game.table[0].attack_card == card("7", "clubs")
        assert card("7", "clubs") not in game.players[0].hand

    def test_follow_up_must_match_rank(self):
        game = make_game()
        set_hands(game, [card("7", "clubs"), card("9", "diamonds")], [card("A", "spades")])
        game.attack("a", card("7", "clubs"))

        assert game.attack("a", card("9", "diamonds")) is False
        assert len(game.table) == 1
        assert card("9", "diamonds") in game.players[0].hand

    def test_follow_up_matching_attack_rank(self):
        game = make_game()
        set_hands(game, [card("7", "clubs"), card("7", "diamonds")], [card("A", "spades")])
        game.attack("a", card("7", "clubs"))
        assert game.attack("a", card("7", "diamonds")) is True

    def test_follow_up_matching_defense_rank(self):
        game = make_game()
        set_hands(
            game,
            [card("8", "spades"), card("9", "clubs")],
            [card("9", "spades")],
        )
        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))
        assert game.attack("a", card("9", "clubs")) is True

    def test_defender_cannot_attack(self):
        game = make_game()
        set_hands(game, [card("7", "clubs")], [card("8", "clubs")])
        assert game.attack("b", card("8", "clubs")) is False
        assert game.table == []

    def test_card_not_in_hand(self):
        game = make_game()
        set_hands(game, [card("7", "clubs")], [card("8", "clubs")])
        assert game.attack("a", card("K", "clubs")) is False

    def test_unknown_player(self):
        game = make_game()
        assert game.attack("nobody", game.players[0].hand[0]) is False


# =============================================================================
# Defense
# =============================================================================

class TestDefend:

    def setup_method(self):
        self.game = make_game()
        set_hands(
            self.game,
            [card("8", "spades"), card("8", "clubs")],
            [card("6", "hearts"), card("9", "spades"), card("6", "spades"), card("10", "diamonds")],
            trump=Suit.HEARTS,
        )
        self.game.attack("a", card("8", "spades"))

    def test_trump_beats_non_trump(self):
        assert self.game.can_defend("b", 0, card("6", "hearts"))

    def test_same_suit_higher(self):
        assert self.game.can_defend("b", 0, card("9", "spades"))

    def test_same_suit_lower_rejected(self):
        assert not self.game.can_defend("b", 0, card("6", "spades"))

    def test_other_suit_rejected(self):
        assert not self.game.can_defend("b", 0, card("10", "diamonds"))

    def test_defend_moves_card(self):
        assert self.game.defend("b", 0, card("9", "spades")) is True
        assert self.game.table[0].defense_card == card("9", "spades")
        assert card("9", "spades") not in self.game.players[1].hand

    def test_cannot_redefend(self):
        self.game.defend("b", 0, card("9", "spades"))
        assert self.game.defend("b", 0, card("6", "hearts")) is False
        assert self.game.table[0].defense_card == card("9", "spades")
        assert card("6", "hearts") in self.game.players[1].hand

    def test_attacker_cannot_defend(self):
        assert self.game.defend("a", 0, card("8", "clubs")) is False

    @pytest.mark.parametrize("index", [-1, 1, 5, "0", None, True])
    def test_bad_index(self, index):
        assert self.game.defend("b", index, card("9", "spades")) is False

    def test_card_not_held(self):
        assert self.game.defend("b", 0, card("A", "spades")) is False


class TestCardConservation:

    def test_hand_plus_played_equals_received(self):
        game = make_game()
        attacker, defender = game.attacker, game.defender
        played = {attacker.id: 0, defender.id: 0}

        first = attacker.hand[0]
        assert game.attack(attacker.id, first)
        played[attacker.id] += 1

        for candidate in list(defender.hand):
            if game.defend(defender.id, 0, candidate):
                played[defender.id] += 1
                break

        for player in game.players:
            assert len(player.hand) + played[player.id] == player.cards_received

    def test_total_cards_constant_across_turns(self):
        game = make_game(seed=3)
        for _ in range(10):
            if game.ended:
                break
            game.attack(game.attacker.id, game.attacker.hand[0])
            game.end_turn(game.attacker.id)
            on_table = sum(len(p.cards()) for p in game.table)
            in_hands = sum(len(p.hand) for p in game.players)
            assert in_hands + on_table + game.deck_size() == 36


# =============================================================================
# End of Turn
# =============================================================================

class TestEndTurn:

    def test_all_defended_swaps_roles(self):
        game = make_game()
        set_hands(
            game,
            [card("8", "spades")] + [card("A", "clubs")],
            [card("9", "spades"), card("7", "clubs")],
            deck=FILLER_DECK,
        )
        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))

        assert game.end_turn("a") is True
        assert game.table == []
        assert game.attacker_idx == 1
        assert game.defender_idx == 0

    def test_open_pair_defender_takes_table(self):
        game = make_game()
        hand_a = [card("8", "spades"), card("9", "hearts"), card("A", "clubs")]
        hand_b = [card("9", "spades"), card("7", "clubs"), card("6", "clubs"),
                  card("K", "clubs"), card("Q", "clubs"), card("J", "clubs")]
        set_hands(game, hand_a, hand_b, trump=Suit.DIAMONDS, deck=FILLER_DECK)

        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))
        game.attack("a", card("9", "hearts"))
        before = len(game.players[1].hand)
        on_table = sum(len(p.cards()) for p in game.table)

        game.end_turn("b")

        assert on_table == 3
        assert len(game.players[1].hand) == before + on_table
        assert card("9", "hearts") in game.players[1].hand
        assert game.table == []
        assert game.attacker_idx == 0
        assert game.defender_idx == 1

    def test_empty_table_counts_as_defended(self):
        game = make_game()
        game.end_turn("a")
        assert game.attacker_idx == 1

    def test_either_player_can_end_turn(self):
        game = make_game()
        assert game.end_turn("b") is True

    def test_stranger_cannot_end_turn(self):
        game = make_game()
        assert game.end_turn("nobody") is False
        assert game.attacker_idx == 0


class TestReplenish:

    def test_refill_to_hand_size_attacker_first(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("9", "spades")],
                  deck=[card("6", "clubs"), card("7", "clubs"), card("8", "clubs")])
        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))
        game.end_turn("a")

        # b is now the attacker and draws first from the top
        assert game.attacker_idx == 1
        assert len(game.players[1].hand) == 3
        assert game.players[0].hand == []
        assert game.deck_size() == 0

    def test_never_above_hand_size(self):
        game = make_game()
        for _ in range(6):
            if game.ended:
                break
            game.attack(game.attacker.id, game.attacker.hand[0])
            game.end_turn(game.attacker.id)
            for player in game.players:
                if player is game.attacker and game.deck_size() > 0:
                    assert len(player.hand) == 6
            assert len(game.attacker.hand) <= 6

    def test_deck_draw_limited_by_availability(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("9", "spades")],
                  deck=[card("6", "clubs")])
        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))
        game.end_turn("a")
        total = sum(len(p.hand) for p in game.players)
        assert total == 1
        assert game.deck_size() == 0


# =============================================================================
# Termination
# =============================================================================

class TestGameEnd:

    def test_empty_hand_with_empty_deck_wins(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("9", "spades"), card("7", "clubs")], deck=[])
        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))
        game.end_turn("a")

        assert game.phase == GamePhase.ENDED
        assert game.outcome.winner_id == "a"
        assert game.outcome.loser_id == "b"
        assert game.outcome.reason == EndReason.NORMAL
        assert game.get_state("b")["winner"] == "a"

    def test_defender_left_holding_cards_loses(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("7", "clubs")], deck=[])
        game.attack("a", card("8", "spades"))
        game.end_turn("b")

        assert game.ended
        assert game.outcome.winner_id == "a"
        assert game.players[1].hand == [card("7", "clubs"), card("8", "spades")]

    def test_both_empty_is_draw(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("9", "spades")], deck=[])
        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))
        game.end_turn("a")

        assert game.ended
        assert game.outcome.is_draw
        assert game.outcome.winner_id is None
        assert game.outcome.loser_id is None

    def test_no_end_while_deck_has_cards(self):
        game = make_game()
        clubs = [card(r, "clubs") for r in ("6", "7", "8", "9", "10", "J")]
        set_hands(game, [card("8", "spades")], [card("9", "spades")], deck=FILLER_DECK + clubs)
        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))
        game.end_turn("a")
        assert not game.ended

    def test_no_actions_after_end(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("7", "clubs")], deck=[])
        game.attack("a", card("8", "spades"))
        game.end_turn("b")

        assert game.end_turn("a") is False
        assert game.attack("a", card("7", "clubs")) is False

    def test_perfect_game_flag(self):
        game = make_game()
        big_hand = [Card(Suit.CLUBS, r) for r in Rank] + [card("6", "diamonds")]
        set_hands(game, [card("8", "spades")], big_hand, deck=[])
        game.attack("a", card("8", "spades"))
        game.end_turn("b")

        assert game.outcome.winner_id == "a"
        assert game.outcome.perfect_game is True
        assert game.outcome.final_hand_sizes["b"] == 11
        assert game.outcome.to_dict()["final_hand_sizes"] == {"a": 0, "b": 11}

    def test_small_loser_hand_not_perfect(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("7", "clubs")], deck=[])
        game.attack("a", card("8", "spades"))
        game.end_turn("b")
        assert game.outcome.perfect_game is False
        assert game.outcome.comeback_win is False

    def test_comeback_flag_uses_largest_hand(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("7", "clubs")], deck=[])
        game.players[0].max_hand_size = 10
        game.attack("a", card("8", "spades"))
        game.end_turn("b")
        assert game.outcome.comeback_win is True

    def test_thresholds_configurable(self):
        game = make_game(options=GameOptions(perfect_game_hand_size=2))
        set_hands(game, [card("8", "spades")], [card("7", "clubs")], deck=[])
        game.attack("a", card("8", "spades"))
        game.end_turn("b")
        assert game.outcome.perfect_game is True


class TestDisconnect:

    def test_disconnect_awards_opponent(self):
        game = make_game()
        outcome = game.player_disconnected("a")

        assert outcome.reason == EndReason.OPPONENT_DISCONNECTED
        assert outcome.winner_id == "b"
        assert outcome.loser_id == "a"
        assert outcome.perfect_game is False
        assert game.players[0].connected is False
        assert game.ended

    def test_second_disconnect_is_noop(self):
        game = make_game()
        first = game.player_disconnected("a")
        assert game.player_disconnected("a") is None
        assert game.player_disconnected("b") is None
        assert game.outcome is first

    def test_unknown_player(self):
        game = make_game()
        assert game.player_disconnected("nobody") is None
        assert not game.ended


# =============================================================================
# State View
# =============================================================================

class TestGetState:

    def test_own_hand_only(self):
        game = make_game()
        state = game.get_state("a")

        assert state["player_hand"] == [c.to_dict() for c in game.players[0].hand]
        assert state["opponent_hand_size"] == 6
        assert {p["id"]: p["hand_size"] for p in state["players"]} == {"a": 6, "b": 6}
        for p in state["players"]:
            assert "hand" not in p

    def test_table_fully_visible(self):
        game = make_game()
        set_hands(game, [card("8", "spades")], [card("9", "spades")])
        game.attack("a", card("8", "spades"))
        game.defend("b", 0, card("9", "spades"))

        table = game.get_state("a")["table"]
        assert table == [{
            "attack": card("8", "spades").to_dict(),
            "defense": card("9", "spades").to_dict(),
        }]

    def test_flags_and_roles(self):
        game = make_game()
        state = game.get_state("b")
        assert state["game_started"] is True
        assert state["game_ended"] is False
        assert state["winner"] is None
        assert state["current_attacker"] == 0
        assert state["current_defender"] == 1
        assert state["is_your_turn"] is True

    def test_state_does_not_mutate(self):
        game = make_game()
        before = game.get_state("a")
        game.get_state("b")
        assert game.get_state("a") == before

    def test_unknown_player_gets_no_hand(self):
        game = make_game()
        state = game.get_state("nobody")
        assert state["player_hand"] == []
        assert state["is_your_turn"] is False
