"""
Test suite for the UNO card and deck model.

Covers:
- Canonical 108-card composition
- Stable, unique card ids
- Shuffle / draw / bottom-of-deck behavior
- Wild color parsing

Run with: pytest test_cards.py -v
"""

import random
from collections import Counter

import pytest

from cards import Card, Color, Deck, PLAYABLE_COLORS, Value, build_deck, parse_color


# =============================================================================
# Deck composition
# =============================================================================

class TestBuildDeck:

    def test_deck_has_108_cards(self):
        assert len(build_deck()) == 108

    def test_ids_are_unique(self):
        ids = [c.id for c in build_deck()]
        assert len(ids) == len(set(ids))

    def test_build_is_deterministic(self):
        first = [(c.id, c.color, c.value) for c in build_deck()]
        second = [(c.id, c.color, c.value) for c in build_deck()]
        assert first == second

    def test_each_color_has_25_cards(self):
        counts = Counter(c.color for c in build_deck())
        for color in PLAYABLE_COLORS:
            assert counts[color] == 25
        assert counts[Color.WILD] == 8

    def test_one_zero_per_color(self):
        deck = build_deck()
        for color in PLAYABLE_COLORS:
            zeros = [c for c in deck if c.color == color and c.value == Value.ZERO]
            assert len(zeros) == 1

    def test_two_of_each_other_colored_value(self):
        counts = Counter((c.color, c.value) for c in build_deck() if c.color != Color.WILD)
        for (color, value), n in counts.items():
            expected = 1 if value == Value.ZERO else 2
            assert n == expected, f"{color.value} {value.value}"

    def test_four_wilds_of_each_kind(self):
        counts = Counter(c.value for c in build_deck() if c.color == Color.WILD)
        assert counts[Value.WILD] == 4
        assert counts[Value.WILD_DRAW4] == 4

    def test_no_colored_wild_values(self):
        for card in build_deck():
            assert card.value.is_wild == (card.color == Color.WILD)


# =============================================================================
# Card behavior
# =============================================================================

class TestCard:

    def test_effective_color_of_colored_card(self):
        card = Card("red_5_1", Color.RED, Value.FIVE)
        assert card.effective_color == Color.RED

    def test_effective_color_of_wild_follows_choice(self):
        card = Card("wild_0", Color.WILD, Value.WILD)
        assert card.effective_color == Color.WILD
        card.chosen_color = Color.GREEN
        assert card.effective_color == Color.GREEN

    def test_reset_clears_choice(self):
        card = Card("wild_0", Color.WILD, Value.WILD, chosen_color=Color.BLUE)
        card.reset()
        assert card.chosen_color is None

    def test_to_dict(self):
        card = Card("blue_skip_2", Color.BLUE, Value.SKIP)
        assert card.to_dict() == {
            "id": "blue_skip_2",
            "color": "blue",
            "value": "skip",
            "chosen_color": None,
        }

    def test_cards_compare_by_identity(self):
        a = Card("red_1_1", Color.RED, Value.ONE)
        b = Card("red_1_1", Color.RED, Value.ONE)
        assert a != b
        assert a == a


# =============================================================================
# Deck operations
# =============================================================================

class TestDeck:

    def test_shuffle_is_a_permutation(self):
        deck = Deck(rng=random.Random(7))
        before = {id(c) for c in deck.cards}
        deck.shuffle()
        assert {id(c) for c in deck.cards} == before
        assert len(deck) == 108

    def test_seeded_shuffles_match(self):
        a = Deck(rng=random.Random(42))
        b = Deck(rng=random.Random(42))
        a.shuffle()
        b.shuffle()
        assert [c.id for c in a.cards] == [c.id for c in b.cards]

    def test_shuffle_changes_order(self):
        deck = Deck(rng=random.Random(1))
        before = [c.id for c in deck.cards]
        deck.shuffle()
        assert [c.id for c in deck.cards] != before

    def test_draw_takes_top(self):
        deck = Deck()
        top = deck.cards[-1]
        assert deck.draw() is top
        assert deck.cards_remaining() == 107

    def test_draw_empty_returns_none(self):
        deck = Deck(cards=[])
        assert deck.draw() is None

    def test_put_bottom(self):
        deck = Deck()
        card = deck.draw()
        deck.put_bottom(card)
        assert deck.cards[0] is card
        assert len(deck) == 108

    def test_add_cards_resets_wild_choice(self):
        deck = Deck(cards=[], rng=random.Random(3))
        wild = Card("wild_0", Color.WILD, Value.WILD, chosen_color=Color.RED)
        deck.add_cards([wild, Card("red_2_1", Color.RED, Value.TWO)])
        assert len(deck) == 2
        assert wild.chosen_color is None


# =============================================================================
# Color parsing
# =============================================================================

class TestParseColor:

    @pytest.mark.parametrize("raw,expected", [
        ("red", Color.RED),
        ("BLUE", Color.BLUE),
        ("Green", Color.GREEN),
        ("yellow", Color.YELLOW),
    ])
    def test_playable_colors(self, raw, expected):
        assert parse_color(raw) == expected

    @pytest.mark.parametrize("raw", ["wild", "purple", "", None, 3])
    def test_rejects_others(self, raw):
        assert parse_color(raw) is None
