"""
Card and deck model for UNO.

Cards are created once per game by build_deck() and then move between the
deck, the players' hands and the discard pile by reference. They are never
copied or recreated, which is what makes card conservation checkable: the
same 108 objects are always somewhere.

Deck layout:
    cards[0]  <- bottom
    cards[-1] <- top (next card drawn)
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from constants import ACTION_COPIES_PER_COLOR, NUMBER_COPIES, WILD_COPIES


class Color(str, Enum):
    """Card colors. WILD marks wild cards until a color is chosen."""

    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    WILD = "wild"


# Colors a player may name after playing a wild card
PLAYABLE_COLORS: tuple[Color, ...] = (Color.RED, Color.BLUE, Color.GREEN, Color.YELLOW)


class Value(str, Enum):
    """
    Card faces.

    Numbers carry no effect. Action cards (skip, reverse, draw2) are colored;
    wild and wild_draw4 are always Color.WILD.
    """

    ZERO = "0"
    ONE = "1"
    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    SKIP = "skip"
    REVERSE = "reverse"
    DRAW2 = "draw2"
    WILD = "wild"
    WILD_DRAW4 = "wild_draw4"

    @property
    def is_wild(self) -> bool:
        return self in (Value.WILD, Value.WILD_DRAW4)


ACTION_VALUES: tuple[Value, ...] = (Value.SKIP, Value.REVERSE, Value.DRAW2)


def parse_color(raw: Optional[str]) -> Optional[Color]:
    """
    Parse a color a player named for a wild card.

    Returns:
        The Color, or None if raw is not one of the four playable colors.
    """
    if raw is None:
        return None
    try:
        color = Color(str(raw).lower())
    except ValueError:
        return None
    return color if color in PLAYABLE_COLORS else None


@dataclass(eq=False)
class Card:
    """
    A single physical card.

    Attributes:
        id: Unique token for this card instance (e.g. "red_7_2").
        color: Printed color (Color.WILD for wild cards).
        value: Printed face.
        chosen_color: Color named by the player who played this wild card.
            Only set on a wild card sitting in the discard pile.
    """

    id: str
    color: Color
    value: Value
    chosen_color: Optional[Color] = None

    @property
    def is_wild(self) -> bool:
        return self.color == Color.WILD

    @property
    def effective_color(self) -> Color:
        """Color this card counts as for matching."""
        if self.is_wild and self.chosen_color is not None:
            return self.chosen_color
        return self.color

    def reset(self) -> None:
        """Forget the chosen color (card is going back into the deck)."""
        self.chosen_color = None

    def to_dict(self) -> dict:
        """Convert card to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "color": self.color.value,
            "value": self.value.value,
            "chosen_color": self.chosen_color.value if self.chosen_color else None,
        }

    def __str__(self) -> str:
        if self.is_wild:
            return self.value.value
        return f"{self.color.value} {self.value.value}"


def build_deck() -> list[Card]:
    """
    Build the canonical 108-card set in a fixed, unshuffled order.

    Ids are stable across calls so two decks built by separate games list
    the same ids in the same order.
    """
    cards: list[Card] = []

    for color in PLAYABLE_COLORS:
        for face, copies in NUMBER_COPIES.items():
            value = Value(face)
            if copies == 1:
                cards.append(Card(f"{color.value}_{face}", color, value))
                continue
            for copy in range(1, copies + 1):
                cards.append(Card(f"{color.value}_{face}_{copy}", color, value))

        for value in ACTION_VALUES:
            for copy in range(1, ACTION_COPIES_PER_COLOR + 1):
                cards.append(Card(f"{color.value}_{value.value}_{copy}", color, value))

    for i in range(WILD_COPIES):
        cards.append(Card(f"wild_{i}", Color.WILD, Value.WILD))
        cards.append(Card(f"wild_draw4_{i}", Color.WILD, Value.WILD_DRAW4))

    return cards


class Deck:
    """
    The draw pile.

    Shuffling uses the owning game's random.Random so a seeded game replays
    exactly. random.Random.shuffle is a Fisher-Yates shuffle, uniform over
    permutations.
    """

    def __init__(
        self,
        cards: Optional[list[Card]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize a deck.

        Args:
            cards: Cards to hold, bottom first. Defaults to a fresh build_deck().
            rng: Random source for shuffling.
        """
        self.cards: list[Card] = cards if cards is not None else build_deck()
        self._rng = rng or random.Random()

    def shuffle(self) -> None:
        """Randomize the order of cards in place."""
        self._rng.shuffle(self.cards)

    def draw(self) -> Optional[Card]:
        """
        Draw the top card from the deck.

        Returns:
            The drawn Card, or None if deck is empty.
        """
        if self.cards:
            return self.cards.pop()
        return None

    def put_bottom(self, card: Card) -> None:
        """Slide a card under the deck."""
        self.cards.insert(0, card)

    def add_cards(self, cards: list[Card]) -> None:
        """
        Add cards to the deck and shuffle.

        Used when reshuffling the discard pile back into the deck.
        """
        for card in cards:
            card.reset()
        self.cards.extend(cards)
        self.shuffle()

    def cards_remaining(self) -> int:
        """Return the number of cards left in the deck."""
        return len(self.cards)

    def __len__(self) -> int:
        return len(self.cards)
