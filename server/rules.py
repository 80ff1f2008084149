"""
Rules engine for UNO.

Pure functions: nothing here touches a Game. Given the card just played and
the table position (current index, direction, number of players) the engine
says what should happen next, and game.py carries it out.

Effect table:
    number       advance 1
    skip         advance 2
    reverse      flip direction, then advance 1 (heads-up: the opponent plays next)
    draw2        next player draws 2, advance 2
    wild         wait for a color, then advance 1
    wild_draw4   wait for a color, then next player draws 4, advance 2

"Advance N" is N single steps taken in the direction in force after the
card's own direction change.
"""

from dataclasses import dataclass
from typing import Optional

from cards import Card, Color, Value
from constants import DRAW_FOUR_PENALTY, DRAW_TWO_PENALTY


@dataclass(frozen=True)
class Effect:
    """
    Outcome of resolving a played card.

    Attributes:
        next_index: Player index whose turn it is afterwards.
        direction: Direction of play afterwards (+1 or -1).
        draw_index: Player who must pick up penalty cards, if any.
        draw_count: Number of penalty cards.
        awaiting_color: True if the turn is held until a color is named.
    """

    next_index: int
    direction: int
    draw_index: Optional[int] = None
    draw_count: int = 0
    awaiting_color: bool = False


def is_valid_move(card: Card, current_color: Optional[Color], current_value: Optional[Value]) -> bool:
    """
    Check whether a card may be played on the current discard.

    Wild cards always match; otherwise the card must share the current
    color or the current value.
    """
    if card.color == Color.WILD:
        return True
    if card.color == current_color:
        return True
    return card.value == current_value


def next_player_index(index: int, direction: int, num_players: int) -> int:
    """One step around the table."""
    return (index + direction) % num_players


def advance(index: int, direction: int, num_players: int, steps: int = 1) -> int:
    """Take ``steps`` single steps around the table."""
    for _ in range(steps):
        index = next_player_index(index, direction, num_players)
    return index


def resolve_card_effect(value: Value, index: int, direction: int, num_players: int) -> Effect:
    """
    Work out the effect of a card that did not win the game.

    Args:
        value: Face of the card just played.
        index: Index of the player who played it.
        direction: Direction of play before the card.
        num_players: Players at the table.

    Returns:
        Effect describing the new turn pointer, direction and any penalty.
        Wild cards return awaiting_color=True and leave the pointer alone;
        call resolve_color_choice() once the color is named.
    """
    if value.is_wild:
        return Effect(next_index=index, direction=direction, awaiting_color=True)

    if value == Value.SKIP:
        return Effect(next_index=advance(index, direction, num_players, 2), direction=direction)

    if value == Value.REVERSE:
        direction = -direction
        # Heads-up the opponent still gets exactly one turn; the player does not go again
        return Effect(next_index=next_player_index(index, direction, num_players), direction=direction)

    if value == Value.DRAW2:
        return Effect(
            next_index=advance(index, direction, num_players, 2),
            direction=direction,
            draw_index=next_player_index(index, direction, num_players),
            draw_count=DRAW_TWO_PENALTY,
        )

    return Effect(next_index=next_player_index(index, direction, num_players), direction=direction)


def resolve_color_choice(value: Value, index: int, direction: int, num_players: int) -> Effect:
    """
    Finish a wild card once its player has named a color.

    Args:
        value: Value.WILD or Value.WILD_DRAW4.
        index: Index of the player who played the wild.
        direction: Current direction of play.
        num_players: Players at the table.
    """
    if value == Value.WILD_DRAW4:
        return Effect(
            next_index=advance(index, direction, num_players, 2),
            direction=direction,
            draw_index=next_player_index(index, direction, num_players),
            draw_count=DRAW_FOUR_PENALTY,
        )
    return Effect(next_index=next_player_index(index, direction, num_players), direction=direction)


def is_winning_play(hand_size_after: int) -> bool:
    """A play wins when it empties the hand. Wins take precedence over effects."""
    return hand_size_after == 0
