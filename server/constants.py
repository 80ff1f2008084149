"""
Game constants for UNO.

Deck composition is fixed by the rules of the game. Table limits (room size,
hand size, code length) come from config.py so they can be tuned per
deployment via environment variables.

Deck composition (108 cards):
    - Per color (red, blue, green, yellow):
        one 0, two each of 1-9, two each of skip / reverse / draw2 -> 25 cards
    - 4 wild
    - 4 wild draw four
"""

from config import config


# =============================================================================
# Deck Composition
# =============================================================================

NUMBER_COPIES: dict[str, int] = {
    '0': 1,
    '1': 2,
    '2': 2,
    '3': 2,
    '4': 2,
    '5': 2,
    '6': 2,
    '7': 2,
    '8': 2,
    '9': 2,
}
ACTION_COPIES_PER_COLOR = 2  # skip, reverse, draw2
WILD_COPIES = 4              # each of wild and wild_draw4

DECK_SIZE = 108

# Cards the next player picks up after a draw card
DRAW_TWO_PENALTY = 2
DRAW_FOUR_PENALTY = 4


# =============================================================================
# Room / Table Constants
# =============================================================================

MAX_PLAYERS = config.MAX_PLAYERS_PER_ROOM
HAND_SIZE = config.game.hand_size
ROOM_CODE_LENGTH = config.ROOM_CODE_LENGTH

# Uppercase letters and digits without the look-alikes 0/O and 1/I
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_MAX_ATTEMPTS = 100

CHAT_HISTORY_LIMIT = config.CHAT_HISTORY_LIMIT
CHAT_MAX_LENGTH = config.CHAT_MAX_LENGTH
