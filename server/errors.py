"""
Error taxonomy for room and game operations.

Every rejected action raises a GameError subclass. Each carries a stable
``code`` that the WebSocket layer sends back to the originating client, so
clients can branch on the code rather than parse messages.

Operations validate before they mutate, so catching one of these means the
room is exactly as it was before the call.
"""

from typing import Optional


class GameError(Exception):
    """Base class for all rejected room/game operations."""

    code: str = "game_error"
    default_message: str = "Action not allowed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# -----------------------------------------------------------------------------
# Room lifecycle
# -----------------------------------------------------------------------------

class RoomNotFound(GameError):
    code = "room_not_found"
    default_message = "Room not found"


class RoomFull(GameError):
    code = "room_full"
    default_message = "Room is full"


class AlreadyInRoom(GameError):
    code = "already_in_room"
    default_message = "Already in another room"


class NotInRoom(GameError):
    code = "not_in_room"
    default_message = "Not in a room"


class GameAlreadyStarted(GameError):
    code = "game_already_started"
    default_message = "Game already in progress"


class GameNotInProgress(GameError):
    code = "game_not_in_progress"
    default_message = "No game in progress"


class NotHost(GameError):
    code = "not_host"
    default_message = "Only the host can start the game"


class NotEnoughPlayers(GameError):
    code = "not_enough_players"
    default_message = "Need at least 2 players"


class NotAllReady(GameError):
    code = "not_all_ready"
    default_message = "All players must be ready"


# -----------------------------------------------------------------------------
# Turn actions
# -----------------------------------------------------------------------------

class NotYourTurn(GameError):
    code = "not_your_turn"
    default_message = "It is not your turn"


class InvalidCardIndex(GameError):
    code = "invalid_card_index"
    default_message = "No card at that position"


class InvalidMove(GameError):
    code = "invalid_move"
    default_message = "That card does not match the current color or value"


class ColorChoicePending(GameError):
    code = "color_choice_pending"
    default_message = "Waiting for a color to be chosen"


class NotWaitingForColor(GameError):
    code = "not_waiting_for_color"
    default_message = "No color choice is pending for you"


class InvalidColor(GameError):
    code = "invalid_color"
    default_message = "Color must be red, blue, green or yellow"


class DeckExhausted(GameError):
    """Deck and discard pile are both empty. Unreachable while cards are conserved."""

    code = "deck_exhausted"
    default_message = "No cards left to draw"


# -----------------------------------------------------------------------------
# Protocol
# -----------------------------------------------------------------------------

class InvalidRequest(GameError):
    code = "invalid_request"
    default_message = "Malformed request"


class UnknownMessageType(GameError):
    code = "unknown_message_type"
    default_message = "Unknown message type"
