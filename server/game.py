"""
Game logic for UNO.

This module implements the per-room game state machine: dealing, turn order,
playing and drawing cards, wild-card color choice, reshuffling the discard
pile and win detection. Move legality and card effects are decided by
rules.py; this module applies them.

Game Flow:
    LOBBY -> PLAYING -> ENDED

    - start_game() deals 7 cards each and turns up the first discard
    - On your turn: play a matching card, or draw one card (which ends the turn)
    - Playing a wild card holds the turn until you name a color
    - First player to empty their hand wins; the game is then over

Turn Pointer:
    players[current_player_index] is the player to act. direction is +1
    (clockwise, increasing index) or -1.
"""

import logging
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cards import Card, Color, Deck, PLAYABLE_COLORS, Value, parse_color
from constants import HAND_SIZE
from errors import (
    ColorChoicePending,
    DeckExhausted,
    GameAlreadyStarted,
    GameNotInProgress,
    InvalidCardIndex,
    InvalidColor,
    InvalidMove,
    NotEnoughPlayers,
    NotInRoom,
    NotWaitingForColor,
    NotYourTurn,
)
from rules import (
    Effect,
    is_valid_move,
    is_winning_play,
    next_player_index,
    resolve_card_effect,
    resolve_color_choice,
)

logger = logging.getLogger(__name__)

# A game cannot continue with fewer players than this
MIN_ACTIVE_PLAYERS = 2


@dataclass
class Player:
    """
    A player at the UNO table.

    Attributes:
        id: Connection-scoped player identifier.
        name: Display name.
        hand: Cards held, in the order they were received.
    """

    id: str
    name: str
    hand: list[Card] = field(default_factory=list)

    def card_count(self) -> int:
        return len(self.hand)

    def cards_to_dict(self) -> list[dict]:
        return [card.to_dict() for card in self.hand]


class GamePhase(Enum):
    """
    Phases of an UNO game.

    Flow: LOBBY -> PLAYING -> ENDED (terminal)
    """

    LOBBY = "lobby"        # Waiting for players to join and ready up
    PLAYING = "playing"    # Cards dealt, taking turns
    ENDED = "ended"        # Someone emptied their hand (or everyone else left)


@dataclass
class Game:
    """
    Main game state and logic controller for UNO.

    Not thread-safe on its own: callers serialize access through the owning
    Room's lock.

    Attributes:
        players: Players in turn order.
        deck: The draw pile (None until the game starts).
        discard_pile: Played cards, last element on top.
        current_player_index: Index of the player to act (None in the lobby).
        direction: +1 or -1.
        phase: Current game phase.
        current_color: Color the next card must match.
        current_value: Value the next card may match instead.
        pending_color_player_id: Player who must name a color for the wild on top.
        winner_id: Player who won, once ENDED.
        end_reason: Why the game ended ("hand_emptied" or "players_left").
        hand_size: Cards dealt to each player.
        rng: Random source for shuffles (seed it for reproducible games).
        game_id: Unique identifier for log correlation.
    """

    players: list[Player] = field(default_factory=list)
    deck: Optional[Deck] = None
    discard_pile: list[Card] = field(default_factory=list)
    current_player_index: Optional[int] = None
    direction: int = 1
    phase: GamePhase = GamePhase.LOBBY
    current_color: Optional[Color] = None
    current_value: Optional[Value] = None
    pending_color_player_id: Optional[str] = None
    winner_id: Optional[str] = None
    end_reason: Optional[str] = None
    hand_size: int = HAND_SIZE
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)
    game_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # -------------------------------------------------------------------------
    # Player Management
    # -------------------------------------------------------------------------

    def add_player(self, player: Player) -> None:
        """Seat a player at the end of the turn order."""
        self.players.append(player)

    def remove_player(self, player_id: str) -> Optional[Player]:
        """
        Remove a player from the game by ID.

        While PLAYING this keeps the table consistent:
            - the player's hand goes to the bottom of the deck
            - the turn pointer keeps pointing at a seated player; if the
              leaver was to act, the turn passes to whoever was next
            - a pending color choice owned by the leaver is settled randomly
            - with fewer than two players left the game ends

        Args:
            player_id: The unique ID of the player to remove.

        Returns:
            The removed Player, or None if not found.
        """
        for i, player in enumerate(self.players):
            if player.id == player_id:
                break
        else:
            return None

        removed = self.players.pop(i)
        if self.phase != GamePhase.PLAYING:
            return removed

        for card in removed.hand:
            card.reset()
            self.deck.put_bottom(card)
        removed.hand = []

        remaining = len(self.players)
        if remaining < MIN_ACTIVE_PLAYERS:
            self._end(self.players[0].id if self.players else None, "players_left")
            self.current_player_index = 0 if self.players else None
            return removed

        current = self.current_player_index
        if i < current:
            current -= 1
        elif i == current:
            current = i % remaining if self.direction == 1 else (i - 1) % remaining
        self.current_player_index = current

        if self.pending_color_player_id == player_id:
            self.pending_color_player_id = None
            color = self.rng.choice(PLAYABLE_COLORS)
            self.discard_pile[-1].chosen_color = color
            self.current_color = color
            logger.info(f"Wild owner {player_id} left before choosing; color set to {color.value}")

        return removed

    def get_player(self, player_id: str) -> Optional[Player]:
        """Find a player by their ID."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def player_index(self, player_id: str) -> Optional[int]:
        for i, player in enumerate(self.players):
            if player.id == player_id:
                return i
        return None

    def current_player(self) -> Optional[Player]:
        """Get the player whose turn it is."""
        if self.current_player_index is None or not self.players:
            return None
        return self.players[self.current_player_index]

    # -------------------------------------------------------------------------
    # Game Lifecycle
    # -------------------------------------------------------------------------

    def start_game(self) -> None:
        """
        Deal a new game.

        Builds and shuffles the 108-card deck, deals hand_size cards to each
        player in seat order, then turns up the first discard. Wild cards
        are not allowed to start the pile; they go to the bottom of the deck
        and the next card is turned instead.
        """
        if self.phase != GamePhase.LOBBY:
            raise GameAlreadyStarted()
        if len(self.players) < MIN_ACTIVE_PLAYERS:
            raise NotEnoughPlayers()

        self.deck = Deck(rng=self.rng)
        self.deck.shuffle()

        for player in self.players:
            player.hand = [self.deck.draw() for _ in range(self.hand_size)]

        first = self.deck.draw()
        while first.is_wild:
            self.deck.put_bottom(first)
            first = self.deck.draw()

        self.discard_pile = [first]
        self.current_color = first.color
        self.current_value = first.value
        self.current_player_index = 0
        self.direction = 1
        self.pending_color_player_id = None
        self.winner_id = None
        self.end_reason = None
        self.phase = GamePhase.PLAYING

        logger.debug(
            f"Game {self.game_id} dealt to {len(self.players)} players, first card {first}"
        )

    def _end(self, winner_id: Optional[str], reason: str) -> None:
        self.phase = GamePhase.ENDED
        self.winner_id = winner_id
        self.end_reason = reason
        self.pending_color_player_id = None

    # -------------------------------------------------------------------------
    # Turn Actions
    # -------------------------------------------------------------------------

    def _require_turn(self, player_id: str) -> tuple[int, Player]:
        """Validate that player_id may act now; return their index and record."""
        if self.phase != GamePhase.PLAYING:
            raise GameNotInProgress()

        index = self.player_index(player_id)
        if index is None:
            raise NotInRoom("You are not in this game")
        if index != self.current_player_index:
            raise NotYourTurn()
        if self.pending_color_player_id is not None:
            raise ColorChoicePending("Choose a color for your wild card first")

        return index, self.players[index]

    def play_card(
        self,
        player_id: str,
        card_index: int,
        chosen_color: Optional[str] = None,
    ) -> Card:
        """
        Play a card from the acting player's hand.

        Args:
            player_id: ID of the player playing.
            card_index: Position of the card in their hand.
            chosen_color: Color to name if the card is wild. If omitted for a
                wild card, the game waits for choose_color().

        Returns:
            The played Card.

        Raises:
            GameNotInProgress, NotYourTurn, ColorChoicePending,
            InvalidCardIndex, InvalidMove, InvalidColor,
            DeckExhausted (penalty larger than the cards left to draw).
        """
        index, player = self._require_turn(player_id)

        if isinstance(card_index, bool) or not isinstance(card_index, int):
            raise InvalidCardIndex()
        if not 0 <= card_index < len(player.hand):
            raise InvalidCardIndex()

        card = player.hand[card_index]
        if not is_valid_move(card, self.current_color, self.current_value):
            raise InvalidMove()

        color = None
        if card.is_wild and chosen_color is not None:
            color = parse_color(chosen_color)
            if color is None:
                raise InvalidColor()

        # Resolve before mutating; any penalty must be coverable by deck plus discard
        wins = is_winning_play(len(player.hand) - 1)
        effect = None
        if not wins:
            if not card.is_wild:
                effect = resolve_card_effect(card.value, index, self.direction, len(self.players))
            elif color is not None:
                effect = resolve_color_choice(card.value, index, self.direction, len(self.players))
        if effect is not None:
            self._require_drawable(effect.draw_count, incoming=1)

        # Validation done; mutate
        player.hand.pop(card_index)
        card.chosen_color = color
        self.discard_pile.append(card)
        self.current_color = color if card.is_wild else card.color
        self.current_value = card.value

        if wins:
            self._end(player.id, "hand_emptied")
            logger.debug(f"Game {self.game_id}: {player.name} went out with {card}")
        elif effect is None:
            self.pending_color_player_id = player.id
        else:
            self._apply_effect(effect)
        return card

    def draw_card(self, player_id: str) -> Card:
        """
        Draw one card for the acting player and end their turn.

        Reshuffles the discard pile (minus its top) into the deck when the
        deck is empty.

        Returns:
            The drawn Card.
        """
        index, player = self._require_turn(player_id)

        card = self.draw_from_deck()
        player.hand.append(card)
        self._apply_effect(Effect(
            next_index=next_player_index(index, self.direction, len(self.players)),
            direction=self.direction,
        ))
        return card

    def choose_color(self, player_id: str, color: str) -> Color:
        """
        Name the color for the wild card on top of the discard pile.

        Applies the wild draw four penalty if applicable, then passes the turn.

        Raises:
            NotWaitingForColor: No choice is pending for this player.
            InvalidColor: color is not red, blue, green or yellow.
            DeckExhausted: Not enough cards left for the draw four penalty.
        """
        if self.phase != GamePhase.PLAYING or self.pending_color_player_id != player_id:
            raise NotWaitingForColor()

        parsed = parse_color(color)
        if parsed is None:
            raise InvalidColor()

        top = self.discard_pile[-1]
        effect = resolve_color_choice(
            top.value, self.current_player_index, self.direction, len(self.players)
        )
        self._require_drawable(effect.draw_count)

        top.chosen_color = parsed
        self.current_color = parsed
        self.pending_color_player_id = None
        self._apply_effect(effect)
        return parsed

    def _apply_effect(self, effect: Effect) -> None:
        """Carry out an Effect from the rules engine."""
        if effect.draw_count and effect.draw_index is not None:
            victim = self.players[effect.draw_index]
            for _ in range(effect.draw_count):
                victim.hand.append(self.draw_from_deck())

        self.direction = effect.direction
        self.current_player_index = effect.next_index

    # -------------------------------------------------------------------------
    # Deck Management
    # -------------------------------------------------------------------------

    def _require_drawable(self, count: int, incoming: int = 0) -> None:
        """
        Check that count cards can be drawn once incoming cards hit the discard pile.

        Everything in the deck is drawable, plus the discard pile minus its top
        through a reshuffle.
        """
        available = len(self.deck) + len(self.discard_pile) + incoming - 1
        if count > available:
            logger.error(f"Game {self.game_id}: {count} card penalty but only {available} left to draw")
            raise DeckExhausted()

    def draw_from_deck(self) -> Card:
        """
        Pop the top card of the deck, reshuffling the discard pile if needed.

        Raises:
            DeckExhausted: Deck is empty and the discard pile holds only its top.
        """
        if not self.deck.cards:
            self._reshuffle_discard_pile()

        card = self.deck.draw()
        if card is None:
            raise DeckExhausted()
        return card

    def _reshuffle_discard_pile(self) -> None:
        """
        Turn the discard pile (minus its top card) into a fresh deck.

        The top card stays face up so the current color/value are unchanged.
        """
        if len(self.discard_pile) <= 1:
            logger.error(f"Game {self.game_id}: deck and discard pile exhausted")
            raise DeckExhausted()

        top_card = self.discard_pile[-1]
        self.deck.add_cards(self.discard_pile[:-1])
        self.discard_pile = [top_card]
        logger.debug(f"Game {self.game_id}: reshuffled {len(self.deck)} cards into the deck")

    # -------------------------------------------------------------------------
    # State Queries
    # -------------------------------------------------------------------------

    def discard_top(self) -> Optional[Card]:
        """Get the top card of the discard pile (if any)."""
        if self.discard_pile:
            return self.discard_pile[-1]
        return None

    def total_cards(self) -> int:
        """Cards across deck, discard pile and hands (108 while PLAYING)."""
        in_hands = sum(len(p.hand) for p in self.players)
        in_deck = len(self.deck) if self.deck else 0
        return in_hands + in_deck + len(self.discard_pile)

    def get_state(self, for_player_id: Optional[str]) -> dict:
        """
        Get the game state as seen by one player.

        The recipient's own hand is included in full. Every other player is
        represented by card_count only, never by card contents.

        Args:
            for_player_id: The player who will receive this state.

        Returns:
            Dict suitable for JSON serialization.
        """
        current = self.current_player()
        me = self.get_player(for_player_id) if for_player_id else None

        players_data = []
        for player in self.players:
            players_data.append({
                "id": player.id,
                "name": player.name,
                "card_count": player.card_count(),
                "is_current": current is not None and player.id == current.id,
            })

        top = self.discard_top()

        return {
            "game_id": self.game_id,
            "phase": self.phase.value,
            "players": players_data,
            "hand": me.cards_to_dict() if me else [],
            "current_player_id": current.id if current else None,
            "current_player_index": self.current_player_index,
            "direction": self.direction,
            "current_color": self.current_color.value if self.current_color else None,
            "current_value": self.current_value.value if self.current_value else None,
            "discard_top": top.to_dict() if top else None,
            "discard_count": len(self.discard_pile),
            "deck_remaining": self.deck.cards_remaining() if self.deck else 0,
            "pending_color_player_id": self.pending_color_player_id,
            "awaiting_color": (
                self.pending_color_player_id is not None
                and self.pending_color_player_id == for_player_id
            ),
            "winner_id": self.winner_id,
            "end_reason": self.end_reason,
        }
