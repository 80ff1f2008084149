"""
Room management for multiplayer UNO games.

This module handles room creation, player management and the locking that
keeps each room's game state consistent while many connections act on it.

A Room contains:
    - A unique 6-character code for joining
    - RoomPlayers keyed by player ID, in join order (join order = turn order)
    - A Game instance with the actual game state
    - A capped chat history

Locking:
    - RoomManager._lock guards the code -> Room map (insert, delete, lookup)
    - Room.lock serializes every mutation and snapshot of one room
    - Rooms never share a lock; lock order is room first, then registry
"""

import logging
import random
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator, Optional

from cards import Card, Color
from config import GameSettings, config
from constants import (
    CHAT_HISTORY_LIMIT,
    CHAT_MAX_LENGTH,
    MAX_PLAYERS,
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    ROOM_CODE_MAX_ATTEMPTS,
)
from errors import (
    AlreadyInRoom,
    GameAlreadyStarted,
    NotAllReady,
    NotEnoughPlayers,
    NotHost,
    NotInRoom,
    RoomFull,
    RoomNotFound,
)
from game import Game, GamePhase, Player

logger = logging.getLogger(__name__)


@dataclass
class RoomPlayer:
    """
    A player in a game room (lobby-level representation).

    This is separate from game.Player - RoomPlayer tracks room-level info
    like host and ready status, while game.Player tracks the hand.

    Attributes:
        id: Connection-scoped player identifier.
        name: Display name.
        is_host: Whether this player may start the game.
        is_ready: Whether this player has readied up in the lobby.
        joined_at: When the player entered the room.
    """

    id: str
    name: str
    is_host: bool = False
    is_ready: bool = False
    joined_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class ChatMessage:
    """A chat line posted to a room."""

    player_id: str
    player_name: str
    text: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "player_id": self.player_id,
            "player_name": self.player_name,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RoomSnapshot:
    """
    Everything the WebSocket layer needs to fan out after a room changes.

    Built under the room lock so every recipient sees the same moment.

    Attributes:
        code: Room code.
        room: Public room view (no cards).
        game_states: Per-recipient game state, keyed by player ID. Empty in the lobby.
        game_over: Winner announcement, present exactly once per finished game.
    """

    code: str
    room: dict
    game_states: dict[str, dict] = field(default_factory=dict)
    game_over: Optional[dict] = None


@dataclass
class Room:
    """
    A game room/lobby that can host a multiplayer UNO game.

    Attributes:
        code: 6-character room code for joining (e.g., "K7QX2M").
        players: Dict mapping player IDs to RoomPlayer objects, in join order.
        game: The Game instance containing actual game state.
        messages: Chat history, oldest first.
        created_at: When the room was created.
        max_players: Seat limit for this room.
        lock: Serializes all reads and writes of this room.
        closed: Set once the room has been torn down.
        end_reported: Set once the game_ended announcement has gone out.
    """

    code: str
    players: dict[str, RoomPlayer] = field(default_factory=dict)
    game: Game = field(default_factory=Game)
    messages: list[ChatMessage] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    max_players: int = MAX_PLAYERS
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)
    closed: bool = False
    end_reported: bool = False

    def add_player(self, player_id: str, name: str) -> RoomPlayer:
        """
        Add a player to the room.

        The first player to join becomes the host.

        Args:
            player_id: Unique identifier for the player (connection id).
            name: Display name.

        Returns:
            The created RoomPlayer object.
        """
        is_host = len(self.players) == 0
        room_player = RoomPlayer(id=player_id, name=name, is_host=is_host)
        self.players[player_id] = room_player
        self.game.add_player(Player(id=player_id, name=name))
        return room_player

    def remove_player(self, player_id: str) -> Optional[RoomPlayer]:
        """
        Remove a player from the room.

        Handles host reassignment if the host leaves. The game keeps its
        turn pointer valid (see Game.remove_player).

        Args:
            player_id: ID of the player to remove.

        Returns:
            The removed RoomPlayer, or None if not found.
        """
        if player_id not in self.players:
            return None

        room_player = self.players.pop(player_id)
        self.game.remove_player(player_id)

        # Assign new host if needed
        if room_player.is_host and self.players:
            next_host = next(iter(self.players.values()))
            next_host.is_host = True

        return room_player

    def get_player(self, player_id: str) -> Optional[RoomPlayer]:
        """Get a player by ID, or None if not found."""
        return self.players.get(player_id)

    def is_empty(self) -> bool:
        """Check if the room has no players."""
        return len(self.players) == 0

    def is_full(self) -> bool:
        return len(self.players) >= self.max_players

    @property
    def state(self) -> GamePhase:
        return self.game.phase

    @property
    def host(self) -> Optional[RoomPlayer]:
        for player in self.players.values():
            if player.is_host:
                return player
        return None

    @property
    def host_id(self) -> Optional[str]:
        host = self.host
        return host.id if host else None

    def all_ready(self) -> bool:
        return all(p.is_ready for p in self.players.values())

    def player_list(self) -> list[dict]:
        """
        Get list of players for client display.

        Returns:
            List of dicts with id, name, is_host, is_ready and card_count.
        """
        result = []
        for p in self.players.values():
            game_player = self.game.get_player(p.id)
            result.append({
                "id": p.id,
                "name": p.name,
                "is_host": p.is_host,
                "is_ready": p.is_ready,
                "card_count": game_player.card_count() if game_player else 0,
            })
        return result

    def to_dict(self) -> dict:
        """Public room view. Never includes card contents."""
        return {
            "room_code": self.code,
            "host_id": self.host_id,
            "state": self.state.value,
            "players": self.player_list(),
            "max_players": self.max_players,
            "created_at": self.created_at.isoformat(),
            "messages": [m.to_dict() for m in self.messages],
        }

    def summary(self) -> dict:
        """Lobby browser entry."""
        host = self.host
        return {
            "room_code": self.code,
            "host_name": host.name if host else "Unknown",
            "player_count": len(self.players),
            "max_players": self.max_players,
            "created_at": self.created_at.isoformat(),
        }


class RoomManager:
    """
    Manages all active game rooms.

    Every public method that touches a room takes that room's lock for the
    whole operation, so operations on one room are serialized while
    different rooms proceed in parallel. A single RoomManager instance is
    used by the server; tests create their own.
    """

    def __init__(
        self,
        settings: Optional[GameSettings] = None,
        max_players: int = MAX_PLAYERS,
        code_length: int = ROOM_CODE_LENGTH,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize an empty room manager.

        Args:
            settings: Start rules and hand size. Defaults to config.game.
            max_players: Seat limit per room.
            code_length: Length of generated room codes.
            rng: Random source for room codes and game shuffles.
        """
        self.settings = settings or config.game
        self.max_players = max_players
        self.code_length = code_length
        self.rooms: dict[str, Room] = {}
        self._player_rooms: dict[str, str] = {}
        self._lock = threading.Lock()
        self._rng = rng or random.SystemRandom()

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def _generate_code(self, max_attempts: int = ROOM_CODE_MAX_ATTEMPTS) -> str:
        """Generate a unique room code. Caller holds self._lock."""
        for _ in range(max_attempts):
            code = "".join(self._rng.choices(ROOM_CODE_ALPHABET, k=self.code_length))
            if code not in self.rooms:
                return code
        raise RuntimeError("Could not generate unique room code")

    def get_room(self, code: str) -> Optional[Room]:
        """
        Get a room by its code (case-insensitive).

        Returns:
            The Room if found, None otherwise.
        """
        if not code:
            return None
        with self._lock:
            return self.rooms.get(code.upper())

    def remove_room(self, code: str) -> None:
        """Delete a room and forget its players."""
        with self._lock:
            room = self.rooms.pop(code, None)
            if room is None:
                return
            room.closed = True
            for player_id in room.players:
                if self._player_rooms.get(player_id) == code:
                    del self._player_rooms[player_id]

    def find_player_room(self, player_id: str) -> Optional[Room]:
        """Find which room a player is in."""
        with self._lock:
            code = self._player_rooms.get(player_id)
            return self.rooms.get(code) if code else None

    @contextmanager
    def _locked(self, code: str) -> Iterator[Room]:
        """Hold a room's lock; RoomNotFound if it is missing or torn down."""
        room = self.get_room(code)
        if room is None:
            raise RoomNotFound()
        with room.lock:
            if room.closed:
                raise RoomNotFound()
            yield room

    @staticmethod
    def _require_member(room: Room, player_id: str) -> RoomPlayer:
        room_player = room.get_player(player_id)
        if room_player is None:
            raise NotInRoom()
        return room_player

    # -------------------------------------------------------------------------
    # Lobby Operations
    # -------------------------------------------------------------------------

    def create_room(self, host_id: str, host_name: str) -> Room:
        """
        Create a new room with a unique code, seating the host.

        Raises:
            AlreadyInRoom: host_id is already seated somewhere.
        """
        with self._lock:
            if host_id in self._player_rooms:
                raise AlreadyInRoom()

            code = self._generate_code()
            game = Game(
                hand_size=self.settings.hand_size,
                rng=random.Random(self._rng.getrandbits(64)),
            )
            room = Room(code=code, game=game, max_players=self.max_players)
            room.add_player(host_id, host_name)
            self.rooms[code] = room
            self._player_rooms[host_id] = code

        logger.info(f"Room {code} created by {host_name}", extra={"room_code": code, "player_id": host_id})
        return room

    def join_room(self, code: str, player_id: str, name: str) -> Room:
        """
        Seat a player in an existing room.

        Joining a room you are already in returns it unchanged.

        Raises:
            RoomNotFound, AlreadyInRoom, GameAlreadyStarted, RoomFull.
        """
        with self._locked(code) as room:
            if player_id in room.players:
                return room

            with self._lock:
                if player_id in self._player_rooms:
                    raise AlreadyInRoom()

            if room.state != GamePhase.LOBBY:
                raise GameAlreadyStarted()
            if room.is_full():
                raise RoomFull()

            room.add_player(player_id, name)
            with self._lock:
                self._player_rooms[player_id] = room.code

        logger.info(
            f"{name} joined room {room.code} ({len(room.players)} players)",
            extra={"room_code": room.code, "player_id": player_id},
        )
        return room

    def leave_room(self, code: str, player_id: str) -> Optional[Room]:
        """
        Remove a player from a room. Also used for disconnects.

        Deletes the room once it is empty.

        Returns:
            The updated Room, or None if the room was deleted.

        Raises:
            RoomNotFound, NotInRoom.
        """
        with self._locked(code) as room:
            removed = room.remove_player(player_id)
            if removed is None:
                raise NotInRoom()

            with self._lock:
                self._player_rooms.pop(player_id, None)
                if room.is_empty():
                    room.closed = True
                    self.rooms.pop(room.code, None)

        if room.closed:
            logger.info(f"Room {room.code} closed (last player left)", extra={"room_code": room.code})
            return None

        logger.info(
            f"{removed.name} left room {room.code}",
            extra={"room_code": room.code, "player_id": player_id},
        )
        return room

    def set_ready(self, code: str, player_id: str, is_ready: bool) -> Room:
        """Set a player's ready flag."""
        with self._locked(code) as room:
            self._require_member(room, player_id).is_ready = bool(is_ready)
            return room

    def add_chat_message(self, code: str, player_id: str, text: str) -> Optional[ChatMessage]:
        """
        Post a chat message to a room.

        Returns:
            The stored ChatMessage, or None if the sender is not in the room
            or the message is blank.
        """
        room = self.get_room(code)
        if room is None:
            return None

        with room.lock:
            sender = room.get_player(player_id)
            if room.closed or sender is None:
                return None

            text = (text or "").strip()[:CHAT_MAX_LENGTH]
            if not text:
                return None

            message = ChatMessage(player_id=player_id, player_name=sender.name, text=text)
            room.messages.append(message)
            del room.messages[:-CHAT_HISTORY_LIMIT]
            return message

    def get_room_list(self) -> list[dict]:
        """Lobby-state rooms for browsing, oldest first."""
        with self._lock:
            rooms = list(self.rooms.values())

        result = []
        for room in rooms:
            with room.lock:
                if not room.closed and room.state == GamePhase.LOBBY:
                    result.append((room.created_at, room.summary()))
        return [summary for _, summary in sorted(result, key=lambda item: item[0])]

    # -------------------------------------------------------------------------
    # Game Operations
    # -------------------------------------------------------------------------

    def start_game(self, code: str, player_id: str) -> Room:
        """
        Start the game in a room.

        Gate (checked in this order): caller is host, room is in the lobby,
        enough players, and (if configured) everyone is ready.

        Raises:
            RoomNotFound, NotInRoom, NotHost, GameAlreadyStarted,
            NotEnoughPlayers, NotAllReady.
        """
        with self._locked(code) as room:
            if not self._require_member(room, player_id).is_host:
                raise NotHost()
            if room.state != GamePhase.LOBBY:
                raise GameAlreadyStarted()
            if len(room.players) < self.settings.min_players_to_start:
                raise NotEnoughPlayers(
                    f"Need at least {self.settings.min_players_to_start} players"
                )
            if self.settings.start_requires_all_ready and not room.all_ready():
                raise NotAllReady()

            room.game.start_game()

        logger.info(
            f"Game started in room {room.code} with {len(room.players)} players",
            extra={"room_code": room.code, "game_id": room.game.game_id},
        )
        return room

    def play_card(
        self,
        code: str,
        player_id: str,
        card_index: int,
        chosen_color: Optional[str] = None,
    ) -> Card:
        """Play a card for player_id. See Game.play_card."""
        with self._locked(code) as room:
            return room.game.play_card(player_id, card_index, chosen_color)

    def draw_card(self, code: str, player_id: str) -> Card:
        """Draw a card for player_id and end their turn. See Game.draw_card."""
        with self._locked(code) as room:
            return room.game.draw_card(player_id)

    def choose_color(self, code: str, player_id: str, color: str) -> Color:
        """Name the color for a pending wild card. See Game.choose_color."""
        with self._locked(code) as room:
            return room.game.choose_color(player_id, color)

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def snapshot(self, code: str) -> Optional[RoomSnapshot]:
        """
        Capture a room for broadcasting.

        game_states holds one hand-filtered state per seated player once a
        game has started. game_over is filled in the first time a snapshot
        is taken after the game ends, and never again.

        Returns:
            The RoomSnapshot, or None if the room no longer exists.
        """
        room = self.get_room(code)
        if room is None:
            return None

        with room.lock:
            if room.closed:
                return None

            snap = RoomSnapshot(code=room.code, room=room.to_dict())
            if room.state != GamePhase.LOBBY:
                snap.game_states = {pid: room.game.get_state(pid) for pid in room.players}

            if room.state == GamePhase.ENDED and not room.end_reported:
                room.end_reported = True
                winner = room.get_player(room.game.winner_id) if room.game.winner_id else None
                snap.game_over = {
                    "winner_id": room.game.winner_id,
                    "winner_name": winner.name if winner else None,
                    "reason": room.game.end_reason,
                }
            return snap
