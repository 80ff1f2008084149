"""
Outbound fan-out for WebSocket clients.

The core never holds sockets. ConnectionManager maps connection-scoped
player ids to their WebSockets and turns RoomSnapshots into messages:

    room_updated        public room view, to everyone in the room
    game_started /
    game_state_updated  hand-filtered state, one per recipient
    game_ended          winner announcement, once per game
    room_list_updated   lobby browser, to every connection
"""

import logging
from typing import Iterable, Optional

from fastapi import WebSocket

from room import RoomSnapshot

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Track live WebSocket connections by player id."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}

    def connect(self, player_id: str, websocket: WebSocket) -> None:
        self._connections[player_id] = websocket

    def disconnect(self, player_id: str) -> None:
        self._connections.pop(player_id, None)

    def __contains__(self, player_id: str) -> bool:
        return player_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    async def send_to(self, player_id: str, message: dict) -> None:
        """
        Send a message to a specific player.

        A failed send is logged and dropped; the receive loop of that
        connection notices the disconnect and cleans up.
        """
        websocket = self._connections.get(player_id)
        if websocket is None:
            return
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.debug(f"Send to {player_id} failed: {e}")

    async def broadcast(
        self,
        player_ids: Iterable[str],
        message: dict,
        exclude: Optional[str] = None,
    ) -> None:
        """Send a message to each listed player."""
        for player_id in list(player_ids):
            if player_id != exclude:
                await self.send_to(player_id, message)

    async def broadcast_all(self, message: dict) -> None:
        """Send a message to every open connection."""
        await self.broadcast(list(self._connections), message)

    async def publish(self, snapshot: Optional[RoomSnapshot], game_event: str = "game_state_updated") -> None:
        """
        Fan a room snapshot out to the players in it.

        Args:
            snapshot: Output of RoomManager.snapshot(); None if the room is gone.
            game_event: Message type used for the per-recipient game state.
        """
        if snapshot is None:
            return

        member_ids = [p["id"] for p in snapshot.room["players"]]
        await self.broadcast(member_ids, {"type": "room_updated", "room": snapshot.room})

        for player_id, game_state in snapshot.game_states.items():
            await self.send_to(player_id, {"type": game_event, "game_state": game_state})

        if snapshot.game_over:
            await self.broadcast(member_ids, {"type": "game_ended", **snapshot.game_over})

    async def publish_room_list(self, rooms: list[dict]) -> None:
        await self.broadcast_all({"type": "room_list_updated", "rooms": rooms})
