"""WebSocket message handlers for the UNO card game.

Each handler corresponds to a single message type from the client.
Handlers are dispatched via dispatch(), which owns error reporting:
a rejected action is answered with an "error" message to the sender only,
and nobody else in the room hears about it.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Type, TypeVar

from fastapi import WebSocket
from pydantic import BaseModel, ValidationError

from errors import DeckExhausted, GameError, InvalidRequest, NotInRoom, RoomNotFound, UnknownMessageType
from room import RoomManager
from schemas import (
    ChatMessageRequest,
    ChooseColorRequest,
    CreateRoomRequest,
    JoinRoomRequest,
    PlayCardRequest,
    SetReadyRequest,
)

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT", bound=BaseModel)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    player_id: str
    room_code: Optional[str] = None


def parse(model: Type[RequestT], data: dict) -> RequestT:
    """Validate an inbound payload, mapping pydantic errors to InvalidRequest."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidRequest(f"Invalid fields: {fields}") from e


def require_room(ctx: ConnectionContext) -> str:
    if not ctx.room_code:
        raise NotInRoom()
    return ctx.room_code


async def reply(ctx: ConnectionContext, data: dict, message: dict) -> None:
    """Answer the sender, echoing request_id when the client sent one."""
    if data.get("request_id") is not None:
        message = {**message, "request_id": data["request_id"]}
    await ctx.websocket.send_json(message)


async def ack(ctx: ConnectionContext, data: dict) -> None:
    await reply(ctx, data, {"type": "ack", "action": data.get("type")})


# ---------------------------------------------------------------------------
# Lobby / Room handlers
# ---------------------------------------------------------------------------

async def handle_create_room(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    req = parse(CreateRoomRequest, data)
    room = room_manager.create_room(ctx.player_id, req.player_name)
    ctx.room_code = room.code

    snapshot = room_manager.snapshot(room.code)
    await reply(ctx, data, {
        "type": "room_created",
        "room_code": room.code,
        "player_id": ctx.player_id,
        "room": snapshot.room if snapshot else None,
    })
    await connections.publish(snapshot)
    await connections.publish_room_list(room_manager.get_room_list())


async def handle_join_room(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    req = parse(JoinRoomRequest, data)
    room = room_manager.join_room(req.room_code, ctx.player_id, req.player_name)
    ctx.room_code = room.code

    snapshot = room_manager.snapshot(room.code)
    await reply(ctx, data, {
        "type": "room_joined",
        "room_code": room.code,
        "player_id": ctx.player_id,
        "room": snapshot.room if snapshot else None,
    })
    await connections.publish(snapshot)
    await connections.publish_room_list(room_manager.get_room_list())


async def handle_leave_room(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    await player_leave(ctx, room_manager=room_manager, connections=connections)
    await ack(ctx, data)


async def handle_set_ready(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    req = parse(SetReadyRequest, data)
    code = require_room(ctx)
    room_manager.set_ready(code, ctx.player_id, req.is_ready)

    await ack(ctx, data)
    await connections.publish(room_manager.snapshot(code))


async def handle_list_rooms(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, **kw) -> None:
    await reply(ctx, data, {"type": "room_list", "rooms": room_manager.get_room_list()})


async def handle_send_chat_message(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    if not ctx.room_code:
        return

    req = parse(ChatMessageRequest, data)
    message = room_manager.add_chat_message(ctx.room_code, ctx.player_id, req.text)
    if message is None:
        return

    snapshot = room_manager.snapshot(ctx.room_code)
    if snapshot:
        member_ids = [p["id"] for p in snapshot.room["players"]]
        await connections.broadcast(member_ids, {"type": "chat_message", "message": message.to_dict()})
    await ack(ctx, data)


# ---------------------------------------------------------------------------
# Game handlers
# ---------------------------------------------------------------------------

async def handle_start_game(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    code = require_room(ctx)
    room_manager.start_game(code, ctx.player_id)

    await ack(ctx, data)
    await connections.publish(room_manager.snapshot(code), game_event="game_started")
    await connections.publish_room_list(room_manager.get_room_list())


async def handle_play_card(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    req = parse(PlayCardRequest, data)
    code = require_room(ctx)
    card = room_manager.play_card(code, ctx.player_id, req.card_index, req.chosen_color)
    logger.debug(f"{ctx.player_id} played {card}", extra={"room_code": code, "player_id": ctx.player_id})

    await ack(ctx, data)
    await connections.publish(room_manager.snapshot(code))


async def handle_draw_card(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    code = require_room(ctx)
    card = room_manager.draw_card(code, ctx.player_id)

    await reply(ctx, data, {"type": "card_drawn", "card": card.to_dict()})
    await connections.publish(room_manager.snapshot(code))


async def handle_choose_color(data: dict, ctx: ConnectionContext, *, room_manager: RoomManager, connections, **kw) -> None:
    req = parse(ChooseColorRequest, data)
    code = require_room(ctx)
    room_manager.choose_color(code, ctx.player_id, req.color)

    await ack(ctx, data)
    await connections.publish(room_manager.snapshot(code))


# ---------------------------------------------------------------------------
# Leave / Disconnect
# ---------------------------------------------------------------------------

async def player_leave(ctx: ConnectionContext, *, room_manager: RoomManager, connections) -> None:
    """
    Take a connection's player out of its room.

    Shared by the leave_room message and WebSocket disconnects. A room that
    vanished in the meantime is not an error here.
    """
    code = ctx.room_code
    if not code:
        return
    ctx.room_code = None

    try:
        room = room_manager.leave_room(code, ctx.player_id)
    except (RoomNotFound, NotInRoom):
        return

    if room is not None:
        await connections.publish(room_manager.snapshot(code))
    await connections.publish_room_list(room_manager.get_room_list())


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "create_room": handle_create_room,
    "join_room": handle_join_room,
    "leave_room": handle_leave_room,
    "set_ready": handle_set_ready,
    "list_rooms": handle_list_rooms,
    "start_game": handle_start_game,
    "play_card": handle_play_card,
    "draw_card": handle_draw_card,
    "choose_color": handle_choose_color,
    "send_chat_message": handle_send_chat_message,
}


async def dispatch(data: dict, ctx: ConnectionContext, **deps) -> None:
    """
    Route one inbound message to its handler.

    GameErrors become an "error" reply to the sender. Anything unexpected
    is logged with its traceback and reported as a generic internal_error;
    the connection stays open and other rooms are untouched.
    """
    action = data.get("type") if isinstance(data, dict) else None
    try:
        if not isinstance(data, dict):
            raise InvalidRequest("Message must be a JSON object")
        handler = HANDLERS.get(action)
        if handler is None:
            raise UnknownMessageType(f"Unknown message type: {action}")
        await handler(data, ctx, **deps)
    except DeckExhausted:
        logger.error(
            f"Deck exhausted, {action} refused",
            extra={"room_code": ctx.room_code, "player_id": ctx.player_id},
        )
        await _send_error(ctx, data, action, "internal_error", "Internal server error")
    except GameError as e:
        logger.debug(
            f"Rejected {action} from {ctx.player_id}: {e.code}",
            extra={"room_code": ctx.room_code, "player_id": ctx.player_id},
        )
        await _send_error(ctx, data, action, e.code, e.message)
    except Exception:
        logger.exception(
            f"Handler for {action} failed",
            extra={"room_code": ctx.room_code, "player_id": ctx.player_id},
        )
        await _send_error(ctx, data, action, "internal_error", "Internal server error")


async def _send_error(ctx: ConnectionContext, data, action: Optional[str], code: str, message: str) -> None:
    payload = {"type": "error", "action": action, "code": code, "message": message}
    if isinstance(data, dict) and data.get("request_id") is not None:
        payload["request_id"] = data["request_id"]
    await ctx.websocket.send_json(payload)
