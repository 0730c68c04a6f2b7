"""WebSocket message handlers for the Not-a-Hat party server.

Each handler corresponds to a single inbound message type from the client.
Handlers are dispatched via the HANDLERS dict from dispatch_message().

Every handler that touches state holds the room lock while it mutates and
broadcasts, so clients see updates in the order they were applied.
"""

import json
from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket
from pydantic import ValidationError

from constants import MAX_PLAYERS, MIN_PLAYERS_TO_START
from logging_config import get_logger
from messages import (
    DiscardMessage,
    JoinMessage,
    MoveCardMessage,
    SlotMessage,
    SwapCardsMessage,
    ToggleHardModeMessage,
)
from room import Room

logger = get_logger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    room: Room

    @property
    def player_id(self) -> str:
        # A seated player is identified by the connection that joined.
        return self.connection_id


async def send_error(ctx: ConnectionContext, message: str) -> None:
    """Reply to the sender only; state is left untouched."""
    await ctx.room.send_to(ctx.connection_id, {"type": "error", "message": message})


# ---------------------------------------------------------------------------
# Lobby handlers
# ---------------------------------------------------------------------------

async def handle_join(data: dict, ctx: ConnectionContext) -> None:
    msg = JoinMessage.model_validate(data)
    room = ctx.room

    async with room.lock:
        state = room.state
        if state.game_started:
            await send_error(ctx, "Game already started")
            return

        if len(state.players) >= MAX_PLAYERS:
            await send_error(ctx, "Room is full")
            return

        player = state.add_player(ctx.player_id, (msg.name or "").strip() or "Player")
        logger.info(f"{player.name} joined room {room.room_id} ({len(state.players)} seated)")

        await room.broadcast({
            "type": "playerJoined",
            "player": player.to_dict(),
            "hostId": state.host_id,
            "players": state.players_to_list(),
        })


async def leave_table(ctx: ConnectionContext) -> None:
    """Unseat the connection's player; shared by the leave message and socket close."""
    room = ctx.room
    async with room.lock:
        player = room.state.remove_player(ctx.player_id)
        if player is None:
            return

        logger.info(f"{player.name} left room {room.room_id}")
        await room.broadcast({
            "type": "playerLeft",
            "playerId": player.id,
            "hostId": room.state.host_id,
            "players": room.state.players_to_list(),
        })


async def handle_leave(data: dict, ctx: ConnectionContext) -> None:
    await leave_table(ctx)


async def handle_toggle_hard_mode(data: dict, ctx: ConnectionContext) -> None:
    msg = ToggleHardModeMessage.model_validate(data)
    room = ctx.room

    async with room.lock:
        state = room.state
        if not state.is_host(ctx.player_id) or state.game_started:
            return

        state.set_hard_mode(msg.enabled)
        await room.broadcast({
            "type": "hardModeChanged",
            "hardMode": state.hard_mode,
            "slotCount": state.slot_count,
            "players": state.players_to_list(),
        })


# ---------------------------------------------------------------------------
# Game lifecycle handlers
# ---------------------------------------------------------------------------

async def handle_start(data: dict, ctx: ConnectionContext) -> None:
    room = ctx.room

    async with room.lock:
        state = room.state
        if not state.is_host(ctx.player_id) or state.game_started:
            return

        if len(state.players) < MIN_PLAYERS_TO_START:
            await send_error(ctx, f"Need at least {MIN_PLAYERS_TO_START} players")
            return

        state.start_game()
        logger.info(
            f"Game started in room {room.room_id} with {len(state.players)} players "
            f"(hard_mode={state.hard_mode})"
        )

        await room.broadcast({
            "type": "gameStarted",
            "deck": state.deck.to_list(),
            "players": state.players_to_list(),
            "hardMode": state.hard_mode,
            "slotCount": state.slot_count,
        })


async def handle_reset(data: dict, ctx: ConnectionContext) -> None:
    room = ctx.room

    async with room.lock:
        state = room.state
        state.reset()
        logger.info(f"Room {room.room_id} reset")

        await room.broadcast({
            "type": "gameReset",
            "deck": state.deck.to_list(),
            "players": state.players_to_list(),
            "discardHistory": [],
            "hardMode": state.hard_mode,
            "slotCount": state.slot_count,
        })


# ---------------------------------------------------------------------------
# Card action handlers
# ---------------------------------------------------------------------------

async def handle_draw(data: dict, ctx: ConnectionContext) -> None:
    room = ctx.room

    async with room.lock:
        state = room.state
        player = state.get_player(ctx.player_id)
        if player is None or state.deck.cards_remaining() == 0:
            return

        if player.first_empty_slot() is None:
            await send_error(ctx, "No empty slot!")
            return

        result = state.draw_card(player.id)
        top = state.deck.top_card()

        await room.broadcast({
            "type": "cardDrawn",
            "playerId": player.id,
            "slotIndex": result.slot_index,
            "card": result.card.to_dict(),
            "deckCount": state.deck.cards_remaining(),
            "topCard": top.to_dict() if top else None,
            "players": state.players_to_list(),
        })


async def handle_flip(data: dict, ctx: ConnectionContext) -> None:
    msg = SlotMessage.model_validate(data)
    room = ctx.room

    async with room.lock:
        is_flipped = room.state.flip_card(ctx.player_id, msg.slot_index)
        if is_flipped is None:
            return

        await room.broadcast({
            "type": "cardFlipped",
            "playerId": ctx.player_id,
            "slotIndex": msg.slot_index,
            "isFlipped": is_flipped,
        })


async def handle_move_card(data: dict, ctx: ConnectionContext) -> None:
    msg = MoveCardMessage.model_validate(data)
    room = ctx.room

    async with room.lock:
        card = room.state.move_card(msg.from_player_id, msg.from_slot, msg.to_player_id, msg.to_slot)
        if card is None:
            logger.debug(
                f"Rejected move {msg.from_player_id}[{msg.from_slot}] -> "
                f"{msg.to_player_id}[{msg.to_slot}]"
            )
            return

        await room.broadcast({
            "type": "cardMoved",
            "fromPlayerId": msg.from_player_id,
            "fromSlot": msg.from_slot,
            "toPlayerId": msg.to_player_id,
            "toSlot": msg.to_slot,
            "card": card.to_dict(),
            "players": room.state.players_to_list(),
        })


async def handle_swap_cards(data: dict, ctx: ConnectionContext) -> None:
    msg = SwapCardsMessage.model_validate(data)
    room = ctx.room

    async with room.lock:
        if not room.state.swap_cards(msg.player_id):
            return

        player = room.state.get_player(msg.player_id)
        await room.broadcast({
            "type": "cardsSwapped",
            "playerId": player.id,
            "cards": player.to_dict()["cards"],
        })


async def handle_discard(data: dict, ctx: ConnectionContext) -> None:
    msg = DiscardMessage.model_validate(data)
    room = ctx.room

    async with room.lock:
        state = room.state
        result = state.discard_card(msg.player_id, msg.slot_index)
        if result is None:
            return

        player = result.player
        if result.game_over:
            logger.info(f"{player.name} reached {result.penalties} penalties in room {room.room_id}")

        await room.broadcast({
            "type": "cardDiscarded",
            "playerId": player.id,
            "slotIndex": msg.slot_index,
            "penalties": result.penalties,
            "discardHistory": state.history_to_list(),
            "players": state.players_to_list(),
            "gameOver": result.game_over,
            "loserName": player.name if result.game_over else None,
        })


async def handle_ping(data: dict, ctx: ConnectionContext) -> None:
    await ctx.room.send_to(ctx.connection_id, {"type": "pong"})


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

HANDLERS = {
    "join": handle_join,
    "leave": handle_leave,
    "start": handle_start,
    "draw": handle_draw,
    "flip": handle_flip,
    "moveCard": handle_move_card,
    "swapCards": handle_swap_cards,
    "discard": handle_discard,
    "reset": handle_reset,
    "toggleHardMode": handle_toggle_hard_mode,
    "ping": handle_ping,
}


async def dispatch_message(raw: str, ctx: ConnectionContext) -> Optional[str]:
    """
    Decode one inbound frame and run its handler.

    Malformed frames (bad JSON, non-object payloads, failed validation) and
    unknown message types are logged and dropped without a reply.

    Returns:
        The handled message type, or None if the frame was dropped.
    """
    log = logger.with_context(room_id=ctx.room.room_id, connection_id=ctx.connection_id)

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        log.warning(f"Dropping unparseable message: {e}")
        return None

    if not isinstance(data, dict):
        log.warning(f"Dropping non-object message: {type(data).__name__}")
        return None

    msg_type = data.get("type")
    if not isinstance(msg_type, str):
        log.warning(f"Dropping message with non-string type: {type(msg_type).__name__}")
        return None

    handler = HANDLERS.get(msg_type)
    if handler is None:
        log.warning(f"Dropping unknown message type: {msg_type!r}")
        return None

    try:
        await handler(data, ctx)
    except ValidationError as e:
        log.warning(f"Dropping malformed {msg_type} message: {e.error_count()} invalid field(s)")
        return None

    return msg_type
