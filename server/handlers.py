"""WebSocket message handlers for the Durak card game.

Each handler corresponds to a single message type from the client.
Handlers are dispatched via the HANDLERS dict in main.py.

Illegal moves are not errors: the engine refuses them without changing
anything and the handler re-sends the actor a fresh game state.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from game import Card
from room import Room

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: Any
    player_id: str
    player_name: Optional[str] = None


def clean_text(value, max_length: int) -> str:
    """Coerce client text to a trimmed, bounded string."""
    if not isinstance(value, str):
        return ""
    return value.strip()[:max_length]


def current_room(ctx: ConnectionContext, server) -> Optional[Room]:
    """Look up the session the connection is seated in."""
    room = server.room_manager.find_player_room(ctx.player_id)
    if room is None:
        logger.debug(f"No active game for {ctx.player_id[:8]}")
    return room


async def send_error(ctx: ConnectionContext, message: str) -> None:
    await ctx.websocket.send_json({"type": "error", "message": message})


async def resend_state(room: Room, ctx: ConnectionContext) -> None:
    """Send the actor a fresh view after a refused action."""
    await room.send_to(ctx.player_id, {
        "type": "game_state",
        "game_state": room.game.get_state(ctx.player_id),
    })


# ---------------------------------------------------------------------------
# Lobby handlers
# ---------------------------------------------------------------------------

async def handle_join_game(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    player_name = clean_text(data.get("player_name"), server.config.MAX_NAME_LENGTH) or "Player"
    ctx.player_name = player_name

    result = server.matchmaking.join(ctx.player_id, player_name, ctx.websocket)

    if result.rejected:
        await send_error(ctx, result.reason)
        return

    if result.waiting:
        await ctx.websocket.send_json({
            "type": "waiting_for_opponent",
            "position": server.matchmaking.get_position(ctx.player_id),
        })
        return

    await result.room.send_game_state("game_started")


# ---------------------------------------------------------------------------
# Turn action handlers
# ---------------------------------------------------------------------------

async def handle_attack(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    room = current_room(ctx, server)
    if not room:
        return

    card = Card.from_dict(data.get("card"))
    if card is None:
        await send_error(ctx, "Invalid card")
        return

    async with room.game_lock:
        if not room.game.attack(ctx.player_id, card):
            logger.debug(f"Rejected attack {card} by {ctx.player_id[:8]} in {room.code}")
            await resend_state(room, ctx)
            return

        await room.broadcast({
            "type": "game_update",
            "player_id": ctx.player_id,
            "action": "attack",
            "card": card.to_dict(),
        })
        await server.broadcast_game_state(room)


async def handle_defend(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    room = current_room(ctx, server)
    if not room:
        return

    card = Card.from_dict(data.get("card"))
    attack_index = data.get("attack_index")
    if card is None or isinstance(attack_index, bool) or not isinstance(attack_index, int):
        await send_error(ctx, "Invalid defense")
        return

    async with room.game_lock:
        if not room.game.defend(ctx.player_id, attack_index, card):
            logger.debug(
                f"Rejected defense {card} on #{attack_index} by {ctx.player_id[:8]} in {room.code}"
            )
            await resend_state(room, ctx)
            return

        await room.broadcast({
            "type": "game_update",
            "player_id": ctx.player_id,
            "action": "defend",
            "attack_index": attack_index,
            "card": card.to_dict(),
        })
        await server.broadcast_game_state(room)


async def handle_end_turn(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    room = current_room(ctx, server)
    if not room:
        return

    async with room.game_lock:
        if not room.game.end_turn(ctx.player_id):
            logger.debug(f"Rejected end_turn by {ctx.player_id[:8]} in {room.code}")
            await resend_state(room, ctx)
            return

        await server.broadcast_game_state(room)

        if room.game.ended:
            await server.finish_game(room)


# ---------------------------------------------------------------------------
# Stats handlers
# ---------------------------------------------------------------------------

async def handle_get_player_stats(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    name = clean_text(data.get("player_name"), server.config.MAX_NAME_LENGTH) or ctx.player_name
    if not name:
        await send_error(ctx, "Player name required")
        return

    await ctx.websocket.send_json({
        "type": "player_stats",
        "player_name": name,
        "stats": server.stats.get_player_stats(name).to_dict(),
    })


async def handle_get_leaderboard(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    await ctx.websocket.send_json({
        "type": "leaderboard",
        "entries": [entry.to_dict() for entry in server.stats.get_leaderboard()],
    })


async def handle_get_achievements(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    name = clean_text(data.get("player_name"), server.config.MAX_NAME_LENGTH) or ctx.player_name
    if not name:
        await send_error(ctx, "Player name required")
        return

    await ctx.websocket.send_json({
        "type": "achievements",
        "player_name": name,
        "achievements": [a.to_dict() for a in server.stats.get_player_achievements(name)],
    })


# ---------------------------------------------------------------------------
# Chat / Leave handlers
# ---------------------------------------------------------------------------

async def handle_chat_message(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    room = current_room(ctx, server)
    if not room:
        return

    room_player = room.get_player(ctx.player_id)
    message = clean_text(data.get("message"), server.config.CHAT_MAX_LENGTH)
    if not room_player or not message:
        return

    await room.broadcast({
        "type": "chat_message",
        "player_name": room_player.name,
        "message": message,
        "is_own_message": False,
    }, exclude=ctx.player_id)
    await room.send_to(ctx.player_id, {
        "type": "chat_message",
        "player_name": room_player.name,
        "message": message,
        "is_own_message": True,
    })


async def handle_leave_game(data: dict, ctx: ConnectionContext, *, server, **kw) -> None:
    await server.handle_disconnect(ctx.player_id)


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "join_game": handle_join_game,
    "attack": handle_attack,
    "defend": handle_defend,
    "end_turn": handle_end_turn,
    "get_player_stats": handle_get_player_stats,
    "get_leaderboard": handle_get_leaderboard,
    "get_achievements": handle_get_achievements,
    "chat_message": handle_chat_message,
    "leave_game": handle_leave_game,
}
