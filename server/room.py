"""
Session registry for Durak games.

This module tracks active sessions and the WebSocket connections of the
two participants seated in each.

A Room contains:
    - The Game instance with the authoritative session state
    - A RoomPlayer per participant (connection-level info)
    - A lock serializing every mutation of the game
    - Whether the finished game's results have been recorded
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from game import Game

logger = logging.getLogger(__name__)


@dataclass
class RoomPlayer:
    """
    A participant's connection within a session.

    This is separate from game.Player - RoomPlayer tracks the transport
    side (WebSocket), while game.Player tracks the hand.

    Attributes:
        id: Connection identity (also the game.Player id).
        name: Display name.
        websocket: Connection used to push events, None once detached.
        left: Set once the connection has gone; the seat no longer
            resolves to this session.
    """

    id: str
    name: str
    websocket: Optional[Any] = None
    left: bool = False

    @property
    def attached(self) -> bool:
        return self.websocket is not None


@dataclass
class Room:
    """
    One active Durak session.

    Attributes:
        game: The Game instance containing actual game state.
        players: Dict mapping player IDs to RoomPlayer objects.
        game_lock: asyncio.Lock for serializing game mutations.
        results_recorded: Set once the ledger has been updated for this game.
    """

    game: Game
    players: dict[str, RoomPlayer] = field(default_factory=dict)
    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    results_recorded: bool = False

    @property
    def code(self) -> str:
        return self.game.game_id

    def add_player(self, player_id: str, name: str, websocket: Any) -> RoomPlayer:
        """
        Seat a participant in both the room and the game.

        Returns:
            The created RoomPlayer.
        """
        room_player = RoomPlayer(id=player_id, name=name, websocket=websocket)
        self.players[player_id] = room_player
        self.game.add_player(player_id, name)
        return room_player

    def get_player(self, player_id: str) -> Optional[RoomPlayer]:
        """Get a player by ID, or None if not found."""
        return self.players.get(player_id)

    def detach(self, player_id: str) -> None:
        """Drop a participant's connection; the seat stays for the game record."""
        room_player = self.players.get(player_id)
        if room_player:
            room_player.websocket = None
            room_player.left = True

    def attached_count(self) -> int:
        """Number of participants still connected."""
        return sum(1 for p in self.players.values() if p.attached)

    async def broadcast(self, message: dict, exclude: Optional[str] = None) -> None:
        """
        Send a message to every connected participant.

        Args:
            message: JSON-serializable message dict.
            exclude: Optional player ID to skip.
        """
        for player_id in list(self.players):
            if player_id != exclude:
                await self.send_to(player_id, message)

    async def send_to(self, player_id: str, message: dict) -> None:
        """
        Send a message to a specific participant.

        Args:
            player_id: ID of the recipient player.
            message: JSON-serializable message dict.
        """
        player = self.players.get(player_id)
        if player and player.websocket:
            try:
                await player.websocket.send_json(message)
            except Exception as e:
                logger.debug(f"Send to {player_id[:8]} in {self.code} failed: {e}")

    async def send_game_state(self, message_type: str = "game_state") -> None:
        """Send every participant their own view of the game."""
        for player_id in list(self.players):
            await self.send_to(player_id, {
                "type": message_type,
                "game_state": self.game.get_state(player_id),
            })


class RoomManager:
    """
    Registry of active sessions.

    Provides registration, lookup by participant, and immediate or
    delayed retirement of sessions.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self.rooms: dict[str, Room] = {}
        self._pending_removals: dict[str, asyncio.Task] = {}

    def add_room(self, room: Room) -> Room:
        """Register a session."""
        self.rooms[room.code] = room
        logger.info(f"Session {room.code} registered")
        return room

    def get_room(self, code: str) -> Optional[Room]:
        """Get a session by its ID."""
        return self.rooms.get(code)

    def find_player_room(self, player_id: str) -> Optional[Room]:
        """
        Find the session a participant is seated in.

        Seats whose connection has left are skipped, so a departed
        connection can neither act in nor be matched back to the session.

        Args:
            player_id: The player ID to search for.

        Returns:
            The Room containing the player, or None.
        """
        for room in self.rooms.values():
            seat = room.players.get(player_id)
            if seat and not seat.left:
                return room
        return None

    def remove_room(self, code: str) -> None:
        """
        Retire a session immediately.

        Also cancels any pending delayed retirement for it.
        """
        task = self._pending_removals.pop(code, None)
        if task and task is not asyncio.current_task():
            task.cancel()
        if self.rooms.pop(code, None) is not None:
            logger.info(f"Session {code} retired")

    def schedule_removal(self, code: str, delay: float) -> Optional[asyncio.Task]:
        """
        Retire a session after `delay` seconds.

        Scheduling twice for the same session keeps the first timer.

        Returns:
            The timer task, or None if the session is unknown.
        """
        if code not in self.rooms:
            return None
        if code in self._pending_removals:
            return self._pending_removals[code]

        async def _remove_later():
            await asyncio.sleep(delay)
            self.remove_room(code)

        task = asyncio.create_task(_remove_later())
        self._pending_removals[code] = task
        return task

    def cancel_pending(self) -> None:
        """Cancel all delayed retirements (shutdown)."""
        for task in self._pending_removals.values():
            task.cancel()
        self._pending_removals.clear()
