"""
Matchmaking service for Durak.

Keeps a FIFO queue of participants waiting for an opponent. As soon as
two are waiting, the two longest-waiting entries are paired into a new
session, registered with the RoomManager and dealt.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from game import Game, GameOptions
from room import Room, RoomManager

logger = logging.getLogger(__name__)


class DuplicateJoinPolicy:
    """How a second join from an already-queued connection is handled."""
    IGNORE = "ignore"
    REJECT = "reject"


@dataclass
class QueuedPlayer:
    """A participant waiting in the matchmaking queue."""
    player_id: str
    player_name: str
    websocket: Any
    queued_at: float = field(default_factory=time.time)


@dataclass
class MatchmakingConfig:
    """Configuration for the matchmaking queue."""
    duplicate_join_policy: str = DuplicateJoinPolicy.IGNORE
    game_options: GameOptions = field(default_factory=GameOptions)


@dataclass
class JoinResult:
    """
    Outcome of a join request.

    Exactly one of `room` (a match was made) or `waiting` is meaningful;
    `rejected` is set when the request was refused.
    """
    room: Optional[Room] = None
    waiting: bool = False
    rejected: bool = False
    reason: str = ""


class MatchmakingService:
    """
    Pairs waiting participants into sessions.

    The queue is process-wide shared state; all access happens on the
    event loop without awaiting in between, so each join runs to
    completion before the next.
    """

    def __init__(self, room_manager: RoomManager, config: Optional[MatchmakingConfig] = None):
        self.room_manager = room_manager
        self.config = config or MatchmakingConfig()
        self._queue: list[QueuedPlayer] = []

    def join(self, player_id: str, player_name: str, websocket: Any) -> JoinResult:
        """
        Add a participant to the queue and pair if possible.

        Args:
            player_id: Connection identity.
            player_name: Display name.
            websocket: Connection for outbound events.

        Returns:
            JoinResult describing the match, the wait, or the rejection.
        """
        room = self.room_manager.find_player_room(player_id)
        if room:
            if not room.game.ended:
                return JoinResult(rejected=True, reason="Already in a game")
            # Seat in a finished game awaiting retirement; free it up.
            self.room_manager.remove_room(room.code)

        if self.is_queued(player_id):
            if self.config.duplicate_join_policy == DuplicateJoinPolicy.REJECT:
                logger.debug(f"Rejected duplicate join from {player_id[:8]}")
                return JoinResult(rejected=True, reason="Already waiting for an opponent")
            logger.debug(f"Ignoring duplicate join from {player_id[:8]}")
            return JoinResult(waiting=True)

        self._queue.append(QueuedPlayer(
            player_id=player_id,
            player_name=player_name,
            websocket=websocket,
        ))
        logger.info(f"Player {player_name} ({player_id[:8]}) joined queue (pos={len(self._queue)})")

        if len(self._queue) < 2:
            return JoinResult(waiting=True)

        first = self._queue.pop(0)
        second = self._queue.pop(0)
        return JoinResult(room=self._create_match(first, second))

    def _create_match(self, first: QueuedPlayer, second: QueuedPlayer) -> Room:
        """Create, register and deal a session for two queued players."""
        room = Room(game=Game(options=self.config.game_options))
        room.add_player(first.player_id, first.player_name, first.websocket)
        room.add_player(second.player_id, second.player_name, second.websocket)
        self.room_manager.add_room(room)
        room.game.start_game()

        logger.info(
            f"Game {room.code} started with players "
            f"{first.player_name} and {second.player_name} "
            f"(trump={room.game.trump_suit.value})"
        )
        return room

    def leave_queue(self, player_id: str) -> bool:
        """Remove a participant from the queue."""
        for i, queued in enumerate(self._queue):
            if queued.player_id == player_id:
                del self._queue[i]
                logger.info(f"Player {queued.player_name} ({player_id[:8]}) left queue")
                return True
        return False

    def is_queued(self, player_id: str) -> bool:
        return any(q.player_id == player_id for q in self._queue)

    def queue_size(self) -> int:
        return len(self._queue)

    def get_position(self, player_id: str) -> int:
        """Get a player's position in the queue (1-indexed, 0 if absent)."""
        for i, queued in enumerate(self._queue):
            if queued.player_id == player_id:
                return i + 1
        return 0
