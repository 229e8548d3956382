"""
Process-scoped server state for the Durak game server.

ServerContext owns the session registry, the matchmaking queue and the
stats ledger, and implements the flows that span them: broadcasting
state, finishing a game and handling disconnects. main.py builds one
instance; tests build their own.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from config import ServerConfig
from game import EndReason, GameOptions, GameOutcome
from room import Room, RoomManager
from services.matchmaking import MatchmakingConfig, MatchmakingService
from services.stats_service import StatsService

logger = logging.getLogger(__name__)


@dataclass
class ServerContext:
    """
    Shared dependencies passed to every handler.

    Attributes:
        config: Active server configuration.
        room_manager: Registry of active sessions.
        matchmaking: Queue of participants waiting for an opponent.
        stats: Win/loss ledger, achievements and leaderboard.
    """

    config: ServerConfig
    room_manager: RoomManager = field(default_factory=RoomManager)
    matchmaking: Optional[MatchmakingService] = None
    stats: Optional[StatsService] = None

    def __post_init__(self) -> None:
        if self.matchmaking is None:
            self.matchmaking = MatchmakingService(
                self.room_manager,
                MatchmakingConfig(
                    duplicate_join_policy=self.config.DUPLICATE_JOIN_POLICY,
                    game_options=GameOptions.from_config(self.config.rules),
                ),
            )
        if self.stats is None:
            self.stats = StatsService(self.config.leaderboard)

    # -------------------------------------------------------------------------
    # Outbound state
    # -------------------------------------------------------------------------

    async def broadcast_game_state(self, room: Room) -> None:
        """Send each participant their own view of the game."""
        await room.send_game_state("game_state")

    # -------------------------------------------------------------------------
    # Game end
    # -------------------------------------------------------------------------

    async def finish_game(self, room: Room) -> None:
        """
        Record results and announce the end of a finished game.

        Safe to call more than once; results are recorded only the first
        time. The session is retired after the configured grace delay.
        """
        outcome = room.game.outcome
        if outcome is None or room.results_recorded:
            return
        room.results_recorded = True

        message = self._record_outcome(room, outcome)
        await room.broadcast(message)

        logger.info(
            f"Game {room.code} ended ({outcome.reason.value}), "
            f"winner={message['winner_name'] or 'draw'}"
        )
        self.room_manager.schedule_removal(room.code, self.config.SESSION_RETIRE_DELAY_SECONDS)

    def _record_outcome(self, room: Room, outcome: GameOutcome) -> dict:
        """Update the ledger for both participants and build the game_ended message."""
        winner = room.game.get_player(outcome.winner_id) if outcome.winner_id else None
        loser = room.game.get_player(outcome.loser_id) if outcome.loser_id else None

        message = {
            "type": "game_ended",
            "winner": outcome.winner_id,
            "winner_name": winner.name if winner else None,
            "reason": outcome.reason.value,
            "draw": outcome.is_draw,
            "final_hand_sizes": dict(outcome.final_hand_sizes),
            "winner_stats": None,
            "loser_stats": None,
            "winner_achievements": [],
            "loser_achievements": [],
        }

        if not (winner and loser):
            # Draws are not counted in the ledger
            return message

        winner_new = self.stats.record_result(
            winner.name,
            True,
            perfect_game=outcome.perfect_game,
            comeback_win=outcome.comeback_win,
        )
        loser_new = self.stats.record_result(loser.name, False)

        message.update({
            "winner_stats": self.stats.get_player_stats(winner.name).to_dict(),
            "loser_stats": self.stats.get_player_stats(loser.name).to_dict(),
            "winner_achievements": [a.to_dict() for a in winner_new],
            "loser_achievements": [a.to_dict() for a in loser_new],
        })
        return message

    # -------------------------------------------------------------------------
    # Disconnects
    # -------------------------------------------------------------------------

    async def handle_disconnect(self, player_id: str) -> None:
        """
        Handle a participant's connection going away.

        Removes them from the queue, ends a running game in the opponent's
        favour and retires the session. Repeated calls are no-ops.
        """
        self.matchmaking.leave_queue(player_id)

        room = self.room_manager.find_player_room(player_id)
        if not room:
            return

        room_player = room.get_player(player_id)
        if room_player is None or not room_player.attached:
            return

        async with room.game_lock:
            room.detach(player_id)
            outcome = room.game.player_disconnected(player_id)

            if outcome and outcome.reason == EndReason.OPPONENT_DISCONNECTED:
                await room.broadcast({
                    "type": "player_disconnected",
                    "player_id": player_id,
                    "player_name": room_player.name,
                })
                await self.finish_game(room)

        logger.info(f"Player {room_player.name} ({player_id[:8]}) left game {room.code}")

        if room.attached_count() == 0:
            self.room_manager.remove_room(room.code)

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    async def close_all_websockets(self) -> None:
        """Close all active WebSocket connections gracefully."""
        for room in list(self.room_manager.rooms.values()):
            for player in room.players.values():
                if player.websocket:
                    try:
                        await player.websocket.close(code=1001, reason="Server shutting down")
                    except Exception as e:
                        logger.debug(f"Close failed for {player.id[:8]}: {e}")
        self.room_manager.cancel_pending()
        self.room_manager.rooms.clear()
        logger.info("All WebSocket connections closed")
