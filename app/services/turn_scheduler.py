# app/services/turn_scheduler.py
import logging
from dataclasses import dataclass

from app.models.enums import GamePhase

logger = logging.getLogger("app.services.turn_scheduler")  # Logger for this module


@dataclass
class TurnAdvance:
    drawer_index: int
    round: int
    round_incremented: bool
    game_complete: bool


class TurnScheduler:
    """
    Drawer rotation over the roster order.

    Lobby -> RoundActive -> RoundEnding -> (RoundActive | GameComplete).
    A wrap back to drawer index 0 always increments the round.
    """

    def __init__(self, max_rounds: int):
        if max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.max_rounds = max_rounds
        self.phase = GamePhase.LOBBY
        self.drawer_index = 0
        self.round = 1

    def start(self, start_round: int = 1) -> int:
        """Drawer index 0 in `start_round`. A later round resumes a game whose sessions all went away."""
        if self.phase != GamePhase.LOBBY:
            raise RuntimeError(f"Cannot start from phase {self.phase.value}")
        if not 1 <= start_round <= self.max_rounds:
            raise ValueError(f"Cannot start in round {start_round} of {self.max_rounds}")
        self.phase = GamePhase.ROUND_ACTIVE
        self.drawer_index = 0
        self.round = start_round
        logger.info(f"Turn rotation started: drawer index 0, round {start_round}/{self.max_rounds}")
        return self.drawer_index

    def end_round(self) -> bool:
        """RoundActive -> RoundEnding. Returns False if no round was active."""
        if self.phase != GamePhase.ROUND_ACTIVE:
            return False
        self.phase = GamePhase.ROUND_ENDING
        return True

    def advance(self, player_count: int) -> TurnAdvance:
        """RoundEnding -> next turn, or GameComplete once the last round has wrapped."""
        if self.phase != GamePhase.ROUND_ENDING:
            raise RuntimeError(f"Cannot advance from phase {self.phase.value}")
        if player_count < 1:
            raise ValueError("Cannot rotate turns without players")

        next_index = (self.drawer_index + 1) % player_count
        round_incremented = next_index == 0
        if round_incremented:
            self.round += 1
        self.drawer_index = next_index

        if round_incremented and self.round > self.max_rounds:
            self.phase = GamePhase.GAME_COMPLETE
            logger.info(f"Turn rotation complete after {self.max_rounds} rounds")
        else:
            self.phase = GamePhase.ROUND_ACTIVE
            logger.debug(f"Next turn: drawer index {next_index}, round {self.round}/{self.max_rounds}")

        return TurnAdvance(
            drawer_index=self.drawer_index,
            round=self.round,
            round_incremented=round_incremented,
            game_complete=self.phase == GamePhase.GAME_COMPLETE,
        )
