"""Game phase definitions and transitions."""

from enum import Enum, auto
from dataclasses import dataclass


class GamePhase(Enum):
    """Phases of a moderated game."""
    SETUP = auto()      # Roles assigned, no night played yet
    NIGHT = auto()      # Secret role actions are collected
    DAY = auto()        # Deaths announced, one execution at most
    GAME_OVER = auto()  # A winner was found


@dataclass
class PhaseState:
    """Current state within a phase."""
    phase: GamePhase
    round_number: int = 0  # Night/Day number (1, 2, 3...)
    executed: bool = False  # Whether today's execution was used

    @property
    def phase_name(self) -> str:
        """Get a human-readable phase name with round number."""
        if self.phase == GamePhase.NIGHT:
            return f"night_{self.round_number}"
        elif self.phase == GamePhase.DAY:
            return f"day_{self.round_number}"
        return self.phase.name.lower()


class PhaseManager:
    """Manages phase transitions and state."""

    def __init__(self):
        self.state = PhaseState(phase=GamePhase.SETUP, round_number=0)

    @property
    def phase(self) -> GamePhase:
        return self.state.phase

    @property
    def is_over(self) -> bool:
        return self.state.phase == GamePhase.GAME_OVER

    def start_night(self) -> PhaseState:
        """Advance to the next night.

        Returns:
            The new phase state. Unchanged once the game is over.
        """
        if self.is_over:
            return self.state
        self.state = PhaseState(
            phase=GamePhase.NIGHT,
            round_number=self.state.round_number + 1,
        )
        return self.state

    def start_day(self) -> PhaseState:
        """Move from the current night to its day."""
        if self.is_over:
            return self.state
        self.state = PhaseState(
            phase=GamePhase.DAY,
            round_number=self.state.round_number,
        )
        return self.state

    def mark_executed(self) -> None:
        self.state.executed = True

    def end_game(self) -> PhaseState:
        """End the game."""
        self.state = PhaseState(
            phase=GamePhase.GAME_OVER,
            round_number=self.state.round_number,
        )
        return self.state
