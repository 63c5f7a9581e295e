"""Episode contracts for single-player game simulations."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from typing import Any


class EpisodeState(str, enum.Enum):
    """Lifecycle states of one episode."""

    ALIVE = "alive"
    DEAD = "dead"
    TIMED_OUT = "timed_out"


class Episode(ABC):
    """Abstract interface for one deterministic game instance.

    An episode is owned by exactly one player at a time. It never consumes the
    player; players read its observations and push moves into it. Episodes must
    replay identically when driven by equivalent moves and an equivalently
    seeded random generator.
    """

    @abstractmethod
    def reset(self) -> None:
        """Return the episode to its initial state.

        Invariants:
            - Must fully reset counters and world state.
            - Must draw randomness only from the generator the episode owns.
        """

    @abstractmethod
    def move(self, action: Any) -> None:
        """Advance the episode by one turn.

        Args:
            action (Any): Move requested by the player.

        Invariants:
            - Terminal episodes ignore further moves.
            - Illegal moves are rejected with an exception, never corrected.
        """

    @abstractmethod
    def observe(self) -> list[float]:
        """Return the sensory encoding of the current state.

        Invariants:
            - Must not mutate episode state.
        """

    @property
    @abstractmethod
    def state(self) -> EpisodeState:
        """Current lifecycle state."""

    @property
    def is_terminal(self) -> bool:
        return self.state is not EpisodeState.ALIVE

    @property
    @abstractmethod
    def score(self) -> int:
        """Fitness signal accumulated so far in this episode."""
