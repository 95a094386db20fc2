"""Transfer run state machine.

States:
    IDLE -> RESOLVING -> PLANNING -> NEGOTIATING -> TRANSFERRING -> COMPLETED
    IDLE -> TRANSFERRING (resume from checkpoint)                -> SUSPENDED
    any non-terminal state                                        -> FAILED

All state transitions are validated.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum


class TransferState(str, Enum):
    """State of a transfer run."""

    IDLE = "idle"
    RESOLVING = "resolving"
    PLANNING = "planning"
    NEGOTIATING = "negotiating"
    TRANSFERRING = "transferring"
    COMPLETED = "completed"
    SUSPENDED = "suspended"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {TransferState.COMPLETED, TransferState.SUSPENDED, TransferState.FAILED}
)

VALID_TRANSITIONS: dict[TransferState, set[TransferState]] = {
    TransferState.IDLE: {
        TransferState.RESOLVING,
        TransferState.TRANSFERRING,
        TransferState.FAILED,
    },
    TransferState.RESOLVING: {TransferState.PLANNING, TransferState.FAILED},
    TransferState.PLANNING: {TransferState.NEGOTIATING, TransferState.FAILED},
    TransferState.NEGOTIATING: {TransferState.TRANSFERRING, TransferState.FAILED},
    TransferState.TRANSFERRING: {
        TransferState.COMPLETED,
        TransferState.SUSPENDED,
        TransferState.FAILED,
    },
    TransferState.COMPLETED: set(),  # Terminal
    TransferState.SUSPENDED: set(),  # Terminal
    TransferState.FAILED: set(),  # Terminal
}


class InvalidTransitionError(Exception):
    """Raised when attempting invalid state transition."""


@dataclass
class TransferRun:
    """State of one engine invocation.

    Attributes:
        state: Current state.
        started_at: Wall-clock start of this invocation (budget reference).
        resumed: Whether the run continues a checkpointed transfer.
    """

    state: TransferState = TransferState.IDLE
    started_at: float = field(default_factory=time.time)
    resumed: bool = False

    def transition_to(self, new_state: TransferState) -> None:
        """Transition to a new state with validation."""
        if new_state not in VALID_TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Cannot transition from {self.state.name} to {new_state.name}"
            )
        self.state = new_state

    def fail(self) -> None:
        """Move to FAILED unless the run already ended."""
        if not self.is_terminal:
            self.transition_to(TransferState.FAILED)

    @property
    def is_terminal(self) -> bool:
        """Check if the run is in a terminal state."""
        return self.state in TERMINAL_STATES
