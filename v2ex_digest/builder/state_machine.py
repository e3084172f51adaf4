"""Digest lifecycle state machine for one (channel, period)."""

from enum import Enum, auto
from typing import ClassVar

import structlog


logger = structlog.get_logger()


class DigestState(Enum):
    """Digest lifecycle states.

    State transitions:
        PENDING -> READY: Enough qualifying candidates accumulated
        READY -> PUBLISHED: Digest written and markers recorded
        PUBLISHED: Terminal, never left by normal operation
    """

    PENDING = auto()
    READY = auto()
    PUBLISHED = auto()


class BuildStateError(Exception):
    """Raised when an invalid digest state transition is attempted."""

    def __init__(self, from_state: DigestState, to_state: DigestState) -> None:
        """Initialize the error.

        Args:
            from_state: The current state.
            to_state: The attempted target state.
        """
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid digest state transition: {from_state.name} -> {to_state.name}"
        )


class DigestStateMachine:
    """Enforces the Pending -> Ready -> Published lifecycle."""

    VALID_TRANSITIONS: ClassVar[dict[DigestState, set[DigestState]]] = {
        DigestState.PENDING: {DigestState.READY},
        DigestState.READY: {DigestState.PUBLISHED},
        DigestState.PUBLISHED: set(),  # Terminal state
    }

    def __init__(
        self,
        channel: str,
        period: str,
        initial: DigestState = DigestState.PENDING,
    ) -> None:
        """Initialize the state machine.

        Args:
            channel: Publication channel.
            period: Period key.
            initial: Starting state (PUBLISHED when a marker already exists).
        """
        self._state = initial
        self._log = logger.bind(component="builder", channel=channel, period=period)

    @property
    def state(self) -> DigestState:
        """Get the current state."""
        return self._state

    def can_transition(self, to_state: DigestState) -> bool:
        """Check if a transition to the given state is valid."""
        return to_state in self.VALID_TRANSITIONS.get(self._state, set())

    def transition(self, to_state: DigestState) -> None:
        """Transition to a new state.

        Raises:
            BuildStateError: If the transition is invalid.
        """
        if not self.can_transition(to_state):
            self._log.error(
                "invariant_violation",
                error_type="illegal_state_transition",
                from_state=self._state.name,
                to_state=to_state.name,
            )
            raise BuildStateError(self._state, to_state)

        old_state = self._state
        self._state = to_state
        self._log.info(
            "digest_state_transition",
            from_state=old_state.name,
            to_state=to_state.name,
        )

    def is_terminal(self) -> bool:
        """Check if the digest was published."""
        return self._state == DigestState.PUBLISHED
