"""State machine for a single HTTP export invocation."""

from enum import Enum

import structlog


logger = structlog.get_logger()


class ExportState(str, Enum):
    """State of one export invocation.

    - VALIDATING: Checking flag combinations
    - RESOLVING_SECRETS: Checking secret fields and fetching the secret
    - RESOLVING_URL: Expanding and parsing the destination URL
    - REGISTERING_METRICS: Getting or creating destination instruments
    - SENDING: HTTP request in progress
    - SUCCEEDED: 2xx response handled
    - FAILED_CONTINUING: Export failed, pipeline continues with input data
    - FAILED_PERSISTING: Export failed, payload handed to store-and-forward
    - FAILED_HALTING: Failed, pipeline stops without persistence
    """

    VALIDATING = "VALIDATING"
    RESOLVING_SECRETS = "RESOLVING_SECRETS"
    RESOLVING_URL = "RESOLVING_URL"
    REGISTERING_METRICS = "REGISTERING_METRICS"
    SENDING = "SENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED_CONTINUING = "FAILED_CONTINUING"
    FAILED_PERSISTING = "FAILED_PERSISTING"
    FAILED_HALTING = "FAILED_HALTING"


TERMINAL_STATES = frozenset(
    {
        ExportState.SUCCEEDED,
        ExportState.FAILED_CONTINUING,
        ExportState.FAILED_PERSISTING,
        ExportState.FAILED_HALTING,
    }
)

# Valid state transitions
_VALID_TRANSITIONS: dict[ExportState, set[ExportState]] = {
    ExportState.VALIDATING: {
        ExportState.RESOLVING_SECRETS,
        ExportState.FAILED_HALTING,
    },
    ExportState.RESOLVING_SECRETS: {
        ExportState.RESOLVING_URL,
        ExportState.FAILED_HALTING,
    },
    ExportState.RESOLVING_URL: {
        ExportState.REGISTERING_METRICS,
        ExportState.FAILED_HALTING,
    },
    ExportState.REGISTERING_METRICS: {
        ExportState.SENDING,
        ExportState.FAILED_HALTING,
    },
    ExportState.SENDING: {
        ExportState.SUCCEEDED,
        ExportState.FAILED_CONTINUING,
        ExportState.FAILED_PERSISTING,
        ExportState.FAILED_HALTING,
    },
    ExportState.SUCCEEDED: set(),  # Terminal state
    ExportState.FAILED_CONTINUING: set(),  # Terminal state
    ExportState.FAILED_PERSISTING: set(),  # Terminal state
    ExportState.FAILED_HALTING: set(),  # Terminal state
}


class ExportStateTransitionError(Exception):
    """Raised when an illegal state transition is attempted."""

    def __init__(
        self,
        pipeline_id: str,
        from_state: ExportState,
        to_state: ExportState,
    ) -> None:
        """Initialize the transition error.

        Args:
            pipeline_id: Identifier of the pipeline.
            from_state: Current state.
            to_state: Attempted target state.
        """
        self.pipeline_id = pipeline_id
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Illegal export state transition in pipeline '{pipeline_id}': "
            f"{from_state.value} -> {to_state.value}"
        )


class ExportStateMachine:
    """Manages state transitions for one export invocation.

    Enforces valid transitions and logs all state changes.
    """

    def __init__(
        self,
        pipeline_id: str,
        log: structlog.stdlib.BoundLogger | None = None,
        initial_state: ExportState = ExportState.VALIDATING,
    ) -> None:
        """Initialize the state machine.

        Args:
            pipeline_id: Identifier for the pipeline.
            log: Bound logger to report transitions on.
            initial_state: Starting state.
        """
        self._pipeline_id = pipeline_id
        self._state = initial_state
        self._log = log or logger.bind(pipeline_id=pipeline_id)

    @property
    def state(self) -> ExportState:
        """Get the current state."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal."""
        return self._state in TERMINAL_STATES

    def can_transition_to(self, target: ExportState) -> bool:
        """Check if a transition to the target state is valid.

        Args:
            target: The target state.

        Returns:
            True if the transition is valid.
        """
        return target in _VALID_TRANSITIONS.get(self._state, set())

    def transition_to(self, target: ExportState) -> None:
        """Transition to a new state.

        Args:
            target: The target state.

        Raises:
            ExportStateTransitionError: If the transition is invalid.
        """
        if not self.can_transition_to(target):
            error = ExportStateTransitionError(
                pipeline_id=self._pipeline_id,
                from_state=self._state,
                to_state=target,
            )
            self._log.error(
                "illegal_state_transition",
                from_state=self._state.value,
                to_state=target.value,
            )
            raise error

        old_state = self._state
        self._state = target

        self._log.debug(
            "state_transition",
            from_state=old_state.value,
            to_state=target.value,
        )
