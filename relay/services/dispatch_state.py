from enum import Enum


class DispatchState(str, Enum):
    RECEIVED = "received"
    FILTERED = "filtered"
    PARSED = "parsed"
    AUTHORIZED = "authorized"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"


class DispatchOutcome(str, Enum):
    FILTER_REJECTED = "filter_rejected"
    FREEFORM = "freeform"
    UNKNOWN_COMMAND = "unknown_command"
    UNAUTHORIZED = "unauthorized"
    COMPLETED = "completed"
    HANDLER_FAULT = "handler_fault"


# Every terminal branch lands in COMPLETED; the outcome says which branch it was.
VALID_TRANSITIONS = {
    DispatchState.RECEIVED: [DispatchState.FILTERED],
    DispatchState.FILTERED: [DispatchState.PARSED, DispatchState.COMPLETED],
    DispatchState.PARSED: [DispatchState.AUTHORIZED, DispatchState.DISPATCHED, DispatchState.COMPLETED],
    DispatchState.AUTHORIZED: [DispatchState.DISPATCHED, DispatchState.COMPLETED],
    DispatchState.DISPATCHED: [DispatchState.COMPLETED],
    DispatchState.COMPLETED: [],
}

# Outcomes after which the conversational fallback must not run.
HANDLED_OUTCOMES = {
    DispatchOutcome.FILTER_REJECTED,
    DispatchOutcome.UNKNOWN_COMMAND,
    DispatchOutcome.UNAUTHORIZED,
    DispatchOutcome.COMPLETED,
    DispatchOutcome.HANDLER_FAULT,
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: DispatchState, to_state: DispatchState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def can_transition(from_state: DispatchState, to_state: DispatchState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: DispatchState, to_state: DispatchState) -> DispatchState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def is_handled(outcome: DispatchOutcome) -> bool:
    return outcome in HANDLED_OUTCOMES
