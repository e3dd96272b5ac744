import pytest

from relay.services.dispatch_state import (
    DispatchOutcome,
    DispatchState,
    InvalidTransitionError,
    can_transition,
    is_handled,
    transition,
)


class TestValidTransitions:
    def test_received_to_filtered(self):
        assert transition(DispatchState.RECEIVED, DispatchState.FILTERED) == DispatchState.FILTERED

    def test_filtered_short_circuits_to_completed(self):
        assert transition(DispatchState.FILTERED, DispatchState.COMPLETED) == DispatchState.COMPLETED

    def test_parsed_skips_authorization_for_open_commands(self):
        assert transition(DispatchState.PARSED, DispatchState.DISPATCHED) == DispatchState.DISPATCHED

    def test_authorized_to_dispatched(self):
        assert transition(DispatchState.AUTHORIZED, DispatchState.DISPATCHED) == DispatchState.DISPATCHED


class TestInvalidTransitions:
    def test_received_cannot_skip_filter(self):
        with pytest.raises(InvalidTransitionError):
            transition(DispatchState.RECEIVED, DispatchState.PARSED)

    def test_completed_is_terminal(self):
        for state in DispatchState:
            assert not can_transition(DispatchState.COMPLETED, state)

    def test_same_state(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(DispatchState.PARSED, DispatchState.PARSED)
        assert "parsed -> parsed" in str(exc_info.value)


class TestOutcomes:
    def test_only_freeform_falls_through(self):
        assert not is_handled(DispatchOutcome.FREEFORM)
        for outcome in DispatchOutcome:
            if outcome != DispatchOutcome.FREEFORM:
                assert is_handled(outcome)
