"""
Unit tests for the ride status transition table.
"""
import pytest

from app.errors import InvalidTransitionError, ValidationError
from app.schemas.schemas import RideStatusEnum as S
from app.services.state_machine import (
    DRIVER_TARGETS, PASSENGER_TARGETS, TERMINAL_STATUSES, VALID_TRANSITIONS,
    ensure_progress, ensure_transition, is_valid_transition, paid_from_after, parse_status,
    progress_of,
)


class TestRideStateMachine:
    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(S)

    def test_requested_to_accepted(self):
        assert is_valid_transition(S.REQUESTED, S.ACCEPTED)

    def test_requested_to_pending(self):
        assert is_valid_transition(S.REQUESTED, S.PENDING)

    def test_assigned_to_accepted(self):
        assert is_valid_transition(S.ASSIGNED, S.ACCEPTED)

    def test_accepted_to_en_route_to_arrived_to_completed(self):
        assert is_valid_transition(S.ACCEPTED, S.EN_ROUTE)
        assert is_valid_transition(S.EN_ROUTE, S.ARRIVED)
        assert is_valid_transition(S.ARRIVED, S.COMPLETED)

    def test_payment_before_and_after_acceptance(self):
        assert is_valid_transition(S.PENDING, S.PAID)
        assert is_valid_transition(S.ACCEPTED, S.PAID)
        assert is_valid_transition(S.PAID, S.ACCEPTED)
        assert is_valid_transition(S.PAID, S.COMPLETED)

    def test_every_non_terminal_status_can_cancel(self):
        for status in set(S) - TERMINAL_STATUSES:
            assert is_valid_transition(status, S.CANCELLED), status

    def test_terminal_statuses_have_no_exits(self):
        for status in TERMINAL_STATUSES:
            for target in set(S) - {status}:
                assert not is_valid_transition(status, target)

    def test_same_status_is_allowed(self):
        assert is_valid_transition(S.ACCEPTED, S.ACCEPTED)
        assert is_valid_transition(S.COMPLETED, S.COMPLETED)

    def test_requested_cannot_jump_to_completed(self):
        assert not is_valid_transition(S.REQUESTED, S.COMPLETED)

    def test_driver_progress_does_not_go_backwards(self):
        assert not is_valid_transition(S.EN_ROUTE, S.ACCEPTED)
        assert not is_valid_transition(S.ARRIVED, S.EN_ROUTE)
        assert not is_valid_transition(S.ACCEPTED, S.REQUESTED)
        assert not is_valid_transition(S.ACCEPTED, S.ASSIGNED)

    def test_ensure_transition_raises_conflict(self):
        with pytest.raises(InvalidTransitionError) as exc:
            ensure_transition(S.COMPLETED, S.CANCELLED)
        assert exc.value.status_code == 409
        assert "completed" in exc.value.message


class TestPaidCheckpoint:
    def test_leaving_paid_cannot_rewind_progress(self):
        with pytest.raises(InvalidTransitionError):
            ensure_progress(S.PAID, S.EN_ROUTE, paid_from="arrived")
        with pytest.raises(InvalidTransitionError):
            ensure_progress(S.PAID, S.ACCEPTED, paid_from="en_route")
        with pytest.raises(InvalidTransitionError):
            ensure_progress(S.PAID, S.ASSIGNED, paid_from="accepted")

    def test_leaving_paid_moves_forward_from_recorded_progress(self):
        ensure_progress(S.PAID, S.COMPLETED, paid_from="accepted")
        ensure_progress(S.PAID, S.ARRIVED, paid_from="en_route")
        ensure_progress(S.PAID, S.ARRIVED, paid_from="arrived")
        ensure_progress(S.PAID, S.CANCELLED, paid_from="arrived")

    def test_paid_before_pickup_still_needs_a_driver(self):
        with pytest.raises(InvalidTransitionError):
            ensure_progress(S.PAID, S.COMPLETED, paid_from="requested")

    def test_unrecorded_progress_uses_the_paid_row(self):
        assert progress_of(S.PAID, None) == S.PAID
        ensure_progress(S.PAID, S.EN_ROUTE, paid_from=None)

    def test_non_paid_statuses_use_the_plain_table(self):
        assert progress_of(S.ARRIVED, "requested") == S.ARRIVED
        with pytest.raises(InvalidTransitionError):
            ensure_progress(S.ARRIVED, S.EN_ROUTE)

    def test_paid_from_is_recorded_and_cleared(self):
        assert paid_from_after(S.ARRIVED, S.PAID, None) == "arrived"
        assert paid_from_after(S.PAID, S.PAID, "arrived") == "arrived"
        assert paid_from_after(S.PAID, S.COMPLETED, "arrived") is None
        assert paid_from_after(S.ACCEPTED, S.EN_ROUTE, None) is None


class TestRoleTargets:
    def test_passenger_cannot_complete(self):
        assert S.COMPLETED not in PASSENGER_TARGETS

    def test_driver_can_complete(self):
        assert S.COMPLETED in DRIVER_TARGETS

    def test_driver_cannot_mark_paid(self):
        assert S.PAID not in DRIVER_TARGETS


class TestParseStatus:
    def test_known_value(self):
        assert parse_status("en_route") == S.EN_ROUTE

    def test_is_case_insensitive(self):
        assert parse_status(" Completed ") == S.COMPLETED

    @pytest.mark.parametrize("value", ["", None])
    def test_missing(self, value):
        with pytest.raises(ValidationError, match="Status is required"):
            parse_status(value)

    def test_unknown_value(self):
        with pytest.raises(ValidationError, match="Unknown status"):
            parse_status("teleported")
