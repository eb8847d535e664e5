"""Unit tests for the ride status state machine."""

import pytest

from src.domain.enums import RIDE_TRANSITIONS, BookingStatus, RideStatus
from src.domain.exceptions import InvalidTransition
from src.domain.ride_status import RideStatusMachine


@pytest.fixture
def machine() -> RideStatusMachine:
    return RideStatusMachine()


class TestValidate:
    @pytest.mark.parametrize(
        "current, requested",
        [
            (RideStatus.SCHEDULED, RideStatus.ON_ROUTE),
            (RideStatus.ON_ROUTE, RideStatus.ARRIVED),
            (RideStatus.ARRIVED, RideStatus.PASSENGER_ONBOARD),
            (RideStatus.PASSENGER_ONBOARD, RideStatus.COMPLETED),
        ],
    )
    def test_forward_edges_allowed(self, machine, current, requested):
        assert machine.validate(current, requested)

    @pytest.mark.parametrize(
        "current",
        [
            RideStatus.SCHEDULED,
            RideStatus.ON_ROUTE,
            RideStatus.ARRIVED,
            RideStatus.PASSENGER_ONBOARD,
        ],
    )
    def test_cancel_from_any_non_terminal(self, machine, current):
        assert machine.validate(current, RideStatus.CANCELLED)

    def test_skipping_states_is_rejected(self, machine):
        assert not machine.validate(RideStatus.SCHEDULED, RideStatus.PASSENGER_ONBOARD)
        assert not machine.validate(RideStatus.ON_ROUTE, RideStatus.COMPLETED)

    def test_terminal_states_have_no_exits(self, machine):
        for requested in RideStatus:
            assert not machine.validate(RideStatus.COMPLETED, requested)
            assert not machine.validate(RideStatus.CANCELLED, requested)

    def test_self_transition_is_rejected(self, machine):
        assert not machine.validate(RideStatus.ON_ROUTE, RideStatus.ON_ROUTE)

    def test_only_table_edges_succeed(self, machine):
        for current in RideStatus:
            for requested in RideStatus:
                expected = requested in RIDE_TRANSITIONS[current]
                assert machine.validate(current, requested) is expected


class TestApply:
    def test_scenario_b(self, machine):
        public = BookingStatus.SCHEDULED

        change = machine.apply(RideStatus.SCHEDULED, RideStatus.ON_ROUTE, public)
        assert change.ride_status == RideStatus.ON_ROUTE
        assert change.booking_status == BookingStatus.SCHEDULED

        change = machine.apply(RideStatus.ON_ROUTE, RideStatus.ARRIVED, change.booking_status)
        assert change.booking_status == BookingStatus.SCHEDULED

        change = machine.apply(
            RideStatus.ARRIVED, RideStatus.PASSENGER_ONBOARD, change.booking_status
        )
        assert change.booking_status == BookingStatus.IN_PROGRESS
        assert not change.is_terminal

    def test_completed_sets_public_completed(self, machine):
        change = machine.apply(
            RideStatus.PASSENGER_ONBOARD, RideStatus.COMPLETED, BookingStatus.IN_PROGRESS
        )
        assert change.booking_status == BookingStatus.COMPLETED
        assert change.is_terminal
        assert change.stop_reason == "completed"

    def test_cancelled_sets_public_cancelled(self, machine):
        change = machine.apply(RideStatus.ARRIVED, RideStatus.CANCELLED, BookingStatus.SCHEDULED)
        assert change.booking_status == BookingStatus.CANCELLED
        assert change.stop_reason == "cancelled"

    def test_invalid_transition_names_both_states(self, machine):
        with pytest.raises(InvalidTransition, match="from Scheduled to PassengerOnboard") as exc:
            machine.apply(
                RideStatus.SCHEDULED, RideStatus.PASSENGER_ONBOARD, BookingStatus.SCHEDULED
            )
        assert exc.value.current == RideStatus.SCHEDULED
        assert exc.value.requested == RideStatus.PASSENGER_ONBOARD

    def test_completed_to_on_route_fails(self, machine):
        with pytest.raises(InvalidTransition):
            machine.apply(RideStatus.COMPLETED, RideStatus.ON_ROUTE, BookingStatus.COMPLETED)
