import itertools

import pytest

from bookings.models import BookingStatus
from bookings.transitions import (
    STATUS_TRANSITIONS,
    ensure_transition,
    is_locked,
    is_valid_transition,
    status_options,
    valid_next_statuses,
    validate_transition,
)
from infrastructure.errors import InvalidTransitionError, ValidationError


@pytest.mark.parametrize(
    "current, requested",
    [
        ("pending", "accepted"),
        ("pending", "cancelled"),
        ("accepted", "in_progress"),
        ("accepted", "cancelled"),
        ("in_progress", "completed"),
        ("in_progress", "cancelled"),
    ],
)
def test_lifecycle_edges_are_accepted(current, requested):
    decision = validate_transition(current, requested)

    assert decision.accepted is True
    assert decision.reason == ""


def test_same_status_is_a_noop_even_for_terminal_states():
    for status in BookingStatus:
        assert is_valid_transition(status, status)


def test_pending_cannot_skip_to_in_progress():
    decision = validate_transition("pending", "in_progress")

    assert decision.accepted is False
    assert set(decision.allowed_values) == {"accepted", "cancelled"}
    assert decision.reason == "Invalid transition: pending → in_progress. Allowed: accepted, cancelled"


def test_terminal_states_reject_every_change():
    for terminal in (BookingStatus.COMPLETED, BookingStatus.CANCELLED):
        assert is_locked(terminal)
        assert valid_next_statuses(terminal) == ()
        decision = validate_transition(terminal, BookingStatus.PENDING)
        assert decision.accepted is False
        assert decision.reason == f"Cannot change status - booking is {terminal.value}"


def test_every_non_terminal_status_can_be_cancelled():
    for status, targets in STATUS_TRANSITIONS.items():
        if is_locked(status):
            continue
        assert BookingStatus.CANCELLED in targets


def test_ensure_transition_raises_with_allowed_set():
    with pytest.raises(InvalidTransitionError) as excinfo:
        ensure_transition("pending", "in_progress", booking_id="booking-9")

    error = excinfo.value
    assert error.current == "pending"
    assert error.requested == "in_progress"
    assert set(error.allowed) == {"accepted", "cancelled"}
    assert error.target_id == "booking-9"
    assert isinstance(error, ValidationError)


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        validate_transition("pending", "teleported")


def test_status_options_lists_current_then_next():
    assert status_options("accepted") == [
        BookingStatus.ACCEPTED,
        BookingStatus.IN_PROGRESS,
        BookingStatus.CANCELLED,
    ]
    assert status_options(BookingStatus.COMPLETED) == [BookingStatus.COMPLETED]


def test_status_strings_are_normalised():
    assert is_valid_transition(" Pending ", "ACCEPTED")


ALLOWED_EDGES = {
    ("pending", "accepted"),
    ("pending", "cancelled"),
    ("accepted", "in_progress"),
    ("accepted", "cancelled"),
    ("in_progress", "completed"),
    ("in_progress", "cancelled"),
}


@pytest.mark.parametrize(
    "current, requested",
    list(itertools.product(BookingStatus, BookingStatus)),
    ids=lambda status: status.value,
)
def test_every_status_pair_follows_the_edge_table(current, requested):
    expected = current == requested or (current.value, requested.value) in ALLOWED_EDGES

    assert is_valid_transition(current, requested) is expected
    assert is_valid_transition(current, requested) == (
        current == requested or requested in STATUS_TRANSITIONS[current]
    )
    if is_locked(current) and current != requested:
        assert validate_transition(current, requested).accepted is False


def test_edge_table_matches_lifecycle_exactly():
    table = {
        (source.value, target.value)
        for source, targets in STATUS_TRANSITIONS.items()
        for target in targets
    }

    assert table == ALLOWED_EDGES
