"""State transition rules for service bookings.

Flow: pending -> accepted -> in_progress -> completed, with cancellation
allowed from any non-terminal state. Every helper here is pure; callers
persist the committed status themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from bookings.models import BookingStatus
from infrastructure.errors import InvalidTransitionError, ValidationError

StatusLike = Union[BookingStatus, str]

STATUS_TRANSITIONS: Dict[BookingStatus, Tuple[BookingStatus, ...]] = {
    BookingStatus.PENDING: (BookingStatus.ACCEPTED, BookingStatus.CANCELLED),
    BookingStatus.ACCEPTED: (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED),
    BookingStatus.IN_PROGRESS: (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
    BookingStatus.COMPLETED: (),
    BookingStatus.CANCELLED: (),
}

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})


@dataclass(frozen=True)
class TransitionDecision:
    """Accept/reject verdict for a requested status change."""

    current: BookingStatus
    requested: BookingStatus
    accepted: bool
    allowed: Tuple[BookingStatus, ...]
    reason: str = ''

    @property
    def allowed_values(self) -> List[str]:
        return [status.value for status in self.allowed]


def coerce_status(status: StatusLike) -> BookingStatus:
    """Return ``status`` as a :class:`BookingStatus`, rejecting unknown values."""

    if isinstance(status, BookingStatus):
        return status
    try:
        return BookingStatus(str(status).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown booking status: {status!r}",
            operation='coerce_status',
        ) from None


def valid_next_statuses(current: StatusLike) -> Tuple[BookingStatus, ...]:
    """Return every status reachable in one step from ``current``."""

    return STATUS_TRANSITIONS[coerce_status(current)]


def status_options(current: StatusLike) -> List[BookingStatus]:
    """Current status first, then its valid next statuses (for pickers)."""

    status = coerce_status(current)
    return [status, *valid_next_statuses(status)]


def is_valid_transition(from_status: StatusLike, to_status: StatusLike) -> bool:
    """Same status is always allowed (no-op); otherwise the edge must exist."""

    source = coerce_status(from_status)
    target = coerce_status(to_status)
    if source == target:
        return True
    return target in valid_next_statuses(source)


def is_locked(status: StatusLike) -> bool:
    """Terminal bookings cannot change status any more."""

    return coerce_status(status) in TERMINAL_STATUSES


def describe_rejection(from_status: StatusLike, to_status: StatusLike) -> str:
    """Human-readable reason a transition is refused."""

    source = coerce_status(from_status)
    target = coerce_status(to_status)
    if is_locked(source):
        return f"Cannot change status - booking is {source.value}"

    allowed = valid_next_statuses(source)
    if not allowed:
        return f"No status changes allowed from {source.value}"

    allowed_text = ", ".join(status.value for status in allowed)
    return f"Invalid transition: {source.value} → {target.value}. Allowed: {allowed_text}"


def validate_transition(from_status: StatusLike, to_status: StatusLike) -> TransitionDecision:
    """Evaluate a requested change without raising."""

    source = coerce_status(from_status)
    target = coerce_status(to_status)
    allowed = valid_next_statuses(source)
    if is_valid_transition(source, target):
        return TransitionDecision(source, target, True, allowed)
    return TransitionDecision(source, target, False, allowed, describe_rejection(source, target))


def ensure_transition(
    from_status: StatusLike,
    to_status: StatusLike,
    *,
    booking_id: Optional[str] = None,
) -> TransitionDecision:
    """Like :func:`validate_transition` but raises on rejection."""

    decision = validate_transition(from_status, to_status)
    if not decision.accepted:
        raise InvalidTransitionError(
            decision.current.value,
            decision.requested.value,
            decision.allowed_values,
            decision.reason,
            target_id=booking_id,
        )
    return decision
