"""Booking records, lifecycle rules and orchestration."""

from .models import Booking, BookingStatus, PaymentStatus
from .repository import BookingStore, JsonBookingRepository
from .service import AnnouncementResult, BookingService, TransitionResult
from .transitions import (
    STATUS_TRANSITIONS,
    TransitionDecision,
    ensure_transition,
    is_locked,
    is_valid_transition,
    status_options,
    valid_next_statuses,
    validate_transition,
)

__all__ = [
    "AnnouncementResult",
    "Booking",
    "BookingService",
    "BookingStatus",
    "BookingStore",
    "JsonBookingRepository",
    "PaymentStatus",
    "STATUS_TRANSITIONS",
    "TransitionDecision",
    "TransitionResult",
    "ensure_transition",
    "is_locked",
    "is_valid_transition",
    "status_options",
    "valid_next_statuses",
    "validate_transition",
]
