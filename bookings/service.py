"""Domain service tying booking lifecycle, partner matching and push delivery."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from bookings.models import Booking, BookingStatus
from bookings.repository import BookingStore
from bookings.transitions import StatusLike, TransitionDecision, ensure_transition, validate_transition
from infrastructure.constants import OPERATION_TIMEOUT_SECONDS
from infrastructure.deadlines import call_dependency, run_with_deadline
from infrastructure.errors import BookingNotFoundError, ConflictError, ValidationError
from notifications.dispatcher import FanoutResult, NotificationDispatcher
from notifications.models import DispatchOutcome, NotificationMessage
from partners.matching import MatchingEngine
from partners.models import EnrichedPartner, MatchFilters, SortKey


def booking_link(booking_id: str) -> str:
    return f"/bookings/{booking_id}"


def _status_label(status: BookingStatus) -> str:
    return status.value.replace('_', ' ')


@dataclass(frozen=True)
class TransitionResult:
    """Committed (or no-op) status change plus the pushes it triggered."""

    booking: Booking
    decision: TransitionDecision
    changed: bool
    notifications: List[FanoutResult] = field(default_factory=list)


@dataclass(frozen=True)
class AnnouncementResult:
    """Partners offered a pending booking and their delivery results."""

    booking: Booking
    partners: List[EnrichedPartner]
    notifications: List[FanoutResult] = field(default_factory=list)

    @property
    def notified_count(self) -> int:
        return sum(1 for result in self.notifications if result.success)


class BookingService:
    """High-level API for booking orchestration."""

    def __init__(
        self,
        bookings: BookingStore,
        matching: MatchingEngine,
        dispatcher: NotificationDispatcher,
        *,
        default_timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.bookings = bookings
        self.matching = matching
        self.dispatcher = dispatcher
        self.default_timeout = default_timeout
        self.logger = logger or logging.getLogger('BookingService')

    def validate_transition(self, current: StatusLike, requested: StatusLike) -> TransitionDecision:
        """Accept/reject verdict for moving a booking from ``current`` to ``requested``."""

        decision = validate_transition(current, requested)
        if not decision.accepted:
            self.logger.info(
                "Rejected transition %s -> %s: %s",
                decision.current.value,
                decision.requested.value,
                decision.reason,
            )
        return decision

    async def match_partners(
        self,
        service_id: str,
        filters: Optional[MatchFilters] = None,
        sort_by: Union[SortKey, str, None] = SortKey.RATING,
        *,
        timeout: Optional[float] = None,
    ) -> List[EnrichedPartner]:
        return await self.matching.find_partners_for_service(
            service_id,
            filters,
            sort_by,
            timeout=timeout,
        )

    async def notify_user(
        self,
        user_id: str,
        title: str,
        body: str,
        link: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
    ) -> DispatchOutcome:
        message = NotificationMessage(target_user_id=user_id, title=title, body=body, link=link)
        return await self.dispatcher.dispatch(message, timeout=timeout)

    async def transition_booking(
        self,
        booking_id: str,
        requested: StatusLike,
        *,
        notify: bool = True,
        timeout: Optional[float] = None,
    ) -> TransitionResult:
        """Validate and commit a status change, then tell the people involved.

        The write is conditioned on the status read here, so two racing
        transitions cannot both commit; the loser gets :class:`ConflictError`.
        Requesting the current status is a no-op and sends nothing. ``timeout``
        bounds the load, the write and the notification fan-out separately.
        """

        booking = await self._load(booking_id, timeout)
        decision = ensure_transition(booking.status, requested, booking_id=booking_id)

        if decision.current == decision.requested:
            self.logger.debug("Booking %s already %s", booking_id, booking.status.value)
            return TransitionResult(booking=booking, decision=decision, changed=False)

        written = await run_with_deadline(
            call_dependency(
                self.bookings.compare_and_set_status(booking_id, decision.current, decision.requested),
                operation='compare_and_set_status',
                target_id=booking_id,
            ),
            self._deadline(timeout),
            operation='compare_and_set_status',
            target_id=booking_id,
        )
        if not written:
            self.logger.warning(
                "Booking %s changed while moving %s -> %s",
                booking_id,
                decision.current.value,
                decision.requested.value,
            )
            raise ConflictError(
                f"Booking {booking_id} is no longer {decision.current.value}",
                operation='transition_booking',
                target_id=booking_id,
            )

        updated = booking.with_status(decision.requested)
        self.logger.info(
            "Booking %s moved %s -> %s",
            booking_id,
            decision.current.value,
            decision.requested.value,
        )

        notifications: List[FanoutResult] = []
        if notify:
            notifications = await self.dispatcher.dispatch_many(
                self._status_messages(updated),
                timeout=timeout,
            )
        return TransitionResult(
            booking=updated,
            decision=decision,
            changed=True,
            notifications=notifications,
        )

    async def announce_booking(
        self,
        booking_id: str,
        filters: Optional[MatchFilters] = None,
        sort_by: Union[SortKey, str, None] = SortKey.RATING,
        *,
        timeout: Optional[float] = None,
    ) -> AnnouncementResult:
        """Offer a pending booking to every partner able to take it."""

        booking = await self._load(booking_id, timeout)
        if booking.status is not BookingStatus.PENDING:
            raise ValidationError(
                f"Only pending bookings can be announced; {booking_id} is {booking.status.value}",
                operation='announce_booking',
                target_id=booking_id,
            )

        partners = await self.match_partners(booking.service_id, filters, sort_by, timeout=timeout)
        if not partners:
            self.logger.info("No eligible partners for booking %s", booking_id)
            return AnnouncementResult(booking=booking, partners=[])

        service = booking.service_name or 'A service'
        when = booking.scheduled_time.strftime('%d %b %Y %H:%M')
        messages = [
            NotificationMessage(
                target_user_id=partner.partner_id,
                title="New booking request",
                body=f"{service} requested for {when}",
                link=booking_link(booking_id),
            )
            for partner in partners
        ]
        notifications = await self.dispatcher.dispatch_many(messages, timeout=timeout)
        result = AnnouncementResult(booking=booking, partners=partners, notifications=notifications)
        self.logger.info(
            "Announced booking %s to %s/%s partners",
            booking_id,
            result.notified_count,
            len(partners),
        )
        return result

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        return self.default_timeout if timeout is None else timeout

    async def _load(self, booking_id: str, timeout: Optional[float] = None) -> Booking:
        booking = await run_with_deadline(
            call_dependency(
                self.bookings.get_booking(booking_id),
                operation='get_booking',
                target_id=booking_id,
            ),
            self._deadline(timeout),
            operation='get_booking',
            target_id=booking_id,
        )
        if booking is None:
            raise BookingNotFoundError(booking_id)
        return booking

    def _status_messages(self, booking: Booking) -> List[NotificationMessage]:
        label = _status_label(booking.status)
        service = booking.service_name or 'service'
        link = booking_link(booking.booking_id)
        messages = [
            NotificationMessage(
                target_user_id=booking.customer_id,
                title=f"Booking {label}",
                body=f"Your {service} booking is now {label}.",
                link=link,
            )
        ]
        if booking.partner_id:
            messages.append(NotificationMessage(
                target_user_id=booking.partner_id,
                title=f"Job {label}",
                body=f"The {service} job for booking {booking.booking_id} is now {label}.",
                link=link,
            ))
        return messages
