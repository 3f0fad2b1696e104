"""Shared fakes and utilities for unit tests."""

from __future__ import annotations

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from bookings.models import Booking, BookingStatus
from notifications.models import SendResponse
from partners.models import ApplicationStatus, PartnerRecord, ServiceDescriptor


class DummyLogger:
    """Lightweight stand-in for ``logging.Logger`` that records calls."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, Tuple[Any, ...], Dict[str, Any]]] = []

    def _record(self, level: str, *args: Any, **kwargs: Any) -> None:
        self.records.append((level, args, kwargs))

    def debug(self, *args: Any, **kwargs: Any) -> None:
        self._record("debug", *args, **kwargs)

    def info(self, *args: Any, **kwargs: Any) -> None:
        self._record("info", *args, **kwargs)

    def warning(self, *args: Any, **kwargs: Any) -> None:
        self._record("warning", *args, **kwargs)

    def error(self, *args: Any, **kwargs: Any) -> None:
        self._record("error", *args, **kwargs)

    def critical(self, *args: Any, **kwargs: Any) -> None:
        self._record("critical", *args, **kwargs)

    def exception(self, *args: Any, **kwargs: Any) -> None:
        self._record("exception", *args, **kwargs)

    @property
    def messages(self) -> List[Tuple[str, Any]]:
        """Return formatted messages for quick assertions."""

        formatted: List[Tuple[str, Any]] = []
        for level, args, kwargs in self.records:
            message: Any = kwargs.get("msg")
            if args:
                template = args[0]
                if isinstance(template, str) and len(args) > 1:
                    try:
                        message = template % args[1:]
                    except (TypeError, ValueError):
                        message = template
                else:
                    message = template
            formatted.append((level, message))
        return formatted

    def levels(self) -> List[str]:
        return [level for level, _, _ in self.records]

    def clear(self) -> None:
        self.records.clear()


def make_partner(partner_id: str, **overrides: Any) -> PartnerRecord:
    """Active, online partner with sensible defaults for ranking tests."""

    values: Dict[str, Any] = {
        "status": "active",
        "availability": "online",
        "skills": ("plumbing",),
        "rating": 4.0,
    }
    values.update(overrides)
    if "skills" in values:
        values["skills"] = tuple(values["skills"])
    return PartnerRecord(partner_id=partner_id, **values)


def make_booking(booking_id: str = "booking-1", **overrides: Any) -> Booking:
    values: Dict[str, Any] = {
        "status": BookingStatus.PENDING,
        "service_id": "svc-plumbing",
        "customer_id": "customer-1",
        "scheduled_time": datetime(2024, 5, 1, 10, 30),
        "price": Decimal("499.00"),
        "service_name": "Pipe Repair",
    }
    values.update(overrides)
    return Booking(booking_id=booking_id, **values)


class FakeDirectory:
    """In-memory ``DirectoryAccessor`` that records every call."""

    def __init__(
        self,
        partners: Iterable[PartnerRecord] = (),
        services: Iterable[ServiceDescriptor] = (),
        *,
        error: Optional[Exception] = None,
    ) -> None:
        self.partners = list(partners)
        self.services = {service.service_id: service for service in services}
        self.error = error
        self.calls: List[Tuple[str, str]] = []

    async def get_partners_by_role(self, role: str) -> List[PartnerRecord]:
        self.calls.append(("get_partners_by_role", role))
        if self.error is not None:
            raise self.error
        return [partner for partner in self.partners if partner.role == role]

    async def get_service_by_id(self, service_id: str) -> Optional[ServiceDescriptor]:
        self.calls.append(("get_service_by_id", service_id))
        return self.services.get(service_id)


class FakeApplications:
    """In-memory ``ApplicationStatusStore`` tracking lookup concurrency."""

    def __init__(
        self,
        applications: Iterable[ApplicationStatus] = (),
        *,
        delay: float = 0.0,
        fail_for: Iterable[str] = (),
    ) -> None:
        self.applications = {application.user_id: application for application in applications}
        self.delay = delay
        self.fail_for = set(fail_for)
        self.in_flight = 0
        self.max_in_flight = 0
        self.lookups: List[str] = []
        self.cancelled = 0

    async def get_application_status(self, user_id: str) -> Optional[ApplicationStatus]:
        self.lookups.append(user_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if user_id in self.fail_for:
                raise ConnectionError(f"application store offline for {user_id}")
            await asyncio.sleep(self.delay)
            return self.applications.get(user_id)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1


class FakeUserRecords:
    """In-memory ``UserRecordStore`` with a conditional replace.

    ``before_replace`` runs ahead of each conditional write and may mutate
    ``tokens`` to simulate a concurrent registration.
    """

    def __init__(self, tokens: Optional[Dict[str, Iterable[str]]] = None) -> None:
        self.tokens: Dict[str, Set[str]] = {
            user_id: set(values) for user_id, values in (tokens or {}).items()
        }
        self.before_replace: Optional[Callable[[str, int], None]] = None
        self.replace_calls: List[Tuple[str, frozenset, frozenset]] = []
        self.reads: List[str] = []

    async def get_endpoint_tokens(self, user_id: str) -> Optional[frozenset]:
        self.reads.append(user_id)
        if user_id not in self.tokens:
            return None
        return frozenset(self.tokens[user_id])

    async def replace_endpoint_tokens(self, user_id: str, expected_prior, new_tokens) -> bool:
        self.replace_calls.append((user_id, frozenset(expected_prior), frozenset(new_tokens)))
        if self.before_replace is not None:
            self.before_replace(user_id, len(self.replace_calls))
        if user_id not in self.tokens:
            return False
        if frozenset(self.tokens[user_id]) != frozenset(expected_prior):
            return False
        self.tokens[user_id] = set(new_tokens)
        return True


class FakeGateway:
    """Push gateway stub answering per token from ``failing`` tokens."""

    def __init__(
        self,
        failing: Iterable[str] = (),
        *,
        error: Optional[Exception] = None,
        on_send: Optional[Callable[[Sequence[str]], None]] = None,
        delay: float = 0.0,
        truncate: bool = False,
    ) -> None:
        self.failing = set(failing)
        self.error = error
        self.on_send = on_send
        self.delay = delay
        self.truncate = truncate
        self.calls: List[Dict[str, Any]] = []

    async def send_multicast(self, tokens, title, body, link=None, data=None) -> List[SendResponse]:
        self.calls.append({
            "tokens": list(tokens),
            "title": title,
            "body": body,
            "link": link,
            "data": data,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.on_send is not None:
            self.on_send(tokens)
        if self.error is not None:
            raise self.error
        responses = [
            SendResponse(success=False, error="registration-token-not-registered")
            if token in self.failing
            else SendResponse(success=True)
            for token in tokens
        ]
        return responses[:-1] if self.truncate else responses


class FakeBookingStore:
    """In-memory ``BookingStore``; ``interfere`` rewrites a status before the write."""

    def __init__(self, bookings: Iterable[Booking] = ()) -> None:
        self.bookings: Dict[str, Booking] = {booking.booking_id: booking for booking in bookings}
        self.interfere: Optional[BookingStatus] = None
        self.delay = 0.0
        self.writes: List[Tuple[str, BookingStatus, BookingStatus]] = []

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.bookings.get(booking_id)

    async def compare_and_set_status(self, booking_id, expected, new_status) -> bool:
        self.writes.append((booking_id, expected, new_status))
        booking = self.bookings.get(booking_id)
        if booking is None:
            return False
        if self.interfere is not None:
            booking = booking.with_status(self.interfere)
            self.bookings[booking_id] = booking
        if booking.status != expected:
            return False
        self.bookings[booking_id] = booking.with_status(new_status)
        return True
