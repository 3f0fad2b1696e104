"""Booking storage contract and its JSON document implementation."""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from bookings.models import Booking, BookingStatus
from infrastructure.document_store import JsonDocumentStore

BOOKINGS_COLLECTION = 'bookings'


class BookingStore(Protocol):
    """Persistence collaborator for bookings.

    ``compare_and_set_status`` is the conditional write that serialises
    concurrent transitions: it succeeds only while the stored status still
    equals ``expected``.
    """

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        ...

    async def compare_and_set_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
    ) -> bool:
        ...


class JsonBookingRepository:
    """Bookings kept in the ``bookings`` collection of a document file."""

    def __init__(
        self,
        store: JsonDocumentStore,
        *,
        timezone: Optional[str] = None,
        logger: Optional[Any] = None,
    ) -> None:
        self._store = store
        self._timezone = timezone
        self._logger = logger or logging.getLogger('BookingRepository')

    async def get_booking(self, booking_id: str) -> Optional[Booking]:
        record = await self._store.find(BOOKINGS_COLLECTION, booking_id)
        if record is None:
            self._logger.debug("No booking found for id %s", booking_id)
            return None
        return Booking.from_record(record, timezone=self._timezone)

    async def save_booking(self, booking: Booking) -> None:
        """Insert or replace a booking record."""

        await self._store.upsert(BOOKINGS_COLLECTION, booking.to_record())
        self._logger.info("Saved booking %s (%s)", booking.booking_id, booking.status.value)

    async def compare_and_set_status(
        self,
        booking_id: str,
        expected: BookingStatus,
        new_status: BookingStatus,
    ) -> bool:
        async with self._store.transaction() as collections:
            for record in collections.get(BOOKINGS_COLLECTION, []):
                if str(record.get('id')) != booking_id:
                    continue
                if record.get('status') != expected.value:
                    self._logger.info(
                        "Booking %s status is %s, expected %s; write refused",
                        booking_id,
                        record.get('status'),
                        expected.value,
                    )
                    return False
                record['status'] = new_status.value
                return True
        return False
