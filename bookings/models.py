"""Booking records shared by the transition validator, store and service."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

import pytz


class BookingStatus(Enum):
    """Lifecycle states of a service booking"""
    PENDING = "pending"            # Created, waiting for a partner
    ACCEPTED = "accepted"          # A partner took the job
    IN_PROGRESS = "in_progress"    # Partner is on site
    COMPLETED = "completed"        # Terminal
    CANCELLED = "cancelled"        # Terminal


class PaymentStatus(Enum):
    """Payment state tracked alongside the booking"""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


def localize_schedule(value: datetime, timezone: str) -> datetime:
    """Attach ``timezone`` to naive schedule timestamps; aware ones are converted."""

    zone = pytz.timezone(timezone)
    if value.tzinfo is None:
        return zone.localize(value)
    return value.astimezone(zone)


@dataclass(frozen=True)
class Booking:
    """One scheduled service engagement between a customer and a partner."""

    booking_id: str
    status: BookingStatus
    service_id: str
    customer_id: str
    scheduled_time: datetime
    price: Decimal
    partner_id: Optional[str] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    service_name: str = ''
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_status(self, status: BookingStatus) -> "Booking":
        return replace(self, status=status)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the JSON shape used by the booking repository."""

        return {
            'id': self.booking_id,
            'status': self.status.value,
            'service_id': self.service_id,
            'service_name': self.service_name,
            'customer_id': self.customer_id,
            'partner_id': self.partner_id,
            'scheduled_time': self.scheduled_time.isoformat(),
            'price': str(self.price),
            'payment_status': self.payment_status.value,
            'metadata': dict(self.metadata),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any], *, timezone: Optional[str] = None) -> "Booking":
        """Hydrate a booking from a stored record."""

        scheduled = datetime.fromisoformat(record['scheduled_time'])
        if timezone:
            scheduled = localize_schedule(scheduled, timezone)
        return cls(
            booking_id=str(record['id']),
            status=BookingStatus(record.get('status', BookingStatus.PENDING.value)),
            service_id=str(record['service_id']),
            service_name=record.get('service_name', ''),
            customer_id=str(record['customer_id']),
            partner_id=record.get('partner_id'),
            scheduled_time=scheduled,
            price=Decimal(str(record.get('price', '0'))),
            payment_status=PaymentStatus(
                record.get('payment_status', PaymentStatus.PENDING.value)
            ),
            metadata=dict(record.get('metadata') or {}),
        )
