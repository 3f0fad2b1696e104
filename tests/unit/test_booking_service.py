import pytest

from bookings.models import BookingStatus
from bookings.service import BookingService
from infrastructure.errors import (
    BookingNotFoundError,
    ConflictError,
    DeadlineExceededError,
    InvalidTransitionError,
    ValidationError,
)
from notifications.dispatcher import NotificationDispatcher
from partners.matching import MatchingEngine
from partners.models import MatchFilters, ServiceDescriptor
from tests.helpers import (
    DummyLogger,
    FakeApplications,
    FakeBookingStore,
    FakeDirectory,
    FakeGateway,
    FakeUserRecords,
    make_booking,
    make_partner,
)

PLUMBING = ServiceDescriptor(service_id="svc-plumbing", name="Pipe Repair", category="Plumbing")


def build_service(bookings, *, partners=(), tokens=None, gateway=None):
    store = FakeBookingStore(bookings)
    records = FakeUserRecords(tokens or {})
    gateway = gateway or FakeGateway()
    matching = MatchingEngine(
        FakeDirectory(partners, [PLUMBING]),
        FakeApplications(),
        logger=DummyLogger(),
    )
    dispatcher = NotificationDispatcher(records, gateway, logger=DummyLogger())
    service = BookingService(store, matching, dispatcher, logger=DummyLogger())
    return service, store, records, gateway


@pytest.mark.asyncio
async def test_pending_to_in_progress_is_rejected_with_allowed_states():
    service, store, _, gateway = build_service([make_booking("b-1")])

    with pytest.raises(InvalidTransitionError) as excinfo:
        await service.transition_booking("b-1", "in_progress")

    assert set(excinfo.value.allowed) == {"accepted", "cancelled"}
    assert "accepted" in str(excinfo.value) and "cancelled" in str(excinfo.value)
    assert store.writes == []
    assert store.bookings["b-1"].status is BookingStatus.PENDING
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_transition_commits_and_notifies_customer_and_partner():
    service, store, _, gateway = build_service(
        [make_booking("b-1", status=BookingStatus.ACCEPTED, partner_id="p-1")],
        tokens={"customer-1": ["tok-c"], "p-1": ["tok-p"]},
    )

    result = await service.transition_booking("b-1", BookingStatus.IN_PROGRESS)

    assert result.changed is True
    assert result.booking.status is BookingStatus.IN_PROGRESS
    assert store.bookings["b-1"].status is BookingStatus.IN_PROGRESS
    assert [item.message.target_user_id for item in result.notifications] == ["customer-1", "p-1"]
    assert all(item.success for item in result.notifications)
    assert {call["title"] for call in gateway.calls} == {"Booking in progress", "Job in progress"}
    assert gateway.calls[0]["link"] == "/bookings/b-1"


@pytest.mark.asyncio
async def test_same_status_transition_is_a_noop():
    service, store, _, gateway = build_service([make_booking("b-1")], tokens={"customer-1": ["tok"]})

    result = await service.transition_booking("b-1", "pending")

    assert result.changed is False
    assert store.writes == []
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_transition_without_notify_sends_nothing():
    service, _, _, gateway = build_service([make_booking("b-1")], tokens={"customer-1": ["tok"]})

    result = await service.transition_booking("b-1", "accepted", notify=False)

    assert result.changed is True
    assert result.notifications == []
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_concurrent_change_raises_conflict():
    service, store, _, gateway = build_service([make_booking("b-1")])
    store.interfere = BookingStatus.CANCELLED

    with pytest.raises(ConflictError):
        await service.transition_booking("b-1", "accepted")

    assert store.bookings["b-1"].status is BookingStatus.CANCELLED
    assert gateway.calls == []


@pytest.mark.asyncio
async def test_missing_booking_raises_not_found():
    service, _, _, _ = build_service([])

    with pytest.raises(BookingNotFoundError):
        await service.transition_booking("b-404", "accepted")


@pytest.mark.asyncio
async def test_notification_failures_do_not_undo_the_transition():
    service, store, _, _ = build_service(
        [make_booking("b-1")],
        tokens={"customer-1": ["tok"]},
        gateway=FakeGateway(error=ConnectionError("gateway down")),
    )

    result = await service.transition_booking("b-1", "accepted")

    assert store.bookings["b-1"].status is BookingStatus.ACCEPTED
    assert result.notifications[0].success is False


@pytest.mark.asyncio
async def test_announce_booking_notifies_matched_partners_in_rank_order():
    partners = [
        make_partner("p-low", rating=3.0),
        make_partner("p-top", rating=4.9),
        make_partner("p-sparky", skills=["Electrical"]),
    ]
    service, _, _, gateway = build_service(
        [make_booking("b-1")],
        partners=partners,
        tokens={"p-low": ["tok-low"], "p-top": ["tok-top"]},
    )

    result = await service.announce_booking("b-1", MatchFilters(only_online=True))

    assert [partner.partner_id for partner in result.partners] == ["p-top", "p-low"]
    assert result.notified_count == 2
    assert [call["tokens"] for call in gateway.calls] == [["tok-top"], ["tok-low"]]
    assert all(call["title"] == "New booking request" for call in gateway.calls)


@pytest.mark.asyncio
async def test_announce_requires_pending_booking():
    service, _, _, _ = build_service([make_booking("b-1", status=BookingStatus.COMPLETED)])

    with pytest.raises(ValidationError):
        await service.announce_booking("b-1")


@pytest.mark.asyncio
async def test_announce_without_matches_sends_nothing():
    service, _, _, gateway = build_service([make_booking("b-1")], partners=[make_partner("p-1", skills=["Electrical"])])

    result = await service.announce_booking("b-1")

    assert result.partners == []
    assert gateway.calls == []


def test_validate_transition_delegates_without_raising():
    service, _, _, _ = build_service([])

    decision = service.validate_transition("completed", "pending")

    assert decision.accepted is False
    assert decision.reason == "Cannot change status - booking is completed"


@pytest.mark.asyncio
async def test_notify_user_dispatches_one_message():
    service, _, _, gateway = build_service([], tokens={"user-1": ["tok-a"]})

    outcome = await service.notify_user("user-1", "Hello", "Welcome aboard")

    assert outcome.delivered == 1
    assert gateway.calls[0]["data"] == {"url": "/"}


@pytest.mark.asyncio
async def test_slow_booking_store_hits_the_deadline():
    service, store, _, gateway = build_service([make_booking("b-1")])
    store.delay = 0.5

    with pytest.raises(DeadlineExceededError) as excinfo:
        await service.transition_booking("b-1", "accepted", timeout=0.05)

    assert excinfo.value.operation == "get_booking"
    assert store.writes == []
    assert gateway.calls == []
