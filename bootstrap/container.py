"""Dependency container wiring dispatch engine components together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from bookings.repository import JsonBookingRepository
from bookings.service import BookingService
from infrastructure.document_store import JsonDocumentStore
from infrastructure.settings import AppSettings
from notifications.dispatcher import NotificationDispatcher
from notifications.gateway import PushGateway
from notifications.metrics import DispatchStats
from notifications.user_records import JsonUserRecordStore
from partners.directory import JsonPartnerDirectory
from partners.matching import EventSink, MatchingEngine


@dataclass(frozen=True)
class EngineDependencies:
    """Concrete dependency snapshot for a host process."""

    settings: AppSettings
    document_store: JsonDocumentStore
    partner_directory: JsonPartnerDirectory
    user_records: JsonUserRecordStore
    booking_repository: JsonBookingRepository
    matching_engine: MatchingEngine
    notification_dispatcher: NotificationDispatcher
    booking_service: BookingService

    def as_dict(self) -> Dict[str, Any]:
        """Return dependencies as a mapping keyed by attribute name."""

        return {
            'settings': self.settings,
            'document_store': self.document_store,
            'partner_directory': self.partner_directory,
            'user_records': self.user_records,
            'booking_repository': self.booking_repository,
            'matching_engine': self.matching_engine,
            'notification_dispatcher': self.notification_dispatcher,
            'booking_service': self.booking_service,
        }


class DependencyContainer:
    """Lazy dependency container with optional override support."""

    def __init__(
        self,
        settings: AppSettings,
        push_gateway: PushGateway,
        overrides: Optional[Dict[str, Any]] = None,
        *,
        event_sink: Optional[EventSink] = None,
    ) -> None:
        self.settings = settings
        self.push_gateway = push_gateway
        self.event_sink = event_sink
        self._cache: Dict[str, Any] = {}
        if overrides:
            self._cache.update(overrides)

    # ------------------------------------------------------------------
    # Internal helpers
    def _resolve(self, key: str, factory: Callable[[], Any]) -> Any:
        if key not in self._cache:
            self._cache[key] = factory()
        return self._cache[key]

    # ------------------------------------------------------------------
    # Storage adapters
    @property
    def document_store(self) -> JsonDocumentStore:
        return self._resolve(
            'document_store',
            lambda: JsonDocumentStore(self.settings.documents_file),
        )

    @property
    def partner_directory(self) -> JsonPartnerDirectory:
        return self._resolve(
            'partner_directory',
            lambda: JsonPartnerDirectory(self.document_store),
        )

    @property
    def user_records(self) -> JsonUserRecordStore:
        return self._resolve(
            'user_records',
            lambda: JsonUserRecordStore(self.document_store),
        )

    @property
    def booking_repository(self) -> JsonBookingRepository:
        return self._resolve(
            'booking_repository',
            lambda: JsonBookingRepository(self.document_store, timezone=self.settings.timezone),
        )

    # ------------------------------------------------------------------
    # Engine components
    @property
    def dispatch_stats(self) -> DispatchStats:
        return self._resolve('dispatch_stats', DispatchStats)

    @property
    def matching_engine(self) -> MatchingEngine:
        def factory() -> MatchingEngine:
            directory = self.partner_directory
            return MatchingEngine(
                directory,
                directory,
                max_concurrency=self.settings.match_enrichment_concurrency,
                default_timeout=self.settings.operation_timeout_seconds,
                event_sink=self.event_sink,
            )

        return self._resolve('matching_engine', factory)

    @property
    def notification_dispatcher(self) -> NotificationDispatcher:
        def factory() -> NotificationDispatcher:
            return NotificationDispatcher(
                self.user_records,
                self.push_gateway,
                cleanup_attempts=self.settings.notify_cleanup_attempts,
                fanout_concurrency=self.settings.notify_fanout_concurrency,
                default_timeout=self.settings.operation_timeout_seconds,
                default_link=self.settings.default_deep_link,
                stats=self.dispatch_stats,
            )

        return self._resolve('notification_dispatcher', factory)

    @property
    def booking_service(self) -> BookingService:
        return self._resolve(
            'booking_service',
            lambda: BookingService(
                self.booking_repository,
                self.matching_engine,
                self.notification_dispatcher,
                default_timeout=self.settings.operation_timeout_seconds,
            ),
        )

    # ------------------------------------------------------------------
    def build_dependencies(self) -> EngineDependencies:
        """Materialise and return all core dependencies."""

        return EngineDependencies(
            settings=self.settings,
            document_store=self.document_store,
            partner_directory=self.partner_directory,
            user_records=self.user_records,
            booking_repository=self.booking_repository,
            matching_engine=self.matching_engine,
            notification_dispatcher=self.notification_dispatcher,
            booking_service=self.booking_service,
        )


__all__ = ['EngineDependencies', 'DependencyContainer']
