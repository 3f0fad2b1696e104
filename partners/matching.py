"""Partner matching for requested services.

Eligibility is a case-insensitive substring test in both directions between
a partner's skill tags and the service's category or name. It over-matches
on purpose ("Plumbing Services" matches category "plumbing" and vice versa).
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Union

from infrastructure.constants import (
    MATCH_ENRICHMENT_CONCURRENCY,
    OPERATION_TIMEOUT_SECONDS,
    PARTNER_ROLE,
)
from infrastructure.deadlines import call_dependency, run_with_deadline
from infrastructure.errors import ServiceNotFoundError
from partners.directory import ApplicationStatusStore, DirectoryAccessor
from partners.enrichment import enrich_partners
from partners.models import (
    EnrichedPartner,
    MatchEvent,
    MatchFilters,
    PartnerRecord,
    ServiceDescriptor,
    SortKey,
)

EventSink = Callable[[MatchEvent], None]


def skill_matches(skill: str, service: ServiceDescriptor) -> bool:
    """True when ``skill`` and the service category or name contain one another."""

    tag = (skill or '').strip().lower()
    if not tag:
        return False
    for value in (service.category, service.name):
        target = (value or '').strip().lower()
        # Blank operands would be a substring of everything
        if target and (tag in target or target in tag):
            return True
    return False


def is_eligible(skills: Iterable[str], service: ServiceDescriptor) -> bool:
    return any(skill_matches(skill, service) for skill in skills)


def apply_filters(
    partners: Iterable[EnrichedPartner],
    filters: MatchFilters,
    service_id: str,
) -> List[EnrichedPartner]:
    selected = list(partners)
    if filters.only_online:
        selected = [p for p in selected if p.is_online]
    if filters.min_rating is not None:
        selected = [p for p in selected if p.rating >= filters.min_rating]
    if filters.listed_only:
        selected = [p for p in selected if service_id in p.profile.service_ids]
    return selected


def rank_partners(
    partners: Sequence[EnrichedPartner],
    sort_by: Union[SortKey, str, None] = SortKey.RATING,
) -> List[EnrichedPartner]:
    """Order partners by the ranking policy; ties keep their input order."""

    key = SortKey.parse(sort_by)
    if key is SortKey.PRICE:
        return sorted(partners, key=lambda p: p.price_multiplier)
    if key is SortKey.JOBS:
        return sorted(partners, key=lambda p: -p.completed_jobs)
    return sorted(partners, key=lambda p: -p.rating)


class MatchingEngine:
    """Finds eligible, available partners for a service and ranks them."""

    def __init__(
        self,
        directory: DirectoryAccessor,
        applications: ApplicationStatusStore,
        *,
        max_concurrency: int = MATCH_ENRICHMENT_CONCURRENCY,
        default_timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
        event_sink: Optional[EventSink] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.directory = directory
        self.applications = applications
        self.max_concurrency = max_concurrency
        self.default_timeout = default_timeout
        self.event_sink = event_sink
        self.logger = logger or logging.getLogger('MatchingEngine')

    async def find_partners_for_service(
        self,
        service_id: str,
        filters: Optional[MatchFilters] = None,
        sort_by: Union[SortKey, str, None] = SortKey.RATING,
        *,
        timeout: Optional[float] = None,
    ) -> List[EnrichedPartner]:
        """Return eligible partners for ``service_id`` in ranked order.

        An empty list means no partner qualified; an unknown service raises
        :class:`ServiceNotFoundError` instead.
        """

        key = SortKey.parse(sort_by)
        return await run_with_deadline(
            self._find(service_id, filters or MatchFilters(), key),
            self.default_timeout if timeout is None else timeout,
            operation='find_partners_for_service',
            target_id=service_id,
        )

    async def describe_partners(self, *, timeout: Optional[float] = None) -> List[EnrichedPartner]:
        """Every partner joined with its application, unfiltered, directory order."""

        return await run_with_deadline(
            self._describe(),
            self.default_timeout if timeout is None else timeout,
            operation='describe_partners',
            target_id=PARTNER_ROLE,
        )

    async def _describe(self) -> List[EnrichedPartner]:
        partners = await self._fetch_partners()
        return await enrich_partners(
            partners,
            applications=self.applications,
            max_concurrency=self.max_concurrency,
            logger=self.logger,
        )

    async def _fetch_partners(self) -> List[PartnerRecord]:
        return await call_dependency(
            self.directory.get_partners_by_role(PARTNER_ROLE),
            operation='get_partners_by_role',
            target_id=PARTNER_ROLE,
        )

    async def _find(
        self,
        service_id: str,
        filters: MatchFilters,
        sort_by: SortKey,
    ) -> List[EnrichedPartner]:
        service = await call_dependency(
            self.directory.get_service_by_id(service_id),
            operation='get_service_by_id',
            target_id=service_id,
        )
        if service is None:
            self.logger.warning("Service not found: %s", service_id)
            raise ServiceNotFoundError(service_id)

        candidates = await self._fetch_partners()
        active = [partner for partner in candidates if partner.is_active]
        self.logger.debug(
            "Service %s (%s / %s): %s candidates, %s active",
            service_id,
            service.name,
            service.category,
            len(candidates),
            len(active),
        )

        enriched = await enrich_partners(
            active,
            applications=self.applications,
            max_concurrency=self.max_concurrency,
            logger=self.logger,
        )
        filtered = apply_filters(enriched, filters, service_id)
        eligible = [partner for partner in filtered if is_eligible(partner.skills, service)]
        ranked = rank_partners(eligible, sort_by)

        self._emit(MatchEvent(
            service_id=service_id,
            candidate_count=len(candidates),
            active_count=len(active),
            matched_count=len(ranked),
            sort_by=sort_by.value,
        ))
        return ranked

    def _emit(self, event: MatchEvent) -> None:
        payload = event.as_dict()
        self.logger.info(
            "match.completed service=%s candidates=%s active=%s matched=%s sort=%s",
            event.service_id,
            event.candidate_count,
            event.active_count,
            event.matched_count,
            event.sort_by,
            extra={'dispatch_event': payload},
        )
        if self.event_sink is not None:
            self.event_sink(event)
