"""Concurrent join of partner profiles with their onboarding applications."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from infrastructure.deadlines import call_dependency
from partners.directory import ApplicationStatusStore
from partners.models import ApplicationStatus, EnrichedPartner, PartnerRecord


async def enrich_partners(
    partners: Sequence[PartnerRecord],
    *,
    applications: ApplicationStatusStore,
    max_concurrency: int,
    logger: Optional[logging.Logger] = None,
) -> List[EnrichedPartner]:
    """Fetch every partner's application concurrently and join in input order.

    At most ``max_concurrency`` lookups are in flight at once. The first
    failing lookup cancels the rest and propagates as a
    :class:`TransientDependencyError`.
    """

    if not partners:
        return []

    semaphore = asyncio.Semaphore(max_concurrency)

    async def lookup(partner: PartnerRecord) -> Optional[ApplicationStatus]:
        async with semaphore:
            return await call_dependency(
                applications.get_application_status(partner.partner_id),
                operation='get_application_status',
                target_id=partner.partner_id,
            )

    tasks = [
        asyncio.create_task(lookup(partner), name=f"enrich-{partner.partner_id[:8]}")
        for partner in partners
    ]
    try:
        results = await asyncio.gather(*tasks)
    except BaseException:
        pending = [task for task in tasks if not task.done()]
        if pending and logger:
            logger.warning("Cancelling %s in-flight application lookups", len(pending))
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        raise

    return [
        EnrichedPartner.join(partner, application)
        for partner, application in zip(partners, results)
    ]
