#!/usr/bin/env python3
"""Manual smoke test for partner matching against the JSON document file."""

from __future__ import annotations

import asyncio
import logging
import sys

from infrastructure.document_store import JsonDocumentStore
from infrastructure.settings import get_settings
from logging_config import setup_logging, shutdown_logging
from partners.directory import JsonPartnerDirectory
from partners.matching import MatchingEngine
from partners.models import MatchFilters

LOGGER = logging.getLogger("MatchPartnersScript")


async def main(service_id: str, sort_by: str, only_online: bool) -> None:
    settings = get_settings()
    directory = JsonPartnerDirectory(JsonDocumentStore(settings.documents_file))
    engine = MatchingEngine(
        directory,
        directory,
        max_concurrency=settings.match_enrichment_concurrency,
        default_timeout=settings.operation_timeout_seconds,
    )

    partners = await engine.find_partners_for_service(
        service_id,
        MatchFilters(only_online=only_online),
        sort_by,
    )
    if not partners:
        print(f"No eligible partners for service {service_id}")
        return

    print(f"🔎 {len(partners)} partners for service {service_id} (sorted by {sort_by}):")
    for position, partner in enumerate(partners, start=1):
        print(
            f"{position:>2}. {partner.display_name or partner.partner_id} "
            f"⭐ {partner.rating:.1f} | jobs {partner.completed_jobs} | "
            f"x{partner.price_multiplier:.2f} | {partner.availability or 'unknown'}"
        )


if __name__ == "__main__":
    args = [arg for arg in sys.argv[1:] if arg != "--online"]
    if len(args) not in (1, 2):
        print("Usage: python scripts/match_partners.py <service_id> [rating|price|jobs] [--online]")
        raise SystemExit(1)

    setup_logging()
    try:
        asyncio.run(main(args[0], args[1] if len(args) == 2 else "rating", "--online" in sys.argv))
    finally:
        shutdown_logging()
