"""Partner directory access, enrichment and ranking."""

from .directory import ApplicationStatusStore, DirectoryAccessor, JsonPartnerDirectory
from .matching import MatchingEngine, apply_filters, is_eligible, rank_partners, skill_matches
from .models import (
    ApplicationStatus,
    EnrichedPartner,
    MatchEvent,
    MatchFilters,
    PartnerRecord,
    ServiceDescriptor,
    SortKey,
)

__all__ = [
    "ApplicationStatus",
    "ApplicationStatusStore",
    "DirectoryAccessor",
    "EnrichedPartner",
    "JsonPartnerDirectory",
    "MatchEvent",
    "MatchFilters",
    "MatchingEngine",
    "PartnerRecord",
    "ServiceDescriptor",
    "SortKey",
    "apply_filters",
    "is_eligible",
    "rank_partners",
    "skill_matches",
]
