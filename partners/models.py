"""Partner directory records and the matching inputs/outputs built on them."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple, Union

from infrastructure.constants import (
    AVAILABILITY_ONLINE,
    DEFAULT_COMPLETED_JOBS,
    DEFAULT_PARTNER_STATUS,
    DEFAULT_PRICE_MULTIPLIER,
    DEFAULT_RATING,
    DEFAULT_SORT_KEY,
    PARTNER_ROLE,
    PARTNER_STATUS_ACTIVE,
)
from infrastructure.errors import ValidationError


def _as_tuple(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if not values:
        return tuple()
    return tuple(str(value) for value in values)


@dataclass(frozen=True)
class ServiceDescriptor:
    """Catalog entry a booking refers to."""

    service_id: str
    name: str
    category: str

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ServiceDescriptor":
        return cls(
            service_id=str(record['id']),
            name=record.get('name', ''),
            category=record.get('category', ''),
        )


@dataclass(frozen=True)
class PartnerRecord:
    """Dispatch-relevant profile of one service provider."""

    partner_id: str
    role: str = PARTNER_ROLE
    status: str = DEFAULT_PARTNER_STATUS
    display_name: str = ''
    skills: Tuple[str, ...] = field(default_factory=tuple)
    availability: Optional[str] = None
    rating: float = DEFAULT_RATING
    completed_jobs: int = DEFAULT_COMPLETED_JOBS
    price_multiplier: float = DEFAULT_PRICE_MULTIPLIER
    endpoint_tokens: FrozenSet[str] = field(default_factory=frozenset)
    service_ids: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.rating < 0:
            raise ValueError(f"Partner {self.partner_id} has a negative rating")
        if self.completed_jobs < 0:
            raise ValueError(f"Partner {self.partner_id} has a negative job count")
        if self.price_multiplier <= 0:
            raise ValueError(f"Partner {self.partner_id} needs a positive price multiplier")

    @property
    def is_active(self) -> bool:
        return (self.status or DEFAULT_PARTNER_STATUS) == PARTNER_STATUS_ACTIVE

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PartnerRecord":
        """Hydrate from a directory document, defaulting absent ranking fields."""

        rating = record.get('rating')
        jobs = record.get('completedJobs')
        multiplier = record.get('priceMultiplier')
        return cls(
            partner_id=str(record.get('id') or record.get('uid')),
            role=record.get('role', PARTNER_ROLE),
            status=record.get('status') or DEFAULT_PARTNER_STATUS,
            display_name=record.get('displayName', ''),
            skills=_as_tuple(record.get('skills')),
            availability=record.get('availability'),
            rating=float(DEFAULT_RATING if rating is None else rating),
            completed_jobs=int(DEFAULT_COMPLETED_JOBS if jobs is None else jobs),
            price_multiplier=float(DEFAULT_PRICE_MULTIPLIER if multiplier is None else multiplier),
            endpoint_tokens=frozenset(record.get('fcmTokens') or ()),
            service_ids=_as_tuple(record.get('services')),
        )


@dataclass(frozen=True)
class ApplicationStatus:
    """Partner onboarding application as kept by the application store."""

    user_id: str
    status: str
    skills: Optional[Tuple[str, ...]] = None
    experience_years: Optional[int] = None
    notes: str = ''

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ApplicationStatus":
        skills = record.get('skills')
        experience = record.get('experienceYears')
        return cls(
            user_id=str(record.get('userId')),
            status=record.get('status', 'pending'),
            skills=None if skills is None else _as_tuple(skills),
            experience_years=None if experience is None else int(experience),
            notes=record.get('notes', ''),
        )


@dataclass(frozen=True)
class EnrichedPartner:
    """A partner profile joined with its onboarding application.

    ``status`` always comes from the profile; the application's own status is
    kept separately as ``application_status``. Skills declared on the
    application take precedence over the profile's.
    """

    profile: PartnerRecord
    application_status: Optional[str] = None
    application_skills: Optional[Tuple[str, ...]] = None
    experience_years: Optional[int] = None

    @classmethod
    def join(cls, profile: PartnerRecord, application: Optional[ApplicationStatus]) -> "EnrichedPartner":
        if application is None:
            return cls(profile=profile)
        return cls(
            profile=profile,
            application_status=application.status,
            application_skills=application.skills,
            experience_years=application.experience_years,
        )

    @property
    def partner_id(self) -> str:
        return self.profile.partner_id

    @property
    def display_name(self) -> str:
        return self.profile.display_name

    @property
    def status(self) -> str:
        return self.profile.status

    @property
    def skills(self) -> Tuple[str, ...]:
        if self.application_skills:
            return self.application_skills
        return self.profile.skills

    @property
    def availability(self) -> Optional[str]:
        return self.profile.availability

    @property
    def is_online(self) -> bool:
        return self.profile.availability == AVAILABILITY_ONLINE

    @property
    def rating(self) -> float:
        return self.profile.rating

    @property
    def completed_jobs(self) -> int:
        return self.profile.completed_jobs

    @property
    def price_multiplier(self) -> float:
        return self.profile.price_multiplier


class SortKey(Enum):
    """Ranking policies for matched partners."""

    RATING = "rating"   # Highest rating first
    PRICE = "price"     # Lowest price multiplier first
    JOBS = "jobs"       # Most completed jobs first

    @classmethod
    def parse(cls, value: Union["SortKey", str, None]) -> "SortKey":
        if value is None:
            return cls(DEFAULT_SORT_KEY)
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(key.value for key in cls)
            raise ValidationError(
                f"Unknown sort key {value!r}; expected one of: {allowed}",
                operation='find_partners_for_service',
            ) from None


@dataclass(frozen=True)
class MatchFilters:
    """Optional narrowing applied after the active-status check."""

    only_online: bool = False
    min_rating: Optional[float] = None
    listed_only: bool = False

    @classmethod
    def from_mapping(cls, payload: Optional[Dict[str, Any]]) -> "MatchFilters":
        """Build filters from a transport payload (camelCase or snake_case keys)."""

        if not payload:
            return cls()
        min_rating = payload.get('minRating', payload.get('min_rating'))
        return cls(
            only_online=bool(payload.get('onlyOnline', payload.get('only_online', False))),
            min_rating=None if min_rating is None else float(min_rating),
            listed_only=bool(payload.get('listedOnly', payload.get('listed_only', False))),
        )


@dataclass(frozen=True)
class MatchEvent:
    """Structured observability record emitted once per match call."""

    service_id: str
    candidate_count: int
    active_count: int
    matched_count: int
    sort_by: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            'event': 'match.completed',
            'service_id': self.service_id,
            'candidate_count': self.candidate_count,
            'active_count': self.active_count,
            'matched_count': self.matched_count,
            'sort_by': self.sort_by,
        }
