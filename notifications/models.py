"""Push notification payloads and dispatch results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from infrastructure.constants import DEFAULT_DEEP_LINK

OUTCOME_SENT = 'sent'
OUTCOME_NO_ENDPOINTS = 'no_endpoints'

CLEANUP_NOT_NEEDED = 'not_needed'
CLEANUP_PRUNED = 'pruned'
CLEANUP_CONFLICT = 'conflict'


@dataclass(frozen=True)
class NotificationMessage:
    """Title/body addressed to every device of one user."""

    target_user_id: str
    title: str
    body: str
    link: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.target_user_id or not self.title or not self.body:
            raise ValueError("Notification needs a target user, a title and a body")

    def data_payload(self, default_link: str = DEFAULT_DEEP_LINK) -> Dict[str, str]:
        """Data block carried alongside the notification for click-through."""

        return {'url': self.link or default_link}


@dataclass(frozen=True)
class SendResponse:
    """Gateway verdict for one token, aligned by position with the request."""

    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class DispatchOutcome:
    """Aggregate result of one dispatch call."""

    delivered: int
    failed: int
    reason: str = OUTCOME_SENT
    cleanup: str = CLEANUP_NOT_NEEDED
    pruned_tokens: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def no_endpoints(cls) -> "DispatchOutcome":
        return cls(delivered=0, failed=0, reason=OUTCOME_NO_ENDPOINTS)

    def as_dict(self) -> Dict[str, object]:
        return {
            'delivered': self.delivered,
            'failed': self.failed,
            'reason': self.reason,
            'cleanup': self.cleanup,
            'pruned': len(self.pruned_tokens),
        }
