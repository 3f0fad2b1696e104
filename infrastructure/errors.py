"""Error taxonomy shared by the transition, matching and notification layers."""

from __future__ import annotations

from typing import Any, Optional, Sequence

__all__ = [
    "DispatchError",
    "ValidationError",
    "InvalidTransitionError",
    "NotFoundError",
    "ServiceNotFoundError",
    "UserNotFoundError",
    "BookingNotFoundError",
    "TransientDependencyError",
    "GatewayUnavailableError",
    "DeadlineExceededError",
    "ConflictError",
]


class DispatchError(Exception):
    """Base class for every error surfaced by the dispatch engine."""

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        target_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.target_id = target_id

    def context(self) -> dict:
        """Return the logging context attached to this error."""

        return {
            'error': type(self).__name__,
            'operation': self.operation,
            'target_id': self.target_id,
        }


class ValidationError(DispatchError):
    """Caller supplied input the engine refuses to act on. Not retryable."""


class InvalidTransitionError(ValidationError):
    """Raised when a booking status change is not an allowed edge."""

    def __init__(
        self,
        current: str,
        requested: str,
        allowed: Sequence[str],
        message: str,
        *,
        target_id: Optional[str] = None,
    ) -> None:
        super().__init__(message, operation='validate_transition', target_id=target_id)
        self.current = current
        self.requested = requested
        self.allowed = tuple(allowed)


class NotFoundError(DispatchError):
    """A referenced service, user or booking does not exist."""


class ServiceNotFoundError(NotFoundError):
    def __init__(self, service_id: str) -> None:
        super().__init__(
            f"Service not found: {service_id}",
            operation='get_service_by_id',
            target_id=service_id,
        )
        self.service_id = service_id


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: str) -> None:
        super().__init__(
            f"User not found: {user_id}",
            operation='get_endpoint_tokens',
            target_id=user_id,
        )
        self.user_id = user_id


class BookingNotFoundError(NotFoundError):
    def __init__(self, booking_id: str) -> None:
        super().__init__(
            f"Booking not found: {booking_id}",
            operation='get_booking',
            target_id=booking_id,
        )
        self.booking_id = booking_id


class TransientDependencyError(DispatchError):
    """An external collaborator failed; the caller may retry with backoff."""

    @classmethod
    def wrap(
        cls,
        exc: BaseException,
        *,
        operation: str,
        target_id: Optional[Any] = None,
    ) -> 'TransientDependencyError':
        target = None if target_id is None else str(target_id)
        error = cls(
            f"{operation} failed for {target}: {type(exc).__name__}: {exc}",
            operation=operation,
            target_id=target,
        )
        error.__cause__ = exc
        return error


class GatewayUnavailableError(TransientDependencyError):
    """The push gateway could not accept the multicast request at all."""


class DeadlineExceededError(TransientDependencyError):
    """A caller-imposed deadline expired before the operation finished."""


class ConflictError(DispatchError):
    """A conditional write lost against a concurrent mutation."""
