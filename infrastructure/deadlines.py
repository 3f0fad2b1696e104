"""Deadline helpers for awaiting external collaborators."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from .errors import DeadlineExceededError, DispatchError, TransientDependencyError

T = TypeVar("T")


async def run_with_deadline(
    awaitable: Awaitable[T],
    timeout: Optional[float],
    *,
    operation: str,
    target_id: Optional[str] = None,
) -> T:
    """Await ``awaitable`` under ``timeout`` seconds.

    Expiry cancels the in-flight work and raises :class:`DeadlineExceededError`.
    ``None`` disables the deadline.
    """

    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise DeadlineExceededError(
            f"{operation} exceeded its {timeout}s deadline for {target_id}",
            operation=operation,
            target_id=target_id,
        ) from exc


async def call_dependency(
    awaitable: Awaitable[T],
    *,
    operation: str,
    target_id: Optional[str] = None,
    error_cls: type = TransientDependencyError,
) -> T:
    """Await a collaborator call, wrapping foreign failures with context.

    Engine errors and cancellation pass through untouched.
    """

    try:
        return await awaitable
    except (DispatchError, asyncio.CancelledError):
        raise
    except Exception as exc:
        raise error_cls.wrap(exc, operation=operation, target_id=target_id) from exc
