"""Multicast push delivery with stale-token repair.

One dispatch sends a single multicast to every token a user owns, reads the
gateway's per-token verdicts positionally, and removes exactly the tokens
that failed in that response. The removal is a conditional write against the
latest stored set, so a device registered while the multicast was in flight
survives the cleanup.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from infrastructure.constants import (
    DEFAULT_DEEP_LINK,
    NOTIFY_CLEANUP_ATTEMPTS,
    NOTIFY_FANOUT_CONCURRENCY,
    OPERATION_TIMEOUT_SECONDS,
)
from infrastructure.deadlines import call_dependency, run_with_deadline
from infrastructure.errors import (
    DeadlineExceededError,
    DispatchError,
    GatewayUnavailableError,
    UserNotFoundError,
)
from notifications.gateway import PushGateway
from notifications.metrics import DispatchStats
from notifications.models import (
    CLEANUP_CONFLICT,
    CLEANUP_NOT_NEEDED,
    CLEANUP_PRUNED,
    DispatchOutcome,
    NotificationMessage,
)
from notifications.user_records import UserRecordStore


@dataclass(frozen=True)
class FanoutResult:
    """Outcome of one message inside :meth:`NotificationDispatcher.dispatch_many`."""

    message: NotificationMessage
    outcome: Optional[DispatchOutcome] = None
    error: Optional[DispatchError] = None

    @property
    def success(self) -> bool:
        return self.error is None


class NotificationDispatcher:
    """Delivers push notifications to every registered device of a user."""

    def __init__(
        self,
        user_records: UserRecordStore,
        gateway: PushGateway,
        *,
        cleanup_attempts: int = NOTIFY_CLEANUP_ATTEMPTS,
        fanout_concurrency: int = NOTIFY_FANOUT_CONCURRENCY,
        default_timeout: Optional[float] = OPERATION_TIMEOUT_SECONDS,
        default_link: str = DEFAULT_DEEP_LINK,
        stats: Optional[DispatchStats] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if cleanup_attempts < 1:
            raise ValueError("cleanup_attempts must be at least 1")
        self.user_records = user_records
        self.gateway = gateway
        self.cleanup_attempts = cleanup_attempts
        self.fanout_concurrency = fanout_concurrency
        self.default_timeout = default_timeout
        self.default_link = default_link
        self.stats = stats or DispatchStats()
        self.logger = logger or logging.getLogger('NotificationDispatcher')

    def _deadline(self, timeout: Optional[float]) -> Optional[float]:
        return self.default_timeout if timeout is None else timeout

    async def dispatch(
        self,
        message: NotificationMessage,
        *,
        timeout: Optional[float] = None,
    ) -> DispatchOutcome:
        """Send ``message`` to all of the target user's devices.

        Partial delivery is reported in the outcome. Raises
        :class:`UserNotFoundError` for an unknown user and
        :class:`GatewayUnavailableError` when the multicast itself fails, in
        which case no tokens are touched.
        """

        return await run_with_deadline(
            self._dispatch(message),
            self._deadline(timeout),
            operation='dispatch',
            target_id=message.target_user_id,
        )

    async def dispatch_many(
        self,
        messages: Sequence[NotificationMessage],
        *,
        timeout: Optional[float] = None,
    ) -> List[FanoutResult]:
        """Dispatch independent messages concurrently, in input order.

        At most ``fanout_concurrency`` dispatches run at once. Messages still
        running when the deadline passes are cancelled and reported with a
        :class:`DeadlineExceededError`.
        """

        if not messages:
            return []

        deadline = self._deadline(timeout)
        semaphore = asyncio.Semaphore(self.fanout_concurrency)

        async def run_one(message: NotificationMessage) -> DispatchOutcome:
            async with semaphore:
                return await self._dispatch(message)

        task_map: Dict[asyncio.Task, int] = {}
        for index, message in enumerate(messages):
            task = asyncio.create_task(
                run_one(message),
                name=f"notify-{message.target_user_id[:8]}",
            )
            task_map[task] = index

        done, pending = await asyncio.wait(
            list(task_map),
            return_when=asyncio.ALL_COMPLETED,
            timeout=deadline,
        )

        results: List[Optional[FanoutResult]] = [None] * len(messages)

        if pending:
            self.logger.warning("Found %s hanging dispatch tasks - cancelling them", len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in pending:
                message = messages[task_map[task]]
                results[task_map[task]] = FanoutResult(
                    message=message,
                    error=DeadlineExceededError(
                        f"dispatch exceeded its {deadline}s deadline for {message.target_user_id}",
                        operation='dispatch_many',
                        target_id=message.target_user_id,
                    ),
                )

        for task in done:
            message = messages[task_map[task]]
            try:
                results[task_map[task]] = FanoutResult(message=message, outcome=task.result())
            except DispatchError as exc:
                self.logger.warning(
                    "Dispatch to user %s failed: %s",
                    message.target_user_id,
                    exc,
                    extra={'dispatch_error': exc.context()},
                )
                results[task_map[task]] = FanoutResult(message=message, error=exc)

        return [result for result in results if result is not None]

    async def _dispatch(self, message: NotificationMessage) -> DispatchOutcome:
        user_id = message.target_user_id
        tokens = await call_dependency(
            self.user_records.get_endpoint_tokens(user_id),
            operation='get_endpoint_tokens',
            target_id=user_id,
        )
        if tokens is None:
            self.logger.warning("User not found for notification: %s", user_id)
            raise UserNotFoundError(user_id)
        if not tokens:
            self.logger.info("No endpoint tokens for user %s; push skipped", user_id)
            outcome = DispatchOutcome.no_endpoints()
            self.stats.record_outcome(outcome)
            return outcome

        ordered = sorted(tokens)
        responses = await self._send(message, ordered)

        invalid = [token for token, response in zip(ordered, responses) if not response.success]
        delivered = len(ordered) - len(invalid)

        cleanup, pruned = CLEANUP_NOT_NEEDED, tuple()
        if invalid:
            cleanup, pruned = await self._prune_tokens(user_id, frozenset(invalid))

        outcome = DispatchOutcome(
            delivered=delivered,
            failed=len(invalid),
            cleanup=cleanup,
            pruned_tokens=pruned,
        )
        self.stats.record_outcome(outcome)
        payload = {'event': 'notify.completed', 'user_id': user_id, **outcome.as_dict()}
        self.logger.info(
            "Push to user %s: delivered=%s failed=%s cleanup=%s",
            user_id,
            outcome.delivered,
            outcome.failed,
            outcome.cleanup,
            extra={'dispatch_event': payload},
        )
        return outcome

    async def _send(self, message: NotificationMessage, tokens: List[str]) -> list:
        user_id = message.target_user_id
        try:
            responses = list(await call_dependency(
                self.gateway.send_multicast(
                    tokens,
                    message.title,
                    message.body,
                    link=message.link,
                    data=message.data_payload(self.default_link),
                ),
                operation='send_multicast',
                target_id=user_id,
                error_cls=GatewayUnavailableError,
            ))
        except DispatchError as exc:
            self.stats.record_gateway_error()
            self.logger.error(
                "Push gateway unavailable for user %s",
                user_id,
                exc_info=True,
                extra={'dispatch_error': exc.context()},
            )
            raise

        if len(responses) != len(tokens):
            self.stats.record_gateway_error()
            self.logger.error(
                "Gateway returned %s responses for %s tokens (user %s)",
                len(responses),
                len(tokens),
                user_id,
            )
            raise GatewayUnavailableError(
                f"send_multicast returned {len(responses)} responses for {len(tokens)} tokens",
                operation='send_multicast',
                target_id=user_id,
            )
        return responses

    async def _prune_tokens(
        self,
        user_id: str,
        invalid: FrozenSet[str],
    ) -> Tuple[str, Tuple[str, ...]]:
        """Remove ``invalid`` from the user's latest token set.

        Each attempt re-reads the stored set and writes it back minus the
        failed tokens, conditioned on the set being unchanged.
        """

        for attempt in range(1, self.cleanup_attempts + 1):
            latest = await call_dependency(
                self.user_records.get_endpoint_tokens(user_id),
                operation='get_endpoint_tokens',
                target_id=user_id,
            )
            if latest is None:
                self.logger.info("User %s disappeared before token cleanup", user_id)
                return CLEANUP_NOT_NEEDED, tuple()

            stale = latest & invalid
            if not stale:
                return CLEANUP_NOT_NEEDED, tuple()

            written = await call_dependency(
                self.user_records.replace_endpoint_tokens(user_id, latest, latest - invalid),
                operation='replace_endpoint_tokens',
                target_id=user_id,
            )
            if written:
                self.logger.info("Pruned %s stale tokens for user %s", len(stale), user_id)
                return CLEANUP_PRUNED, tuple(sorted(stale))

            self.logger.info(
                "Token cleanup conflict for user %s (attempt %s/%s)",
                user_id,
                attempt,
                self.cleanup_attempts,
            )

        self.logger.warning(
            "Giving up token cleanup for user %s after %s conflicting writes",
            user_id,
            self.cleanup_attempts,
        )
        return CLEANUP_CONFLICT, tuple()
