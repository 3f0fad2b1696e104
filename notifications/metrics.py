"""Statistics helpers for the notification dispatcher."""

from __future__ import annotations

from dataclasses import dataclass

from notifications.models import CLEANUP_CONFLICT, DispatchOutcome, OUTCOME_NO_ENDPOINTS


@dataclass
class DispatchStats:
    """Mutable counters tracking push delivery across dispatch calls."""

    dispatches: int = 0
    delivered: int = 0
    failed: int = 0
    pruned_tokens: int = 0
    no_endpoint_skips: int = 0
    gateway_errors: int = 0
    cleanup_conflicts: int = 0

    def record_outcome(self, outcome: DispatchOutcome) -> None:
        self.dispatches += 1
        if outcome.reason == OUTCOME_NO_ENDPOINTS:
            self.no_endpoint_skips += 1
            return
        self.delivered += outcome.delivered
        self.failed += outcome.failed
        self.pruned_tokens += len(outcome.pruned_tokens)
        if outcome.cleanup == CLEANUP_CONFLICT:
            self.cleanup_conflicts += 1

    def record_gateway_error(self) -> None:
        self.dispatches += 1
        self.gateway_errors += 1

    @property
    def delivery_rate(self) -> float:
        attempted = self.delivered + self.failed
        if attempted == 0:
            return 0.0
        return (self.delivered / attempted) * 100

    def format_report(self) -> str:
        lines = [
            "📊 Notification Dispatch Report",
            f"📨 Dispatches: {self.dispatches}",
            f"✅ Delivered: {self.delivered}",
            f"❌ Failed: {self.failed}",
            f"🏆 Delivery Rate: {self.delivery_rate:.2f}%",
        ]
        if self.pruned_tokens:
            lines.append(f"🧹 Pruned Tokens: {self.pruned_tokens}")
        if self.no_endpoint_skips:
            lines.append(f"📭 No Endpoints: {self.no_endpoint_skips}")
        if self.gateway_errors:
            lines.append(f"🚫 Gateway Errors: {self.gateway_errors}")
        if self.cleanup_conflicts:
            lines.append(f"⚠️ Cleanup Conflicts: {self.cleanup_conflicts}")
        return "\n".join(lines)
