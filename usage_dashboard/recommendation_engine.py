"""Threshold-based cost and billing-cycle recommendations.

Recommendations are recomputed from a snapshot on every request and never
stored. Evaluation is pure: no I/O, same snapshot in, same list out.
"""

from __future__ import annotations

from dataclasses import dataclass

from usage_dashboard.config import BILLING_PROGRESS_ALERT_PERCENT, COST_ALERT_THRESHOLD_USD
from usage_dashboard.models import (
    ProviderId,
    Recommendation,
    RecommendationKind,
    Severity,
    Snapshot,
)


@dataclass(frozen=True)
class RecommendationEngine:
    """Scan a snapshot for threshold breaches.

    Attributes:
        cost_threshold: Total spend (USD) above which a cost alert is raised.
        progress_threshold: Billing-cycle progress (%) above which a provider
            gets a billing warning.
    """

    cost_threshold: float = COST_ALERT_THRESHOLD_USD
    progress_threshold: int = BILLING_PROGRESS_ALERT_PERCENT

    def evaluate(self, snapshot: Snapshot) -> list[Recommendation]:
        recommendations: list[Recommendation] = []

        cost_alert = self._cost_recommendation(snapshot)
        if cost_alert is not None:
            recommendations.append(cost_alert)

        for provider in ProviderId:
            billing_alert = self._billing_recommendation(snapshot, provider)
            if billing_alert is not None:
                recommendations.append(billing_alert)

        return recommendations

    def _cost_recommendation(self, snapshot: Snapshot) -> Recommendation | None:
        total_cost = snapshot.total_cost
        if total_cost <= self.cost_threshold:
            return None
        return Recommendation(
            kind=RecommendationKind.COST,
            severity=Severity.HIGH,
            message=(
                f"Total cost is ${total_cost:.2f}/month. "
                "Consider switching to cheaper models for routine tasks."
            ),
        )

    def _billing_recommendation(self, snapshot: Snapshot, provider: ProviderId) -> Recommendation | None:
        entry = snapshot[provider]
        cycle = entry.billing_cycle
        if cycle is None or cycle.progress_percent <= self.progress_threshold:
            return None
        return Recommendation(
            kind=RecommendationKind.BILLING,
            severity=Severity.WARNING,
            message=(
                f"{provider.value}: {cycle.progress_percent}% through billing cycle "
                f"with ${entry.cost:.2f} spent."
            ),
        )


def evaluate(snapshot: Snapshot) -> list[Recommendation]:
    """Evaluate a snapshot with the default thresholds."""
    return RecommendationEngine().evaluate(snapshot)
