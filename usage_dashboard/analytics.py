"""Dashboard rollups derived from the current usage snapshot."""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from usage_dashboard.config import PROVIDER_LABELS
from usage_dashboard.models import ProviderId, Snapshot

HISTORY_COLUMNS = ["timestamp", *[provider.value for provider in ProviderId]]


@dataclass(frozen=True)
class DashboardKpis:
    total_cost: float
    total_tokens: int
    avg_cost_per_token: float
    avg_cycle_progress: float
    projected_cycle_cost: float


def compute_kpis(snapshot: Snapshot) -> DashboardKpis:
    """Headline numbers for the KPI cards.

    The projection scales spend-to-date by the mean billing-cycle progress
    across all providers (providers without a cycle count as 0%). With no
    progress yet, the projection is the current spend.
    """
    total_cost = snapshot.total_cost
    total_tokens = snapshot.total_tokens
    avg_cost = total_cost / total_tokens if total_tokens > 0 else 0.0

    progresses = [
        entry.billing_cycle.progress_percent if entry.billing_cycle else 0
        for entry in snapshot.providers.values()
    ]
    avg_progress = sum(progresses) / len(progresses) if progresses else 0.0
    projected = (total_cost / avg_progress) * 100 if avg_progress > 0 else total_cost

    return DashboardKpis(
        total_cost=total_cost,
        total_tokens=total_tokens,
        avg_cost_per_token=avg_cost,
        avg_cycle_progress=avg_progress,
        projected_cycle_cost=projected,
    )


def history_frame(snapshot: Snapshot) -> pd.DataFrame:
    """Wide token history frame, one row per refresh, oldest first."""
    if not snapshot.history:
        return pd.DataFrame(columns=HISTORY_COLUMNS)

    df = pd.DataFrame([entry.to_dict() for entry in snapshot.history])
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    for provider in ProviderId:
        df[provider.value] = pd.to_numeric(df[provider.value], errors="coerce").fillna(0).astype(int)
    return df[HISTORY_COLUMNS].reset_index(drop=True)


def history_long_frame(snapshot: Snapshot) -> pd.DataFrame:
    """Long-format history for per-provider line charts."""
    wide = history_frame(snapshot)
    if wide.empty:
        return pd.DataFrame(columns=["timestamp", "provider", "tokens"])

    long_df = wide.melt(id_vars=["timestamp"], var_name="provider", value_name="tokens")
    long_df["provider"] = long_df["provider"].map(PROVIDER_LABELS).fillna(long_df["provider"])
    return long_df.sort_values(["timestamp", "provider"]).reset_index(drop=True)


def spend_by_provider(snapshot: Snapshot) -> pd.DataFrame:
    rows = [
        {
            "provider": PROVIDER_LABELS.get(provider.value, provider.value),
            "tokens": snapshot[provider].tokens,
            "cost_usd": float(snapshot[provider].cost),
        }
        for provider in ProviderId
    ]
    return pd.DataFrame(rows).sort_values("cost_usd", ascending=False).reset_index(drop=True)
