"""Normalized usage data model shared by adapters, aggregator and UI.

Every value here is immutable. The aggregator replaces snapshot entries
instead of mutating them, so a reference handed to the presentation layer
never changes underneath it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from types import MappingProxyType
from typing import Any


class ProviderId(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"


class RecommendationKind(StrEnum):
    COST = "cost"
    BILLING = "billing"


class Severity(StrEnum):
    INFO = "info"
    WARNING = "warning"
    HIGH = "high"


@dataclass(frozen=True)
class ProviderConfig:
    """Credentials and billing anchor for one provider.

    Attributes:
        api_key: Secret key. Empty means the provider is disabled.
        billing_cycle_start_day: Day of month (1-31) the billing cycle resets.
    """

    api_key: str = ""
    billing_cycle_start_day: int = 1

    @property
    def enabled(self) -> bool:
        return bool(self.api_key.strip())


@dataclass(frozen=True)
class UsageSample:
    provider: ProviderId
    tokens: int
    cost: float
    last_updated: datetime
    note: str | None = None
    limit: float | None = None
    remaining: float | None = None

    def __post_init__(self) -> None:
        if self.tokens < 0:
            raise ValueError("tokens must be non-negative")
        if self.cost < 0:
            raise ValueError("cost must be non-negative")


@dataclass(frozen=True)
class Unavailable:
    """Adapter result when no usage sample could be produced."""

    provider: ProviderId
    reason: str
    configured: bool = True


@dataclass(frozen=True)
class BillingCycleInfo:
    days_elapsed: int
    days_remaining: int
    progress_percent: int
    reset_date: date

    def to_dict(self) -> dict[str, Any]:
        return {
            "daysElapsed": self.days_elapsed,
            "daysRemaining": self.days_remaining,
            "progress": self.progress_percent,
            "resetDate": self.reset_date.isoformat(),
        }


@dataclass(frozen=True)
class ProviderSnapshot:
    provider: ProviderId
    tokens: int = 0
    cost: float = 0.0
    last_updated: datetime | None = None
    note: str | None = None
    limit: float | None = None
    remaining: float | None = None
    billing_cycle: BillingCycleInfo | None = None

    @classmethod
    def placeholder(cls, provider: ProviderId) -> "ProviderSnapshot":
        return cls(provider=provider)

    @classmethod
    def from_sample(
        cls,
        sample: UsageSample,
        billing_cycle: BillingCycleInfo | None,
    ) -> "ProviderSnapshot":
        return cls(
            provider=sample.provider,
            tokens=sample.tokens,
            cost=sample.cost,
            last_updated=sample.last_updated,
            note=sample.note,
            limit=sample.limit,
            remaining=sample.remaining,
            billing_cycle=billing_cycle,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "tokens": self.tokens,
            "cost": self.cost,
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
            "billingCycle": self.billing_cycle.to_dict() if self.billing_cycle else None,
        }
        if self.note is not None:
            payload["note"] = self.note
        if self.limit is not None:
            payload["limit"] = self.limit
        if self.remaining is not None:
            payload["remaining"] = self.remaining
        return payload


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: datetime
    tokens: Mapping[ProviderId, int]

    def __post_init__(self) -> None:
        object.__setattr__(self, "tokens", MappingProxyType(dict(self.tokens)))

    def to_dict(self) -> dict[str, Any]:
        row: dict[str, Any] = {"timestamp": self.timestamp.isoformat()}
        for provider in ProviderId:
            row[provider.value] = int(self.tokens.get(provider, 0))
        return row


@dataclass(frozen=True)
class Snapshot:
    """Best-known state for every provider plus the bounded token history."""

    providers: Mapping[ProviderId, ProviderSnapshot]
    history: tuple[HistoryEntry, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        filled = {
            provider: self.providers.get(provider) or ProviderSnapshot.placeholder(provider)
            for provider in ProviderId
        }
        object.__setattr__(self, "providers", MappingProxyType(filled))
        object.__setattr__(self, "history", tuple(self.history))

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls(providers={})

    def __getitem__(self, provider: ProviderId) -> ProviderSnapshot:
        return self.providers[ProviderId(provider)]

    @property
    def total_cost(self) -> float:
        return sum(entry.cost for entry in self.providers.values())

    @property
    def total_tokens(self) -> int:
        return sum(entry.tokens for entry in self.providers.values())

    @property
    def last_updated(self) -> datetime | None:
        stamps = [entry.last_updated for entry in self.providers.values() if entry.last_updated]
        return max(stamps) if stamps else None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            provider.value: self.providers[provider].to_dict() for provider in ProviderId
        }
        payload["history"] = [entry.to_dict() for entry in self.history]
        return payload


@dataclass(frozen=True)
class Recommendation:
    kind: RecommendationKind
    severity: Severity
    message: str

    def to_dict(self) -> dict[str, str]:
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
        }
