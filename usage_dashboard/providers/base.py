"""Provider adapter interface and shared helpers."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

import httpx

from usage_dashboard.config import MAX_RETRIES
from usage_dashboard.cost_engine import CostEstimator
from usage_dashboard.models import ProviderConfig, ProviderId, Unavailable, UsageSample


class ProviderAdapter(ABC):
    """Abstract interface that all LLM provider adapters must implement.

    Adapters hold no credentials between calls; the ``ProviderConfig`` is
    passed into every call so key rotation applies on the next refresh.
    """

    provider: ProviderId

    def __init__(
        self,
        estimator: CostEstimator | None = None,
        *,
        base_url: str,
        max_retries: int = MAX_RETRIES,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.estimator = estimator or CostEstimator()
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    @abstractmethod
    async def fetch(
        self,
        config: ProviderConfig,
        client: httpx.AsyncClient,
        *,
        now: datetime,
    ) -> UsageSample | Unavailable:
        """Fetch current usage and normalize it into a ``UsageSample``."""

    @abstractmethod
    async def check_connection(self, config: ProviderConfig, client: httpx.AsyncClient) -> bool:
        """Return True if the configured key is accepted by the provider."""

    def not_configured(self) -> Unavailable:
        return Unavailable(
            provider=self.provider,
            reason=f"{self.provider.value} key not configured.",
            configured=False,
        )

    def failed(self, reason: str) -> Unavailable:
        return Unavailable(provider=self.provider, reason=reason)


def to_float(value: Any) -> float:
    """Coerce a provider number; missing, malformed and non-finite values become 0.0."""
    try:
        if value is None or value == "" or isinstance(value, bool):
            return 0.0
        result = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def to_token_count(value: Any) -> int:
    return max(0, int(to_float(value)))
