"""Usage aggregation: concurrent provider fetch, snapshot merge, bounded history."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime

import httpx

from usage_dashboard.billing_cycle import compute_billing_cycle
from usage_dashboard.config import HISTORY_LIMIT, REQUEST_TIMEOUT_SECONDS
from usage_dashboard.cost_engine import CostEstimator
from usage_dashboard.models import (
    BillingCycleInfo,
    HistoryEntry,
    ProviderConfig,
    ProviderId,
    ProviderSnapshot,
    Recommendation,
    Snapshot,
    Unavailable,
    UsageSample,
)
from usage_dashboard.providers import ProviderAdapter, default_adapters
from usage_dashboard.recommendation_engine import RecommendationEngine

logger = logging.getLogger(__name__)

FetchResult = UsageSample | Unavailable


def _utc_now() -> datetime:
    return datetime.now(UTC)


class UsageAggregator:
    """Owns the live ``Snapshot`` and is the only component that replaces it.

    Overlapping ``refresh`` calls are serialised by a lock and complete in
    call order. The merged snapshot is published with one reference swap, so
    ``get_snapshot`` never observes a half-merged state.
    """

    def __init__(
        self,
        adapters: Mapping[ProviderId, ProviderAdapter] | None = None,
        estimator: CostEstimator | None = None,
        *,
        recommendation_engine: RecommendationEngine | None = None,
        clock: Callable[[], datetime] = _utc_now,
        timeout_seconds: float = REQUEST_TIMEOUT_SECONDS,
        history_limit: int = HISTORY_LIMIT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self.estimator = estimator or CostEstimator()
        self.adapters = dict(adapters) if adapters is not None else default_adapters(self.estimator)
        self.recommendation_engine = recommendation_engine or RecommendationEngine()
        self.clock = clock
        self.timeout_seconds = timeout_seconds
        self.history_limit = history_limit
        self.transport = transport
        self._snapshot = Snapshot.empty()
        self._lock = asyncio.Lock()

    def get_snapshot(self) -> Snapshot:
        return self._snapshot

    def get_recommendations(self) -> list[Recommendation]:
        return self.recommendation_engine.evaluate(self._snapshot)

    async def refresh(self, configs: Mapping[ProviderId, ProviderConfig]) -> Snapshot:
        """Fetch every provider concurrently and publish the merged snapshot."""
        async with self._lock:
            now = self.clock()
            logger.info("Updating usage data...")

            async with self._http_client() as client:
                results = await asyncio.gather(
                    *(
                        self._fetch_one(provider, _config_for(configs, provider), client, now)
                        for provider in ProviderId
                    )
                )

            snapshot = self._merge(dict(zip(ProviderId, results)), configs, now)
            self._snapshot = snapshot

            fetched = [p.value for p, r in zip(ProviderId, results) if isinstance(r, UsageSample)]
            logger.info(
                "Usage data updated (fresh: %s; history: %d entries).",
                ", ".join(fetched) or "none",
                len(snapshot.history),
            )
            return snapshot

    async def test_connections(self, configs: Mapping[ProviderId, ProviderConfig]) -> dict[ProviderId, bool]:
        """Check each configured key against its provider; unconfigured -> False."""
        async with self._http_client() as client:
            outcomes = await asyncio.gather(
                *(
                    self._check_one(provider, _config_for(configs, provider), client)
                    for provider in ProviderId
                )
            )
        return dict(zip(ProviderId, outcomes))

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport)

    async def _fetch_one(
        self,
        provider: ProviderId,
        config: ProviderConfig,
        client: httpx.AsyncClient,
        now: datetime,
    ) -> FetchResult:
        adapter = self.adapters.get(provider)
        if adapter is None:
            return Unavailable(provider=provider, reason="No adapter registered.", configured=False)

        try:
            result = await asyncio.wait_for(
                adapter.fetch(config, client, now=now),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            result = Unavailable(
                provider=provider,
                reason=f"Timed out after {self.timeout_seconds:g}s.",
            )
        except Exception as exc:
            logger.exception("%s fetch raised unexpectedly.", provider.value)
            result = Unavailable(provider=provider, reason=f"Unexpected error: {exc}")

        if isinstance(result, Unavailable):
            if result.configured:
                logger.warning("%s fetch error: %s", provider.value, result.reason)
            else:
                logger.debug("%s skipped: %s", provider.value, result.reason)
        return result

    async def _check_one(
        self,
        provider: ProviderId,
        config: ProviderConfig,
        client: httpx.AsyncClient,
    ) -> bool:
        adapter = self.adapters.get(provider)
        if adapter is None or not config.enabled:
            return False
        try:
            return await asyncio.wait_for(
                adapter.check_connection(config, client),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            logger.warning("%s connection test timed out.", provider.value)
        except Exception:
            logger.exception("%s connection test raised unexpectedly.", provider.value)
        return False

    def _merge(
        self,
        results: dict[ProviderId, FetchResult],
        configs: Mapping[ProviderId, ProviderConfig],
        now: datetime,
    ) -> Snapshot:
        previous = self._snapshot
        providers: dict[ProviderId, ProviderSnapshot] = {}
        history_tokens: dict[ProviderId, int] = {}

        for provider in ProviderId:
            result = results[provider]
            if isinstance(result, UsageSample):
                cycle = self._billing_cycle(provider, _config_for(configs, provider), now)
                providers[provider] = ProviderSnapshot.from_sample(result, cycle)
                history_tokens[provider] = result.tokens
            else:
                providers[provider] = previous[provider]
                history_tokens[provider] = 0

        history = (*previous.history, HistoryEntry(timestamp=now, tokens=history_tokens))
        if len(history) > self.history_limit:
            history = history[-self.history_limit :]

        return Snapshot(providers=providers, history=history)

    @staticmethod
    def _billing_cycle(
        provider: ProviderId,
        config: ProviderConfig,
        now: datetime,
    ) -> BillingCycleInfo | None:
        try:
            return compute_billing_cycle(config.billing_cycle_start_day, now.date())
        except ValueError as exc:
            logger.warning("%s billing cycle skipped: %s", provider.value, exc)
            return None


def _config_for(configs: Mapping[ProviderId, ProviderConfig], provider: ProviderId) -> ProviderConfig:
    return configs.get(provider) or ProviderConfig()
