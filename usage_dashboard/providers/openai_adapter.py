"""OpenAI provider adapter implementation."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from usage_dashboard.config import OPENAI_API_BASE_URL, OPENAI_MODELS_ENDPOINT, OPENAI_USAGE_ENDPOINT
from usage_dashboard.http_client import ProviderAPIError, ProviderHTTPClient
from usage_dashboard.models import ProviderConfig, ProviderId, Unavailable, UsageSample
from usage_dashboard.providers.base import ProviderAdapter, to_float, to_token_count

logger = logging.getLogger(__name__)


class OpenAIProviderAdapter(ProviderAdapter):
    provider = ProviderId.OPENAI

    def __init__(self, *args: Any, base_url: str = OPENAI_API_BASE_URL, **kwargs: Any) -> None:
        super().__init__(*args, base_url=base_url, **kwargs)

    def _http(self, config: ProviderConfig, client: httpx.AsyncClient) -> ProviderHTTPClient:
        return ProviderHTTPClient(
            client,
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {config.api_key.strip()}"},
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )

    async def fetch(
        self,
        config: ProviderConfig,
        client: httpx.AsyncClient,
        *,
        now: datetime,
    ) -> UsageSample | Unavailable:
        if not config.enabled:
            return self.not_configured()

        try:
            payload = await self._http(config, client).get_json(
                OPENAI_USAGE_ENDPOINT,
                params={"date": now.date().isoformat()},
            )
        except ProviderAPIError as exc:
            return self.failed(str(exc))

        tokens = extract_openai_tokens(payload)
        reported_cost = payload.get("total_cost")
        if reported_cost is not None:
            cost = max(0.0, to_float(reported_cost))
        else:
            cost = self.estimator.estimate(self.provider, tokens)

        return UsageSample(
            provider=self.provider,
            tokens=tokens,
            cost=cost,
            last_updated=now,
        )

    async def check_connection(self, config: ProviderConfig, client: httpx.AsyncClient) -> bool:
        if not config.enabled:
            return False
        try:
            await self._http(config, client).get_json(OPENAI_MODELS_ENDPOINT)
        except ProviderAPIError as exc:
            logger.warning("OpenAI connection test failed: %s", exc)
            return False
        return True


def extract_openai_tokens(payload: dict[str, Any]) -> int:
    """Read a total token count from either usage payload shape.

    Prefers a top-level ``total_usage``; otherwise sums context and generated
    tokens over the per-request ``data`` rows.
    """
    if payload.get("total_usage") is not None:
        return to_token_count(payload.get("total_usage"))

    rows = payload.get("data")
    if not isinstance(rows, list):
        return 0

    total = 0
    for row in rows:
        if not isinstance(row, dict):
            continue
        total += to_token_count(row.get("n_context_tokens_total"))
        total += to_token_count(row.get("n_generated_tokens_total"))
    return total
