"""OpenRouter provider adapter implementation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from usage_dashboard.config import OPENROUTER_API_BASE_URL, OPENROUTER_KEY_ENDPOINT
from usage_dashboard.http_client import ProviderAPIError, ProviderHTTPClient
from usage_dashboard.models import ProviderConfig, ProviderId, Unavailable, UsageSample
from usage_dashboard.providers.base import ProviderAdapter, to_float, to_token_count

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenRouterKeyUsage:
    tokens: int
    cost: float | None
    limit: float | None


class OpenRouterProviderAdapter(ProviderAdapter):
    provider = ProviderId.OPENROUTER

    def __init__(self, *args: Any, base_url: str = OPENROUTER_API_BASE_URL, **kwargs: Any) -> None:
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
            payload = await self._http(config, client).get_json(OPENROUTER_KEY_ENDPOINT)
        except ProviderAPIError as exc:
            return self.failed(str(exc))

        usage = parse_openrouter_key_usage(payload)
        if usage.cost is not None:
            cost = usage.cost
        else:
            cost = self.estimator.estimate(self.provider, usage.tokens)

        remaining = usage.limit - cost if usage.limit is not None else None

        return UsageSample(
            provider=self.provider,
            tokens=usage.tokens,
            cost=cost,
            last_updated=now,
            limit=usage.limit,
            remaining=remaining,
        )

    async def check_connection(self, config: ProviderConfig, client: httpx.AsyncClient) -> bool:
        if not config.enabled:
            return False
        try:
            await self._http(config, client).get_json(OPENROUTER_KEY_ENDPOINT)
        except ProviderAPIError as exc:
            logger.warning("OpenRouter connection test failed: %s", exc)
            return False
        return True


def parse_openrouter_key_usage(payload: dict[str, Any]) -> OpenRouterKeyUsage:
    """Normalize the ``/auth/key`` body.

    The key details may sit under ``data``. ``usage`` is either an object with
    ``total``/``cost`` or a bare number of credits spent (USD).
    """
    body = payload.get("data") if isinstance(payload.get("data"), dict) else payload

    usage = body.get("usage")
    tokens = 0
    cost: float | None = None
    if isinstance(usage, dict):
        tokens = to_token_count(usage.get("total"))
        if usage.get("cost") is not None:
            cost = max(0.0, to_float(usage.get("cost")))
    elif usage is not None:
        cost = max(0.0, to_float(usage))

    raw_limit = body.get("limit")
    limit = to_float(raw_limit) if raw_limit is not None and _is_finite_number(raw_limit) else None

    return OpenRouterKeyUsage(tokens=tokens, cost=cost, limit=limit)


def _is_finite_number(value: Any) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False
