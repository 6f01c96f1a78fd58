"""Anthropic provider adapter implementation.

Anthropic exposes no usage endpoint for standard API keys, so a configured
key yields a zero-valued sample with an explanatory note rather than a
failure. The key is still exercised by ``check_connection``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import httpx

from usage_dashboard.config import (
    ANTHROPIC_API_BASE_URL,
    ANTHROPIC_MODELS_ENDPOINT,
    ANTHROPIC_USAGE_NOTE,
    ANTHROPIC_VERSION,
)
from usage_dashboard.http_client import ProviderAPIError, ProviderHTTPClient
from usage_dashboard.models import ProviderConfig, ProviderId, Unavailable, UsageSample
from usage_dashboard.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)


class AnthropicProviderAdapter(ProviderAdapter):
    provider = ProviderId.ANTHROPIC

    def __init__(
        self,
        *args: Any,
        base_url: str = ANTHROPIC_API_BASE_URL,
        version: str = ANTHROPIC_VERSION,
        **kwargs: Any,
    ) -> None:
        super().__init__(*args, base_url=base_url, **kwargs)
        self.version = version

    async def fetch(
        self,
        config: ProviderConfig,
        client: httpx.AsyncClient,
        *,
        now: datetime,
    ) -> UsageSample | Unavailable:
        if not config.enabled:
            return self.not_configured()

        return UsageSample(
            provider=self.provider,
            tokens=0,
            cost=0.0,
            last_updated=now,
            note=ANTHROPIC_USAGE_NOTE,
        )

    async def check_connection(self, config: ProviderConfig, client: httpx.AsyncClient) -> bool:
        if not config.enabled:
            return False

        http = ProviderHTTPClient(
            client,
            base_url=self.base_url,
            headers={
                "x-api-key": config.api_key.strip(),
                "anthropic-version": self.version,
            },
            max_retries=self.max_retries,
            backoff_seconds=self.backoff_seconds,
        )
        try:
            await http.get_json(ANTHROPIC_MODELS_ENDPOINT)
        except ProviderAPIError as exc:
            logger.warning("Anthropic connection test failed: %s", exc)
            return False
        return True
