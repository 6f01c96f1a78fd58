"""Thin async JSON client shared by the provider adapters."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from usage_dashboard.config import MAX_RETRIES

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


@dataclass
class ProviderAPIError(Exception):
    """Represents a failed provider API request."""

    message: str
    status_code: int | None = None

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (status={self.status_code})"


class ProviderHTTPClient:
    """GET-only JSON client with retry/backoff over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        base_url: str,
        headers: dict[str, str] | None = None,
        max_retries: int = MAX_RETRIES,
        backoff_seconds: float = 0.5,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.headers = dict(headers or {})
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    async def get_json(self, path: str, *, params: dict[str, Any] | None = None) -> dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.get(url, params=params, headers=self.headers)
            except httpx.HTTPError as exc:
                if attempt == self.max_retries:
                    raise ProviderAPIError(f"Request failed: {exc}") from exc
                await self._sleep(attempt)
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries:
                logger.debug("Retrying %s after status %s.", url, response.status_code)
                await self._sleep(attempt)
                continue

            if response.status_code >= 400:
                raise ProviderAPIError(
                    message=self._error_message(response),
                    status_code=response.status_code,
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ProviderAPIError("Provider API returned non-JSON response") from exc

            if not isinstance(payload, dict):
                raise ProviderAPIError("Unexpected response payload: root is not an object")
            return payload

        raise ProviderAPIError("Request failed after retries")

    async def _sleep(self, attempt: int) -> None:
        if self.backoff_seconds > 0:
            await asyncio.sleep(self.backoff_seconds * (2**attempt))

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
            err = payload.get("error", {}) if isinstance(payload, dict) else {}
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
        except ValueError:
            pass
        return response.text.strip() or "Provider API request failed"
