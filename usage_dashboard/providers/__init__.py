"""Provider adapters for unified LLM usage tracking."""

from __future__ import annotations

from typing import assert_never

from usage_dashboard.cost_engine import CostEstimator
from usage_dashboard.models import ProviderId
from usage_dashboard.providers.anthropic_adapter import AnthropicProviderAdapter
from usage_dashboard.providers.base import ProviderAdapter
from usage_dashboard.providers.openai_adapter import OpenAIProviderAdapter
from usage_dashboard.providers.openrouter_adapter import OpenRouterProviderAdapter


def build_adapter(provider: ProviderId, estimator: CostEstimator | None = None) -> ProviderAdapter:
    match provider:
        case ProviderId.OPENAI:
            return OpenAIProviderAdapter(estimator)
        case ProviderId.ANTHROPIC:
            return AnthropicProviderAdapter(estimator)
        case ProviderId.OPENROUTER:
            return OpenRouterProviderAdapter(estimator)
        case _:
            assert_never(provider)


def default_adapters(estimator: CostEstimator | None = None) -> dict[ProviderId, ProviderAdapter]:
    return {provider: build_adapter(provider, estimator) for provider in ProviderId}


__all__ = [
    "AnthropicProviderAdapter",
    "OpenAIProviderAdapter",
    "OpenRouterProviderAdapter",
    "ProviderAdapter",
    "build_adapter",
    "default_adapters",
]
