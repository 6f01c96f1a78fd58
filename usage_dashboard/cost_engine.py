"""Token-to-cost estimation for providers that do not report spend.

Rates are illustrative, expressed in USD per million tokens, and resolved
through a small fallback chain:

    1. **Local YAML** - ``data/pricing.yaml`` (editable without code changes)
    2. **Hardcoded** - ``DEFAULT_RATES_PER_MILLION`` below
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from usage_dashboard.config import PRICING_YAML
from usage_dashboard.models import ProviderId

logger = logging.getLogger(__name__)

PRICING_VERSION = "2025-01-01"

_PER_MILLION = 1_000_000

DEFAULT_RATES_PER_MILLION: Mapping[ProviderId, float] = MappingProxyType(
    {
        ProviderId.OPENAI: 2.00,
        ProviderId.ANTHROPIC: 3.00,
        ProviderId.OPENROUTER: 1.50,
    }
)


@dataclass(frozen=True)
class CostEstimator:
    """Pure ``(provider, tokens) -> USD`` mapping over a rate table.

    Unknown providers and missing rates estimate to 0.0 instead of raising.
    """

    rates_per_million: Mapping[ProviderId, float] = field(
        default_factory=lambda: dict(DEFAULT_RATES_PER_MILLION)
    )

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "CostEstimator":
        return cls(rates_per_million=load_rate_table(path))

    def with_rates(self, **overrides: float) -> "CostEstimator":
        """Return a new estimator with some provider rates replaced."""
        rates = dict(self.rates_per_million)
        for key, value in overrides.items():
            try:
                rates[ProviderId(key)] = float(value)
            except ValueError:
                logger.warning("Ignoring rate override for unknown provider %r.", key)
        return CostEstimator(rates_per_million=rates)

    def rate_for(self, provider: ProviderId | str) -> float:
        try:
            key = ProviderId(provider)
        except ValueError:
            return 0.0
        return float(self.rates_per_million.get(key, 0.0))

    def estimate(self, provider: ProviderId | str, tokens: int) -> float:
        if tokens <= 0:
            return 0.0
        return tokens * self.rate_for(provider) / _PER_MILLION


def load_rate_table(path: Path | str | None = None) -> dict[ProviderId, float]:
    """Load per-provider rates from YAML, falling back to the hardcoded defaults.

    Expected layout::

        providers:
          openai:
            rate_per_million: 2.0

    Providers missing from the file keep their default rate.
    """
    rates = dict(DEFAULT_RATES_PER_MILLION)
    yaml_path = Path(path) if path else PRICING_YAML
    if not yaml_path.exists():
        logger.info("No pricing YAML at %s; using hardcoded rates.", yaml_path)
        return rates

    try:
        raw = yaml.safe_load(yaml_path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Failed to parse pricing YAML at %s: %s", yaml_path, exc)
        return rates

    if not isinstance(raw, dict) or not isinstance(raw.get("providers"), dict):
        logger.warning("Pricing YAML at %s has no 'providers' mapping; using hardcoded rates.", yaml_path)
        return rates

    for provider_key, provider_data in raw["providers"].items():
        try:
            provider = ProviderId(str(provider_key).lower())
        except ValueError:
            logger.warning("Skipping pricing for unknown provider %r.", provider_key)
            continue
        rate = _parse_rate(provider_data)
        if rate is None:
            continue
        rates[provider] = rate

    logger.info("Loaded pricing YAML from %s (%d providers).", yaml_path, len(rates))
    return rates


def _parse_rate(provider_data: Any) -> float | None:
    if isinstance(provider_data, dict):
        value = provider_data.get("rate_per_million")
    else:
        value = provider_data
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return None
    return rate if rate >= 0 else None
