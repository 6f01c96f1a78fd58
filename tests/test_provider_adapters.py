import asyncio
from datetime import UTC, datetime

import httpx
import pytest

from usage_dashboard.config import ANTHROPIC_USAGE_NOTE
from usage_dashboard.cost_engine import CostEstimator
from usage_dashboard.models import ProviderConfig, ProviderId, Unavailable, UsageSample
from usage_dashboard.providers import (
    AnthropicProviderAdapter,
    OpenAIProviderAdapter,
    OpenRouterProviderAdapter,
    build_adapter,
)
from usage_dashboard.providers.base import to_float, to_token_count
from usage_dashboard.providers.openai_adapter import extract_openai_tokens
from usage_dashboard.providers.openrouter_adapter import parse_openrouter_key_usage

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)
CONFIG = ProviderConfig(api_key="sk-test", billing_cycle_start_day=1)


def _run_fetch(adapter, handler, config: ProviderConfig = CONFIG):
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await adapter.fetch(config, client, now=NOW)

    return asyncio.run(_go())


def _run_check(adapter, handler, config: ProviderConfig = CONFIG) -> bool:
    async def _go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await adapter.check_connection(config, client)

    return asyncio.run(_go())


def _never_called(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


def test_openai_fetch_estimates_cost_from_total_usage() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"total_usage": 1_500_000})

    sample = _run_fetch(OpenAIProviderAdapter(backoff_seconds=0), handler)

    assert isinstance(sample, UsageSample)
    assert sample.provider is ProviderId.OPENAI
    assert sample.tokens == 1_500_000
    assert sample.cost == pytest.approx(3.0)
    assert sample.last_updated == NOW
    assert seen[0].url.path == "/v1/usage"
    assert seen[0].url.params["date"] == "2024-03-15"
    assert seen[0].headers["Authorization"] == "Bearer sk-test"


def test_openai_fetch_prefers_reported_cost() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"total_usage": 1_000_000, "total_cost": 42.5})

    sample = _run_fetch(OpenAIProviderAdapter(backoff_seconds=0), handler)

    assert isinstance(sample, UsageSample)
    assert sample.cost == 42.5


def _raw_json(body: str):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body.encode(), headers={"content-type": "application/json"})

    return handler


def test_openai_non_finite_reported_cost_is_zero() -> None:
    sample = _run_fetch(
        OpenAIProviderAdapter(backoff_seconds=0),
        _raw_json('{"total_usage": 1000000, "total_cost": Infinity}'),
    )

    assert isinstance(sample, UsageSample)
    assert sample.tokens == 1_000_000
    assert sample.cost == 0.0


def test_openai_non_finite_tokens_are_zero() -> None:
    for body in ('{"total_usage": NaN}', '{"total_usage": Infinity}', '{"total_usage": -Infinity}'):
        sample = _run_fetch(OpenAIProviderAdapter(backoff_seconds=0), _raw_json(body))

        assert isinstance(sample, UsageSample)
        assert sample.tokens == 0
        assert sample.cost == 0.0


def test_openrouter_non_finite_values_are_dropped() -> None:
    sample = _run_fetch(
        OpenRouterProviderAdapter(backoff_seconds=0),
        _raw_json('{"data": {"usage": {"total": NaN, "cost": Infinity}, "limit": Infinity}}'),
    )

    assert isinstance(sample, UsageSample)
    assert sample.tokens == 0
    assert sample.cost == 0.0
    assert sample.limit is None


def test_to_float_rejects_non_finite() -> None:
    assert to_float(float("inf")) == 0.0
    assert to_float("nan") == 0.0
    assert to_float("1e400") == 0.0
    assert to_float("2.5") == 2.5
    assert to_token_count(float("-inf")) == 0


def test_openai_tokens_summed_from_data_rows() -> None:
    payload = {
        "data": [
            {"n_context_tokens_total": 100, "n_generated_tokens_total": 50},
            {"n_context_tokens_total": "25", "n_generated_tokens_total": None},
            "garbage",
        ]
    }

    assert extract_openai_tokens(payload) == 175
    assert extract_openai_tokens({}) == 0


def test_openai_empty_key_is_unavailable_without_request() -> None:
    result = _run_fetch(
        OpenAIProviderAdapter(backoff_seconds=0),
        _never_called,
        ProviderConfig(api_key="  "),
    )

    assert isinstance(result, Unavailable)
    assert result.configured is False


def test_openai_http_error_is_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"message": "Invalid API key"}})

    result = _run_fetch(OpenAIProviderAdapter(backoff_seconds=0), handler)

    assert isinstance(result, Unavailable)
    assert result.configured is True
    assert "Invalid API key" in result.reason
    assert "401" in result.reason


def test_openai_retries_transient_status_then_succeeds() -> None:
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json={"total_usage": 10})

    sample = _run_fetch(OpenAIProviderAdapter(backoff_seconds=0), handler)

    assert isinstance(sample, UsageSample)
    assert sample.tokens == 10
    assert calls["count"] == 2


def test_malformed_and_network_failures_are_unavailable() -> None:
    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>oops</html>")

    def not_object(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[1, 2, 3])

    def connect_error(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    for handler in (not_json, not_object, connect_error):
        result = _run_fetch(OpenAIProviderAdapter(backoff_seconds=0), handler)
        assert isinstance(result, Unavailable)
        assert result.configured is True


def test_anthropic_returns_zero_sample_with_note() -> None:
    sample = _run_fetch(AnthropicProviderAdapter(), _never_called)

    assert isinstance(sample, UsageSample)
    assert sample.tokens == 0
    assert sample.cost == 0.0
    assert sample.note == ANTHROPIC_USAGE_NOTE


def test_anthropic_unconfigured_is_unavailable() -> None:
    result = _run_fetch(AnthropicProviderAdapter(), _never_called, ProviderConfig())

    assert isinstance(result, Unavailable)
    assert result.configured is False


def test_openrouter_nested_usage_object() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/auth/key"
        return httpx.Response(200, json={"usage": {"total": 2_000, "cost": 12.5}, "limit": 50})

    sample = _run_fetch(OpenRouterProviderAdapter(backoff_seconds=0), handler)

    assert isinstance(sample, UsageSample)
    assert sample.tokens == 2_000
    assert sample.cost == 12.5
    assert sample.limit == 50.0
    assert sample.remaining == 37.5


def test_openrouter_credit_usage_under_data_key() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"data": {"label": "sk-or-v1...", "usage": 3.25, "limit": None}})

    sample = _run_fetch(OpenRouterProviderAdapter(backoff_seconds=0), handler)

    assert isinstance(sample, UsageSample)
    assert sample.tokens == 0
    assert sample.cost == 3.25
    assert sample.limit is None
    assert sample.remaining is None


def test_openrouter_estimates_cost_when_not_reported() -> None:
    usage = parse_openrouter_key_usage({"usage": {"total": 1_000_000}})
    assert usage.cost is None

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"usage": {"total": 1_000_000}})

    adapter = OpenRouterProviderAdapter(CostEstimator().with_rates(openrouter=4.0), backoff_seconds=0)
    sample = _run_fetch(adapter, handler)

    assert isinstance(sample, UsageSample)
    assert sample.cost == pytest.approx(4.0)


def test_check_connection_per_provider() -> None:
    headers: dict[str, httpx.Headers] = {}

    def ok(request: httpx.Request) -> httpx.Response:
        headers[request.url.host] = request.headers
        return httpx.Response(200, json={"data": []})

    def denied(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "forbidden"}})

    assert _run_check(OpenAIProviderAdapter(backoff_seconds=0), ok) is True
    assert _run_check(AnthropicProviderAdapter(backoff_seconds=0), ok) is True
    assert _run_check(OpenRouterProviderAdapter(backoff_seconds=0), ok) is True
    assert _run_check(OpenAIProviderAdapter(backoff_seconds=0), denied) is False
    assert _run_check(OpenAIProviderAdapter(), _never_called, ProviderConfig()) is False

    assert headers["api.anthropic.com"]["x-api-key"] == "sk-test"
    assert headers["api.anthropic.com"]["anthropic-version"] == "2023-06-01"


def test_build_adapter_covers_every_provider() -> None:
    expected = {
        ProviderId.OPENAI: OpenAIProviderAdapter,
        ProviderId.ANTHROPIC: AnthropicProviderAdapter,
        ProviderId.OPENROUTER: OpenRouterProviderAdapter,
    }
    for provider in ProviderId:
        adapter = build_adapter(provider)
        assert isinstance(adapter, expected[provider])
        assert adapter.provider is provider
