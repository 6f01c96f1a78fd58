import json
from datetime import UTC, date, datetime

import pytest

from usage_dashboard.auth import verify_password
from usage_dashboard.models import (
    BillingCycleInfo,
    HistoryEntry,
    ProviderConfig,
    ProviderId,
    ProviderSnapshot,
    Snapshot,
    UsageSample,
)

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)


def test_usage_sample_rejects_negative_values() -> None:
    with pytest.raises(ValueError):
        UsageSample(provider=ProviderId.OPENAI, tokens=-1, cost=0.0, last_updated=NOW)
    with pytest.raises(ValueError):
        UsageSample(provider=ProviderId.OPENAI, tokens=0, cost=-0.01, last_updated=NOW)


def test_snapshot_always_holds_every_provider_and_is_read_only() -> None:
    sample = UsageSample(provider=ProviderId.OPENROUTER, tokens=10, cost=1.5, last_updated=NOW, limit=20.0, remaining=18.5)
    snapshot = Snapshot(providers={ProviderId.OPENROUTER: ProviderSnapshot.from_sample(sample, None)})

    assert list(snapshot.providers) == list(ProviderId)
    assert snapshot["openrouter"].tokens == 10
    assert snapshot.total_cost == 1.5
    assert snapshot.last_updated == NOW
    with pytest.raises(TypeError):
        snapshot.providers[ProviderId.OPENAI] = ProviderSnapshot.placeholder(ProviderId.OPENAI)


def test_snapshot_to_dict_shape() -> None:
    cycle = BillingCycleInfo(days_elapsed=14, days_remaining=17, progress_percent=45, reset_date=date(2024, 4, 1))
    anthropic = UsageSample(
        provider=ProviderId.ANTHROPIC,
        tokens=0,
        cost=0.0,
        last_updated=NOW,
        note="no usage API",
    )
    snapshot = Snapshot(
        providers={ProviderId.ANTHROPIC: ProviderSnapshot.from_sample(anthropic, cycle)},
        history=[HistoryEntry(timestamp=NOW, tokens={ProviderId.OPENAI: 3})],
    )

    payload = json.loads(json.dumps(snapshot.to_dict()))

    assert set(payload) == {"openai", "anthropic", "openrouter", "history"}
    assert payload["openai"] == {"tokens": 0, "cost": 0.0, "lastUpdated": None, "billingCycle": None}
    assert payload["anthropic"]["note"] == "no usage API"
    assert payload["anthropic"]["billingCycle"]["progress"] == 45
    assert payload["anthropic"]["lastUpdated"] == "2024-03-15T12:00:00+00:00"
    assert payload["history"] == [
        {"timestamp": "2024-03-15T12:00:00+00:00", "openai": 3, "anthropic": 0, "openrouter": 0}
    ]
    assert isinstance(snapshot.history, tuple)


def test_provider_config_enabled_ignores_whitespace() -> None:
    assert ProviderConfig(api_key="sk").enabled is True
    assert ProviderConfig(api_key="   ").enabled is False
    assert ProviderConfig().enabled is False


def test_verify_password() -> None:
    assert verify_password("changeme", "changeme") is True
    assert verify_password("changeMe", "changeme") is False
    assert verify_password("", "changeme") is False
    assert verify_password(None, "changeme") is False
    assert verify_password("anything", "") is False
