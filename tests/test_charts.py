import pandas as pd

from usage_dashboard.charts import provider_spend_chart, token_history_chart


def test_provider_spend_chart_is_donut() -> None:
    provider_df = pd.DataFrame(
        [
            {"provider": "OpenAI", "tokens": 100, "cost_usd": 3.0},
            {"provider": "OpenRouter", "tokens": 50, "cost_usd": 1.0},
        ]
    )

    fig = provider_spend_chart(provider_df)

    assert len(fig.data) == 1
    assert fig.data[0].type == "pie"
    assert fig.data[0].hole == 0.4
    assert list(fig.data[0].values) == [3.0, 1.0]


def test_provider_spend_chart_empty_when_nothing_spent() -> None:
    provider_df = pd.DataFrame([{"provider": "OpenAI", "tokens": 0, "cost_usd": 0.0}])

    fig = provider_spend_chart(provider_df)

    assert len(fig.data) == 0
    assert fig.layout.annotations[0].text == "No provider spend data"


def test_token_history_chart_empty_state() -> None:
    fig = token_history_chart(pd.DataFrame())

    assert len(fig.data) == 0
    assert fig.layout.annotations[0].text == "No refresh history yet"
