"""Plotly chart builders for the Streamlit dashboard."""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

PLOTLY_TEMPLATE = "plotly_white"


def empty_figure(message: str) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(
        x=0.5,
        y=0.5,
        text=message,
        showarrow=False,
        xref="paper",
        yref="paper",
        font={"size": 14},
    )
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    fig.update_layout(template=PLOTLY_TEMPLATE, height=360, margin=dict(l=10, r=10, t=40, b=10))
    return fig


def token_history_chart(history_df: pd.DataFrame) -> go.Figure:
    if history_df.empty:
        return empty_figure("No refresh history yet")

    fig = px.line(
        history_df,
        x="timestamp",
        y="tokens",
        color="provider",
        markers=True,
        title="Tokens per Refresh",
        labels={"timestamp": "Refreshed At", "tokens": "Tokens", "provider": "Provider"},
        template=PLOTLY_TEMPLATE,
    )
    fig.update_layout(height=360, margin=dict(l=10, r=10, t=50, b=10), legend_title_text="")
    return fig


def provider_spend_chart(provider_df: pd.DataFrame) -> go.Figure:
    if provider_df.empty or float(provider_df["cost_usd"].sum()) <= 0:
        return empty_figure("No provider spend data")

    fig = px.pie(
        provider_df,
        names="provider",
        values="cost_usd",
        hole=0.4,
        title="Spend by Provider",
        template=PLOTLY_TEMPLATE,
    )
    fig.update_layout(height=360, margin=dict(l=10, r=10, t=50, b=10))
    return fig
