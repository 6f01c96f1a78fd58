"""UI helpers for Streamlit layout and controls."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import streamlit as st

from usage_dashboard.analytics import DashboardKpis
from usage_dashboard.config import PROVIDER_LABELS
from usage_dashboard.models import ProviderId, ProviderSnapshot, Recommendation, Severity


@dataclass(frozen=True)
class SidebarActions:
    refresh_clicked: bool
    test_clicked: bool
    logout_clicked: bool


@dataclass(frozen=True)
class SettingsUpdate:
    submitted: bool
    values: dict[str, Any]


def apply_app_styles() -> None:
    st.markdown(
        """
        <style>
            .block-container {
                padding-top: 1rem;
                padding-bottom: 2rem;
                max-width: 1250px;
            }
            [data-testid="stSidebar"] {
                border-right: 1px solid #e5e7eb;
            }
            [data-testid="metric-container"] {
                border: 1px solid #e5e7eb;
                border-radius: 8px;
                padding: 10px 12px;
                background: #f8fafc;
            }
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_header(last_updated: datetime | None) -> None:
    st.title("LLM Usage Dashboard")
    stamp = last_updated.strftime("%Y-%m-%d %H:%M:%S UTC") if last_updated else "never"
    st.caption(f"OpenAI, Anthropic and OpenRouter usage in one place. Last update: {stamp}")


def render_login() -> str | None:
    """Render the password form; return the submitted password, if any."""
    st.title("LLM Usage Dashboard")
    with st.form("login", clear_on_submit=True):
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in")
    return password if submitted else None


def render_sidebar() -> SidebarActions:
    st.sidebar.header("Actions")
    refresh_clicked = st.sidebar.button("Refresh Now", type="primary", use_container_width=True)
    test_clicked = st.sidebar.button("Test Connections", use_container_width=True)
    st.sidebar.divider()
    logout_clicked = st.sidebar.button("Log out", use_container_width=True)
    return SidebarActions(
        refresh_clicked=refresh_clicked,
        test_clicked=test_clicked,
        logout_clicked=logout_clicked,
    )


def render_kpi_cards(kpis: DashboardKpis) -> None:
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total Cost", f"${kpis.total_cost:.2f}")
    c2.metric("Total Tokens", f"{kpis.total_tokens:,}")
    c3.metric("Avg Cost / Token", f"${kpis.avg_cost_per_token:.6f}")
    c4.metric("Projected Cycle Cost", f"${kpis.projected_cycle_cost:.2f}")


def render_provider_cards(providers: Mapping[ProviderId, ProviderSnapshot]) -> None:
    columns = st.columns(len(ProviderId))
    for column, provider in zip(columns, ProviderId):
        with column:
            _render_provider_card(providers[provider])


def _render_provider_card(entry: ProviderSnapshot) -> None:
    st.subheader(PROVIDER_LABELS.get(entry.provider.value, entry.provider.value))
    st.metric("Tokens", f"{entry.tokens:,}")
    st.metric("Cost", f"${entry.cost:.2f}")

    cycle = entry.billing_cycle
    if cycle is not None:
        st.progress(cycle.progress_percent / 100, text=f"{cycle.progress_percent}% of billing cycle")
        st.caption(f"{cycle.days_remaining} days left · resets {cycle.reset_date.isoformat()}")
    else:
        st.caption("Billing cycle unavailable")

    if entry.limit is not None:
        remaining = entry.remaining if entry.remaining is not None else 0.0
        st.caption(f"Credit limit ${entry.limit:.2f} · ${remaining:.2f} remaining")
    if entry.note:
        st.info(entry.note)


def render_recommendations(recommendations: list[Recommendation]) -> None:
    st.subheader("Recommendations")
    if not recommendations:
        st.success("No recommendations at this time. Everything looks good!")
        return

    for rec in recommendations:
        text = f"**{rec.kind.value.upper()}:** {rec.message}"
        if rec.severity is Severity.HIGH:
            st.error(text)
        elif rec.severity is Severity.WARNING:
            st.warning(text)
        else:
            st.info(text)


def render_connection_results(results: Mapping[ProviderId, bool]) -> None:
    for provider, ok in results.items():
        label = PROVIDER_LABELS.get(provider.value, provider.value)
        if ok:
            st.sidebar.success(f"{label}: connected")
        else:
            st.sidebar.warning(f"{label}: not connected")


def render_settings_form(masked: Mapping[str, Any]) -> SettingsUpdate:
    """Settings form. Blank secret inputs leave the stored value unchanged."""
    with st.form("settings"):
        st.markdown("**Dashboard**")
        password = st.text_input(
            "Dashboard Password",
            type="password",
            placeholder=masked.get("dashboard_password") or "",
        )

        values: dict[str, Any] = {"dashboard_password": password}
        for provider in ProviderId:
            label = PROVIDER_LABELS.get(provider.value, provider.value)
            st.markdown(f"**{label}**")
            key_col, cycle_col = st.columns([3, 1])
            values[f"{provider.value}_key"] = key_col.text_input(
                f"{label} API Key",
                type="password",
                placeholder=masked.get(f"{provider.value}_key") or "not configured",
            )
            values[f"{provider.value}_cycle"] = cycle_col.number_input(
                "Billing day",
                min_value=1,
                max_value=31,
                step=1,
                value=int(masked.get(f"{provider.value}_cycle") or 1),
                key=f"{provider.value}_cycle_input",
            )

        submitted = st.form_submit_button("Save Settings", type="primary")

    return SettingsUpdate(submitted=submitted, values=values)
