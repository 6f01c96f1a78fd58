"""Streamlit entrypoint for the LLM usage dashboard."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import streamlit as st
from dotenv import load_dotenv

from usage_dashboard.aggregator import UsageAggregator
from usage_dashboard.analytics import compute_kpis, history_long_frame, spend_by_provider
from usage_dashboard.auth import verify_password
from usage_dashboard.charts import provider_spend_chart, token_history_chart
from usage_dashboard.config import (
    DEFAULT_SETTINGS_FILE,
    ENV_LOG_LEVEL,
    ENV_SETTINGS_FILE,
    REFRESH_INTERVAL_SECONDS,
)
from usage_dashboard.cost_engine import CostEstimator
from usage_dashboard.models import ProviderId, Snapshot
from usage_dashboard.scheduler import RefreshScheduler
from usage_dashboard.settings import DashboardSettings, SecretCipher, SettingsStore
from usage_dashboard.ui import (
    apply_app_styles,
    render_connection_results,
    render_header,
    render_kpi_cards,
    render_login,
    render_provider_cards,
    render_recommendations,
    render_settings_form,
    render_sidebar,
)

logger = logging.getLogger(__name__)

SUBMIT_TIMEOUT_SECONDS = 60


@dataclass
class DashboardService:
    """Process-wide wiring: settings, the aggregator that owns the snapshot, and its timer."""

    store: SettingsStore
    aggregator: UsageAggregator
    scheduler: RefreshScheduler

    def refresh(self) -> Snapshot | None:
        """Refresh on the scheduler loop; None if it did not finish in time."""
        try:
            return self.scheduler.submit(
                self.aggregator.refresh(self.store.provider_configs()),
                timeout=SUBMIT_TIMEOUT_SECONDS,
            )
        except TimeoutError:
            logger.warning("Usage refresh did not finish within %ss.", SUBMIT_TIMEOUT_SECONDS)
            return None

    def test_connections(self) -> dict[ProviderId, bool] | None:
        try:
            return self.scheduler.submit(
                self.aggregator.test_connections(self.store.provider_configs()),
                timeout=SUBMIT_TIMEOUT_SECONDS,
            )
        except TimeoutError:
            logger.warning("Connection tests did not finish within %ss.", SUBMIT_TIMEOUT_SECONDS)
            return None


@st.cache_resource(show_spinner=False)
def get_service() -> DashboardService:
    store = SettingsStore(
        os.getenv(ENV_SETTINGS_FILE) or DEFAULT_SETTINGS_FILE,
        SecretCipher.from_env(),
        defaults=DashboardSettings.from_env(),
    )
    store.load()

    aggregator = UsageAggregator(estimator=CostEstimator.from_yaml())
    scheduler = RefreshScheduler(
        lambda: aggregator.refresh(store.provider_configs()),
        interval_seconds=REFRESH_INTERVAL_SECONDS,
    )
    scheduler.start()
    return DashboardService(store=store, aggregator=aggregator, scheduler=scheduler)


def render_login_gate(service: DashboardService) -> bool:
    if st.session_state.get("authenticated"):
        return True

    password = render_login()
    if password is not None:
        if verify_password(password, service.store.settings.dashboard_password):
            st.session_state["authenticated"] = True
            st.rerun()
        st.error("Invalid password")
    return False


def render_dashboard_tab(service: DashboardService) -> None:
    snapshot = service.aggregator.get_snapshot()
    render_kpi_cards(compute_kpis(snapshot))
    st.divider()
    render_provider_cards(snapshot.providers)
    st.divider()
    render_recommendations(service.aggregator.get_recommendations())


def render_history_tab(service: DashboardService) -> None:
    snapshot = service.aggregator.get_snapshot()
    left, right = st.columns([2, 1])
    left.plotly_chart(token_history_chart(history_long_frame(snapshot)), use_container_width=True)
    right.plotly_chart(provider_spend_chart(spend_by_provider(snapshot)), use_container_width=True)
    st.caption(f"Keeping the last {service.aggregator.history_limit} refreshes.")


def render_settings_tab(service: DashboardService) -> None:
    update = render_settings_form(service.store.masked())
    if not update.submitted:
        return

    try:
        service.store.update(**update.values)
    except ValueError as exc:
        st.error(str(exc))
        return
    except OSError as exc:
        logger.error("Settings save error: %s", exc)
        st.error("Failed to save settings")
        return

    with st.spinner("Refreshing usage with new settings..."):
        refreshed = service.refresh()
    if refreshed is None:
        st.warning("Settings saved, but the usage refresh timed out.")
    else:
        st.success("Settings saved.")


def main() -> None:
    load_dotenv()
    logging.basicConfig(
        level=os.getenv(ENV_LOG_LEVEL, "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    st.set_page_config(page_title="LLM Usage Dashboard", layout="wide")
    apply_app_styles()

    service = get_service()
    if not render_login_gate(service):
        return

    actions = render_sidebar()
    if actions.logout_clicked:
        st.session_state.pop("authenticated", None)
        st.rerun()

    if actions.refresh_clicked:
        with st.spinner("Fetching provider usage..."):
            refreshed = service.refresh()
        if refreshed is None:
            st.error("Usage refresh timed out; showing the last known data.")

    if actions.test_clicked:
        with st.spinner("Testing provider connections..."):
            results = service.test_connections()
        if results is None:
            st.error("Connection tests timed out.")
        else:
            render_connection_results(results)

    render_header(service.aggregator.get_snapshot().last_updated)

    tabs = st.tabs(["Dashboard", "History", "Settings"])
    with tabs[0]:
        render_dashboard_tab(service)
    with tabs[1]:
        render_history_tab(service)
    with tabs[2]:
        render_settings_tab(service)


if __name__ == "__main__":
    main()
