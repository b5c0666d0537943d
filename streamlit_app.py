"""Streamlit frontend for ShopGauge merchant analytics."""

from __future__ import annotations

from typing import Any

import pandas as pd
import streamlit as st
from apscheduler.schedulers.base import BaseScheduler

from shopgauge.config import get_app_settings
from shopgauge.domain.dashboard import CARD_LABELS, DASHBOARD_CARDS
from shopgauge.logging_utils import configure_logging
from shopgauge.scheduler import get_scheduler
from shopgauge.services import Services, open_browser_session

st.set_page_config(page_title="ShopGauge", page_icon="SG", layout="wide")

PAGES = ["Home", "Dashboard", "Competitors", "Profile", "Privacy", "Admin"]


@st.cache_resource(show_spinner=False)
def _scheduler() -> BaseScheduler:
    """Logging and the background scheduler, once per server process."""
    configure_logging()
    return get_scheduler()


def _services() -> Services:
    """Per-browser-session services with their own HTTP session and cookies."""
    if "services" not in st.session_state:
        st.session_state.services = open_browser_session(scheduler=_scheduler())
    return st.session_state.services


def _browser_shop() -> str | None:
    # Set by the OAuth callback on the browser, never on the server's session.
    return st.query_params.get("shop") or st.context.cookies.get("shop")


def _adopt_browser_shop(services: Services) -> None:
    candidate = _browser_shop()
    if not candidate or candidate == st.session_state.adopted_shop:
        return
    st.session_state.adopted_shop = candidate
    if services.auth.adopt_shop(candidate):
        st.session_state.shop = None


def _render_toasts(services: Services) -> None:
    icons = {"success": "✅", "error": "❌", "info": "ℹ️", "warning": "⚠️"}
    for item in services.notifications.drain():
        st.toast(f"{item.category}: {item.message}", icon=icons.get(item.level))


def _competitors_frame(rows: list[Any]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Competitor": row.label,
                "URL": row.url,
                "Price": row.price,
                "In stock": row.in_stock,
                "Change %": row.percent_diff,
                "Last checked": row.last_checked,
            }
            for row in rows
        ]
    )


def _render_home(services: Services) -> None:
    st.title("ShopGauge")
    st.caption("Competitor price tracking and store analytics for Shopify merchants.")
    if st.session_state.shop:
        st.success(f"Connected to {st.session_state.shop}")
        return

    shop_input = st.text_input("Store domain", placeholder="your-store.myshopify.com")
    if st.button("Connect store", type="primary"):
        try:
            url = services.auth.login_url(shop_input)
        except ValueError as exc:
            st.error(str(exc))
        else:
            st.link_button("Continue to Shopify", url)


def _products_frame(products: list[Any]) -> pd.DataFrame:
    # `sales` and `revenue` mix numbers with text such as "N/A - Orders access restricted".
    return pd.DataFrame(
        [
            {
                "Product": product.title,
                "Price": "" if product.price is None else str(product.price),
                "Inventory": product.inventory,
                "Sales": "" if product.sales is None else str(product.sales),
                "Revenue": "" if product.revenue is None else str(product.revenue),
            }
            for product in products
        ]
    )


def _render_unified_analytics(services: Services, shop: str) -> None:
    analytics = services.dashboard.unified_analytics(shop)
    if not analytics.has_data:
        return

    st.subheader("Revenue trend and forecast")
    max_days = get_app_settings().prediction_days
    days = st.slider("Forecast days", min_value=0, max_value=max_days, value=min(30, max_days)) if max_days else 0
    rows = [{"date": point.date, "Revenue": point.revenue} for point in analytics.historical]
    rows += [
        {
            "date": point.date,
            "Forecast": point.revenue,
            "Low": point.confidence_interval.revenue_min,
            "High": point.confidence_interval.revenue_max,
        }
        for point in analytics.horizon(days)
    ]
    st.line_chart(pd.DataFrame(rows).set_index("date"))

    col1, col2, col3 = st.columns(3)
    col1.metric(f"Revenue ({analytics.period_days}d)", f"${analytics.total_revenue:,.2f}")
    col2.metric(f"Orders ({analytics.period_days}d)", analytics.total_orders)
    if days:
        projected = sum(point.revenue for point in analytics.horizon(days))
        col3.metric(f"Forecast revenue (next {days}d)", f"${projected:,.2f}")


def _render_dashboard(services: Services, shop: str) -> None:
    st.title("Dashboard")
    params = {key: st.query_params.get(key, "") for key in ("reauth", "connected", "reconnected")}
    if services.dashboard.handle_connection_event(shop, params):
        for key in params:
            if key in st.query_params:
                del st.query_params[key]

    if st.button("Refresh all"):
        cooldown = services.dashboard.refresh_cooldown_remaining()
        snapshot = services.dashboard.refresh_all(shop)
        if cooldown > 0:
            st.caption(f"Just refreshed; try again in {cooldown:.1f}s.")
    else:
        snapshot = services.dashboard.load(shop)

    if snapshot.is_demo:
        st.info("Showing demo data.")
    if snapshot.has_rate_limit:
        st.warning("Shopify rate limits hit; some cards show zeros until the next refresh.")
    if snapshot.needs_reauthentication:
        st.error("Your Shopify permissions have changed. Re-authenticate from the Profile page.")
    st.caption(f"Last updated: {snapshot.last_updated_text}")
    if snapshot.cache_warning:
        st.caption("Cached data is getting old; refresh for the latest figures.")

    insights = snapshot.insights
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Revenue", f"${insights.total_revenue:,.2f}")
    col2.metric(
        "Conversion rate",
        f"{insights.conversion_rate:.2f}%",
        f"{insights.conversion_rate_delta:+.2f}",
    )
    col3.metric("Abandoned carts", insights.abandoned_carts)
    col4.metric("Low inventory", insights.low_inventory)

    for card, message in snapshot.card_errors.items():
        cols = st.columns([4, 1])
        cols[0].error(message)
        if cols[1].button("Retry", key=f"retry-{card}"):
            services.dashboard.refresh_card(shop, card)
            st.rerun()

    if insights.revenue_timeseries:
        frame = pd.DataFrame(
            [{"day": point.day, "revenue": point.total_price} for point in insights.revenue_timeseries]
        )
        st.subheader("Revenue")
        st.line_chart(frame.groupby("day")["revenue"].sum())

    _render_unified_analytics(services, shop)

    left, right = st.columns(2)
    with left:
        st.subheader("Top products")
        st.dataframe(_products_frame(insights.top_products), use_container_width=True)
        st.metric("New products", insights.new_products)
    with right:
        st.subheader("Recent orders")
        st.dataframe(pd.DataFrame(insights.recent_orders), use_container_width=True)

    with st.expander("Refresh a single card"):
        card = st.selectbox("Card", options=list(DASHBOARD_CARDS), format_func=CARD_LABELS.get)
        if st.button("Refresh card"):
            services.dashboard.refresh_card(shop, card)
            st.rerun()


def _render_competitors(services: Services, shop: str) -> None:
    competitors = services.competitors
    st.title("Competitors")
    if st.session_state.competitors_shop != shop:
        competitors.load(shop)
        st.session_state.competitors_shop = shop

    if competitors.is_demo_mode:
        st.info("Demo mode: showing sample competitors.")

    insights = competitors.insights(competitors.filtered())
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Tracked", insights.total)
    col2.metric("In stock", insights.in_stock)
    col3.metric("Price changes", insights.price_changes)
    col4.metric("Average price", f"${insights.average_price:,.2f}")

    actions = st.columns(3)
    if actions[0].button(f"Suggestions ({competitors.suggestion_count})"):
        st.session_state.show_suggestions = not st.session_state.show_suggestions
    if actions[1].button("Discover competitors"):
        competitors.trigger_discovery()
    if actions[2].button("Disable demo mode" if competitors.is_demo_mode else "Enable demo mode"):
        competitors.toggle_demo_mode()
        st.rerun()

    status = st.radio(
        "Stock",
        options=["all", "in_stock", "out_of_stock"],
        format_func=lambda value: value.replace("_", " ").title(),
        horizontal=True,
    )
    query = st.text_input("Search competitors")
    rows = competitors.filtered(status, query)
    st.dataframe(_competitors_frame(rows), use_container_width=True)

    with st.expander("Remove a competitor"):
        options = {row.id: row.label for row in rows}
        if options:
            selected = st.selectbox("Competitor", options=list(options), format_func=options.get)
            if st.button("Delete"):
                competitors.delete(selected)
                st.rerun()

    with st.form("add-competitor", clear_on_submit=True):
        url = st.text_input("Competitor URL")
        product_id = st.text_input("Your product ID")
        if st.form_submit_button("Add competitor"):
            competitors.add(url, product_id)

    if st.session_state.show_suggestions:
        st.subheader("Suggested competitors")
        for suggestion in competitors.suggestions("NEW"):
            cols = st.columns([4, 1, 1])
            price = f" (${suggestion.price:,.2f})" if suggestion.price is not None else ""
            cols[0].markdown(f"[{suggestion.title or suggestion.suggested_url}]({suggestion.suggested_url}){price}")
            if cols[1].button("Approve", key=f"approve-{suggestion.id}"):
                competitors.approve(suggestion.id)
                st.rerun()
            if cols[2].button("Ignore", key=f"ignore-{suggestion.id}"):
                competitors.ignore(suggestion.id)
                st.rerun()


def _render_profile(services: Services, shop: str) -> None:
    st.title("Profile & Settings")
    st.write(f"Connected store: **{shop}**")
    col1, col2 = st.columns(2)
    if col1.button("Refresh token"):
        services.auth.refresh_token()
    if col2.button("Disconnect store"):
        if services.auth.disconnect(shop):
            _sign_out(services, shop)
            st.rerun()

    st.subheader("Active sessions")
    limit = services.session_limit.check(force=st.button("Reload sessions"))
    if services.session_limit.error:
        st.warning(services.session_limit.error)
    if limit is not None:
        st.caption(f"{limit.current_session_count} of {limit.max_sessions} sessions in use")
        for session in limit.sessions:
            cols = st.columns([4, 1])
            label = "This browser" if session.is_current_session else (session.user_agent or session.session_id)
            cols[0].write(f"{label} · last active {session.last_accessed_at or 'unknown'}")
            if not session.is_current_session and cols[1].button("End", key=f"end-{session.session_id}"):
                services.session_limit.delete_session(session.session_id)
                st.rerun()


def _render_privacy(services: Services, shop: str) -> None:
    st.title("Privacy")
    report = services.privacy.compliance_report()
    if report is not None:
        st.subheader("Compliance")
        st.table(pd.DataFrame(report.detailed_compliance.items(), columns=["Requirement", "Status"]))

    st.subheader("Export store data")
    if st.button("Prepare export"):
        st.session_state.privacy_export = services.privacy.export_data(shop)
    download = st.session_state.privacy_export
    if download is not None:
        st.download_button(
            label="Download JSON",
            data=download.content,
            file_name=download.file_name,
            mime=download.mime,
        )

    st.subheader("Customer data deletion")
    with st.form("data-deletion"):
        customer_id = st.text_input("Customer ID")
        if st.form_submit_button("Delete customer data"):
            try:
                services.privacy.request_data_deletion(customer_id)
            except ValueError as exc:
                st.error(str(exc))

    st.subheader("Audit log")
    page = services.privacy.audit_logs()
    st.dataframe(
        pd.DataFrame([entry.model_dump() for entry in page.audit_logs]),
        use_container_width=True,
    )


def _render_admin(services: Services) -> None:
    admin = services.admin
    st.title("Admin")

    status = admin.integration_status()
    col1, col2 = st.columns(2)
    col1.metric("SendGrid", status.sendgrid)
    col2.metric("Twilio", status.twilio)

    st.subheader("Integration secrets")
    for secret in admin.secrets():
        cols = st.columns([3, 3, 1])
        cols[0].write(secret.label)
        cols[1].code(secret.masked_value or "not set")
        if secret.exists and cols[2].button("Delete", key=f"delete-{secret.key}"):
            admin.delete_secret(secret.key)
            st.rerun()

    with st.form("save-secret", clear_on_submit=True):
        key = st.text_input("Key")
        value = st.text_input("Value", type="password")
        if st.form_submit_button("Save secret"):
            admin.save_secret(key, value)

    st.subheader("Test notifications")
    col1, col2 = st.columns(2)
    with col1:
        email = st.text_input("Email recipient")
        if st.button("Send test email"):
            admin.send_test_email(email)
    with col2:
        phone = st.text_input("SMS recipient")
        if st.button("Send test SMS"):
            admin.send_test_sms(phone)

    st.subheader("Audit logs")
    scope = st.radio("Scope", options=["active", "deleted", "all"], horizontal=True)
    search = st.text_input("Search audit logs")
    view = admin.audit_logs(scope=scope, search=search)
    action = st.selectbox("Action", options=["all", *view.actions])
    if action != "all":
        view = admin.audit_logs(scope=scope, search=search, action=action)
    st.caption(f"{len(view.entries)} shown of {view.total_count}")
    st.dataframe(
        pd.DataFrame([entry.model_dump() for entry in view.entries]),
        use_container_width=True,
    )


def _sign_out(services: Services, shop: str | None) -> None:
    services.auth.logout(shop)
    services.competitors.load(None)
    services.shutdown()
    st.session_state.shop = None
    st.session_state.competitors_shop = None
    st.session_state.privacy_export = None


if "shop" not in st.session_state:
    st.session_state.shop = None
if "adopted_shop" not in st.session_state:
    st.session_state.adopted_shop = None
if "competitors_shop" not in st.session_state:
    st.session_state.competitors_shop = None
if "show_suggestions" not in st.session_state:
    st.session_state.show_suggestions = False
if "privacy_export" not in st.session_state:
    st.session_state.privacy_export = None


services = _services()
_adopt_browser_shop(services)

if st.session_state.shop is None:
    st.session_state.shop = services.auth.current_shop()
shop = st.session_state.shop

if shop and services.heartbeat.invalidated:
    services.notifications.warning("Your session has ended. Please log in again.", category="Authentication")
    services.heartbeat.invalidated = False
    _sign_out(services, shop)
    shop = None
elif shop:
    services.heartbeat.start()
    services.heartbeat.touch()

status = services.service_status.check()
if not status.available:
    st.error("ShopGauge is temporarily unavailable. Some data may be missing or shown as demo data.")
elif status.degraded:
    st.warning("ShopGauge is running in a degraded state.")

with st.sidebar:
    st.header("ShopGauge")
    page = st.radio("Page", options=PAGES if shop else ["Home"])
    if shop:
        st.caption(shop)
        if st.button("Log out", use_container_width=True):
            _sign_out(services, shop)
            st.rerun()
    unread = services.notifications.unread()
    if unread:
        with st.expander(f"Notifications ({len(unread)})"):
            for item in unread:
                st.write(f"**{item.category}**: {item.message}")
            if st.button("Mark all read"):
                services.notifications.mark_all_read()
                st.rerun()


if page == "Home" or not shop:
    _render_home(services)
elif page == "Dashboard":
    _render_dashboard(services, shop)
elif page == "Competitors":
    _render_competitors(services, shop)
elif page == "Profile":
    _render_profile(services, shop)
elif page == "Privacy":
    _render_privacy(services, shop)
elif page == "Admin":
    _render_admin(services)

_render_toasts(services)
