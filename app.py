"""Streamlit front-end for the milk collection center."""
from __future__ import annotations

import time
from typing import Callable, Sequence

import pandas as pd
import streamlit as st

from milk_center.application.dto import AdvanceRequest, CollectionRequest
from milk_center.application.error_handler import login_error_message, parse_error
from milk_center.application.services import MilkCenterServices, build_services
from milk_center.application.session import ForcedLogoutScheduler
from milk_center.config import SETTINGS
from milk_center.domain.access import Page
from milk_center.domain.collection_form import CollectionDraft
from milk_center.domain.errors import MilkCenterError
from milk_center.domain.events import EventName
from milk_center.domain.models import AmountMode, Farmer
from milk_center.domain.rates import RateTable, format_amount, resolve_interpolated
from milk_center.domain.reports import (
    CollectionFilter,
    active_farmers_since,
    advance_summary,
    collection_metrics,
    daily_statistics,
    date_range_for,
    farmer_balances,
    farmer_statistics,
    filter_collections,
    growth_against_previous,
    month_label,
    monthly_statistics,
    search_advances,
    sort_collections,
)
from milk_center.logging_config import configure_logging
from milk_center.presentation.report_export import (
    advances_to_rows,
    collections_to_rows,
    farmer_stats_to_rows,
    period_stats_to_rows,
    render_csv,
    render_html,
    to_dataframe,
)
from milk_center.timeutils import current_time_string, today_local


st.set_page_config(page_title="Milk Center", layout="wide")
configure_logging(SETTINGS.log_level)


class ScriptRunTimer:
    """Runs the forced-logout countdown inside the script thread so ``st.rerun`` works."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self._interval = interval
        self._function = function
        self._cancelled = False

    def start(self) -> None:
        time.sleep(self._interval)
        if not self._cancelled:
            self._function()

    def cancel(self) -> None:
        self._cancelled = True


def reload_app() -> None:
    for key in [key for key in st.session_state.keys() if key != "services"]:
        del st.session_state[key]
    st.rerun()


def get_services() -> MilkCenterServices:
    if "services" not in st.session_state:
        services = build_services(scheduler=ForcedLogoutScheduler(timer_factory=ScriptRunTimer))
        services.guard.install_revocation_handler(
            notify=lambda title, message: st.error(f"**{title}**: {message}"),
            reload=reload_app,
        )
        st.session_state["services"] = services
    return st.session_state["services"]


def show_error(exc: MilkCenterError, context: str) -> None:
    parsed = parse_error(exc, context=context)
    st.error(parsed.message)
    for item in parsed.validation_errors:
        st.caption(f"{item.field}: {item.message}")


def farmer_label(farmer: Farmer) -> str:
    suffix = "" if farmer.accepts_entries else " (deactivated)"
    return f"{farmer.name}{suffix}"


def collections_dataframe(entries: Sequence) -> pd.DataFrame:
    return to_dataframe(collections_to_rows(entries))


services = get_services()
guard = services.guard


def render_login() -> None:
    st.title("Milk Collection Center")
    with st.form("login_form"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in")
    if submitted:
        if not username or not password:
            st.warning("Username and password are required")
            return
        try:
            principal = guard.login(username.strip(), password)
        except MilkCenterError as exc:
            title, message = login_error_message(exc)
            st.error(f"**{title}**: {message}")
            return
        st.success(f"Welcome, {principal.username}")
        st.rerun()


def render_collection() -> None:
    st.header("Milk Collection")
    try:
        table = services.fat_rates.load()
        farmers = [f for f in services.farmers.list_farmers() if f.accepts_entries]
    except MilkCenterError as exc:
        show_error(exc, "loading collection form")
        return

    draft: CollectionDraft = st.session_state.setdefault("draft", CollectionDraft(table))
    draft.reload_rates(table)
    if not table:
        st.warning("No fat rates configured yet. Ask an administrator to add them.")
    if not farmers:
        st.info("No active farmers available.")
        return

    col1, col2, col3 = st.columns(3)
    with col1:
        farmer = st.selectbox("Farmer", farmers, format_func=farmer_label, key="collection_farmer")
        entry_date = st.date_input("Date", value=today_local(), key="collection_date")
    with col2:
        draft.set_liters(st.text_input("Liters", value=draft.liters, key="collection_liters"))
        draft.set_fat_percentage(st.text_input("Fat %", value=draft.fat_percentage, key="collection_fat"))
        if draft.fat_rate_error:
            st.error(draft.fat_rate_error)
        elif draft.fat_percentage:
            st.caption(f"Rate: {draft.rate} per liter")
    with col3:
        manual = st.toggle("Manual amount", value=draft.mode is AmountMode.MANUAL, key="collection_manual")
        if manual and draft.mode is AmountMode.AUTO:
            draft.toggle_mode()
        elif not manual and draft.mode is AmountMode.MANUAL:
            draft.switch_to_auto()
        if draft.mode is AmountMode.MANUAL:
            amount = st.text_input("Amount", value=draft.amount, key="collection_amount")
            if amount != draft.amount:
                draft.edit_amount(amount)
            st.caption(f"Calculated: {format_amount(draft.preview_amount)}")
        else:
            st.metric("Amount", draft.amount or "0.00")
        entry_time = st.text_input("Time", value=current_time_string(), key="collection_time")

    if st.button("Save collection", type="primary", disabled=bool(draft.fat_rate_error)):
        request = CollectionRequest(
            user_id=farmer.id,
            date=entry_date,
            time=entry_time,
            liters=draft.liters,
            fat_percentage=draft.fat_percentage,
            amount=draft.amount,
        )
        try:
            saved = services.record_collection().execute(request, farmer, table)
        except MilkCenterError as exc:
            show_error(exc, "saving collection")
        else:
            st.success(f"Saved {saved.liters} L for {saved.user_name}: {format_amount(saved.amount)}")
            draft.reset()
            for key in ("collection_liters", "collection_fat", "collection_amount", "collection_manual"):
                st.session_state.pop(key, None)

    st.subheader("Today's collections")
    try:
        today = today_local()
        entries = services.collections.list_collections(start_date=today, end_date=today)
    except MilkCenterError as exc:
        show_error(exc, "loading today's collections")
        return
    st.dataframe(collections_dataframe(sort_collections(entries)), hide_index=True, use_container_width=True)


def render_users() -> None:
    st.header("Users")
    admin = services.administration()
    search = st.text_input("Search farmers", key="farmer_search")
    try:
        farmers = admin.list_farmers(search or None)
    except MilkCenterError as exc:
        show_error(exc, "loading farmers")
        return

    st.dataframe(
        pd.DataFrame(
            [
                {
                    "name": f.name,
                    "phone": f.phone_number,
                    "address": f.address,
                    "status": "active" if f.accepts_entries else "deactivated",
                    "reason": f.deactivation_reason or "",
                }
                for f in farmers
            ]
        ),
        hide_index=True,
        use_container_width=True,
    )

    with st.expander("Add farmer"):
        with st.form("add_farmer", clear_on_submit=True):
            name = st.text_input("Name")
            phone = st.text_input("Phone number")
            address = st.text_area("Address")
            if st.form_submit_button("Add"):
                try:
                    created = admin.create({"name": name.strip(), "phoneNumber": phone.strip(), "address": address.strip()})
                except MilkCenterError as exc:
                    show_error(exc, "adding farmer")
                else:
                    st.success(f"Added {created.name}")

    if farmers:
        with st.expander("Manage farmer"):
            selected = st.selectbox("Farmer", farmers, format_func=farmer_label, key="manage_farmer")
            reason = st.text_input("Deactivation reason", key="deactivation_reason")
            col1, col2, col3 = st.columns(3)
            try:
                if selected.accepts_entries and col1.button("Deactivate"):
                    admin.deactivate(selected.id, reason)
                    st.rerun()
                if not selected.accepts_entries and col2.button("Reactivate"):
                    admin.reactivate(selected.id)
                    st.rerun()
                if col3.button("Delete"):
                    admin.delete(selected.id)
                    st.rerun()
            except MilkCenterError as exc:
                show_error(exc, "updating farmer")

    if guard.is_admin():
        render_helpers()


def render_helpers() -> None:
    st.subheader("Helpers")
    admin = services.administration()
    try:
        helpers = admin.list_helpers()
    except MilkCenterError as exc:
        show_error(exc, "loading helpers")
        return
    st.dataframe(
        pd.DataFrame(
            [
                {
                    "name": h.name,
                    "username": h.username,
                    "phone": h.phone_number,
                    "active": h.is_active,
                    "password expires": h.password_expires_at.date().isoformat() if h.password_expires_at else "",
                }
                for h in helpers
            ]
        ),
        hide_index=True,
        use_container_width=True,
    )
    with st.expander("Add helper"):
        with st.form("add_helper", clear_on_submit=True):
            fields = {
                "name": st.text_input("Name"),
                "username": st.text_input("Username"),
                "password": st.text_input("Password", type="password"),
                "phoneNumber": st.text_input("Phone number"),
            }
            if st.form_submit_button("Create helper"):
                try:
                    admin.create_helper(fields)
                except MilkCenterError as exc:
                    show_error(exc, "creating helper")
                else:
                    st.rerun()
    if helpers:
        selected = st.selectbox("Helper", helpers, format_func=lambda h: f"{h.name} ({h.username})", key="manage_helper")
        col1, col2, col3 = st.columns(3)
        try:
            if col1.button("Extend password"):
                admin.extend_helper_password(selected.id)
                st.rerun()
            if col2.button("Disable" if selected.is_active else "Enable"):
                admin.toggle_helper_status(selected.id)
                st.rerun()
            if col3.button("Delete helper"):
                admin.delete_helper(selected.id)
                st.rerun()
        except MilkCenterError as exc:
            show_error(exc, "updating helper")


def render_reports() -> None:
    st.header("Reports")
    presets = {"week": "This week", "month": "This month", "lastmonth": "Last month", "quarter": "This quarter", "year": "This year", "custom": "Custom"}
    col1, col2, col3, col4 = st.columns(4)
    preset = col1.selectbox("Period", list(presets), index=1, format_func=presets.get)
    today = today_local()
    if preset == "custom":
        start = col2.date_input("From", value=today.replace(day=1))
        end = col2.date_input("To", value=today)
        period = date_range_for("custom", today, start, end)
    else:
        period = date_range_for(preset, today)
    collection_type = col3.selectbox("Type", ["all", "auto", "manual"])
    time_period = col4.selectbox("Time", ["all", "am", "pm"], format_func=str.upper)
    search = st.text_input("Search", key="report_search")

    try:
        farmers = services.farmers.list_farmers()
        all_entries = services.collections.list_collections()
    except MilkCenterError as exc:
        show_error(exc, "loading reports")
        return

    farmer_choice = st.selectbox(
        "Farmer",
        ["all"] + [f.id for f in farmers],
        format_func=lambda fid: "All farmers" if fid == "all" else next(f.name for f in farmers if f.id == fid),
    )
    criteria = CollectionFilter(
        date_range=period,
        farmer_id=farmer_choice,
        search=search,
        collection_type=collection_type,
        period=time_period,
    )
    entries = sort_collections(filter_collections(all_entries, criteria))
    metrics = collection_metrics(entries)
    growth = growth_against_previous(all_entries, metrics, period)

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Total liters", f"{metrics.total_liters:.1f}", f"{growth.liters:.1f}%")
    m2.metric("Total amount", format_amount(metrics.total_amount), f"{growth.amount:.1f}%")
    m3.metric("Collections", metrics.total_collections, f"{growth.collections:.1f}%")
    m4.metric("Average fat", f"{metrics.average_fat:.2f}%")
    st.caption(
        f"{metrics.active_farmers} farmers in period, {active_farmers_since(all_entries, today)} active in the last two months; "
        f"{metrics.manual_collections} manual entries; average rate {metrics.average_rate:.2f}"
    )

    tabs = st.tabs(["Collections", "Farmers", "Daily", "Monthly"])
    with tabs[0]:
        rows = collections_to_rows(entries)
        st.dataframe(to_dataframe(rows), hide_index=True, use_container_width=True)
        st.download_button("Download CSV", data=render_csv(rows), file_name="collections.csv", mime="text/csv")
        st.download_button(
            "Download HTML",
            data=render_html(rows).encode("utf-8"),
            file_name="collections.html",
            mime="text/html",
        )
        if guard.can_modify_data() and entries:
            doomed = st.selectbox(
                "Remove collection",
                entries,
                format_func=lambda e: f"{e.date} {e.time} {e.user_name} {e.liters} L",
                key="collection_delete",
            )
            if st.button("Delete collection"):
                try:
                    services.delete_collection().execute(doomed.id)
                except MilkCenterError as exc:
                    show_error(exc, "deleting collection")
                else:
                    st.rerun()
    with tabs[1]:
        stats = farmer_statistics(farmers, entries, all_entries, today)
        st.dataframe(to_dataframe(farmer_stats_to_rows(stats)), hide_index=True, use_container_width=True)
    with tabs[2]:
        st.dataframe(to_dataframe(period_stats_to_rows(daily_statistics(entries))), hide_index=True, use_container_width=True)
    with tabs[3]:
        monthly = period_stats_to_rows(monthly_statistics(entries))
        for row in monthly:
            row["period"] = month_label(row["period"])
        st.dataframe(to_dataframe(monthly), hide_index=True, use_container_width=True)


def render_advances() -> None:
    st.header("Advances")
    try:
        farmers = services.farmers.list_farmers()
        advances = services.advances.list_advances()
    except MilkCenterError as exc:
        show_error(exc, "loading advances")
        return

    summary = advance_summary(advances)
    c1, c2, c3 = st.columns(3)
    c1.metric("Total given", format_amount(summary.total_given))
    c2.metric("Total repaid", format_amount(summary.total_repaid))
    c3.metric("Outstanding", format_amount(summary.outstanding))

    active = [f for f in farmers if f.accepts_entries]
    if active:
        with st.form("advance_form", clear_on_submit=True):
            farmer = st.selectbox("Farmer", active, format_func=farmer_label)
            kind = st.radio("Type", ["Advance", "Repayment"], horizontal=True)
            amount = st.text_input("Amount")
            description = st.text_input("Description")
            if st.form_submit_button("Record"):
                signed = f"-{amount.strip().lstrip('-')}" if kind == "Repayment" and amount.strip() else amount
                try:
                    services.record_advance().execute(AdvanceRequest(farmer.id, signed, description), farmer)
                except MilkCenterError as exc:
                    show_error(exc, "recording advance")
                else:
                    st.rerun()

    balances = farmer_balances(advances)
    names = {f.id: f.name for f in farmers}
    st.subheader("Balances")
    st.dataframe(
        pd.DataFrame([{"farmer": names.get(fid, fid), "outstanding": format_amount(bal)} for fid, bal in balances.items()]),
        hide_index=True,
        use_container_width=True,
    )
    st.subheader("Transactions")
    search = st.text_input("Search transactions", key="advance_search")
    st.dataframe(to_dataframe(advances_to_rows(search_advances(advances, search))), hide_index=True, use_container_width=True)
    if guard.can_modify_data() and advances:
        doomed = st.selectbox(
            "Remove transaction",
            advances,
            format_func=lambda a: f"{a.date.date()} {a.user_name} {format_amount(a.amount)} {a.description}",
            key="advance_delete",
        )
        if st.button("Delete transaction"):
            try:
                services.advances.delete(doomed.id)
            except MilkCenterError as exc:
                show_error(exc, "deleting advance")
            else:
                services.events.emit(EventName.DATA_REFRESH_NEEDED, {"source": "advances"})
                st.rerun()


def render_fat_rates() -> None:
    st.header("Fat Rates")
    editor = services.fat_rate_editor()
    try:
        editor.load()
    except MilkCenterError as exc:
        show_error(exc, "loading fat rates")
        return
    st.dataframe(
        pd.DataFrame([{"fat %": str(r.fat_percentage), "rate": str(r.rate)} for r in editor.entries]),
        hide_index=True,
        use_container_width=True,
    )

    col1, col2, col3 = st.columns([2, 2, 1])
    fat = col1.text_input("Fat %", key="rate_fat")
    rate = col2.text_input("Rate", key="rate_value")
    try:
        if col3.button("Add / update"):
            editor.upsert(fat, rate)
            editor.save()
            st.rerun()
        if editor.entries:
            doomed = st.selectbox("Remove rate", [r.fat_percentage for r in editor.entries], key="rate_delete")
            if st.button("Delete rate"):
                editor.delete(doomed)
                editor.save()
                st.rerun()
    except MilkCenterError as exc:
        show_error(exc, "saving fat rates")

    with st.expander("Estimate a rate between configured points"):
        estimate_fat = st.text_input("Fat %", key="rate_estimate")
        if estimate_fat:
            try:
                st.write(f"Estimated rate: {resolve_interpolated(estimate_fat, RateTable(editor.entries))}")
            except ValueError:
                st.warning("Enter a number")


PAGES: dict[Page, Callable[[], None]] = {
    Page.COLLECTION: render_collection,
    Page.USERS: render_users,
    Page.REPORTS: render_reports,
    Page.ADVANCES: render_advances,
    Page.FATRATES: render_fat_rates,
}


if guard.is_authenticated() and "session_verified" not in st.session_state:
    st.session_state["session_verified"] = guard.verify()

if not guard.is_authenticated():
    render_login()
else:
    principal = guard.principal
    navigation = guard.navigation()
    with st.sidebar:
        st.write(f"Signed in as **{principal.username}** ({principal.role.value})")
        choice = st.radio("Go to", navigation, format_func=lambda item: item.title, key="page")
        if st.button("Log out"):
            guard.logout()
            reload_app()
    PAGES[choice.page]()
