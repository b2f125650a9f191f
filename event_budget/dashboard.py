"""Streamlit app for the event budget planner.

The page binds every live field of a :class:`BudgetSession` to an input
widget, shows the ledger totals as metrics and charts, and wires the
snapshot import/export and the saved-budget store into the sidebar.

To run the dashboard from the command line::

    streamlit run event_budget/dashboard.py
"""

from __future__ import annotations

import logging
import os
import sys

import streamlit as st

# Conditional imports to support execution both as part of a package
# and directly as a script via ``streamlit run``.
if __package__:
    from . import visualization as viz
    from .config import MAX_REPEAT_COUNT, configure_logging
    from .fields import CATEGORY_NAMESPACE, GROUPS, OTHER_CATEGORY_COUNT_ID, SCALAR_FIELDS, category_count_id, category_item_id, category_name_id, item_namespace, parse_count
    from .formatting import escape_dollar_for_markdown, format_currency, format_profit
    from .session import BudgetSession
    from .storage import get_default_store
else:
    CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
    PARENT_DIR = os.path.dirname(CURRENT_DIR)
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from event_budget import visualization as viz  # type: ignore
    from event_budget.config import MAX_REPEAT_COUNT, configure_logging  # type: ignore
    from event_budget.fields import CATEGORY_NAMESPACE, GROUPS, OTHER_CATEGORY_COUNT_ID, SCALAR_FIELDS, category_count_id, category_item_id, category_name_id, item_namespace, parse_count  # type: ignore
    from event_budget.formatting import escape_dollar_for_markdown, format_currency, format_profit  # type: ignore
    from event_budget.session import BudgetSession  # type: ignore
    from event_budget.storage import get_default_store  # type: ignore

logger = logging.getLogger(__name__)

GROUP_TITLES = {
    "headliner": ("Headliners", "Headliner"),
    "localDJ": ("Local DJs", "Local DJ"),
    "cdj": ("CDJs", "CDJ"),
    "showRunner": ("Show Runners", "Show Runner"),
    "merchVendor": ("Merch Vendors", "Vendor"),
}


def _session() -> BudgetSession:
    if "budget_session" not in st.session_state:
        st.session_state.budget_session = BudgetSession()
        st.session_state.form_generation = 0
    return st.session_state.budget_session


def _refresh_widgets() -> None:
    """Give every widget a fresh key so it re-reads the store after a bulk change."""
    st.session_state.form_generation = st.session_state.get("form_generation", 0) + 1


def _key(field_id: str) -> str:
    return f"{field_id}__{st.session_state.get('form_generation', 0)}"


# Callbacks ------------------------------------------------------------------------


def _on_edit(field_id: str) -> None:
    _session().edit(field_id, st.session_state[_key(field_id)])


def _on_group_count(kind: str) -> None:
    _session().set_count(kind, st.session_state[_key(GROUPS[kind].count_id)])


def _on_category_count() -> None:
    _session().set_category_count(st.session_state[_key(OTHER_CATEGORY_COUNT_ID)])


def _on_item_count(category: int) -> None:
    _session().set_category_item_count(category, st.session_state[_key(category_count_id(category))])


# Widgets --------------------------------------------------------------------------


def _field_input(label: str, field_id: str) -> None:
    session = _session()
    if not session.store.has(field_id):
        return
    st.text_input(label, value=session.store.get(field_id), key=_key(field_id), on_change=_on_edit, args=(field_id,))


def _count_input(label: str, field_id: str, on_change, args=()) -> None:
    st.number_input(
        label,
        min_value=0,
        max_value=MAX_REPEAT_COUNT,
        step=1,
        value=parse_count(_session().store.get(field_id)),
        key=_key(field_id),
        on_change=on_change,
        args=args,
    )


def _render_group(kind: str) -> None:
    group = GROUPS[kind]
    title, singular = GROUP_TITLES[kind]
    _count_input(f"Number of {title}", group.count_id, _on_group_count, (kind,))
    for index in range(1, _session().store.materialized(kind) + 1):
        columns = st.columns(len(group.members))
        for column, member in zip(columns, group.members):
            with column:
                _field_input(f"{singular} {index} {member.title()}", group.field_id(member, index))


def _render_scalars(section: str) -> None:
    for field in SCALAR_FIELDS:
        if field.section == section and field.kind == "number":
            _field_input(field.label, field.id)


def _render_other_categories() -> None:
    session = _session()
    _count_input("Number of Other Categories", OTHER_CATEGORY_COUNT_ID, _on_category_count)
    for category in range(1, session.store.materialized(CATEGORY_NAMESPACE) + 1):
        st.markdown(f"**Category {category}**")
        _field_input("Category Name", category_name_id(category))
        _count_input("Number of Items", category_count_id(category), _on_item_count, (category,))
        for index in range(1, session.store.materialized(item_namespace(category)) + 1):
            name_col, fee_col = st.columns(2)
            with name_col:
                _field_input(f"Item {index} Name", category_item_id(category, "name", index))
            with fee_col:
                _field_input(f"Item {index} Fee", category_item_id(category, "fee", index))


def _render_sidebar() -> None:
    session = _session()
    store = get_default_store()
    st.sidebar.header("Saved Budgets")
    try:
        records = store.list()
    except Exception as exc:  # pragma: no cover - UI display only
        st.sidebar.error(f"Failed to load budget list: {exc}")
        records = []

    labels = {record.id: record.display_label() for record in records}
    selected = st.sidebar.selectbox(
        "Load Previous Budget", options=[""] + list(labels), format_func=lambda i: labels.get(i, "Select a budget")
    )
    load_col, delete_col = st.sidebar.columns(2)
    if load_col.button("Load", disabled=not selected):
        try:
            session.load_from(store, selected)
            _refresh_widgets()
        except Exception:  # pragma: no cover - reported by _show_status
            logger.exception("Budget store call failed")
    if delete_col.button("Delete", disabled=not selected):
        try:
            session.delete_from(store, selected)
        except Exception:  # pragma: no cover - reported by _show_status
            logger.exception("Budget store call failed")

    if st.sidebar.button("Save Budget"):
        try:
            session.save_to(store)
        except Exception:  # pragma: no cover - reported by _show_status
            logger.exception("Budget store call failed")

    st.sidebar.header("Snapshot File")
    uploaded = st.sidebar.file_uploader("Import snapshot", type=["csv", "txt"])
    if uploaded is not None and st.sidebar.button("Apply Import"):
        session.import_snapshot(uploaded.getvalue().decode("utf-8", errors="replace"))
        _refresh_widgets()

    st.sidebar.download_button(
        "Download Snapshot",
        data=session.export_snapshot(),
        file_name=session.export_file_name("csv"),
        mime="text/csv",
    )
    if st.sidebar.button("Reset Budget"):
        session.reset()
        _refresh_widgets()

    _show_status(session.status)


def _show_status(status: str) -> None:
    if not status:
        return
    if status.startswith("Failed"):
        st.sidebar.error(status)
    elif status.startswith(("Nothing", "Please")) or "ignored" in status:
        st.sidebar.warning(status)
    else:
        st.sidebar.success(status)


def main() -> None:
    """Entry point for the Streamlit app."""
    configure_logging()
    st.set_page_config(page_title="Event Budget", layout="wide", initial_sidebar_state="expanded")
    session = _session()
    _render_sidebar()

    title = session.store.get("showTitle") or "UNTITLED EVENT"
    st.title(title.upper())

    form_col, summary_col = st.columns([3, 2])
    with form_col:
        with st.expander("Event", expanded=True):
            _field_input("Show Title", "showTitle")
            _field_input("Show Date", "showDate")
        with st.expander("Headliners", expanded=True):
            _render_group("headliner")
        with st.expander("Support"):
            _render_scalars("Support")
            _render_group("localDJ")
        with st.expander("Production"):
            _render_scalars("Production")
        with st.expander("Gear Rentals"):
            _render_group("cdj")
            _render_scalars("Gear")
        with st.expander("Marketing"):
            _render_scalars("Marketing")
        with st.expander("Staff"):
            _render_scalars("Staff")
            _render_group("showRunner")
        with st.expander("Other Categories"):
            _render_other_categories()
        with st.expander("Sales"):
            for section in ("Eventbrite", "Presales", "Promo", "Door", "Merch Sold"):
                _render_scalars(section)
            _render_group("merchVendor")

    totals = session.totals
    with summary_col:
        m1, m2, m3 = st.columns(3)
        m1.metric("Total Expenses", format_currency(totals.total_expenses))
        m2.metric("Total Revenue", format_currency(totals.total_revenue))
        m3.metric("Net Profit", format_profit(totals.net_profit))
        st.plotly_chart(viz.create_expense_chart(totals), use_container_width=True)
        st.plotly_chart(viz.create_revenue_chart(totals), use_container_width=True)
        st.plotly_chart(viz.create_summary_bar(totals), use_container_width=True)

        report = session.text_report()
        st.markdown(escape_dollar_for_markdown("**Text preview** (net " + format_profit(totals.net_profit) + ")"))
        st.code(report, language=None)
        st.download_button("Download Text", data=report, file_name=session.export_file_name("txt"), mime="text/plain")


if __name__ == "__main__":
    main()
