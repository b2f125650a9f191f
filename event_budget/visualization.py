"""Plotly visualisation helpers for the event budget.

Each function takes :class:`~event_budget.ledger.LedgerTotals` (or a
plain section -> amount mapping) and returns a
``plotly.graph_objects.Figure`` that Streamlit can render via
``st.plotly_chart``.
"""

from __future__ import annotations

from typing import Mapping

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .ledger import LedgerTotals, totals_frame


def _empty_figure(title: str) -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title=title)
    return fig


def create_breakdown_pie(breakdown: Mapping[str, float], title: str | None = None) -> go.Figure:
    """Donut chart of the positive entries of a section breakdown.

    Parameters
    ----------
    breakdown : Mapping[str, float]
        Section name to amount.  Zero and negative sections are left
        out so the percentages describe where money actually goes.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart with percentage labels and currency hover text.
    """
    data = pd.DataFrame({"Section": list(breakdown.keys()), "Amount": [float(v) for v in breakdown.values()]})
    data = data[data["Amount"] > 0]
    if data.empty:
        return _empty_figure("No data to display")
    fig = px.pie(data, names="Section", values="Amount", hole=0.35)
    fig.update_traces(
        textinfo="percent+label",
        hovertemplate="%{label}: $%{value:,.2f} (%{percent})<extra></extra>",
        sort=False,
    )
    fig.update_layout(title=title or "Breakdown", legend_title_text="")
    return fig


def create_expense_chart(totals: LedgerTotals) -> go.Figure:
    return create_breakdown_pie(totals.expenses, title="Expenses")


def create_revenue_chart(totals: LedgerTotals) -> go.Figure:
    return create_breakdown_pie(totals.revenue, title="Revenue")


def create_summary_bar(totals: LedgerTotals) -> go.Figure:
    """Stacked bars comparing expense and revenue sections side by side.

    Parameters
    ----------
    totals : LedgerTotals
        Output of :func:`event_budget.ledger.recompute`.

    Returns
    -------
    plotly.graph_objects.Figure
        One bar per side, stacked by section, titled with the net result.
    """
    data = totals_frame(totals)
    data = data[data["amount"] > 0]
    if data.empty:
        return _empty_figure("No data to display")
    data = data.assign(kind=data["kind"].map({"expense": "Expenses", "revenue": "Revenue"}))
    fig = px.bar(data, x="kind", y="amount", color="section", text_auto=".2s")
    fig.update_layout(
        title=f"Net profit: ${totals.net_profit:,.2f}",
        xaxis_title="",
        yaxis_title="Amount ($)",
        barmode="stack",
    )
    return fig
