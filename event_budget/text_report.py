"""Plain-text budget summary for copying into messages or saving as .txt."""

from __future__ import annotations

from typing import List, Mapping, Optional

from .formatting import format_currency, format_profit
from .ledger import EXPENSE_SECTIONS, LedgerTotals, line_items, recompute

MIN_LABEL_COL = 32
MONEY_COL = 12
RULE = "-" * 32

REVENUE_LABELS = {
    "Eventbrite": "Eventbrite Sales:",
    "Presales": "DJ Presales:",
    "Promo": "Promo Team:",
    "Door": "Door Sales:",
    "Merch Sold": "Merch Sold:",
    "Merch Vendors": "Merch Vendors:",
}


def render_text_report(values: Mapping[str, str], totals: Optional[LedgerTotals] = None) -> str:
    """Render the budget as fixed-width text.

    Args:
        values: Field id -> raw value map of the live budget
        totals: Precomputed totals; recomputed from ``values`` when omitted

    Returns:
        Multi-line report with an EXPENSES block per section, a REVENUE
        block and the signed net profit
    """
    totals = totals or recompute(values)
    items = line_items(values)
    expenses = items[items["kind"] == "expense"]

    labels = list(expenses["label"]) + list(REVENUE_LABELS.values())
    labels += [f"TOTAL {section.upper()}:" for section in EXPENSE_SECTIONS]
    width = max([MIN_LABEL_COL] + [len(label) for label in labels])

    def row(label: str, amount: float) -> str:
        return f"{label.ljust(width)}  {format_currency(amount).rjust(MONEY_COL)}"

    title = (values.get("showTitle") or "UNTITLED EVENT").upper()
    date = values.get("showDate") or ""
    lines: List[str] = [f"EVENT: {title}" + (f"  |  DATE: {date}" if date else ""), "", "EXPENSES", RULE]

    for section in EXPENSE_SECTIONS:
        rows = expenses[expenses["section"] == section]
        if rows.empty:
            continue
        lines.append(section.upper())
        heading = ""
        for item in rows.itertuples(index=False):
            if item.heading != heading:
                if heading and section == "Other":
                    lines.append("")
                if item.heading:
                    lines.append(item.heading)
                heading = item.heading
            lines.append(row(item.label, item.amount))
        lines.append(row(f"TOTAL {section.upper()}:", totals.expenses[section]))
        lines.append("")

    lines += [RULE, row("TOTAL EXPENSES:", totals.total_expenses), "", "REVENUE", RULE]
    for section, label in REVENUE_LABELS.items():
        lines.append(row(label, totals.revenue[section]))
    lines += [RULE, row("TOTAL REVENUE:", totals.total_revenue), ""]
    lines += ["NET PROFIT", RULE, format_profit(totals.net_profit)]
    return "\n".join(lines)
