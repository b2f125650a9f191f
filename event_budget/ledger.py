"""Budget arithmetic over a map of field values.

The ledger is a pure function of the live field set: it walks the
budget shape described by the count fields, coerces leaf values to
numbers (anything non-numeric counts as zero) and sums them into
expense and revenue sections.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping

import pandas as pd

from .fields import (
    GROUPS,
    OTHER_CATEGORY_COUNT_ID,
    SCALAR_FIELDS,
    category_count_id,
    category_item_id,
    category_name_id,
    parse_count,
)

EXPENSE_SECTIONS = ("Headliners", "Support", "Production", "Gear", "Marketing", "Staff", "Other")
REVENUE_SECTIONS = ("Eventbrite", "Presales", "Promo", "Door", "Merch Sold", "Merch Vendors")

LINE_ITEM_COLUMNS = ["kind", "section", "heading", "label", "field_id", "raw", "amount"]

_HEADLINER_COSTS = (("fee", "Fee"), ("hotel", "Hotel"), ("rider", "Rider"))


@dataclass(frozen=True)
class LedgerTotals:
    expenses: Dict[str, float]
    revenue: Dict[str, float]

    @property
    def total_expenses(self) -> float:
        return float(sum(self.expenses.values()))

    @property
    def total_revenue(self) -> float:
        return float(sum(self.revenue.values()))

    @property
    def net_profit(self) -> float:
        return self.total_revenue - self.total_expenses

    def as_dict(self) -> Dict[str, Any]:
        return {
            "expenses": {**self.expenses, "total": self.total_expenses},
            "revenue": {**self.revenue, "total": self.total_revenue},
            "netProfit": self.net_profit,
        }


def _scalar_rows(values: Mapping[str, str], kind: str, section: str) -> Iterator[Dict[str, str]]:
    for field in SCALAR_FIELDS:
        if field.section == section and field.kind == "number":
            yield _row(values, kind, section, f"{field.label}:", field.id)


def _row(values: Mapping[str, str], kind: str, section: str, label: str, field_id: str, heading: str = "") -> Dict[str, str]:
    return {
        "kind": kind,
        "section": section,
        "heading": heading,
        "label": label,
        "field_id": field_id,
        "raw": values.get(field_id, ""),
    }


def _count(values: Mapping[str, str], count_id: str) -> int:
    return parse_count(values.get(count_id, ""))


def _iter_rows(values: Mapping[str, str]) -> Iterator[Dict[str, str]]:
    headliner = GROUPS["headliner"]
    for index in range(1, _count(values, headliner.count_id) + 1):
        name = values.get(headliner.field_id("name", index)) or f"Headliner {index}"
        for member, suffix in _HEADLINER_COSTS:
            yield _row(values, "expense", "Headliners", f"{name} {suffix}:", headliner.field_id(member, index))

    yield from _scalar_rows(values, "expense", "Support")
    local_dj = GROUPS["localDJ"]
    for index in range(1, _count(values, local_dj.count_id) + 1):
        name = values.get(local_dj.field_id("name", index)) or f"Local DJ {index}"
        yield _row(values, "expense", "Support", f"{name} Fee:", local_dj.field_id("fee", index))

    yield from _scalar_rows(values, "expense", "Production")

    cdj = GROUPS["cdj"]
    for index in range(1, _count(values, cdj.count_id) + 1):
        yield _row(values, "expense", "Gear", f"CDJ {index}:", cdj.field_id("fee", index))
    yield from _scalar_rows(values, "expense", "Gear")

    for field in SCALAR_FIELDS:
        if field.section == "Marketing":
            heading = "Facebook Ads" if field.id.startswith("facebook") else (
                "Instagram Ads" if field.id.startswith("instagram") else ""
            )
            label = field.label[len(heading) + 1:] if heading else field.label
            yield _row(values, "expense", "Marketing", f"{label}:", field.id, heading)

    yield from _scalar_rows(values, "expense", "Staff")
    runner = GROUPS["showRunner"]
    for index in range(1, _count(values, runner.count_id) + 1):
        yield _row(values, "expense", "Staff", f"Show Runner {index}:", runner.field_id("fee", index))

    for category in range(1, _count(values, OTHER_CATEGORY_COUNT_ID) + 1):
        heading = values.get(category_name_id(category)) or f"Category {category}"
        for index in range(1, _count(values, category_count_id(category)) + 1):
            name = values.get(category_item_id(category, "name", index)) or f"Item {index}"
            yield _row(values, "expense", "Other", f"{name}:", category_item_id(category, "fee", index), heading)

    for section in REVENUE_SECTIONS[:-1]:
        yield from _scalar_rows(values, "revenue", section)
    vendor = GROUPS["merchVendor"]
    for index in range(1, _count(values, vendor.count_id) + 1):
        name = values.get(vendor.field_id("name", index)) or f"Vendor {index}"
        yield _row(values, "revenue", "Merch Vendors", f"{name}:", vendor.field_id("fee", index))


def line_items(values: Mapping[str, str]) -> pd.DataFrame:
    """Every money-bearing field of the budget as one row.

    Args:
        values: Field id -> raw value map of the live budget

    Returns:
        DataFrame with ``kind`` (expense/revenue), ``section``,
        ``heading``, display ``label``, ``field_id``, the ``raw`` string
        and its numeric ``amount``
    """
    rows: List[Dict[str, str]] = list(_iter_rows(values))
    frame = pd.DataFrame(rows, columns=LINE_ITEM_COLUMNS[:-1])
    frame["amount"] = pd.to_numeric(frame["raw"].astype(str).str.strip(), errors="coerce").fillna(0.0).astype(float)
    return frame


def recompute(values: Mapping[str, str]) -> LedgerTotals:
    """Sum a field map into section totals.

    Args:
        values: Field id -> raw value map of the live budget

    Returns:
        LedgerTotals with one entry per expense and revenue section

    Example:
        >>> totals = recompute({'numHeadliners': '1', 'headliner_fee_1': '500', 'doorSales': '800'})
        >>> totals.net_profit
        300.0
    """
    items = line_items(values)
    sums = items.groupby(["kind", "section"], sort=False)["amount"].sum().to_dict() if not items.empty else {}
    return LedgerTotals(
        expenses={section: float(sums.get(("expense", section), 0.0)) for section in EXPENSE_SECTIONS},
        revenue={section: float(sums.get(("revenue", section), 0.0)) for section in REVENUE_SECTIONS},
    )


def totals_frame(totals: LedgerTotals) -> pd.DataFrame:
    """Long-format section totals, convenient for charts and tables."""
    rows = [{"kind": "expense", "section": s, "amount": v} for s, v in totals.expenses.items()]
    rows += [{"kind": "revenue", "section": s, "amount": v} for s, v in totals.revenue.items()]
    return pd.DataFrame(rows, columns=["kind", "section", "amount"])
