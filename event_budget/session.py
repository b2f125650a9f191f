"""One editing session of an event budget.

:class:`BudgetSession` owns the live :class:`FieldStore`, its group
cache, the repeater controller and the reconciler, keeps the ledger
totals current after every edit, and reports the outcome of imports,
saves and loads through a single human-readable status message.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Optional

from . import ledger
from .field_store import FieldStore
from .file_operations import csv_file_name, txt_file_name
from .group_store import GroupStore
from .ledger import LedgerTotals
from .reconcile import ApplyReport, Reconciler
from .repeaters import RepeaterController
from .snapshot import MalformedSnapshotError, decode, encode
from .text_report import render_text_report

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "Untitled Event"


class BudgetSession:
    def __init__(self) -> None:
        self.store = FieldStore()
        self.cache = GroupStore()
        self.controller = RepeaterController(self.store, self.cache, on_change=self.recompute)
        self.reconciler = Reconciler(self.store, self.controller, on_applied=self.recompute)
        self.status = ""
        self.totals: LedgerTotals = ledger.recompute(self.store.values())
        self.controller.reset()

    # Editing ---------------------------------------------------------------------

    def recompute(self) -> LedgerTotals:
        self.totals = ledger.recompute(self.store.values())
        return self.totals

    def values(self) -> Dict[str, str]:
        return self.store.values()

    def edit(self, field_id: str, value: object) -> None:
        """Write one leaf value (raises FieldNotLiveError for unknown ids)."""
        self.store.set(field_id, value)
        self.recompute()

    def set_count(self, kind: str, count: object) -> int:
        return self.controller.set_count(kind, count)

    def set_category_count(self, count: object) -> int:
        return self.controller.set_category_count(count)

    def set_category_item_count(self, category: int, count: object) -> int:
        return self.controller.set_category_item_count(category, count)

    def reset(self) -> None:
        self.controller.reset()
        self.status = ""

    # Snapshots -------------------------------------------------------------------

    def export_snapshot(self) -> str:
        return encode(self.store.persistable_items())

    def import_snapshot(self, text: Optional[str]) -> Optional[ApplyReport]:
        """Replace the budget with a decoded snapshot.

        Empty or unparseable text leaves the budget untouched and sets
        the status to "Nothing to import.".
        """
        try:
            snapshot = decode(text)
        except MalformedSnapshotError as exc:
            logger.info("Nothing to import: %s", exc)
            self.status = "Nothing to import."
            return None
        report = self.reconciler.apply(snapshot)
        self.status = report.message
        return report

    def text_report(self) -> str:
        return render_text_report(self.store.values(), self.totals)

    def export_file_name(self, extension: str = "csv") -> str:
        title, show_date = self.store.get("showTitle"), self.store.get("showDate")
        return txt_file_name(title, show_date) if extension == "txt" else csv_file_name(title, show_date)

    # Persistence -------------------------------------------------------------------

    def save_to(self, storage) -> str:
        """Save the current budget and return its id.

        Raises:
            ValueError: If the show title is blank or still the placeholder
        """
        title = self.store.get("showTitle").strip()
        if not title or title == PLACEHOLDER_TITLE:
            self.status = "Please enter a show title before saving."
            raise ValueError(self.status)
        show_date = self.store.get("showDate").strip() or date.today().isoformat()
        try:
            snapshot_id = storage.save(self.export_snapshot(), {"name": title, "date": show_date})
        except Exception as exc:
            self.status = f"Failed to save budget: {exc}"
            raise
        self.store.set("budgetSelector", snapshot_id)
        self.status = "Budget saved successfully!"
        return snapshot_id

    def load_from(self, storage, snapshot_id: str) -> Optional[ApplyReport]:
        """Fetch a saved snapshot and apply it.

        The fetch happens before anything is touched, so a failing store
        leaves the current budget as it was; the error is re-raised.
        """
        try:
            text = storage.load(snapshot_id)
        except Exception as exc:
            self.status = f"Failed to load budget: {exc}"
            raise
        report = self.import_snapshot(text)
        if report is not None:
            self.store.set("budgetSelector", snapshot_id)
            self.status = "Budget loaded successfully!"
        return report

    def delete_from(self, storage, snapshot_id: str) -> bool:
        try:
            deleted = storage.delete(snapshot_id)
        except Exception as exc:
            self.status = f"Failed to delete budget: {exc}"
            raise
        if self.store.get("budgetSelector") == snapshot_id:
            self.store.set("budgetSelector", "")
        self.status = "Budget deleted."
        return deleted
