"""Applies a decoded snapshot to the live budget.

Item fields of a category only exist once that category's rows have
been regenerated for the right item count, so values cannot be written
in row order.  :meth:`Reconciler.apply` runs in two phases instead:

1. structure: resolve labels, write every count (explicit, or inferred
   from the highest index seen for older snapshots), regenerate the
   top-level groups, the category shells, then each category's items;
2. values: write every remaining value onto the now-existing fields,
   drop ids that have no live field, and migrate legacy combined fields.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from .field_store import FieldStore
from .fields import (
    CATEGORY_NAMESPACE,
    GROUP_ORDER,
    GROUPS,
    LEGACY_IDS,
    LEGACY_SPLITS,
    OTHER_CATEGORY_COUNT_ID,
    CategoryItem,
    CategoryMeta,
    FieldRef,
    GroupMember,
    category_count_id,
    is_count_ref,
    is_persistable,
    item_namespace,
    parse_count,
    parse_field_id,
    resolve_label,
)
from .repeaters import RepeaterController
from .snapshot import Snapshot

logger = logging.getLogger(__name__)


class ReconciliationInProgressError(RuntimeError):
    """Raised when ``apply`` is re-entered before the previous call finished."""


class OrderingViolationError(RuntimeError):
    """Raised when regenerated structure disagrees with the applied counts."""


@dataclass
class ApplyReport:
    version: Optional[int] = None
    applied: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    inferred_counts: Dict[str, int] = field(default_factory=dict)
    migrated: Dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        message = f"Imported {len(self.applied)} fields"
        if self.dropped:
            message += f", ignored {len(self.dropped)} unknown"
        return message + "."


Pairs = Union[Snapshot, Iterable[Tuple[str, str]]]


class Reconciler:
    """Two-phase application of decoded snapshot rows onto a :class:`FieldStore`."""

    def __init__(
        self,
        store: FieldStore,
        controller: RepeaterController,
        on_applied: Optional[Callable[[], object]] = None,
    ) -> None:
        self.store = store
        self.controller = controller
        self.on_applied = on_applied
        self._applying = False

    def apply(self, pairs: Pairs, version: Optional[int] = None) -> ApplyReport:
        """Replace the live budget with the decoded rows in ``pairs``."""
        if isinstance(pairs, Snapshot):
            version = pairs.version if version is None else version
            pairs = pairs.pairs
        if self._applying:
            raise ReconciliationInProgressError("A snapshot is already being applied.")

        self._applying = True
        try:
            report = self._apply(list(pairs), version)
        finally:
            self._applying = False

        if self.on_applied is not None:
            self.on_applied()
        return report

    # Phases ---------------------------------------------------------------------

    def _apply(self, pairs: List[Tuple[str, str]], version: Optional[int]) -> ApplyReport:
        report = ApplyReport(version=version)
        values: Dict[str, str] = {}
        refs: Dict[str, FieldRef] = {}
        for label, value in pairs:
            # Keyed by the canonical id, so "headliner_fee_01" lands on "headliner_fee_1".
            ref = parse_field_id(resolve_label(label))
            values[ref.field_id] = value
            refs[ref.field_id] = ref

        self.controller.reset(notify=False)
        self._apply_structure(values, refs, report)
        self._apply_values(values, refs, report)
        self._migrate_legacy(values, report)

        if report.dropped:
            logger.info("Ignored %d unresolved fields", len(report.dropped))
        return report

    def _apply_structure(self, values: Dict[str, str], refs: Dict[str, FieldRef], report: ApplyReport) -> None:
        group_max: Dict[str, int] = {}
        category_max = 0
        item_max: Dict[int, int] = {}
        for ref in refs.values():
            if isinstance(ref, GroupMember):
                group_max[ref.kind] = max(group_max.get(ref.kind, 0), ref.index)
            elif isinstance(ref, CategoryMeta):
                category_max = max(category_max, ref.index)
            elif isinstance(ref, CategoryItem):
                category_max = max(category_max, ref.category)
                item_max[ref.category] = max(item_max.get(ref.category, 0), ref.index)

        for kind in GROUP_ORDER:
            self._write_count(values, GROUPS[kind].count_id, group_max.get(kind, 0), report)
        self._write_count(values, OTHER_CATEGORY_COUNT_ID, category_max, report)

        for kind in GROUP_ORDER:
            self.controller.regenerate(kind, notify=False)
        categories = self.controller.set_category_count(self.store.get(OTHER_CATEGORY_COUNT_ID), notify=False)

        # Item counts must be in place before any category's rows are rebuilt.
        for category in range(1, categories + 1):
            self._write_count(values, category_count_id(category), item_max.get(category, 0), report)
        for category in range(1, categories + 1):
            self.controller.set_category_item_count(
                category, self.store.get(category_count_id(category)), notify=False
            )
        self._check_structure(categories)

    def _write_count(self, values: Dict[str, str], count_id: str, observed: int, report: ApplyReport) -> None:
        if count_id in values:
            self.store.set(count_id, values[count_id])
        elif observed > 0:
            report.inferred_counts[count_id] = observed
            self.store.set(count_id, str(observed))

    def _check_structure(self, categories: int) -> None:
        for kind in GROUP_ORDER:
            expected = parse_count(self.store.get(GROUPS[kind].count_id))
            if self.store.materialized(kind) != expected:
                raise OrderingViolationError(f"{kind} has {self.store.materialized(kind)} slots, expected {expected}")
        if self.store.materialized(CATEGORY_NAMESPACE) != categories:
            raise OrderingViolationError("Other category shells do not match their count")
        for category in range(1, categories + 1):
            expected = parse_count(self.store.get(category_count_id(category)))
            if self.store.materialized(item_namespace(category)) != expected:
                raise OrderingViolationError(f"Category {category} item rows do not match its item count")

    def _apply_values(self, values: Dict[str, str], refs: Dict[str, FieldRef], report: ApplyReport) -> None:
        for field_id, value in values.items():
            if is_count_ref(refs[field_id]):
                # Already written during the structure phase.
                (report.applied if self.store.has(field_id) else report.dropped).append(field_id)
                continue
            if field_id in LEGACY_IDS:
                continue
            if self.store.has(field_id) and is_persistable(field_id):
                self.store.set(field_id, value)
                report.applied.append(field_id)
            else:
                logger.debug("Dropping unresolved field %r", field_id)
                report.dropped.append(field_id)

    def _migrate_legacy(self, values: Dict[str, str], report: ApplyReport) -> None:
        """Route combined ad spend into its split field, for snapshots of any version.

        Legacy rows that cannot be migrated are reported as dropped.
        """
        for split in LEGACY_SPLITS:
            present = [field_id for field_id in (split.legacy_id, split.qualifier_id) if field_id in values]
            if not present:
                continue
            if split.legacy_id not in values or (
                self.store.get(split.primary_id).strip() or self.store.get(split.alternate_id).strip()
            ):
                report.dropped.extend(present)
                continue
            target = split.target_for(values.get(split.qualifier_id))
            self.store.set(target, values[split.legacy_id])
            report.migrated[split.legacy_id] = target
            logger.info("Migrated legacy field %s into %s", split.legacy_id, target)
