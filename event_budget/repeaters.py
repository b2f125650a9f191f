"""Regenerates repeated field groups to match their counts.

Each resize runs the same sequence: read the materialized count,
capture live values into the :class:`GroupStore`, clear the group,
create fresh slots ``1..n``, restore cached values, then notify the
ledger.  Other categories are two-level: the category shells (name and
item count) and each category's item rows are resized independently,
and item rows are cached under a namespace per category index.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .field_store import FieldNotLiveError, FieldStore
from .fields import (
    CATEGORY_ITEM_MEMBERS,
    CATEGORY_NAMESPACE,
    CATEGORY_SHELL_MEMBERS,
    GROUP_ORDER,
    GROUPS,
    OTHER_CATEGORY_COUNT_ID,
    category_count_id,
    category_item_id,
    category_shell_id,
    item_namespace,
    parse_count,
)
from .group_store import GroupStore

logger = logging.getLogger(__name__)


class RepeaterController:
    """Keeps the live slots of every repeated group in step with its count.

    The controller is the only writer of the :class:`GroupStore`.  Calls
    run to completion synchronously; callers must not interleave two
    resizes of the same group.
    """

    def __init__(
        self,
        store: FieldStore,
        cache: Optional[GroupStore] = None,
        on_change: Optional[Callable[[], object]] = None,
    ) -> None:
        self.store = store
        self.cache = cache if cache is not None else GroupStore()
        self.on_change = on_change

    def _notify(self, notify: bool) -> None:
        if notify and self.on_change is not None:
            self.on_change()

    # Top-level groups -----------------------------------------------------------

    def set_count(self, kind: str, new_count: object, notify: bool = True) -> int:
        """Resize group ``kind`` to ``new_count`` instances."""
        group = GROUPS[kind]
        target = parse_count(new_count)
        previous = self.store.materialized(kind)

        def field_id(index: int, member: str) -> str:
            return group.field_id(member, index)

        self.cache.capture(self.store, kind, previous, group.members, field_id)
        for index in range(1, previous + 1):
            for slot_id in group.slot_ids(index):
                self.store.remove(slot_id)
        for index in range(1, target + 1):
            for slot_id in group.slot_ids(index):
                self.store.create(slot_id)
        self.store.set_materialized(kind, target)
        self.store.set(group.count_id, str(target))
        self.cache.restore(self.store, kind, target, group.members, field_id)

        logger.debug("Resized %s from %d to %d", kind, previous, target)
        self._notify(notify)
        return target

    def regenerate(self, kind: str, notify: bool = True) -> int:
        """Rebuild group ``kind`` for whatever its count field currently holds."""
        return self.set_count(kind, self.store.get(GROUPS[kind].count_id), notify=notify)

    # Other categories -------------------------------------------------------------

    def set_category_count(self, new_count: object, notify: bool = True) -> int:
        """Resize the list of other categories.

        Names and item counts of surviving categories come back from the
        cache, and each category's item rows are rebuilt from its own
        cached items.
        """
        target = parse_count(new_count)
        previous = self.store.materialized(CATEGORY_NAMESPACE)

        self.cache.capture(self.store, CATEGORY_NAMESPACE, previous, CATEGORY_SHELL_MEMBERS, _shell_field_id)
        for category in range(1, previous + 1):
            self._resize_items(category, 0)
            for member in CATEGORY_SHELL_MEMBERS:
                self.store.remove(category_shell_id(category, member))

        for category in range(1, target + 1):
            self.store.create(category_shell_id(category, "name"))
            self.store.create(category_shell_id(category, "count"), "0")
        self.store.set_materialized(CATEGORY_NAMESPACE, target)
        self.store.set(OTHER_CATEGORY_COUNT_ID, str(target))
        self.cache.restore(self.store, CATEGORY_NAMESPACE, target, CATEGORY_SHELL_MEMBERS, _shell_field_id)

        for category in range(1, target + 1):
            count_id = category_count_id(category)
            items = self._resize_items(category, parse_count(self.store.get(count_id)))
            self.store.set(count_id, str(items))

        logger.debug("Resized other categories from %d to %d", previous, target)
        self._notify(notify)
        return target

    def set_category_item_count(self, category: int, new_count: object, notify: bool = True) -> int:
        """Resize the item rows of one existing category."""
        count_id = category_count_id(category)
        if not self.store.has(count_id):
            raise FieldNotLiveError(count_id)
        target = self._resize_items(category, parse_count(new_count))
        self.store.set(count_id, str(target))
        self._notify(notify)
        return target

    def _resize_items(self, category: int, target: int) -> int:
        namespace = item_namespace(category)
        previous = self.store.materialized(namespace)

        def field_id(index: int, member: str) -> str:
            return category_item_id(category, member, index)

        self.cache.capture(self.store, namespace, previous, CATEGORY_ITEM_MEMBERS, field_id)
        for index in range(1, previous + 1):
            for member in CATEGORY_ITEM_MEMBERS:
                self.store.remove(field_id(index, member))
        for index in range(1, target + 1):
            for member in CATEGORY_ITEM_MEMBERS:
                self.store.create(field_id(index, member))
        self.store.set_materialized(namespace, target)
        self.cache.restore(self.store, namespace, target, CATEGORY_ITEM_MEMBERS, field_id)
        return target

    # Whole budget -------------------------------------------------------------------

    def reset(self, notify: bool = True) -> None:
        """Return to a blank budget: default counts, empty cache."""
        self.store.load_defaults()
        self.cache.clear()
        for kind in GROUP_ORDER:
            self.regenerate(kind, notify=False)
        self.set_category_count(self.store.get(OTHER_CATEGORY_COUNT_ID), notify=False)
        self._notify(notify)


def _shell_field_id(index: int, member: str) -> str:
    return category_shell_id(index, member)
