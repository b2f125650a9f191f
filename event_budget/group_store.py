"""Cache of repeated-group values that survives a resize.

Before a group is cleared its live values are captured per index;
after it is rebuilt they are written back for every index that still
exists.  Entries are never evicted, so shrinking a group and growing
it again brings the old values back.
"""

from __future__ import annotations

from typing import Callable, Dict, Sequence, Tuple

from .field_store import FieldStore

FieldIdBuilder = Callable[[int, str], str]


class GroupStore:
    """Per-slot value cache keyed by ``(namespace, index)``."""

    def __init__(self) -> None:
        self._slots: Dict[Tuple[str, int], Dict[str, str]] = {}

    def capture(
        self,
        store: FieldStore,
        namespace: str,
        count: int,
        members: Sequence[str],
        field_id: FieldIdBuilder,
    ) -> None:
        """Remember the live values of slots ``1..count``.

        Existing entries are updated, not replaced, so entries for
        indices above ``count`` are kept.
        """
        for index in range(1, count + 1):
            slot = self._slots.setdefault((namespace, index), {})
            for member in members:
                target = field_id(index, member)
                if store.has(target):
                    slot[member] = store.get(target)

    def restore(
        self,
        store: FieldStore,
        namespace: str,
        count: int,
        members: Sequence[str],
        field_id: FieldIdBuilder,
    ) -> int:
        """Write cached values back into slots ``1..count``.

        Returns the number of slots that had a cache entry.
        """
        restored = 0
        for index in range(1, count + 1):
            slot = self._slots.get((namespace, index))
            if not slot:
                continue
            restored += 1
            for member in members:
                target = field_id(index, member)
                if member in slot and store.has(target):
                    store.set(target, slot[member])
        return restored

    def cached(self, namespace: str, index: int) -> Dict[str, str]:
        return dict(self._slots.get((namespace, index), {}))

    def clear(self) -> None:
        self._slots.clear()

    def __len__(self) -> int:
        return len(self._slots)
