"""Live field values of the budget being edited.

A :class:`FieldStore` is an arena of string-valued slots keyed by
field id.  A slot exists only while its field is live: fixed fields
always exist, and repeated-group fields exist for exactly the indices
the :class:`~event_budget.repeaters.RepeaterController` has
materialized.  The store also remembers how many slots are
materialized per group namespace, which is the "previous count" a
resize starts from.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Tuple

from .fields import SCALAR_FIELDS, is_persistable, iter_document_order


class FieldNotLiveError(KeyError):
    """Raised when writing to a field id that has no live slot."""


class FieldStore:
    """Owned, ordered set of live fields."""

    def __init__(self) -> None:
        self._values: Dict[str, str] = {}
        self._materialized: Dict[str, int] = {}
        self.load_defaults()

    def load_defaults(self) -> None:
        """Drop every repeated slot and put fixed fields back to their defaults."""
        self._values.clear()
        self._materialized.clear()
        for field in SCALAR_FIELDS:
            self._values[field.id] = field.default

    # Slot access ------------------------------------------------------------

    def has(self, field_id: str) -> bool:
        return field_id in self._values

    def get(self, field_id: str, default: str = "") -> str:
        return self._values.get(field_id, default)

    def set(self, field_id: str, value: object) -> None:
        if field_id not in self._values:
            raise FieldNotLiveError(field_id)
        self._values[field_id] = "" if value is None else str(value)

    def create(self, field_id: str, value: str = "") -> None:
        self._values.setdefault(field_id, value)

    def remove(self, field_id: str) -> None:
        self._values.pop(field_id, None)

    # Materialized counts ------------------------------------------------------

    def materialized(self, namespace: str) -> int:
        return self._materialized.get(namespace, 0)

    def set_materialized(self, namespace: str, count: int) -> None:
        self._materialized[namespace] = count

    # Views ----------------------------------------------------------------------

    def field_ids(self) -> List[str]:
        """Live field ids in document order."""
        return [field_id for field_id in iter_document_order(self.materialized) if field_id in self._values]

    def values(self) -> Dict[str, str]:
        """Ordered copy of every live field."""
        return {field_id: self._values[field_id] for field_id in self.field_ids()}

    def persistable_items(self) -> List[Tuple[str, str]]:
        return [(field_id, value) for field_id, value in self.values().items() if is_persistable(field_id)]

    def __contains__(self, field_id: object) -> bool:
        return field_id in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self.field_ids())

    def __len__(self) -> int:
        return len(self._values)
