"""Flat, versioned text snapshots of a budget.

A snapshot is a CSV-like stream of ``label,value`` rows::

    XODIA_BUDGET_VERSION,4
    Show Title,Warehouse Night
    Show Date,2025-03-14
    ID:numHeadliners,2
    ID:headliner_name_1,DJ Example
    ...

The first row carries the format version.  Title and date keep their
human-readable labels; every other persistable field is written as
``ID:<fieldId>``.  Values containing a comma, a double quote or a line
break are quoted with embedded quotes doubled.

Decoding accepts every snapshot generation (bare labels, semantic
labels, ``ID:`` rows).  It only splits rows; turning labels into field
ids is left to :mod:`event_budget.reconcile`.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from .fields import (
    CURRENT_VERSION,
    FORMAT_KEY,
    ID_PREFIX,
    SCALARS,
    is_persistable,
    is_version_label,
)

logger = logging.getLogger(__name__)

HEADER_FIELDS: Tuple[str, ...] = ("showTitle", "showDate")
_QUOTE_TRIGGERS = (",", '"', "\r", "\n")


class MalformedSnapshotError(ValueError):
    """Raised when text holds no importable rows."""


@dataclass(frozen=True)
class Snapshot:
    """Decoded rows of one snapshot, in source order."""

    version: Optional[int]
    pairs: Tuple[Tuple[str, str], ...]

    def __iter__(self):
        return iter(self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)


def csv_cell(value: object) -> str:
    text = "" if value is None else str(value)
    if any(trigger in text for trigger in _QUOTE_TRIGGERS):
        return '"' + text.replace('"', '""') + '"'
    return text


FieldItems = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def encode(fields: FieldItems, version: int = CURRENT_VERSION) -> str:
    """Serialise live fields (in document order) to snapshot text."""
    items: List[Tuple[str, str]] = list(fields.items() if isinstance(fields, Mapping) else fields)
    values = dict(items)

    rows = [f"{FORMAT_KEY},{version}"]
    for field_id in HEADER_FIELDS:
        rows.append(f"{SCALARS[field_id].label},{csv_cell(values.get(field_id, ''))}")
    for field_id, value in items:
        if field_id in HEADER_FIELDS or not is_persistable(field_id):
            continue
        rows.append(f"{ID_PREFIX}{field_id},{csv_cell(value)}")
    return "\n".join(rows) + "\n"


def parse_record(record: List[str]) -> Tuple[str, str]:
    """Collapse one parsed row to ``(label, value)``.

    A row without a separator is a label with an empty value; columns
    past the second are joined back with commas.
    """
    if not record:
        return "", ""
    label = record[0].strip()
    if len(record) == 1:
        return label, ""
    return label, ",".join(record[1:])


def _parse_version(value: str) -> Optional[int]:
    try:
        return int(float(value.strip()))
    except (ValueError, OverflowError):
        return None


def _parse_line(line: str) -> List[str]:
    """Parse one physical line on its own; an unclosed quote runs to the line end."""
    line = line.rstrip("\r\n")
    try:
        return next(csv.reader([line]), [])
    except csv.Error:
        return line.split(",")


def _iter_records(lines: List[str]) -> Iterator[List[str]]:
    """Yield parsed records, resuming line by line after a malformed row.

    A quoted value may span lines.  When a row cannot be closed (an
    unterminated quote, or text after a closing quote) only the line it
    started on is spoiled; parsing restarts on the following line.
    """
    start = 0
    while start < len(lines):
        reader = csv.reader(lines[start:], strict=True)
        consumed = 0
        try:
            for record in reader:
                yield record
                consumed = reader.line_num
            return
        except csv.Error as exc:
            logger.warning("Malformed snapshot row at line %d: %s", start + consumed + 1, exc)
            yield _parse_line(lines[start + consumed])
            start += consumed + 1


def decode(text: Optional[str]) -> Snapshot:
    """Split snapshot text into ordered ``(label, value)`` rows.

    ``\\r\\n``, ``\\r`` and ``\\n`` all end a row unless they sit inside a
    quoted value.  Blank rows are skipped and the version row is lifted
    out into :attr:`Snapshot.version`.  Values of any length are read.
    """
    if text is None or not str(text).strip():
        raise MalformedSnapshotError("Snapshot is empty.")

    text = str(text)
    lines = io.StringIO(text, newline="").readlines()
    version: Optional[int] = None
    seen_version = False
    pairs: List[Tuple[str, str]] = []

    previous_limit = csv.field_size_limit()
    csv.field_size_limit(max(previous_limit, len(text) + 1))
    try:
        for record in _iter_records(lines):
            label, value = parse_record(record)
            if not label:
                continue
            if not seen_version and is_version_label(label):
                seen_version = True
                version = _parse_version(value)
                continue
            pairs.append((label, value))
    finally:
        csv.field_size_limit(previous_limit)

    if not pairs:
        raise MalformedSnapshotError("Snapshot has no rows to import.")
    return Snapshot(version=version, pairs=tuple(pairs))
