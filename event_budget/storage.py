"""Snapshot persistence.

Two interchangeable stores hold saved snapshots:

* :class:`SnapshotStorage` keeps one JSON document per snapshot on the
  local disk.
* :class:`RemoteSnapshotStore` talks to the budget server over HTTP.

Both expose ``save(text, metadata) -> id``, ``load(id) -> text``,
``list() -> [SnapshotRecord]`` and ``delete(id) -> bool``.  The budget
session only ever sees snapshot text, so either store can be used.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from datetime import date as _date
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd
import requests

from .config import API_BASE, HTTP_TIMEOUT_S, SNAPSHOTS_DIR, ensure_data_directories
from .file_operations import ensure_directory

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Untitled Budget"


@dataclass(eq=False)
class PersistenceError(RuntimeError):
    location: str
    status_code: Optional[int]
    message: str
    response_text: Optional[str] = None

    def __str__(self) -> str:
        code = self.status_code if self.status_code is not None else "unknown"
        return f"{self.message} ({code}: {self.location})"


class SnapshotNotFoundError(PersistenceError):
    """No saved snapshot has the requested id."""


# ---------------------------------------------------------------------------
# Listing records
# ---------------------------------------------------------------------------


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if raw in (None, ""):
        return None
    ts = pd.to_datetime(raw, errors="coerce", utc=True)
    if pd.isna(ts):
        return None
    return ts.to_pydatetime()


@dataclass(frozen=True)
class SnapshotRecord:
    id: str
    name: str = DEFAULT_NAME
    date: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> Optional["SnapshotRecord"]:
        """Build a record from a stored document, or None if it has no usable id."""
        snapshot_id = raw.get("id") or raw.get("_id") or raw.get("budgetId")
        if not snapshot_id:
            return None
        created = next(
            (raw[key] for key in ("createdAt", "updatedAt", "created_at", "timestamp") if raw.get(key)),
            None,
        )
        return cls(
            id=str(snapshot_id),
            name=str(raw.get("name") or DEFAULT_NAME),
            date=str(raw.get("date") or ""),
            created_at=_parse_timestamp(created),
        )

    def display_label(self) -> str:
        """Selector text such as ``"Warehouse Night - 2025-03-14 (Saved: Mar 1, 2025, 9:05 PM)"``."""
        if self.created_at is None:
            saved = "Unknown time"
        else:
            ts = self.created_at
            hour = ts.hour % 12 or 12
            saved = f"{ts:%b} {ts.day}, {ts.year}, {hour}:{ts:%M} {ts:%p}"
        head = f"{self.name} - {self.date}" if self.date else self.name
        return f"{head} (Saved: {saved})"


def normalize_listing(raw_records: Iterable[Mapping[str, Any]]) -> List[SnapshotRecord]:
    """Turn raw store documents into records, newest first."""
    records = [record for record in map(SnapshotRecord.from_mapping, raw_records) if record is not None]
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(records, key=lambda r: r.created_at or epoch, reverse=True)


def _require_metadata(snapshot_text: str, metadata: Mapping[str, Any]) -> Dict[str, str]:
    if not snapshot_text or not str(snapshot_text).strip():
        raise ValueError("Snapshot text cannot be empty")
    name = str(metadata.get("name") or "").strip()
    if not name:
        raise ValueError("Budget name cannot be empty")
    date = str(metadata.get("date") or "").strip() or _date.today().isoformat()
    return {"name": name, "date": date}


# ---------------------------------------------------------------------------
# Local files
# ---------------------------------------------------------------------------


class SnapshotStorage:
    """Handles snapshot file storage operations."""

    def __init__(self, snapshots_dir: Optional[Path] = None):
        """Initialize snapshot storage.

        Args:
            snapshots_dir: Optional custom directory for snapshot files.
                        Defaults to SNAPSHOTS_DIR from config.
        """
        if snapshots_dir is None:
            ensure_data_directories()
        self.snapshots_dir = Path(snapshots_dir or SNAPSHOTS_DIR)
        ensure_directory(self.snapshots_dir)

    def get_path(self, snapshot_id: str) -> Path:
        safe_id = "".join(ch for ch in str(snapshot_id) if ch.isalnum() or ch in "-_")
        return self.snapshots_dir / f"{safe_id or '_'}.json"

    def _new_id(self) -> str:
        candidate = int(time.time() * 1000)
        while self.get_path(str(candidate)).exists():
            candidate += 1
        return str(candidate)

    def save(self, snapshot_text: str, metadata: Mapping[str, Any]) -> str:
        """Save a snapshot to disk.

        Args:
            snapshot_text: Encoded snapshot
            metadata: ``name`` (required) and ``date`` (defaults to today)

        Returns:
            The new snapshot id

        Raises:
            ValueError: If the snapshot text or name is empty
            OSError: If the file cannot be written
        """
        meta = _require_metadata(snapshot_text, metadata)
        snapshot_id = self._new_id()
        payload = {
            "id": snapshot_id,
            "name": meta["name"],
            "date": meta["date"],
            "csv": snapshot_text,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        target = self.get_path(snapshot_id)
        try:
            with target.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)
        except OSError as e:
            raise OSError(f"Failed to save snapshot to {target}: {e}") from e
        logger.info("Saved snapshot %s (%s)", snapshot_id, meta["name"])
        return snapshot_id

    def _read(self, path: Path) -> Dict[str, Any]:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"{path.name} does not hold a snapshot document")
        return data

    def load(self, snapshot_id: str) -> str:
        target = self.get_path(snapshot_id)
        if not target.exists():
            raise SnapshotNotFoundError(str(target), 404, "Budget not found")
        try:
            data = self._read(target)
        except (json.JSONDecodeError, ValueError, OSError) as e:
            raise PersistenceError(str(target), None, f"Could not read snapshot: {e}") from e
        return str(data.get("csv") or "")

    def list(self) -> List[SnapshotRecord]:
        """Metadata for every readable snapshot, newest first.

        Note:
            Corrupted files are skipped with a warning.
        """
        documents = []
        for path in self.snapshots_dir.glob("*.json"):
            try:
                documents.append(self._read(path))
            except (json.JSONDecodeError, ValueError, OSError) as e:
                logger.warning("Could not load snapshot '%s': %s", path.name, e)
        return normalize_listing(documents)

    def delete(self, snapshot_id: str) -> bool:
        target = self.get_path(snapshot_id)
        if not target.exists():
            raise SnapshotNotFoundError(str(target), 404, "Budget not found")
        try:
            target.unlink()
        except OSError as e:
            raise OSError(f"Failed to delete snapshot file {target}: {e}") from e
        logger.info("Deleted snapshot %s", snapshot_id)
        return True


# ---------------------------------------------------------------------------
# Budget server
# ---------------------------------------------------------------------------


class RemoteSnapshotStore:
    """Client for the budget server's ``/api/budgets`` endpoints."""

    def __init__(self, base_url: str, timeout_s: float = HTTP_TIMEOUT_S, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout_s = float(timeout_s)
        self.http = session or requests.Session()

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, "api", "budgets", *parts])

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            resp = self.http.request(method, url, timeout=self.timeout_s, **kwargs)
        except requests.RequestException as e:
            logger.error("%s %s failed: %s", method, url, e)
            raise PersistenceError(url, None, f"Request failed: {e}") from e
        if resp.status_code // 100 != 2:
            msg = resp.text
            try:
                payload = resp.json() or {}
                msg = payload.get("error") or payload.get("message") or msg
            except ValueError:
                pass
            error_cls = SnapshotNotFoundError if resp.status_code == 404 else PersistenceError
            logger.error("%s %s returned %s", method, url, resp.status_code)
            raise error_cls(url, int(resp.status_code), str(msg)[:500], resp.text)
        return resp

    def _json(self, resp: requests.Response, url: str) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise PersistenceError(url, int(resp.status_code), f"Invalid JSON response: {e}", resp.text) from e

    def save(self, snapshot_text: str, metadata: Mapping[str, Any]) -> str:
        meta = _require_metadata(snapshot_text, metadata)
        url = self._url()
        body = {**dict(metadata), **meta, "csv": snapshot_text}
        payload = self._json(self._request("POST", url, json=body), url) or {}
        snapshot_id = payload.get("id")
        if not snapshot_id:
            raise PersistenceError(url, None, "Server did not return an id")
        logger.info("Saved snapshot %s (%s) to %s", snapshot_id, meta["name"], self.base_url)
        return str(snapshot_id)

    def load(self, snapshot_id: str) -> str:
        return self._request("GET", self._url(str(snapshot_id))).text

    def list(self) -> List[SnapshotRecord]:
        url = self._url()
        payload = self._json(self._request("GET", url), url)
        if not isinstance(payload, list):
            raise PersistenceError(url, None, "Expected a list of budgets")
        return normalize_listing(item for item in payload if isinstance(item, dict))

    def delete(self, snapshot_id: str) -> bool:
        self._request("DELETE", self._url(str(snapshot_id)))
        logger.info("Deleted snapshot %s from %s", snapshot_id, self.base_url)
        return True


def get_default_store():
    """The remote store when ``EVENTBUDGET_API_BASE`` is set, local files otherwise."""
    if API_BASE:
        return RemoteSnapshotStore(API_BASE)
    return SnapshotStorage()
