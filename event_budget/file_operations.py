"""File name helpers for exported budgets."""

from __future__ import annotations

import re
from pathlib import Path

_UNSAFE_CHARS = re.compile(r'[\\/:*?"<>|]+')
_WHITESPACE = re.compile(r"\s+")
MAX_NAME_LENGTH = 80


def safe_filename(name: str, default: str = "budget_export", max_length: int = MAX_NAME_LENGTH) -> str:
    """Create a safe filename from a user-provided name.

    Strips characters that are not allowed on common file systems,
    turns runs of whitespace into underscores and truncates.

    Example:
        >>> safe_filename("Warehouse Night: Vol 2")
        'Warehouse_Night_Vol_2'
        >>> safe_filename("")
        'budget_export'
    """
    cleaned = _UNSAFE_CHARS.sub("", (name or "").strip())
    cleaned = _WHITESPACE.sub("_", cleaned)[:max_length]
    return cleaned or default


def export_base_name(title: str, date: str) -> str:
    title = (title or "").strip() or "UNTITLED_EVENT"
    date = (date or "").strip() or "NO_DATE"
    return safe_filename(f"budget_{title}_{date}")


def csv_file_name(title: str, date: str) -> str:
    return f"{export_base_name(title, date)}.csv"


def txt_file_name(title: str, date: str) -> str:
    base = "_".join(part for part in ((title or "").strip(), (date or "").strip()) if part)
    return f"{safe_filename(base)}.txt"


def ensure_directory(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path
