#!/usr/bin/env python3
"""Rewrite a budget snapshot of any generation in the current format.

Usage::

    python scripts/upgrade_snapshot.py old_budget.csv [new_budget.csv]

Without a destination the upgraded snapshot is printed to stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from event_budget.config import configure_logging  # noqa: E402
from event_budget.session import BudgetSession  # noqa: E402

logger = logging.getLogger("upgrade_snapshot")


def upgrade_text(text: str) -> str:
    session = BudgetSession()
    report = session.import_snapshot(text)
    if report is None:
        raise ValueError(session.status)
    logger.info("%s (source version: %s)", report.message, report.version or "none")
    for legacy_id, target in report.migrated.items():
        logger.info("Moved %s into %s", legacy_id, target)
    return session.export_snapshot()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("source", type=Path, help="snapshot file to read")
    parser.add_argument("dest", type=Path, nargs="?", help="file to write (default: stdout)")
    parser.add_argument("--log-level", default=None, help="logging level, e.g. DEBUG")
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if not args.source.exists():
        print(f"Snapshot not found: {args.source}")
        return 1
    try:
        upgraded = upgrade_text(args.source.read_text(encoding="utf-8"))
    except ValueError as exc:
        print(f"Could not upgrade {args.source}: {exc}")
        return 1

    if args.dest is None:
        sys.stdout.write(upgraded)
    else:
        args.dest.write_text(upgraded, encoding="utf-8")
        print(f"Wrote {args.dest}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
