"""Top-level package for the Event Budget planner.

This file makes the directory a Python package and exposes
convenient names.  The primary modules are:

* ``snapshot`` - encode and decode versioned budget snapshots
* ``reconcile`` - apply a decoded snapshot onto the live budget
* ``ledger`` - expense, revenue and net profit arithmetic
* ``visualization`` - functions that generate Plotly figures
* ``dashboard`` - a Streamlit app that ties everything together

To run the dashboard from the command line you can execute:

```bash
streamlit run event_budget/dashboard.py
```
"""

from . import ledger  # noqa: F401  # re-exported for convenience
from . import reconcile  # noqa: F401  # re-exported for convenience
from . import snapshot  # noqa: F401  # re-exported for convenience
from . import visualization  # noqa: F401  # re-exported for convenience
from .session import BudgetSession  # noqa: F401

# Import dashboard lazily.  Streamlit may not be installed in all
# environments (e.g. during unit testing).
try:
    from . import dashboard  # type: ignore  # noqa: F401
except ModuleNotFoundError:
    dashboard = None  # type: ignore


__all__ = ["BudgetSession", "ledger", "reconcile", "snapshot", "visualization", "dashboard"]
