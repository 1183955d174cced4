"""Top-level package for the pocket finance tracker.

The primary modules are:

* ``ledger`` – the ``LedgerStore`` state container and its mutations
* ``storage`` – key-value backends the ledger persists through
* ``analytics``, ``subscriptions``, ``heatmap``, ``trends`` – pure
  aggregations over a ledger snapshot
* ``visualization`` – Plotly figures for the analytics view models
* ``dashboard`` – a Streamlit app that ties everything together

To run the dashboard from the command line you can execute:

```bash
streamlit run pocket_finance/dashboard.py
```

The dashboard module is not imported here so that the core can be used
without loading Streamlit.
"""

from . import analytics  # noqa: F401  # re-exported for convenience
from . import heatmap  # noqa: F401
from . import subscriptions  # noqa: F401
from . import trends  # noqa: F401
from .ledger import LedgerSnapshot, LedgerStatus, LedgerStore  # noqa: F401
from .storage import JsonFileStore, MemoryStore, SqliteStore, open_store  # noqa: F401

__all__ = [
    "analytics",
    "heatmap",
    "subscriptions",
    "trends",
    "LedgerSnapshot",
    "LedgerStatus",
    "LedgerStore",
    "JsonFileStore",
    "MemoryStore",
    "SqliteStore",
    "open_store",
]
