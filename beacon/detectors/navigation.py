from __future__ import annotations

from ..ledger import LedgerStore, normalize_path
from ..state import SessionState


def detect_navigation_loop(state: SessionState, ledger_store: LedgerStore, path: str, query: str,
                           now: float, order_limit: int = 50) -> SessionState:
    """Runs once per page load: a path already in the tab's ledger marks a loop."""
    key = normalize_path(path, query)
    ledger = ledger_store.get(state.session_id)
    if ledger.visits(key) > 0:
        state.nav_loop_count += 1
        state.nav_loop_path = key
    ledger.record(key, now, limit=order_limit)
    ledger_store.put(state.session_id, ledger)
    return state
