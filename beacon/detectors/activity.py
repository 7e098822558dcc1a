from __future__ import annotations
from typing import Optional

from ..dom import Element, describe
from ..state import SessionState


def mark_activity(state: SessionState, ts: float, el: Optional[Element] = None) -> SessionState:
    """Any interaction closes the open idle interval and restarts the idle clock."""
    if state.idle_start_ts:
        state.idle_durations.append(max(ts - state.idle_start_ts, 0.0))
        state.idle_start_ts = 0.0
    state.last_active_ts = max(state.last_active_ts, ts)
    if el is not None:
        state.last_interaction = describe(el)
        state.last_interaction_ts = ts
    return state


def check_idle(state: SessionState, now: float, threshold_ms: float) -> SessionState:
    # polled; at most one idle interval open at a time
    if state.sent_final or state.idle_start_ts:
        return state
    if now - state.last_active_ts >= threshold_ms:
        state.idle_start_ts = now
    return state
