from __future__ import annotations
from math import floor

from ..events import ScrollChange
from ..state import SessionState


def detect_scroll_reversal(state: SessionState, ev: ScrollChange, window_ms: float) -> SessionState:
    """
    Count direction flips that follow closely on movement the other way.
    The first scroll only establishes a baseline; zero-delta events are ignored.
    """
    if state.last_scroll_y is None:
        state.last_scroll_y = ev.y
        state.last_scroll_ts = ev.ts
        return state

    dy = ev.y - state.last_scroll_y
    if dy == 0:
        return state
    direction = 1 if dy > 0 else -1
    if state.last_scroll_dir and direction != state.last_scroll_dir:
        if ev.ts - state.last_scroll_ts <= window_ms:
            state.scroll_reversal_count += 1
    state.last_scroll_dir = direction
    state.last_scroll_y = ev.y
    state.last_scroll_ts = ev.ts
    return state


def section_index(y: float, section_height: float) -> int:
    return int(floor(max(y, 0.0) / max(section_height, 1.0)))


def detect_reread(state: SessionState, ev: ScrollChange, window_ms: float) -> SessionState:
    """
    A reread is re-entering a section that was last seen within the window.
    Staying inside one section refreshes its timestamp but never counts.
    """
    idx = section_index(ev.y, state.section_height)
    if idx != state.current_section:
        last_visit = state.section_visits.get(idx)
        if last_visit is not None and ev.ts - last_visit <= window_ms:
            state.reread_count += 1
        if state.current_section is not None:
            state.section_visits[state.current_section] = ev.ts
        state.current_section = idx
    state.section_visits[idx] = ev.ts
    return state
