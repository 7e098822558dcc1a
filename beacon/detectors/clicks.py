from __future__ import annotations
from math import hypot
from typing import Optional

from ..dom import Element, is_cta, is_disabled, is_interactive
from ..events import PointerPress
from ..state import ClickSample, SessionState

GOAL_ATTR = "data-ifai-goal"


def detect_rage_click(state: SessionState, ev: PointerPress, window_ms: float,
                      radius_px: float, min_cluster: int = 3) -> SessionState:
    """
    Count a rage event when min_cluster clicks land within radius_px of this one
    inside window_ms. One burst counts once: a new rage event needs the previous
    one to be older than the window.
    """
    state.recent_clicks.append(ClickSample(x=ev.x, y=ev.y, ts=ev.ts))
    # pruned on every click so the window stays bounded
    state.recent_clicks = [c for c in state.recent_clicks if ev.ts - c.ts <= window_ms]

    cluster = sum(1 for c in state.recent_clicks if hypot(c.x - ev.x, c.y - ev.y) <= radius_px)
    if cluster >= min_cluster:
        if state.last_rage_ts is None or ev.ts - state.last_rage_ts > window_ms:
            state.rage_click_count += 1
            state.last_rage_ts = ev.ts
    return state


def classify_click(state: SessionState, target: Optional[Element]) -> SessionState:
    if is_disabled(target):
        state.disabled_click_count += 1
    elif not is_interactive(target):
        state.non_interactive_click_count += 1
    return state


def detect_confidence_click(state: SessionState, ev: PointerPress, window_ms: float) -> SessionState:
    """A CTA click made promptly, outside any idle interval. Run before the click marks activity."""
    if is_cta(ev.target) and not state.is_idle and ev.ts - state.last_active_ts < window_ms:
        state.confidence_click_count += 1
    return state


def detect_goal(state: SessionState, target: Optional[Element]) -> SessionState:
    if target is not None and target.has(GOAL_ATTR):
        state.goal_completed = True
        state.goal_type = target.get(GOAL_ATTR) or None
    return state
