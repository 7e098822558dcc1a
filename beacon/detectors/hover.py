from __future__ import annotations
import weakref

from ..dom import Element, is_cta
from ..events import HoverEnter, HoverExit
from ..state import SessionState


class HoverTracker:
    """
    Dwell timing per element. Enter timestamps are held weakly, keyed by the
    element handle itself, so removed elements drop out on their own and
    duplicate markup never collides.
    """

    def __init__(self, threshold_ms: float):
        self.threshold_ms = threshold_ms
        self._entered: "weakref.WeakKeyDictionary[Element, float]" = weakref.WeakKeyDictionary()

    def __len__(self):
        return len(self._entered)

    def enter(self, state: SessionState, ev: HoverEnter) -> SessionState:
        self._entered[ev.target] = ev.ts
        return state

    def exit(self, state: SessionState, ev: HoverExit) -> SessionState:
        started = self._entered.pop(ev.target, None)
        if started is None:
            return state
        if ev.ts - started >= self.threshold_ms:
            state.hover_long_count += 1
            if is_cta(ev.target):
                state.cta_hesitation_count += 1
        return state
