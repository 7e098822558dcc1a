"""
Event collectors: thin adapters from raw host events to detectors.

Raw events are dicts as the host delivers them (``type``, ``ts``, ``x``/``y``,
``scroll_y``, ``target``). Collectors normalize them into beacon.events models
and call the detectors; they hold no heuristics of their own.
"""
from __future__ import annotations
import functools
import logging
from typing import Dict, Optional

from .config import EngineConfig
from .detectors.activity import check_idle, mark_activity
from .detectors.clicks import classify_click, detect_confidence_click, detect_goal, detect_rage_click
from .detectors.hover import HoverTracker
from .detectors.pointer import detect_jitter
from .detectors.scroll import detect_reread, detect_scroll_reversal
from .dom import Element
from .events import HoverEnter, HoverExit, KeyPress, PointerMove, PointerPress, ScrollChange, SessionEnd, TouchStart
from .state import SessionState

logger = logging.getLogger(__name__)


def _guarded(fn):
    # nothing raised here may reach the host page
    @functools.wraps(fn)
    def wrapper(self, raw=None):
        if not self.active:
            return None
        try:
            return fn(self, raw or {})
        except Exception:
            logger.debug("collector %s failed", fn.__name__, exc_info=True)
            return None
    return wrapper


class EventCollectors:
    def __init__(self, state: Optional[SessionState], config: EngineConfig, host, dispatcher=None):
        self.state = state
        self.config = config
        self.host = host
        self.dispatcher = dispatcher
        self.hover = HoverTracker(config.hover_threshold_ms)
        self.active = state is not None and bool(state.project_id)

    @property
    def listeners(self) -> Dict:
        return {
            "pointermove": self.on_pointer_move,
            "click": self.on_click,
            "mouseover": self.on_hover_enter,
            "mouseout": self.on_hover_exit,
            "scroll": self.on_scroll,
            "keydown": self.on_key,
            "touchstart": self.on_touch,
            "beforeunload": self.on_before_unload,
            "pagehide": self.on_page_hide,
        }

    def _ts(self, raw: Dict) -> float:
        ts = raw.get("ts")
        return float(ts) if ts is not None else self.host.now()

    @staticmethod
    def _target(raw: Dict) -> Optional[Element]:
        target = raw.get("target")
        return target if isinstance(target, Element) else None

    @_guarded
    def on_idle_tick(self, raw):
        check_idle(self.state, self.host.now(), self.config.idle_threshold_ms)

    @_guarded
    def on_pointer_move(self, raw):
        ev = PointerMove(ts=self._ts(raw), x=raw["x"], y=raw["y"])
        detect_jitter(self.state, ev, self.config.jitter_angle_rad, self.config.jitter_window_ms)

    @_guarded
    def on_click(self, raw):
        cfg = self.config
        ev = PointerPress(ts=self._ts(raw), x=raw.get("x", 0.0), y=raw.get("y", 0.0), target=self._target(raw))
        classify_click(self.state, ev.target)
        detect_rage_click(self.state, ev, cfg.rage_click_window_ms, cfg.rage_click_radius_px, cfg.rage_click_min)
        detect_confidence_click(self.state, ev, cfg.confidence_click_ms)
        detect_goal(self.state, ev.target)
        mark_activity(self.state, ev.ts, ev.target)

    @_guarded
    def on_hover_enter(self, raw):
        target = self._target(raw)
        if target is not None:
            self.hover.enter(self.state, HoverEnter(ts=self._ts(raw), target=target))

    @_guarded
    def on_hover_exit(self, raw):
        target = self._target(raw)
        if target is not None:
            self.hover.exit(self.state, HoverExit(ts=self._ts(raw), target=target))

    @_guarded
    def on_scroll(self, raw):
        ev = ScrollChange(ts=self._ts(raw), y=raw["scroll_y"])
        detect_scroll_reversal(self.state, ev, self.config.scroll_reversal_window_ms)
        detect_reread(self.state, ev, self.config.reread_window_ms)
        mark_activity(self.state, ev.ts)

    @_guarded
    def on_key(self, raw):
        ev = KeyPress(ts=self._ts(raw), target=self._target(raw))
        mark_activity(self.state, ev.ts, ev.target)

    @_guarded
    def on_touch(self, raw):
        ev = TouchStart(ts=self._ts(raw), x=raw.get("x"), y=raw.get("y"), target=self._target(raw))
        mark_activity(self.state, ev.ts, ev.target)

    def _end(self, reason: str, raw: Dict):
        ev = SessionEnd(ts=self._ts(raw), reason=reason)
        if self.dispatcher is not None:
            self.dispatcher.dispatch(ev.reason)

    @_guarded
    def on_before_unload(self, raw):
        self._end("beforeunload", raw)

    @_guarded
    def on_page_hide(self, raw):
        self._end("pagehide", raw)

    @_guarded
    def on_flush(self, raw):
        self._end(raw.get("reason") or "manual", raw)
