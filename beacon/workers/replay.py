"""
Replay recorded raw events through the engine, one payload per page visit.

Input rows use the ingest schema (sid, uid, ts in epoch seconds, ev, x, y, el,
view, path, query, rect). A 'pageview' row starts a new page load in the same
tab session, so revisits feed the navigation ledger the same way a browser would.
"""
from __future__ import annotations
import json
import math
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from ..config import EngineConfig, load_config
from ..dispatch import RecordingTransport
from ..dom import Element, Rect, is_cta
from ..engine import install
from ..ledger import MemoryStore

RAW_DIR = Path(__file__).resolve().parents[2] / "data" / "parquet"
OUT_PATH = Path(__file__).resolve().parents[2] / "data" / "features" / "session_payloads.parquet"

REPLAY_KEY = "replay"
VIEWPORT_H = 900.0

# ingest event name -> host listener kind
EVENT_KINDS = {
    "mousemove": "pointermove",
    "click": "click",
    "mouseover": "mouseover",
    "mouseout": "mouseout",
    "scroll": "scroll",
    "keydown": "keydown",
    "touchstart": "touchstart",
}


def _clean(v):
    if v is None:
        return None
    if isinstance(v, float) and math.isnan(v):
        return None
    return v


class ReplayHost:
    """Host whose clock only moves when the replay advances it."""

    def __init__(self, path="/", query="", storage: Optional[MemoryStore] = None,
                 start_ms: float = 0.0, wall_ms: float = 0.0, viewport_height: float = VIEWPORT_H):
        self.path = path
        self.query = query
        self.session_storage = storage if storage is not None else MemoryStore()
        self.script_attributes: Dict[str, str] = {}
        self.globals: Dict[str, object] = {}
        self.clock = start_ms
        self.wall_offset = wall_ms - start_ms
        self._viewport = viewport_height
        self.listeners: Dict[str, list] = {}
        self.timers: Dict[int, list] = {}
        self._next_timer = 0
        self.elements: Dict[str, Element] = {}

    def now(self) -> float:
        return self.clock

    def wall_time_ms(self) -> float:
        return self.clock + self.wall_offset

    def location(self):
        return self.path, self.query

    def viewport_height(self) -> float:
        return self._viewport

    def call_to_actions(self) -> List[Element]:
        return [el for el in self.elements.values() if is_cta(el) and el.rect is not None]

    def listen(self, kind, fn):
        self.listeners.setdefault(kind, []).append(fn)

    def unlisten(self, kind, fn):
        if fn in self.listeners.get(kind, []):
            self.listeners[kind].remove(fn)

    def every(self, interval_ms, fn):
        self._next_timer += 1
        # [interval, next due, callback]
        self.timers[self._next_timer] = [interval_ms, self.clock + interval_ms, fn]
        return self._next_timer

    def cancel(self, timer):
        self.timers.pop(timer, None)

    def element(self, selector: str, rect=None) -> Element:
        # same selector on one page is the same element
        el = self.elements.get(selector)
        if el is None:
            el = Element.from_selector(selector)
            self.elements[selector] = el
        if rect is not None and len(rect) == 4:
            el.rect = Rect(*rect)
        return el

    def advance(self, to_ms: float) -> None:
        """Run due timers in order up to to_ms, then park the clock there."""
        while True:
            due = [(t[1], tid) for tid, t in self.timers.items() if t[1] <= to_ms]
            if not due:
                break
            at, tid = min(due)
            self.clock = max(self.clock, at)
            timer = self.timers[tid]
            timer[1] = at + timer[0]
            timer[2]()
        self.clock = max(self.clock, to_ms)

    def fire(self, kind: str, raw: Dict) -> None:
        for fn in list(self.listeners.get(kind, [])):
            fn(raw)


def _raw_event(host: ReplayHost, row: Dict, ts_ms: float) -> Dict:
    raw = {"type": row["ev"], "ts": ts_ms}
    x, y = _clean(row.get("x")), _clean(row.get("y"))
    if x is not None:
        raw["x"] = float(x)
    if y is not None:
        raw["y"] = float(y)
    view = _clean(row.get("view"))
    if isinstance(view, str):
        try:
            view = json.loads(view)
        except ValueError:
            view = None
    if isinstance(view, dict) and view.get("y") is not None:
        raw["scroll_y"] = float(view["y"])
    el = _clean(row.get("el"))
    if el:
        raw["target"] = host.element(str(el), _clean(row.get("rect")))
    return raw


def replay_session(events: List[Dict], config: Optional[EngineConfig] = None,
                   reason: str = "replay_end") -> List[Dict]:
    """
    Replay one tab session (rows sharing a sid) and return the payload dicts,
    one per page visit, in order.
    """
    config = config or load_config(project_key=REPLAY_KEY, endpoint="replay://local")
    rows = sorted(events, key=lambda e: float(e["ts"]))
    if not rows:
        return []
    t0 = float(rows[0]["ts"])
    storage = MemoryStore()
    transport = RecordingTransport()
    host = handle = None

    def open_page(row, ts_ms):
        h = ReplayHost(
            path=_clean(row.get("path")) or "/",
            query=_clean(row.get("query")) or "",
            storage=storage,
            start_ms=ts_ms,
            wall_ms=float(row["ts"]) * 1000.0,
        )
        return h, install(h, config, transport)

    for row in rows:
        ts_ms = (float(row["ts"]) - t0) * 1000.0
        if row.get("ev") == "pageview":
            if handle is not None:
                host.advance(ts_ms)
                host.fire("pagehide", {"ts": ts_ms})
                handle.teardown()
            host, handle = open_page(row, ts_ms)
            continue
        if handle is None:
            host, handle = open_page(row, ts_ms)
        kind = EVENT_KINDS.get(row.get("ev"))
        if kind is None:
            continue
        host.advance(ts_ms)
        host.fire(kind, _raw_event(host, row, ts_ms))

    if handle is not None:
        handle.flush(reason)
        handle.teardown()
    return [json.loads(s["body"]) for s in transport.sent]


def replay_frame(df: pd.DataFrame, config: Optional[EngineConfig] = None) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame()
    df = df.copy()
    df["ts"] = pd.to_numeric(df["ts"], errors="coerce")
    df = df.dropna(subset=["ts", "sid"]).sort_values(["sid", "ts"], kind="mergesort")
    rows = []
    for sid, g in df.groupby("sid", sort=False):
        for payload in replay_session(g.to_dict(orient="records"), config):
            payload["sid"] = sid
            rows.append(payload)
    if not rows:
        return pd.DataFrame()
    return pd.json_normalize(rows, sep=".")


def main():
    files = sorted(RAW_DIR.glob("events_*.parquet"))
    if not files:
        raise FileNotFoundError(f"No raw event parquet files in {RAW_DIR}")
    df = pd.concat([pd.read_parquet(f) for f in files], ignore_index=True)
    out = replay_frame(df)
    OUT_PATH.parent.mkdir(parents=True, exist_ok=True)
    out.to_parquet(OUT_PATH, index=False)
    print(f"[replay] wrote {len(out)} payload rows → {OUT_PATH}")


if __name__ == "__main__":
    main()
