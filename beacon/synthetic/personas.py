from __future__ import annotations
import random
from typing import List, Dict

T0 = 1_700_000_000.0
CTA = "button#cta[data-cta]"
CTA_RECT = [560, 380, 120, 40]


def _ev(sid, uid, ts, ev, **kw) -> Dict:
    out = {"sid": sid, "uid": uid, "ts": round(ts, 3), "ev": ev}
    out.update(kw)
    return out


def reader(uid="u_reader", sid="s_reader", minutes=1, step=1.0, seed=1, t0=T0) -> List[Dict]:
    """Steady downward scroll, low jitter, one prompt click on the next link."""
    rng = random.Random(seed); ev = []; y = 0
    ev.append(_ev(sid, uid, t0, "pageview", path="/article"))
    for i in range(int(minutes*60/step)):
        ts = t0 + i*step
        y += rng.randint(40, 80)
        ev += [
            _ev(sid, uid, ts + 0.01, "scroll", view={"y": y}),
            _ev(sid, uid, ts + 0.02, "mousemove", x=600 + rng.randint(0, 3), y=400 + i),
        ]
    ev.append(_ev(sid, uid, t0 + minutes*60, "click", x=600, y=400, el="a#next[href=/next]"))
    return ev


def skimmer(uid="u_skimmer", sid="s_skimmer", minutes=1, step=0.3, seed=2, t0=T0) -> List[Dict]:
    """Fast scroll bursts up and down the same few screens."""
    rng = random.Random(seed); ev = []; y = 0; direction = 1
    ev.append(_ev(sid, uid, t0, "pageview", path="/pricing"))
    for i in range(int(minutes*60/step)):
        ts = t0 + i*step
        if i % 6 == 5:
            direction = -direction
        y = max(0, y + direction*rng.randint(120, 240))
        ev.append(_ev(sid, uid, ts, "scroll", view={"y": y}))
    return ev


def rager(uid="u_rager", sid="s_rager", bursts=4, seed=3, t0=T0) -> List[Dict]:
    """Clusters of fast clicks on a dead element, one cluster every few seconds."""
    rng = random.Random(seed); ev = []
    ev.append(_ev(sid, uid, t0, "pageview", path="/signup"))
    for b in range(bursts):
        base = t0 + 2.0 + b*3.0
        for j in range(5):
            ev.append(_ev(sid, uid, base + 0.1*j, "click",
                          x=300 + rng.randint(-4, 4), y=600 + rng.randint(-4, 4), el="div#dead"))
    return ev


def form_lost(uid="u_form", sid="s_form", seed=4, t0=T0) -> List[Dict]:
    """Hover stalls on the CTA, clicks on labels and a disabled submit, long pauses."""
    rng = random.Random(seed); ev = []
    ev.append(_ev(sid, uid, t0, "pageview", path="/checkout", query="step=2"))
    ts = t0 + 0.5
    for k in range(3):
        ev.append(_ev(sid, uid, ts, "mouseover", el=CTA, rect=CTA_RECT))
        for m in range(8):
            # small back-and-forth wiggle next to the button
            dx = 6 if m % 2 == 0 else -6
            ev.append(_ev(sid, uid, ts + 0.05*(m + 1), "mousemove",
                          x=550 + dx + rng.randint(0, 1), y=395 + rng.randint(0, 1)))
        ev.append(_ev(sid, uid, ts + 1.2, "mouseout", el=CTA, rect=CTA_RECT))
        ev.append(_ev(sid, uid, ts + 1.4, "click", x=200, y=300, el="label#name"))
        ev.append(_ev(sid, uid, ts + 1.6, "click", x=600, y=400, el="button#submit[disabled]"))
        ts += 6.0
    return ev


def looper(uid="u_loop", sid="s_loop", t0=T0) -> List[Dict]:
    """Bounces between cart and checkout within one tab session."""
    ev = []
    for i, path in enumerate(["/cart", "/checkout", "/cart", "/checkout"]):
        ts = t0 + i*5.0
        ev.append(_ev(sid, uid, ts, "pageview", path=path))
        ev.append(_ev(sid, uid, ts + 1.0, "scroll", view={"y": 200}))
    return ev
