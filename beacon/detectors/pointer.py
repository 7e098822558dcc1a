from __future__ import annotations
from typing import Tuple

import numpy as np

from ..events import PointerMove
from ..state import SessionState


def vector_angle(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Angle in radians between two vectors; 0 if either has zero length."""
    va = np.asarray(a, dtype=float)
    vb = np.asarray(b, dtype=float)
    na = np.linalg.norm(va)
    nb = np.linalg.norm(vb)
    if na == 0 or nb == 0:
        return 0.0
    cos = float(np.dot(va, vb) / (na * nb))
    return float(np.arccos(np.clip(cos, -1.0, 1.0)))


def detect_jitter(state: SessionState, ev: PointerMove, angle_rad: float, window_ms: float) -> SessionState:
    state.mouse_moves += 1
    if state.last_mouse_pos is not None:
        vec = (ev.x - state.last_mouse_pos[0], ev.y - state.last_mouse_pos[1])
        if state.last_vector is not None and ev.ts - state.last_move_ts <= window_ms:
            if vector_angle(state.last_vector, vec) > angle_rad:
                state.jitter_events += 1
        # a stationary sample keeps the previous heading
        if vec != (0.0, 0.0):
            state.last_vector = vec
    state.last_mouse_pos = (ev.x, ev.y)
    state.last_move_ts = ev.ts
    return state
