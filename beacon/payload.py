"""
Session payload: the one record sent per page visit.

build_payload only reads SessionState. It may be reached from either exit signal,
so it must stay free of side effects; the Dispatcher gate decides whether it runs.
"""
from __future__ import annotations
import logging
from typing import Iterable, List, Optional

import numpy as np
from pydantic import BaseModel, Field

from .config import EngineConfig
from .dom import Element
from .state import SessionState

logger = logging.getLogger(__name__)


class LastInteraction(BaseModel):
    tag: str
    role: Optional[str] = None
    type: Optional[str] = None
    disabled: bool = False
    interactive: bool = False


class AbandonmentContext(BaseModel):
    last_interaction_ts: Optional[int] = None
    near_cta_before_exit: bool = False
    cta_distance_px: Optional[int] = Field(None, ge=0)
    time_on_page_ms: int = Field(..., ge=0)
    idle_periods: int = Field(..., ge=0)
    disabled_clicks: int = Field(..., ge=0)
    noninteractive_clicks: int = Field(..., ge=0)
    scroll_reversals: int = Field(..., ge=0)
    rage_clicks: int = Field(..., ge=0)


class SessionPayload(BaseModel):
    project_id: str
    session_id: str
    page_path: str
    page_query: str = ""
    timestamp_ms: int
    time_on_page_ms: int = Field(..., ge=0)
    avg_hesitation_time_ms: int = Field(..., ge=0)
    idle_hesitation_count: int = Field(..., ge=0)
    rage_click_count: int = Field(..., ge=0)
    scroll_reversal_count: int = Field(..., ge=0)
    reread_section_count: int = Field(..., ge=0)
    long_hover_count: int = Field(..., ge=0)
    disabled_click_count: int = Field(..., ge=0)
    noninteractive_click_count: int = Field(..., ge=0)
    mouse_jitter_score: int = Field(..., ge=0, le=100)
    navigation_loop_count: int = Field(..., ge=0)
    navigation_loop_path: Optional[str] = None
    cta_hesitation: int = Field(..., ge=0)
    confidence_click_count: int = Field(0, ge=0)
    goal_completed: bool = False
    goal_type: Optional[str] = None
    fast_path_completion: bool = False
    last_interaction: Optional[LastInteraction] = None
    inferred_abandonment_context: AbandonmentContext
    session_end_reason: str


def avg_hesitation(durations) -> int:
    if not durations:
        return 0
    return int(round(float(np.mean(durations))))


def jitter_score(jitter_events: int, mouse_moves: int) -> int:
    if mouse_moves <= 0:
        return 0
    return int(np.clip(round(100.0 * jitter_events / mouse_moves), 0, 100))


def cta_distance(pos, ctas: Iterable[Element]) -> Optional[float]:
    """Distance from the pointer to the nearest CTA box; None without a pointer or a CTA."""
    if pos is None:
        return None
    dists = [el.rect.distance_to(pos[0], pos[1]) for el in ctas if el.rect is not None]
    if not dists:
        return None
    return float(min(dists))


def _call_to_actions(host) -> List[Element]:
    # geometry is optional; a page that cannot answer just has no CTA distance
    try:
        return list(host.call_to_actions())
    except Exception:
        logger.debug("call-to-action lookup failed", exc_info=True)
        return []


def build_payload(state: SessionState, config: EngineConfig, host, reason: str) -> SessionPayload:
    now = host.now()
    time_on_page = int(max(now - state.page_start_ts, 0))
    path, query = host.location()

    dist = cta_distance(state.last_mouse_pos, _call_to_actions(host))
    cta_px = int(round(dist)) if dist is not None else None
    near_cta = cta_px is not None and cta_px <= config.cta_proximity_px

    idle_periods = len(state.idle_durations)
    fast_path = (
        state.goal_completed
        and time_on_page < config.fast_path_ms
        and idle_periods == 0
        and state.reread_count == 0
    )

    return SessionPayload(
        project_id=state.project_id or "",
        session_id=state.session_id,
        page_path=path,
        page_query=query or "",
        timestamp_ms=int(host.wall_time_ms()),
        time_on_page_ms=time_on_page,
        avg_hesitation_time_ms=avg_hesitation(state.idle_durations),
        idle_hesitation_count=idle_periods,
        rage_click_count=state.rage_click_count,
        scroll_reversal_count=state.scroll_reversal_count,
        reread_section_count=state.reread_count,
        long_hover_count=state.hover_long_count,
        disabled_click_count=state.disabled_click_count,
        noninteractive_click_count=state.non_interactive_click_count,
        mouse_jitter_score=jitter_score(state.jitter_events, state.mouse_moves),
        navigation_loop_count=state.nav_loop_count,
        navigation_loop_path=state.nav_loop_path,
        cta_hesitation=state.cta_hesitation_count,
        confidence_click_count=state.confidence_click_count,
        goal_completed=state.goal_completed,
        goal_type=state.goal_type,
        fast_path_completion=fast_path,
        last_interaction=LastInteraction(**state.last_interaction) if state.last_interaction else None,
        inferred_abandonment_context=AbandonmentContext(
            last_interaction_ts=int(state.last_interaction_ts) if state.last_interaction_ts is not None else None,
            near_cta_before_exit=near_cta,
            cta_distance_px=cta_px,
            time_on_page_ms=time_on_page,
            idle_periods=idle_periods,
            disabled_clicks=state.disabled_click_count,
            noninteractive_clicks=state.non_interactive_click_count,
            scroll_reversals=state.scroll_reversal_count,
            rage_clicks=state.rage_click_count,
        ),
        session_end_reason=reason or "unknown",
    )
