from __future__ import annotations
import logging
import random
import string
import uuid
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

SID_KEY = "ifai_sid"

# monotonic counters; detectors only ever increment these
COUNTERS = (
    "scroll_reversal_count",
    "reread_count",
    "hover_long_count",
    "cta_hesitation_count",
    "rage_click_count",
    "disabled_click_count",
    "non_interactive_click_count",
    "mouse_moves",
    "jitter_events",
    "nav_loop_count",
    "confidence_click_count",
)

_B36 = string.digits + string.ascii_lowercase


def _fallback_id(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    return "sess_" + "".join(rng.choice(_B36) for _ in range(11))


def new_session_id(generator: Callable[[], object] = uuid.uuid4) -> str:
    """uuid4 when the platform can produce one, else a lower-quality random id."""
    try:
        return str(generator())
    except (NotImplementedError, OSError, AttributeError):
        return _fallback_id()


def restore_session_id(storage, generator: Callable[[], object] = uuid.uuid4) -> str:
    # one id per tab session, shared by every page load in it
    try:
        sid = storage.get(SID_KEY)
    except Exception:
        logger.debug("session storage unreadable, using a page-local id", exc_info=True)
        return new_session_id(generator)
    if not sid:
        sid = new_session_id(generator)
        try:
            storage.set(SID_KEY, sid)
        except Exception:
            logger.debug("session id not persisted", exc_info=True)
    return sid


@dataclass
class ClickSample:
    x: float
    y: float
    ts: float


@dataclass
class SessionState:
    session_id: str
    project_id: Optional[str]
    page_start_ts: float
    last_active_ts: float
    idle_start_ts: float = 0.0
    idle_durations: List[float] = field(default_factory=list)

    scroll_reversal_count: int = 0
    reread_count: int = 0
    hover_long_count: int = 0
    cta_hesitation_count: int = 0
    rage_click_count: int = 0
    disabled_click_count: int = 0
    non_interactive_click_count: int = 0
    mouse_moves: int = 0
    jitter_events: int = 0
    nav_loop_count: int = 0
    confidence_click_count: int = 0

    recent_clicks: List[ClickSample] = field(default_factory=list)
    last_rage_ts: Optional[float] = None

    section_visits: Dict[int, float] = field(default_factory=dict)
    section_height: float = 1.0
    current_section: Optional[int] = None
    last_scroll_y: Optional[float] = None
    last_scroll_dir: int = 0
    last_scroll_ts: float = 0.0

    last_interaction: Optional[Dict] = None
    last_interaction_ts: Optional[float] = None

    last_mouse_pos: Optional[Tuple[float, float]] = None
    last_vector: Optional[Tuple[float, float]] = None
    last_move_ts: float = 0.0

    goal_completed: bool = False
    goal_type: Optional[str] = None
    nav_loop_path: Optional[str] = None

    sent_final: bool = False

    @classmethod
    def start(cls, session_id: str, project_id: Optional[str], now: float,
              viewport_height: float = 0.0, section_ratio: float = 0.8) -> "SessionState":
        # section height is fixed for the page so bucket indices never drift
        return cls(
            session_id=session_id,
            project_id=project_id,
            page_start_ts=now,
            last_active_ts=now,
            section_height=max(float(viewport_height) * section_ratio, 1.0),
        )

    @property
    def is_idle(self) -> bool:
        return self.idle_start_ts > 0

    def counters(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in COUNTERS}
