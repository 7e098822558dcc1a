from __future__ import annotations
import os
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULTS = {
    "endpoint": "https://invisinsights.tech/collect",
    "project_key": None,
    "idle_threshold_ms": 3000,
    "idle_poll_ms": 1000,
    "hover_threshold_ms": 800,
    "scroll_reversal_window_ms": 600,
    "reread_window_ms": 15000,
    "section_height_ratio": 0.8,
    "rage_click_window_ms": 800,
    "rage_click_radius_px": 24.0,
    "rage_click_min": 3,
    "jitter_angle_rad": 1.7,
    "jitter_window_ms": 120,
    "cta_proximity_px": 120.0,
    "confidence_click_ms": 800,
    "fast_path_ms": 15000,
    "nav_order_limit": 50,
}

ENV_VARS = {
    "endpoint": "BEACON_ENDPOINT",
    "project_key": "BEACON_PROJECT_KEY",
}

SCRIPT_ATTR = "data-project-key"
GLOBAL_KEY = "invisinsightsProjectKey"


class EngineConfig(BaseModel):
    endpoint: str = Field(DEFAULTS["endpoint"], description="collection URL")
    project_key: Optional[str] = Field(None, description="explicit override of the page's project key")
    idle_threshold_ms: float = DEFAULTS["idle_threshold_ms"]
    idle_poll_ms: float = DEFAULTS["idle_poll_ms"]
    hover_threshold_ms: float = DEFAULTS["hover_threshold_ms"]
    scroll_reversal_window_ms: float = DEFAULTS["scroll_reversal_window_ms"]
    reread_window_ms: float = DEFAULTS["reread_window_ms"]
    section_height_ratio: float = DEFAULTS["section_height_ratio"]
    rage_click_window_ms: float = DEFAULTS["rage_click_window_ms"]
    rage_click_radius_px: float = DEFAULTS["rage_click_radius_px"]
    rage_click_min: int = DEFAULTS["rage_click_min"]
    jitter_angle_rad: float = DEFAULTS["jitter_angle_rad"]
    jitter_window_ms: float = DEFAULTS["jitter_window_ms"]
    cta_proximity_px: float = DEFAULTS["cta_proximity_px"]
    confidence_click_ms: float = DEFAULTS["confidence_click_ms"]
    fast_path_ms: float = DEFAULTS["fast_path_ms"]
    nav_order_limit: int = DEFAULTS["nav_order_limit"]

    @field_validator(
        "idle_threshold_ms", "idle_poll_ms", "hover_threshold_ms",
        "scroll_reversal_window_ms", "reread_window_ms", "section_height_ratio",
        "rage_click_window_ms", "rage_click_radius_px", "rage_click_min",
        "jitter_angle_rad", "jitter_window_ms", "cta_proximity_px",
        "confidence_click_ms", "fast_path_ms", "nav_order_limit",
    )
    @classmethod
    def _positive(cls, v):
        if v <= 0:
            raise ValueError("must be > 0")
        return v


def load_config(**overrides) -> EngineConfig:
    """
    DEFAULTS, then BEACON_* environment variables, then explicit overrides.
    Overrides set to None are ignored so callers can pass optional kwargs through.
    """
    merged = dict(DEFAULTS)
    for field, var in ENV_VARS.items():
        val = os.environ.get(var)
        if val:
            merged[field] = val
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return EngineConfig(**merged)


def resolve_project_key(config: EngineConfig, host) -> Optional[str]:
    # explicit override > script attribute > page global
    candidates = [
        config.project_key,
        (host.script_attributes or {}).get(SCRIPT_ATTR),
        (host.globals or {}).get(GLOBAL_KEY),
    ]
    for key in candidates:
        if isinstance(key, str) and key.strip():
            return key.strip()
    return None
