from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from .dom import Element


class _Event(BaseModel):
    # element handles are identity objects, not data
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    ts: float = Field(..., description="monotonic ms")


class PointerMove(_Event):
    x: float
    y: float


class PointerPress(_Event):
    x: float
    y: float
    target: Optional[Element] = None


class HoverEnter(_Event):
    target: Element


class HoverExit(_Event):
    target: Element


class ScrollChange(_Event):
    y: float = Field(..., description="vertical scroll offset in px")


class KeyPress(_Event):
    target: Optional[Element] = None


class TouchStart(_Event):
    x: Optional[float] = None
    y: Optional[float] = None
    target: Optional[Element] = None


class SessionEnd(_Event):
    reason: str = Field(..., min_length=1)
