from __future__ import annotations
import re
from math import hypot
from typing import Dict, Optional

INTERACTIVE_TAGS = ("button", "a", "input", "select", "textarea")
INTERACTIVE_ROLES = (
    "button", "link", "checkbox", "radio", "switch", "tab",
    "menuitem", "option", "combobox", "textbox", "slider",
)
CTA_INPUT_TYPES = ("submit", "button")

_SELECTOR = re.compile(r"^(?P<tag>[a-zA-Z][\w-]*)?(?P<rest>.*)$")


class Rect:
    """Bounding box in viewport pixels."""

    __slots__ = ("left", "top", "width", "height")

    def __init__(self, left: float, top: float, width: float, height: float):
        self.left = float(left)
        self.top = float(top)
        self.width = max(float(width), 0.0)
        self.height = max(float(height), 0.0)

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def distance_to(self, x: float, y: float) -> float:
        # 0 when the point is inside the box
        dx = max(self.left - x, 0.0, x - self.right)
        dy = max(self.top - y, 0.0, y - self.bottom)
        return hypot(dx, dy)

    def __repr__(self):
        return f"Rect({self.left}, {self.top}, {self.width}, {self.height})"


class Element:
    """
    Transient handle to a host element.

    Hashes by identity and supports weak references, so per-element state can
    live in a WeakKeyDictionary and disappear with the element.
    """

    __slots__ = ("tag", "attrs", "parent", "rect", "disabled", "onclick", "__weakref__")

    def __init__(
        self,
        tag: str,
        attrs: Optional[Dict[str, str]] = None,
        parent: Optional["Element"] = None,
        rect: Optional[Rect] = None,
        disabled: bool = False,
        onclick=None,
    ):
        self.tag = (tag or "").lower()
        self.attrs = dict(attrs or {})
        self.parent = parent
        self.rect = rect
        self.disabled = bool(disabled)
        self.onclick = onclick

    def get(self, name: str) -> Optional[str]:
        return self.attrs.get(name)

    def has(self, name: str) -> bool:
        return name in self.attrs

    def ancestors(self):
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    @classmethod
    def from_selector(cls, selector: str, **kwargs) -> "Element":
        """
        Build a handle from a coarse selector such as ``button#cta.primary`` or
        ``a[href=/pricing]``. Unknown syntax degrades to a bare ``div``.
        """
        m = _SELECTOR.match((selector or "").strip())
        tag = (m.group("tag") if m else None) or "div"
        rest = m.group("rest") if m else ""
        attrs: Dict[str, str] = {}
        for key, val in re.findall(r"\[([\w-]+)(?:=([^\]]*))?\]", rest):
            attrs[key] = val.strip("\"'")
        ident = re.search(r"#([\w-]+)", rest)
        if ident:
            attrs["id"] = ident.group(1)
        classes = re.findall(r"\.([\w-]+)", re.sub(r"\[[^\]]*\]", "", rest))
        if classes:
            attrs["class"] = " ".join(classes)
        disabled = "disabled" in attrs
        return cls(tag, attrs=attrs, disabled=disabled, **kwargs)

    def __repr__(self):
        ident = self.attrs.get("id")
        return f"<Element {self.tag}{'#' + ident if ident else ''}>"


def _self_disabled(el: Element) -> bool:
    return el.disabled or el.get("aria-disabled") == "true"


def is_disabled(el: Optional[Element]) -> bool:
    if el is None:
        return False
    if _self_disabled(el):
        return True
    return any(_self_disabled(a) or a.has("inert") for a in el.ancestors())


def is_interactive(el: Optional[Element]) -> bool:
    if el is None or not el.tag:
        return False
    if el.tag in INTERACTIVE_TAGS:
        return True
    if el.get("role") in INTERACTIVE_ROLES:
        return True
    tabindex = el.get("tabindex")
    if tabindex is not None:
        try:
            if int(tabindex) >= 0:
                return True
        except ValueError:
            pass
    return callable(el.onclick)


def is_cta(el: Optional[Element]) -> bool:
    if el is None:
        return False
    if el.has("data-cta"):
        return True
    if el.tag == "button":
        return True
    if el.tag == "a" and el.has("href"):
        return True
    return el.tag == "input" and (el.get("type") or "").lower() in CTA_INPUT_TYPES


def describe(el: Optional[Element]) -> Optional[Dict]:
    """Coarse summary of an element; never includes text or values."""
    if el is None:
        return None
    return {
        "tag": el.tag,
        "role": el.get("role"),
        "type": el.get("type"),
        "disabled": is_disabled(el),
        "interactive": is_interactive(el),
    }
