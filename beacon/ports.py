"""
Interfaces the engine needs from its surroundings.

A host is whatever renders the page: a browser bridge, the replay worker, or a
test fake. Transports deliver the finished payload.
"""
from __future__ import annotations
from typing import Callable, Dict, List, Protocol, Tuple

from .dom import Element
from .ledger import KeyValueStore

Listener = Callable[[Dict], None]


class HostPort(Protocol):
    script_attributes: Dict[str, str]
    globals: Dict[str, object]
    session_storage: KeyValueStore

    def now(self) -> float:
        """Monotonic milliseconds."""
        ...

    def wall_time_ms(self) -> float:
        """Epoch milliseconds, only used to stamp the payload."""
        ...

    def location(self) -> Tuple[str, str]:
        """(path, query) of the current page."""
        ...

    def viewport_height(self) -> float:
        ...

    def call_to_actions(self) -> List[Element]:
        """CTA elements currently on the page, with bounding boxes."""
        ...

    def listen(self, kind: str, fn: Listener) -> None:
        ...

    def unlisten(self, kind: str, fn: Listener) -> None:
        ...

    def every(self, interval_ms: float, fn: Callable[[], None]) -> object:
        """Start a repeating timer and return a handle for cancel()."""
        ...

    def cancel(self, timer: object) -> None:
        ...


class TransportPort(Protocol):
    def send(self, url: str, body: bytes, headers: Dict[str, str]) -> None:
        """Fire and forget; must never raise into the caller."""
        ...
