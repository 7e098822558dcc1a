from __future__ import annotations
import logging
import threading
import urllib.error
import urllib.request
from typing import Callable, Dict, List, Optional

from .config import EngineConfig
from .payload import SessionPayload, build_payload
from .ports import HostPort, TransportPort
from .state import SessionState

logger = logging.getLogger(__name__)

KEY_HEADER = "X-Invis-Project-Key"

ARMED = "armed"
SENT = "sent"


class UrllibTransport:
    """POST on a daemon thread so page teardown never waits on the network."""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    def _post(self, url: str, body: bytes, headers: Dict[str, str]) -> None:
        req = urllib.request.Request(url, data=body, headers=headers, method="POST")
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as r:
                r.read()
        except (urllib.error.URLError, OSError, ValueError) as e:
            # best effort: no retry, nothing surfaced to the page
            logger.debug("payload delivery to %s failed: %r", url, e)

    def send(self, url: str, body: bytes, headers: Dict[str, str]) -> None:
        t = threading.Thread(target=self._post, args=(url, body, headers), daemon=True)
        t.start()


class RecordingTransport:
    """Keeps every send in memory; used by the replay worker and tests."""

    def __init__(self):
        self.sent: List[Dict] = []

    def send(self, url: str, body: bytes, headers: Dict[str, str]) -> None:
        self.sent.append({"url": url, "body": body, "headers": dict(headers)})


class Dispatcher:
    """
    One-shot gate: armed -> sent. Both exit signals call dispatch(); the first
    flips sent_final and only then builds and sends, the second is a no-op.
    """

    def __init__(self, state: SessionState, config: EngineConfig, host: HostPort, transport: TransportPort,
                 on_sent: Optional[Callable[[], None]] = None):
        self.state = state
        self.config = config
        self.host = host
        self.transport = transport
        self.on_sent = on_sent
        self.payload: Optional[SessionPayload] = None

    @property
    def status(self) -> str:
        return SENT if self.state.sent_final else ARMED

    def dispatch(self, reason: str) -> bool:
        """Returns True only for the call that won the gate."""
        if self.state.sent_final:
            return False
        self.state.sent_final = True
        if self.on_sent is not None:
            self.on_sent()

        if not self.state.project_id:
            return True

        self.payload = build_payload(self.state, self.config, self.host, reason)
        headers = {"Content-Type": "application/json", KEY_HEADER: self.state.project_id}
        try:
            self.transport.send(self.config.endpoint, self.payload.model_dump_json().encode("utf-8"), headers)
        except Exception as e:
            logger.debug("transport raised, payload dropped: %r", e)
        return True
