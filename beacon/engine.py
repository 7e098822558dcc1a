"""
Engine lifecycle: install(host) -> EngineHandle.

install() is idempotent per host, so a page that includes the engine twice
still gets one set of listeners and one session.
"""
from __future__ import annotations
import logging
import weakref
from typing import Optional

from .collectors import EventCollectors
from .config import EngineConfig, load_config, resolve_project_key
from .detectors.navigation import detect_navigation_loop
from .dispatch import Dispatcher, UrllibTransport
from .ledger import LedgerStore
from .ports import HostPort, TransportPort
from .state import SessionState, restore_session_id

logger = logging.getLogger(__name__)

# host -> handle. The engine only holds the host weakly, so a discarded page
# drops out of the registry even if nobody called teardown().
_installed: "weakref.WeakKeyDictionary" = weakref.WeakKeyDictionary()


class EngineHandle:
    def __init__(self, host, config: EngineConfig, state: Optional[SessionState],
                 collectors: EventCollectors, dispatcher: Optional[Dispatcher]):
        self._host = weakref.ref(host)
        self.config = config
        self.state = state
        self.collectors = collectors
        self.dispatcher = dispatcher
        self.timer = None

    @property
    def host(self):
        return self._host()

    @property
    def active(self) -> bool:
        return self.collectors.active

    def flush(self, reason: str = "manual") -> None:
        """Send now; later exit signals become no-ops."""
        self.collectors.on_flush({"reason": reason})

    def stop_idle_poll(self) -> None:
        host = self.host
        if self.timer is not None and host is not None:
            try:
                host.cancel(self.timer)
            except Exception:
                logger.debug("cancelling idle poll failed", exc_info=True)
            self.timer = None

    def teardown(self) -> None:
        host = self.host
        if host is None:
            return
        self.stop_idle_poll()
        for kind, fn in self.collectors.listeners.items():
            try:
                host.unlisten(kind, fn)
            except Exception:
                logger.debug("unlisten %s failed", kind, exc_info=True)
        if _installed.get(host) is self:
            del _installed[host]


def installed(host) -> Optional[EngineHandle]:
    return _installed.get(host)


def _start_session(host: HostPort, config: EngineConfig, project_key: str) -> SessionState:
    now = host.now()
    sid = restore_session_id(host.session_storage)
    state = SessionState.start(sid, project_key, now, host.viewport_height(), config.section_height_ratio)
    path, query = host.location()
    try:
        detect_navigation_loop(state, LedgerStore(host.session_storage), path, query, now, config.nav_order_limit)
    except Exception:
        logger.debug("navigation ledger unavailable", exc_info=True)
    return state


def install(host: HostPort, config: Optional[EngineConfig] = None,
            transport: Optional[TransportPort] = None) -> EngineHandle:
    """
    Attach the engine to a host page. A second call for the same host returns
    the existing handle. Without a project key the handle is inert: listeners
    are registered but do nothing, and no storage, timer or network is touched.
    """
    existing = installed(host)
    if existing is not None:
        return existing

    config = config or load_config()
    # collectors and dispatcher reach the page through a proxy so a discarded
    # page can still be collected
    page = weakref.proxy(host)
    state = None
    dispatcher = None
    try:
        project_key = resolve_project_key(config, host)
        if project_key:
            state = _start_session(host, config, project_key)
            dispatcher = Dispatcher(state, config, page, transport or UrllibTransport())
    except Exception:
        logger.debug("engine init failed, staying inert", exc_info=True)
        state, dispatcher = None, None

    collectors = EventCollectors(state, config, page, dispatcher)
    handle = EngineHandle(host, config, state, collectors, dispatcher)
    _installed[host] = handle

    try:
        for kind, fn in collectors.listeners.items():
            host.listen(kind, fn)
        if collectors.active:
            dispatcher.on_sent = handle.stop_idle_poll
            handle.timer = host.every(config.idle_poll_ms, collectors.on_idle_tick)
    except Exception:
        logger.debug("host refused listeners or timer", exc_info=True)
    return handle


def teardown(host) -> None:
    handle = installed(host)
    if handle is not None:
        handle.teardown()
