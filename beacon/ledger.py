"""
Navigation ledger: per-tab memory of the paths visited in this browsing session.

Read and written once per page load through a LedgerStore. Anything that fails to
parse loads as an empty ledger so a corrupted slot never blocks collection.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional, Protocol
from urllib.parse import parse_qsl, urlencode

import redis
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

LEDGER_PREFIX = "ifai_nav:"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryStore:
    """Dict-backed store; stands in for tab session storage."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class RedisStore:
    """
    Redis-backed store for bridged hosts that share a tab's session storage
    across processes. Keys expire with the browsing session (ttl seconds).
    """

    def __init__(self, client: Optional[redis.Redis] = None, ttl: int = 30 * 60):
        self.r = client or redis.Redis(host="localhost", port=6379, db=0, decode_responses=False)
        self.ttl = ttl

    def get(self, key: str) -> Optional[str]:
        raw = self.r.get(key)
        if raw is None:
            return None
        return raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)

    def set(self, key: str, value: str) -> None:
        self.r.set(key, value, ex=self.ttl)


class Visit(BaseModel):
    path: str
    ts: float


class NavigationLedger(BaseModel):
    paths: Dict[str, int] = Field(default_factory=dict)
    order: List[Visit] = Field(default_factory=list)

    def visits(self, path: str) -> int:
        return self.paths.get(path, 0)

    def record(self, path: str, ts: float, limit: int = 50) -> None:
        self.paths[path] = self.paths.get(path, 0) + 1
        self.order.append(Visit(path=path, ts=ts))
        if len(self.order) > limit:
            del self.order[: len(self.order) - limit]


def normalize_path(path: str, query: str = "") -> str:
    """'/checkout/?b=2&a=1' -> '/checkout?a=1&b=2'"""
    p = (path or "/").split("#", 1)[0]
    if len(p) > 1:
        p = p.rstrip("/") or "/"
    q = (query or "").lstrip("?")
    if not q:
        return p
    pairs = sorted(parse_qsl(q, keep_blank_values=True))
    return f"{p}?{urlencode(pairs)}" if pairs else p


class LedgerStore:
    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, scope: str) -> NavigationLedger:
        try:
            raw = self.store.get(LEDGER_PREFIX + scope)
        except redis.RedisError as e:
            logger.debug("ledger read failed for %s: %r", scope, e)
            return NavigationLedger()
        if not raw:
            return NavigationLedger()
        try:
            return NavigationLedger.model_validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.debug("discarding malformed ledger for %s: %r", scope, e)
            return NavigationLedger()

    def put(self, scope: str, ledger: NavigationLedger) -> None:
        self.store.set(LEDGER_PREFIX + scope, ledger.model_dump_json())
