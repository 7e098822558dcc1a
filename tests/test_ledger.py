import pytest

from beacon.detectors.navigation import detect_navigation_loop
from beacon.ledger import LEDGER_PREFIX, LedgerStore, MemoryStore, NavigationLedger, RedisStore, normalize_path
from beacon.state import SID_KEY, SessionState, new_session_id, restore_session_id


class FakeRedis:
    def __init__(self):
        self.kv = {}

    def get(self, key):
        return self.kv.get(key)

    def set(self, key, value, ex=None):
        self.kv[key] = value.encode("utf-8") if isinstance(value, str) else value


@pytest.mark.parametrize("path,query,expected", [
    ("/checkout", "", "/checkout"),
    ("/checkout/", "", "/checkout"),
    ("/", "", "/"),
    ("/checkout", "?b=2&a=1", "/checkout?a=1&b=2"),
    ("/checkout", "?", "/checkout"),
    ("", "", "/"),
])
def test_normalize_path(path, query, expected):
    assert normalize_path(path, query) == expected


def test_missing_ledger_loads_empty():
    ledger = LedgerStore(MemoryStore()).get("sid")
    assert ledger.paths == {}
    assert ledger.order == []


@pytest.mark.parametrize("raw", ["{not json", "[]", '{"paths": {"/a": "many"}}', "null"])
def test_malformed_ledger_loads_empty(raw):
    store = MemoryStore({LEDGER_PREFIX + "sid": raw})
    ledger = LedgerStore(store).get("sid")
    assert ledger == NavigationLedger()


def test_ledger_round_trips_through_store():
    store = LedgerStore(MemoryStore())
    ledger = NavigationLedger()
    ledger.record("/cart", 10.0)
    store.put("sid", ledger)
    again = store.get("sid")
    assert again.paths == {"/cart": 1}
    assert again.order[0].path == "/cart"


def test_order_is_bounded():
    ledger = NavigationLedger()
    for i in range(10):
        ledger.record(f"/p{i}", float(i), limit=3)
    assert [v.path for v in ledger.order] == ["/p7", "/p8", "/p9"]
    assert len(ledger.paths) == 10


def test_redis_store_round_trip():
    store = LedgerStore(RedisStore(client=FakeRedis()))
    ledger = NavigationLedger()
    ledger.record("/checkout", 1.0)
    store.put("sid", ledger)
    assert store.get("sid").visits("/checkout") == 1


def _state(sid="sid-1"):
    return SessionState.start(sid, "pk", now=0.0)


def test_checkout_revisit_is_a_loop():
    store = LedgerStore(MemoryStore())
    first = detect_navigation_loop(_state(), store, "/checkout", "", now=0)
    assert first.nav_loop_count == 0

    second = detect_navigation_loop(_state(), store, "/checkout", "", now=5000)
    assert second.nav_loop_count >= 1
    assert second.nav_loop_path == "/checkout"
    assert store.get("sid-1").visits("/checkout") == 2


def test_loops_scoped_to_tab_session():
    store = LedgerStore(MemoryStore())
    detect_navigation_loop(_state("tab-a"), store, "/checkout", "", now=0)
    other = detect_navigation_loop(_state("tab-b"), store, "/checkout", "", now=10)
    assert other.nav_loop_count == 0


def test_different_query_is_a_different_page():
    store = LedgerStore(MemoryStore())
    detect_navigation_loop(_state(), store, "/search", "?q=shoes", now=0)
    st = detect_navigation_loop(_state(), store, "/search", "?q=hats", now=10)
    assert st.nav_loop_count == 0


def test_corrupt_ledger_still_records_visit():
    mem = MemoryStore({LEDGER_PREFIX + "sid-1": "\x00garbage"})
    store = LedgerStore(mem)
    st = detect_navigation_loop(_state(), store, "/checkout", "", now=0)
    assert st.nav_loop_count == 0
    assert store.get("sid-1").visits("/checkout") == 1


def test_session_id_reused_across_page_loads():
    storage = MemoryStore()
    first = restore_session_id(storage)
    assert storage.get(SID_KEY) == first
    assert restore_session_id(storage) == first


def test_session_id_falls_back_without_uuid():
    def broken():
        raise NotImplementedError("no entropy source")

    sid = new_session_id(broken)
    assert sid.startswith("sess_")
    assert len(sid) == len("sess_") + 11
