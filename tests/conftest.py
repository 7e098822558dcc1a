import pytest

from beacon.config import load_config
from beacon.dispatch import RecordingTransport
from beacon.engine import install
from beacon.ledger import MemoryStore
from beacon.workers.replay import ReplayHost

PROJECT_KEY = "pk_test"


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch):
    monkeypatch.delenv("BEACON_PROJECT_KEY", raising=False)
    monkeypatch.delenv("BEACON_ENDPOINT", raising=False)


@pytest.fixture
def storage():
    return MemoryStore()


@pytest.fixture
def host(storage):
    h = ReplayHost(path="/checkout", storage=storage, start_ms=1000.0, wall_ms=1_700_000_000_000.0)
    h.script_attributes["data-project-key"] = PROJECT_KEY
    return h


@pytest.fixture
def config():
    return load_config(endpoint="http://collector.test/collect")


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def engine(host, config, transport):
    handle = install(host, config, transport)
    yield handle
    handle.teardown()
